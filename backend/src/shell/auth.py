"""Authentication - Passwords, API keys and account roles.

Handles registration, login and API key validation. Never stores plaintext
passwords or keys. Authorization is a role string comparison only.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional

from ..core.models import AccountStatus, AuditAction, AuditLog, EntityType, Role, User
from ..core.validation import is_valid_email, validate_password
from .repository import Repository


logger = logging.getLogger(__name__)

# API key prefix for identification
API_KEY_PREFIX = "ntx_"

PBKDF2_ITERATIONS = 200_000


class RegistrationError(ValueError):
    """Registration input was rejected."""


class DuplicateEmailError(RegistrationError):
    """An account with this email already exists."""


class AccountSuspendedError(PermissionError):
    """The account exists but has been suspended by an admin."""


def generate_api_key() -> str:
    """Generate a cryptographically secure API key.

    Returns:
        API key in format: ntx_<random_chars>
    """
    return f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"


def hash_api_key(api_key: str) -> str:
    """Hash an API key for storage and lookup.

    Args:
        api_key: The plaintext API key

    Returns:
        32-character hex digest
    """
    return hashlib.sha256(api_key.encode()).hexdigest()[:32]


def validate_api_key_format(api_key: str) -> bool:
    """Check if API key has valid format."""
    if not api_key:
        return False
    if not api_key.startswith(API_KEY_PREFIX):
        return False
    if len(api_key) < 40:  # prefix + at least some random chars
        return False
    return True


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Hash a password with PBKDF2-SHA256.

    Returns:
        "pbkdf2_sha256$<iterations>$<salt>$<hex digest>"
    """
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored hash_password() value."""
    try:
        algorithm, iterations, salt, expected = stored.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == Role.ADMIN


class AuthClient:
    """Account registration, login and API key validation over a repository."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def register_user(
        self, email: str, password: str, name: str, role: Role = Role.USER
    ) -> tuple[str, User]:
        """Create an account and issue its first API key.

        Args:
            email: Login email
            password: Plaintext password (at least 8 characters)
            name: Display name
            role: Account role

        Returns:
            Tuple of (api_key, user) - api_key is only returned once!

        Raises:
            RegistrationError: If email, password or name is invalid
            DuplicateEmailError: If the email is already registered
        """
        email = (email or "").strip().lower()
        if not is_valid_email(email):
            raise RegistrationError("Valid email is required")
        if not name or not name.strip():
            raise RegistrationError("Name is required")
        password_check = validate_password(password)
        if not password_check.valid:
            raise RegistrationError(password_check.message)
        if self._repo.get_user_by_email(email) is not None:
            raise DuplicateEmailError("User with this email already exists")

        logger.info("Registering new %s: %s", role.value, email)

        api_key = generate_api_key()
        user = User(
            email=email,
            name=name.strip(),
            role=role,
            password_hash=hash_password(password),
            api_key_hash=hash_api_key(api_key),
        )
        if not self._repo.save_user(user):
            raise RuntimeError("Failed to save new user")

        logger.info("User registered successfully: %s", user.id[:8])
        return api_key, user

    def login(self, email: str, password: str) -> Optional[tuple[str, User]]:
        """Check credentials and rotate the account's API key.

        Returns:
            Tuple of (new api_key, user), or None for bad credentials

        Raises:
            AccountSuspendedError: If the credentials match a suspended account
        """
        user = self._repo.get_user_by_email((email or "").strip().lower())
        if user is None or not verify_password(password or "", user.password_hash):
            logger.warning("Failed login for: %s", email)
            return None
        if user.status == AccountStatus.SUSPENDED:
            raise AccountSuspendedError("Account is suspended")

        api_key = generate_api_key()
        user = user.model_copy(update={"api_key_hash": hash_api_key(api_key)})
        self._repo.save_user(user)

        if user.role == Role.ADMIN:
            self._repo.add_audit_log(AuditLog(
                action=AuditAction.LOGIN,
                entity_type=EntityType.AUTH,
                entity_id=user.id,
                actor_email=user.email,
            ))

        logger.info("User logged in: %s", user.id[:8])
        return api_key, user

    def validate_api_key(self, api_key: str) -> Optional[str]:
        """Validate an API key and return the user_id if valid."""
        user = self.get_user_for_key(api_key)
        return user.id if user else None

    def get_user_for_key(self, api_key: str) -> Optional[User]:
        """Resolve an API key to an active user."""
        if not validate_api_key_format(api_key):
            logger.warning("Invalid API key format")
            return None

        user = self._repo.get_user_by_api_key_hash(hash_api_key(api_key))
        if user is None:
            logger.warning("API key not found in database")
            return None
        if user.status != AccountStatus.ACTIVE:
            logger.warning("API key belongs to suspended user: %s", user.id[:8])
            return None
        return user
