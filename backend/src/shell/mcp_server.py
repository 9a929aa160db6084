"""MCP Server - Tool definitions for assistant integration.

Defines the MCP tools for profile metrics, reports and meal plans, plus the
admin moderation tools. Handles authentication via API key in the
Authorization header (see main.py).
"""

import logging
import os
from contextvars import ContextVar
from typing import Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings
from pydantic import ValidationError

from ..core.models import (
    AccountStatus,
    ActivityLevel,
    ConditionTag,
    Gender,
    MacroOverride,
    Profile,
    ReportType,
    User,
)
from .auth import AuthClient, is_admin
from .firestore_client import FirestoreConfig, FirestoreRepository
from .repository import InMemoryRepository, Repository
from .services import AdminService, ProfileValidationError, UserService


logger = logging.getLogger(__name__)

# Context variable to store current user_id per request
current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)

transport_security = TransportSecuritySettings(
    enable_dns_rebinding_protection=True,
    allowed_hosts=[
        "localhost:*",
        "127.0.0.1:*",
        "testserver",
        "*.run.app:*",
        "*.run.app",
    ],
)

mcp = FastMCP(
    "nutrix",
    instructions="""Nutrix - Nutrition planning assistant.

Use these tools to keep the user's biometric profile up to date, analyse
uploaded medical reports and generate condition-aware meal plans.

Call update_profile before generate_meal_plan so the plan uses the user's
TDEE. Admin tools only work for admin accounts.""",
    stateless_http=True,
    transport_security=transport_security,
)

# Lazy-initialized clients
_repository: Repository | None = None
_auth_client: AuthClient | None = None


def build_repository() -> Repository:
    """Create the repository selected by NUTRIX_STORE (memory or firestore)."""
    store = os.environ.get("NUTRIX_STORE", "firestore").lower()
    if store == "memory":
        logger.info("Using in-memory repository")
        return InMemoryRepository()

    config = FirestoreConfig(
        project_id=os.environ.get("FIRESTORE_PROJECT"),
        database=os.environ.get("FIRESTORE_DATABASE", "nutrix"),
    )
    return FirestoreRepository(config)


def get_repository() -> Repository:
    """Get or create the repository."""
    global _repository
    if _repository is None:
        _repository = build_repository()
    return _repository


def set_repository(repo: Repository | None) -> None:
    """Inject a repository (None resets to lazy creation)."""
    global _repository, _auth_client
    _repository = repo
    _auth_client = None


def get_auth_client() -> AuthClient:
    """Get or create Auth client."""
    global _auth_client
    if _auth_client is None:
        _auth_client = AuthClient(get_repository())
    return _auth_client


def get_user_id() -> str:
    """Get current authenticated user ID.

    Raises:
        RuntimeError: If no user is authenticated
    """
    user_id = current_user_id.get()
    if user_id is None:
        raise RuntimeError("No authenticated user. Ensure API key is provided.")
    return user_id


def get_admin() -> Optional[User]:
    """Current user if they hold the admin role, else None."""
    user = get_repository().get_user(get_user_id())
    return user if is_admin(user) else None


ADMIN_REQUIRED = {"error": "Admin role required."}


# ==================== Profile Tools ====================


@mcp.tool()
def update_profile(
    age: float,
    gender: str,
    height_cm: float,
    weight_kg: float,
    activity_level: str,
    name: str | None = None,
) -> dict:
    """Save the user's biometric profile and return the recalculated metrics.

    Args:
        age: Age in years (18-100)
        gender: "male" or "female"
        height_cm: Height in centimetres (100-250)
        weight_kg: Weight in kilograms (30-300)
        activity_level: sedentary, light, moderate, active or very_active
        name: Optional new display name

    Returns:
        Metrics (bmr, tdee, bmi, bmi_category) or validation errors
    """
    try:
        profile = Profile(
            age=age,
            gender=Gender(gender),
            height_cm=height_cm,
            weight_kg=weight_kg,
            activity_level=ActivityLevel(activity_level),
        )
    except ValueError as e:
        return {"error": f"Invalid profile: {e}"}

    try:
        _, metrics = UserService(get_repository()).update_profile(get_user_id(), profile, name)
    except ProfileValidationError as e:
        return {"error": "Profile validation failed.", "fields": e.errors}
    except LookupError:
        return {"error": "User not found."}

    return metrics.model_dump(mode="json")


@mcp.tool()
def get_metrics() -> dict:
    """Get BMR, TDEE and BMI for the stored profile.

    Returns zeroed metrics with category N/A if the profile is incomplete.
    """
    try:
        metrics = UserService(get_repository()).get_metrics(get_user_id())
    except LookupError:
        return {"error": "User not found."}
    return metrics.model_dump(mode="json")


# ==================== Report Tools ====================


@mcp.tool()
def upload_report(file_name: str, report_type: str = "blood_test") -> dict:
    """Upload a medical report and extract its biomarker readings.

    Args:
        file_name: Name of the report file
        report_type: blood_test, checkup, screening or other

    Returns:
        Report ID and readings with low/normal/high status
    """
    try:
        kind = ReportType(report_type)
    except ValueError:
        return {"error": f"Unknown report type: {report_type}"}

    report = UserService(get_repository()).upload_report(get_user_id(), file_name, kind)
    return {
        "report_id": report.id,
        "readings": [r.model_dump(mode="json", exclude={"id"}) for r in report.readings],
    }


@mcp.tool()
def get_reports() -> list[dict]:
    """List the user's medical reports, newest first."""
    reports = UserService(get_repository()).list_reports(get_user_id())
    return [r.model_dump(mode="json") for r in reports]


# ==================== Meal Plan Tools ====================


@mcp.tool()
def generate_meal_plan() -> dict:
    """Generate a meal plan from the user's TDEE and latest medical report.

    Returns:
        Plan ID, predicted condition and the breakfast/lunch/dinner allocation
    """
    try:
        record = UserService(get_repository()).generate_meal_plan(get_user_id())
    except LookupError:
        return {"error": "User not found."}
    return {"plan_id": record.id, **record.plan.model_dump(mode="json")}


@mcp.tool()
def get_meal_plans() -> list[dict]:
    """List the user's generated meal plans, newest first."""
    records = UserService(get_repository()).list_meal_plans(get_user_id())
    return [r.model_dump(mode="json") for r in records]


# ==================== Admin Tools ====================


@mcp.tool()
def list_foods() -> list[dict]:
    """Admin: list the food catalog."""
    if get_admin() is None:
        return [ADMIN_REQUIRED]
    return [f.model_dump(mode="json") for f in AdminService(get_repository()).list_foods()]


@mcp.tool()
def add_food(
    name: str,
    category: str,
    calories: float,
    carbs: float,
    protein: float,
    fat: float,
    description: str = "",
    sodium: float = 0,
    sugar: float = 0,
    cholesterol: float = 0,
    iron: float = 0,
) -> dict:
    """Admin: add a food to the catalog (nutrients per 100g)."""
    admin = get_admin()
    if admin is None:
        return ADMIN_REQUIRED

    data = {
        "name": name, "category": category, "description": description,
        "calories": calories, "carbs": carbs, "protein": protein, "fat": fat,
        "sodium": sodium, "sugar": sugar, "cholesterol": cholesterol, "iron": iron,
    }
    try:
        food = AdminService(get_repository()).add_food(data, admin.email)
    except ValidationError as e:
        return {"error": f"Invalid food: {e.error_count()} field error(s)."}
    return food.model_dump(mode="json")


@mcp.tool()
def update_food(food_id: str, updates: dict) -> dict:
    """Admin: update fields of a catalog food."""
    admin = get_admin()
    if admin is None:
        return ADMIN_REQUIRED
    try:
        food = AdminService(get_repository()).update_food(food_id, updates, admin.email)
    except ValidationError as e:
        return {"error": f"Invalid food: {e.error_count()} field error(s)."}
    if food is None:
        return {"error": "Food not found."}
    return food.model_dump(mode="json")


@mcp.tool()
def delete_food(food_id: str) -> dict:
    """Admin: delete a catalog food and its suitability records."""
    admin = get_admin()
    if admin is None:
        return ADMIN_REQUIRED
    if not AdminService(get_repository()).delete_food(food_id, admin.email):
        return {"error": "Food not found."}
    return {"success": True}


@mcp.tool()
def set_suitability(food_id: str, condition: str, is_suitable: bool, notes: str = "") -> dict:
    """Admin: mark a food as suitable or unsuitable for a condition.

    Args:
        food_id: Catalog food ID
        condition: anemia, diabetes, hypertension or cholesterol
        is_suitable: Whether the food suits the condition
        notes: Optional clinical notes
    """
    admin = get_admin()
    if admin is None:
        return ADMIN_REQUIRED
    try:
        record = AdminService(get_repository()).set_suitability(
            food_id, ConditionTag(condition), is_suitable, admin.email, notes
        )
    except LookupError:
        return {"error": "Food not found."}
    except ValueError as e:
        return {"error": str(e)}
    return record.model_dump(mode="json")


@mcp.tool()
def get_food_stats() -> dict:
    """Admin: catalog counts for the dashboard."""
    if get_admin() is None:
        return ADMIN_REQUIRED
    return AdminService(get_repository()).food_stats()


@mcp.tool()
def list_users(query: str = "", status: str | None = None) -> list[dict]:
    """Admin: search users by name or email, optionally filtered by status."""
    if get_admin() is None:
        return [ADMIN_REQUIRED]
    try:
        status_filter = AccountStatus(status) if status else None
    except ValueError:
        return [{"error": f"Unknown status: {status}"}]
    users = AdminService(get_repository()).list_users(query, status_filter)
    return [u.model_dump(mode="json", exclude={"password_hash", "api_key_hash"}) for u in users]


@mcp.tool()
def toggle_user_status(user_id: str) -> dict:
    """Admin: suspend an active user or reactivate a suspended one."""
    admin = get_admin()
    if admin is None:
        return ADMIN_REQUIRED
    user = AdminService(get_repository()).toggle_user_status(user_id, admin.email)
    if user is None:
        return {"error": "User not found."}
    return {"user_id": user.id, "status": user.status.value}


@mcp.tool()
def update_user(
    user_id: str,
    name: str | None = None,
    age: float | None = None,
    gender: str | None = None,
    height_cm: float | None = None,
    weight_kg: float | None = None,
    activity_level: str | None = None,
) -> dict:
    """Admin: edit a user's name or profile. BMR and TDEE are recalculated.

    Profile fields left out keep their stored values.
    """
    admin = get_admin()
    if admin is None:
        return ADMIN_REQUIRED

    user = get_repository().get_user(user_id)
    if user is None:
        return {"error": "User not found."}

    fields = {
        "age": age, "gender": gender, "height_cm": height_cm,
        "weight_kg": weight_kg, "activity_level": activity_level,
    }
    updates = {k: v for k, v in fields.items() if v is not None}
    profile = None
    if updates:
        try:
            profile = Profile(**{**user.profile.model_dump(), **updates})
        except ValidationError as e:
            return {"error": f"Invalid profile: {e.error_count()} field error(s)."}

    updated = AdminService(get_repository()).update_user(user_id, admin.email, name, profile)
    if updated is None:
        return {"error": "User not found."}
    return updated.model_dump(mode="json", exclude={"password_hash", "api_key_hash"})


@mcp.tool()
def delete_user(user_id: str) -> dict:
    """Admin: delete a user account."""
    admin = get_admin()
    if admin is None:
        return ADMIN_REQUIRED
    if not AdminService(get_repository()).delete_user(user_id, admin.email):
        return {"error": "User not found."}
    return {"success": True}


@mcp.tool()
def list_all_meal_plans() -> list[dict]:
    """Admin: every generated meal plan, newest first."""
    if get_admin() is None:
        return [ADMIN_REQUIRED]
    return [r.model_dump(mode="json") for r in AdminService(get_repository()).list_meal_plans()]


@mcp.tool()
def list_all_reports() -> list[dict]:
    """Admin: every uploaded medical report, newest first."""
    if get_admin() is None:
        return [ADMIN_REQUIRED]
    return [r.model_dump(mode="json") for r in AdminService(get_repository()).list_reports()]


@mcp.tool()
def override_meal_plan_macros(
    plan_id: str,
    total_calories: int,
    total_carbs_g: int,
    total_fats_g: int,
    total_protein_g: int,
) -> dict:
    """Admin: overwrite a meal plan's total calories and macros.

    Per-meal values are not recalculated.
    """
    admin = get_admin()
    if admin is None:
        return ADMIN_REQUIRED
    try:
        override = MacroOverride(
            total_calories=total_calories,
            total_carbs_g=total_carbs_g,
            total_fats_g=total_fats_g,
            total_protein_g=total_protein_g,
        )
    except ValidationError:
        return {"error": "Totals must be non-negative integers."}

    record = AdminService(get_repository()).override_meal_plan_macros(plan_id, override, admin.email)
    if record is None:
        return {"error": "Meal plan not found."}
    return record.model_dump(mode="json")


@mcp.tool()
def delete_report(report_id: str) -> dict:
    """Admin: delete a medical report."""
    admin = get_admin()
    if admin is None:
        return ADMIN_REQUIRED
    if not AdminService(get_repository()).delete_report(report_id, admin.email):
        return {"error": "Report not found."}
    return {"success": True}


@mcp.tool()
def get_audit_logs(limit: int = 10) -> list[dict]:
    """Admin: most recent audit log entries."""
    if get_admin() is None:
        return [ADMIN_REQUIRED]
    return [e.model_dump(mode="json") for e in AdminService(get_repository()).audit_logs(limit)]
