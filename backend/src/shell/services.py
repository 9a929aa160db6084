"""Services - Profile, report, meal-plan and moderation operations.

Services load records from the repository, run the pure core functions on
plain values and write the results back. Admin operations are recorded in
the audit log.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from ..core.meal_plans import allocate_meal_plan, apply_macro_override
from ..core.metrics import calculate_all_metrics
from ..core.models import (
    DISEASE_CONDITIONS,
    AccountStatus,
    AuditAction,
    AuditLog,
    ConditionTag,
    EntityType,
    FoodItem,
    FoodSuitability,
    MacroOverride,
    MealPlanRecord,
    MedicalReport,
    Metrics,
    Profile,
    ReportType,
    User,
)
from ..core.validation import validate_profile_form
from .mock_services import extract_biomarkers, predict_condition
from .repository import Repository


logger = logging.getLogger(__name__)


class ProfileValidationError(ValueError):
    """Profile form failed validation.

    Attributes:
        errors: Field name to message
    """

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


def _with_metrics(user: User, profile: Profile) -> tuple[User, Metrics]:
    metrics = calculate_all_metrics(profile)
    updated = user.model_copy(update={
        "profile": profile,
        "bmr": metrics.bmr,
        "tdee": metrics.tdee,
    })
    return updated, metrics


class UserService:
    """Operations a signed-in user performs on their own data."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def _user(self, user_id: str) -> User:
        user = self._repo.get_user(user_id)
        if user is None:
            raise LookupError(f"User not found: {user_id}")
        return user

    def update_profile(
        self, user_id: str, profile: Profile, name: Optional[str] = None
    ) -> tuple[User, Metrics]:
        """Validate and save a profile, storing the recomputed BMR and TDEE.

        Raises:
            LookupError: If the user does not exist
            ProfileValidationError: If any field is out of range
        """
        user = self._user(user_id)
        name = user.name if name is None else name

        errors = validate_profile_form(name, profile.age, profile.weight_kg, profile.height_cm)
        if errors:
            raise ProfileValidationError(errors)

        updated, metrics = _with_metrics(user, profile)
        updated = updated.model_copy(update={"name": name.strip()})
        self._repo.save_user(updated)

        logger.info("Profile updated for %s: tdee=%.0f", user_id[:8], metrics.tdee)
        return updated, metrics

    def get_metrics(self, user_id: str) -> Metrics:
        """Metrics for the user's stored profile (zeroed if incomplete)."""
        return calculate_all_metrics(self._user(user_id).profile)

    def upload_report(
        self,
        user_id: str,
        file_name: str,
        report_type: ReportType = ReportType.BLOOD_TEST,
        report_date: Optional[datetime] = None,
    ) -> MedicalReport:
        """Store a report with readings from the (mock) extractor."""
        self._user(user_id)
        readings, elapsed_ms = extract_biomarkers(file_name)

        report = MedicalReport(
            user_id=user_id,
            file_name=file_name,
            report_type=report_type,
            readings=readings,
            **({"report_date": report_date} if report_date else {}),
        )
        self._repo.save_report(report)

        logger.info(
            "Report %s stored for %s with %d readings (%d ms)",
            report.id[:8], user_id[:8], len(readings), elapsed_ms,
        )
        return report

    def list_reports(self, user_id: str) -> list[MedicalReport]:
        return self._repo.list_reports(user_id)

    def generate_meal_plan(self, user_id: str) -> MealPlanRecord:
        """Generate and store a plan from the user's TDEE and latest report.

        Without a report the predicted condition is FIT. A zero TDEE falls
        back to the allocator's default budget.
        """
        user = self._user(user_id)
        reports = self._repo.list_reports(user_id)
        readings = reports[0].readings if reports else []

        condition, prediction_ms = predict_condition(readings)
        plan = allocate_meal_plan(user.tdee, condition)

        record = MealPlanRecord(user_id=user_id, plan=plan)
        self._repo.save_meal_plan(record)
        self._repo.add_audit_log(AuditLog(
            action=AuditAction.CREATE,
            entity_type=EntityType.MEAL_PLAN,
            entity_id=record.id,
            actor_email=user.email,
            changes={"condition": condition.value, "target_calories": plan.target_calories},
            prediction_time_ms=prediction_ms,
        ))

        logger.info("Meal plan %s generated for %s (%s)", record.id[:8], user_id[:8], condition.value)
        return record

    def list_meal_plans(self, user_id: str) -> list[MealPlanRecord]:
        return self._repo.list_meal_plans(user_id)


class AdminService:
    """Catalog, suitability, account and content moderation operations.

    Every mutating call takes the acting admin's email for the audit log.
    """

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def _audit(
        self,
        action: AuditAction,
        entity_type: EntityType,
        entity_id: str,
        admin_email: str,
        changes: Optional[dict] = None,
    ) -> None:
        self._repo.add_audit_log(AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_email=admin_email,
            changes=changes or {},
        ))

    # ==================== Food catalog ====================

    def list_foods(self) -> list[FoodItem]:
        return self._repo.list_foods()

    def add_food(self, data: dict[str, Any], admin_email: str) -> FoodItem:
        """Add a food and mark it suitable for every condition.

        Raises:
            pydantic.ValidationError: If the food data is invalid
        """
        food = FoodItem(**data)
        self._repo.save_food(food)
        for condition in DISEASE_CONDITIONS:
            self._repo.save_suitability(FoodSuitability(
                food_id=food.id, condition=condition, last_updated_by=admin_email,
            ))

        self._audit(AuditAction.CREATE, EntityType.FOOD, food.id, admin_email, {"name": food.name})
        logger.info("Food added by %s: %s", admin_email, food.name)
        return food

    def update_food(self, food_id: str, updates: dict[str, Any], admin_email: str) -> Optional[FoodItem]:
        """Apply field updates to a food. Returns None if it does not exist."""
        food = self._repo.get_food(food_id)
        if food is None:
            logger.warning("Food not found: %s", food_id)
            return None

        data = food.model_dump()
        data.update(updates)
        data["id"] = food.id
        data["updated_at"] = datetime.utcnow()
        updated = FoodItem(**data)
        self._repo.save_food(updated)

        self._audit(AuditAction.UPDATE, EntityType.FOOD, food_id, admin_email, dict(updates))
        return updated

    def delete_food(self, food_id: str, admin_email: str) -> bool:
        """Remove a food and its suitability records."""
        food = self._repo.get_food(food_id)
        if food is None or not self._repo.delete_food(food_id):
            return False

        self._repo.delete_suitability_for_food(food_id)
        self._audit(AuditAction.DELETE, EntityType.FOOD, food_id, admin_email, {"name": food.name})
        return True

    # ==================== Suitability matrix ====================

    def set_suitability(
        self,
        food_id: str,
        condition: ConditionTag,
        is_suitable: bool,
        admin_email: str,
        notes: str = "",
    ) -> FoodSuitability:
        """Mark a food as suitable or unsuitable for a condition.

        Raises:
            ValueError: If the condition is not tracked in the matrix
            LookupError: If the food does not exist
        """
        condition = ConditionTag(condition)
        if condition not in DISEASE_CONDITIONS:
            raise ValueError(f"Condition not tracked in suitability matrix: {condition.value}")
        if self._repo.get_food(food_id) is None:
            raise LookupError(f"Food not found: {food_id}")

        existing = self._repo.get_suitability(food_id, condition)
        record = FoodSuitability(
            **({"id": existing.id} if existing else {}),
            food_id=food_id,
            condition=condition,
            is_suitable=is_suitable,
            notes=notes,
            last_updated_by=admin_email,
        )
        self._repo.save_suitability(record)

        self._audit(
            AuditAction.UPDATE, EntityType.SUITABILITY, food_id, admin_email,
            {"condition": condition.value, "is_suitable": is_suitable},
        )
        return record

    def suitability_matrix(self) -> dict[str, dict[str, bool]]:
        """food_id -> condition -> is_suitable for every stored record."""
        matrix: dict[str, dict[str, bool]] = {}
        for record in self._repo.list_suitability():
            matrix.setdefault(record.food_id, {})[record.condition.value] = record.is_suitable
        return matrix

    def food_stats(self) -> dict[str, int]:
        """Dashboard counts.

        A food is unlabeled when any tracked condition has no record for it.
        """
        foods = self._repo.list_foods()
        matrix = self.suitability_matrix()
        tracked = {c.value for c in DISEASE_CONDITIONS}

        unlabeled = sum(1 for f in foods if not tracked <= matrix.get(f.id, {}).keys())
        unsuitable = sum(1 for row in matrix.values() for ok in row.values() if not ok)

        return {
            "total_foods": len(foods),
            "unlabeled": unlabeled,
            "active_conditions": len(DISEASE_CONDITIONS),
            "unsuitable_pairs": unsuitable,
        }

    # ==================== Accounts ====================

    def list_users(self, query: str = "", status: Optional[AccountStatus] = None) -> list[User]:
        """Users whose name or email contains the query, optionally by status."""
        query = query.lower()
        return [
            u for u in self._repo.list_users()
            if (query in u.name.lower() or query in u.email.lower())
            and (status is None or u.status == status)
        ]

    def update_user(
        self,
        user_id: str,
        admin_email: str,
        name: Optional[str] = None,
        profile: Optional[Profile] = None,
    ) -> Optional[User]:
        """Edit a user's name or profile; metrics are recomputed with the profile."""
        user = self._repo.get_user(user_id)
        if user is None:
            return None

        changes: dict[str, Any] = {}
        if name is not None:
            user = user.model_copy(update={"name": name})
            changes["name"] = name
        if profile is not None:
            user, _ = _with_metrics(user, profile)
            changes["profile"] = profile.model_dump(mode="json")

        self._repo.save_user(user)
        self._audit(AuditAction.UPDATE, EntityType.USER, user_id, admin_email, changes)
        return user

    def toggle_user_status(self, user_id: str, admin_email: str) -> Optional[User]:
        """Flip a user between active and suspended."""
        user = self._repo.get_user(user_id)
        if user is None:
            return None

        new_status = (
            AccountStatus.SUSPENDED if user.status == AccountStatus.ACTIVE else AccountStatus.ACTIVE
        )
        user = user.model_copy(update={"status": new_status})
        self._repo.save_user(user)

        self._audit(AuditAction.UPDATE, EntityType.USER, user_id, admin_email, {"status": new_status.value})
        logger.info("User %s is now %s", user_id[:8], new_status.value)
        return user

    def delete_user(self, user_id: str, admin_email: str) -> bool:
        if not self._repo.delete_user(user_id):
            return False
        self._audit(AuditAction.DELETE, EntityType.USER, user_id, admin_email)
        return True

    # ==================== Generated content ====================

    def list_meal_plans(self) -> list[MealPlanRecord]:
        return self._repo.list_meal_plans()

    def override_meal_plan_macros(
        self, plan_id: str, override: MacroOverride, admin_email: str
    ) -> Optional[MealPlanRecord]:
        """Overwrite a plan's totals. Per-meal splits are left as generated."""
        record = self._repo.get_meal_plan(plan_id)
        if record is None:
            return None

        record = record.model_copy(update={
            "plan": apply_macro_override(record.plan, override),
            "overridden_by": admin_email,
        })
        self._repo.save_meal_plan(record)

        self._audit(
            AuditAction.UPDATE, EntityType.MEAL_PLAN, plan_id, admin_email, override.model_dump()
        )
        return record

    def list_reports(self) -> list[MedicalReport]:
        return self._repo.list_reports()

    def delete_report(self, report_id: str, admin_email: str) -> bool:
        if not self._repo.delete_report(report_id):
            return False
        self._audit(AuditAction.DELETE, EntityType.REPORT, report_id, admin_email)
        return True

    def audit_logs(self, limit: int = 10) -> list[AuditLog]:
        return self._repo.list_audit_logs(limit)
