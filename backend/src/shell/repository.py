"""Repository - Storage interface for accounts, catalog and generated content.

Services depend on the Repository protocol only. InMemoryRepository backs
development and tests; FirestoreRepository (firestore_client.py) backs
deployments.
"""

import logging
from typing import Optional, Protocol

from ..core.models import (
    AuditLog,
    ConditionTag,
    FoodItem,
    FoodSuitability,
    MealPlanRecord,
    MedicalReport,
    User,
)


logger = logging.getLogger(__name__)


class Repository(Protocol):
    """Persistence operations used by the services."""

    # Users
    def get_user(self, user_id: str) -> Optional[User]: ...
    def get_user_by_email(self, email: str) -> Optional[User]: ...
    def get_user_by_api_key_hash(self, api_key_hash: str) -> Optional[User]: ...
    def list_users(self) -> list[User]: ...
    def save_user(self, user: User) -> bool: ...
    def delete_user(self, user_id: str) -> bool: ...

    # Food catalog
    def get_food(self, food_id: str) -> Optional[FoodItem]: ...
    def list_foods(self) -> list[FoodItem]: ...
    def save_food(self, food: FoodItem) -> bool: ...
    def delete_food(self, food_id: str) -> bool: ...

    # Suitability matrix
    def get_suitability(self, food_id: str, condition: ConditionTag) -> Optional[FoodSuitability]: ...
    def list_suitability(self, food_id: Optional[str] = None) -> list[FoodSuitability]: ...
    def save_suitability(self, record: FoodSuitability) -> bool: ...
    def delete_suitability_for_food(self, food_id: str) -> int: ...

    # Medical reports
    def get_report(self, report_id: str) -> Optional[MedicalReport]: ...
    def list_reports(self, user_id: Optional[str] = None) -> list[MedicalReport]: ...
    def save_report(self, report: MedicalReport) -> bool: ...
    def delete_report(self, report_id: str) -> bool: ...

    # Meal plans
    def get_meal_plan(self, plan_id: str) -> Optional[MealPlanRecord]: ...
    def list_meal_plans(self, user_id: Optional[str] = None) -> list[MealPlanRecord]: ...
    def save_meal_plan(self, record: MealPlanRecord) -> bool: ...

    # Audit
    def add_audit_log(self, entry: AuditLog) -> bool: ...
    def list_audit_logs(self, limit: int = 50) -> list[AuditLog]: ...


class InMemoryRepository:
    """Dict-backed repository. No durability and no locking."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._foods: dict[str, FoodItem] = {}
        self._suitability: dict[tuple[str, ConditionTag], FoodSuitability] = {}
        self._reports: dict[str, MedicalReport] = {}
        self._meal_plans: dict[str, MealPlanRecord] = {}
        self._audit_logs: list[AuditLog] = []

    # ==================== Users ====================

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        email = email.lower()
        return next((u for u in self._users.values() if u.email.lower() == email), None)

    def get_user_by_api_key_hash(self, api_key_hash: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.api_key_hash == api_key_hash), None)

    def list_users(self) -> list[User]:
        return sorted(self._users.values(), key=lambda u: u.created_at)

    def save_user(self, user: User) -> bool:
        logger.debug("Saving user: %s", user.id[:8])
        self._users[user.id] = user
        return True

    def delete_user(self, user_id: str) -> bool:
        return self._users.pop(user_id, None) is not None

    # ==================== Food catalog ====================

    def get_food(self, food_id: str) -> Optional[FoodItem]:
        return self._foods.get(food_id)

    def list_foods(self) -> list[FoodItem]:
        return sorted(self._foods.values(), key=lambda f: f.name.lower())

    def save_food(self, food: FoodItem) -> bool:
        self._foods[food.id] = food
        return True

    def delete_food(self, food_id: str) -> bool:
        return self._foods.pop(food_id, None) is not None

    # ==================== Suitability matrix ====================

    def get_suitability(self, food_id: str, condition: ConditionTag) -> Optional[FoodSuitability]:
        return self._suitability.get((food_id, condition))

    def list_suitability(self, food_id: Optional[str] = None) -> list[FoodSuitability]:
        return [
            s for s in self._suitability.values()
            if food_id is None or s.food_id == food_id
        ]

    def save_suitability(self, record: FoodSuitability) -> bool:
        self._suitability[(record.food_id, record.condition)] = record
        return True

    def delete_suitability_for_food(self, food_id: str) -> int:
        keys = [k for k in self._suitability if k[0] == food_id]
        for key in keys:
            del self._suitability[key]
        return len(keys)

    # ==================== Medical reports ====================

    def get_report(self, report_id: str) -> Optional[MedicalReport]:
        return self._reports.get(report_id)

    def list_reports(self, user_id: Optional[str] = None) -> list[MedicalReport]:
        reports = [r for r in self._reports.values() if user_id is None or r.user_id == user_id]
        return sorted(reports, key=lambda r: r.upload_date, reverse=True)

    def save_report(self, report: MedicalReport) -> bool:
        self._reports[report.id] = report
        return True

    def delete_report(self, report_id: str) -> bool:
        return self._reports.pop(report_id, None) is not None

    # ==================== Meal plans ====================

    def get_meal_plan(self, plan_id: str) -> Optional[MealPlanRecord]:
        return self._meal_plans.get(plan_id)

    def list_meal_plans(self, user_id: Optional[str] = None) -> list[MealPlanRecord]:
        plans = [p for p in self._meal_plans.values() if user_id is None or p.user_id == user_id]
        return sorted(plans, key=lambda p: p.generated_at, reverse=True)

    def save_meal_plan(self, record: MealPlanRecord) -> bool:
        self._meal_plans[record.id] = record
        return True

    # ==================== Audit ====================

    def add_audit_log(self, entry: AuditLog) -> bool:
        self._audit_logs.append(entry)
        return True

    def list_audit_logs(self, limit: int = 50) -> list[AuditLog]:
        # Appended in time order
        return self._audit_logs[::-1][:limit]
