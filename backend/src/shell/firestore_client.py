"""Firestore Client - Persistence for accounts, catalog and generated content.

This module handles all database I/O against Firestore.
All I/O is contained here; business logic is in the core module.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, TypeVar

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import BaseModel

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

ModelT = TypeVar("ModelT", bound=BaseModel)

USERS = "users"
FOODS = "foods"
SUITABILITY = "suitability"
REPORTS = "medical_reports"
MEAL_PLANS = "meal_plans"
AUDIT_LOGS = "audit_logs"


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
    """

    project_id: str | None = None
    database: str | None = None


def suitability_doc_id(food_id: str, condition: ConditionTag) -> str:
    """Deterministic document ID so each food/condition pair has one record."""
    return f"{food_id}__{condition.value}"


class FirestoreRepository:
    """Repository implementation over Firestore.

    Collections:
        users/{user_id}
        foods/{food_id}
        suitability/{food_id}__{condition}
        medical_reports/{report_id}
        meal_plans/{plan_id}
        audit_logs/{log_id}

    Read failures are logged and reported as None / empty results, write
    failures as False.
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _doc(self, collection: str, doc_id: str) -> firestore.DocumentReference:
        return self.client.collection(collection).document(doc_id)

    # ==================== Generic helpers ====================

    def _get(self, collection: str, doc_id: str, model: type[ModelT]) -> Optional[ModelT]:
        try:
            doc = self._doc(collection, doc_id).get()
            if not doc.exists:
                return None
            return model(**doc.to_dict())
        except Exception as e:
            logger.error("Failed to fetch %s/%s: %s", collection, doc_id, str(e))
            return None

    def _set(self, collection: str, doc_id: str, record: BaseModel) -> bool:
        try:
            self._doc(collection, doc_id).set(record.model_dump(mode="json"))
            return True
        except Exception as e:
            logger.error("Failed to save %s/%s: %s", collection, doc_id, str(e))
            return False

    def _delete(self, collection: str, doc_id: str) -> bool:
        try:
            ref = self._doc(collection, doc_id)
            if not ref.get().exists:
                return False
            ref.delete()
            return True
        except Exception as e:
            logger.error("Failed to delete %s/%s: %s", collection, doc_id, str(e))
            return False

    def _query(
        self,
        collection: str,
        model: type[ModelT],
        field: str | None = None,
        value: Any = None,
    ) -> list[ModelT]:
        try:
            query = self.client.collection(collection)
            if field is not None:
                query = query.where(filter=FieldFilter(field, "==", value))
            return [model(**doc.to_dict()) for doc in query.stream()]
        except Exception as e:
            logger.error("Failed to query %s: %s", collection, str(e))
            return []

    def _first(self, collection: str, model: type[ModelT], field: str, value: Any) -> Optional[ModelT]:
        try:
            query = self.client.collection(collection).where(
                filter=FieldFilter(field, "==", value)
            ).limit(1)
            for doc in query.stream():
                return model(**doc.to_dict())
            return None
        except Exception as e:
            logger.error("Failed to query %s by %s: %s", collection, field, str(e))
            return None

    # ==================== Users ====================

    def get_user(self, user_id: str) -> Optional[User]:
        logger.debug("Fetching user: %s", user_id[:8])
        return self._get(USERS, user_id, User)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._first(USERS, User, "email", email.lower())

    def get_user_by_api_key_hash(self, api_key_hash: str) -> Optional[User]:
        return self._first(USERS, User, "api_key_hash", api_key_hash)

    def list_users(self) -> list[User]:
        return sorted(self._query(USERS, User), key=lambda u: u.created_at)

    def save_user(self, user: User) -> bool:
        logger.info("Saving user: %s", user.id[:8])
        return self._set(USERS, user.id, user)

    def delete_user(self, user_id: str) -> bool:
        logger.info("Deleting user: %s", user_id[:8])
        return self._delete(USERS, user_id)

    # ==================== Food catalog ====================

    def get_food(self, food_id: str) -> Optional[FoodItem]:
        return self._get(FOODS, food_id, FoodItem)

    def list_foods(self) -> list[FoodItem]:
        return sorted(self._query(FOODS, FoodItem), key=lambda f: f.name.lower())

    def save_food(self, food: FoodItem) -> bool:
        logger.info("Saving food: %s", food.name)
        return self._set(FOODS, food.id, food)

    def delete_food(self, food_id: str) -> bool:
        return self._delete(FOODS, food_id)

    # ==================== Suitability matrix ====================

    def get_suitability(self, food_id: str, condition: ConditionTag) -> Optional[FoodSuitability]:
        return self._get(SUITABILITY, suitability_doc_id(food_id, condition), FoodSuitability)

    def list_suitability(self, food_id: Optional[str] = None) -> list[FoodSuitability]:
        if food_id is None:
            return self._query(SUITABILITY, FoodSuitability)
        return self._query(SUITABILITY, FoodSuitability, "food_id", food_id)

    def save_suitability(self, record: FoodSuitability) -> bool:
        return self._set(SUITABILITY, suitability_doc_id(record.food_id, record.condition), record)

    def delete_suitability_for_food(self, food_id: str) -> int:
        records = self.list_suitability(food_id)
        deleted = 0
        for record in records:
            if self._delete(SUITABILITY, suitability_doc_id(record.food_id, record.condition)):
                deleted += 1
        return deleted

    # ==================== Medical reports ====================

    def get_report(self, report_id: str) -> Optional[MedicalReport]:
        return self._get(REPORTS, report_id, MedicalReport)

    def list_reports(self, user_id: Optional[str] = None) -> list[MedicalReport]:
        if user_id is None:
            reports = self._query(REPORTS, MedicalReport)
        else:
            reports = self._query(REPORTS, MedicalReport, "user_id", user_id)
        return sorted(reports, key=lambda r: r.upload_date, reverse=True)

    def save_report(self, report: MedicalReport) -> bool:
        logger.info("Saving report %s for %s", report.id[:8], report.user_id[:8])
        return self._set(REPORTS, report.id, report)

    def delete_report(self, report_id: str) -> bool:
        return self._delete(REPORTS, report_id)

    # ==================== Meal plans ====================

    def get_meal_plan(self, plan_id: str) -> Optional[MealPlanRecord]:
        return self._get(MEAL_PLANS, plan_id, MealPlanRecord)

    def list_meal_plans(self, user_id: Optional[str] = None) -> list[MealPlanRecord]:
        if user_id is None:
            plans = self._query(MEAL_PLANS, MealPlanRecord)
        else:
            plans = self._query(MEAL_PLANS, MealPlanRecord, "user_id", user_id)
        return sorted(plans, key=lambda p: p.generated_at, reverse=True)

    def save_meal_plan(self, record: MealPlanRecord) -> bool:
        logger.info("Saving meal plan %s for %s", record.id[:8], record.user_id[:8])
        return self._set(MEAL_PLANS, record.id, record)

    # ==================== Audit ====================

    def add_audit_log(self, entry: AuditLog) -> bool:
        return self._set(AUDIT_LOGS, entry.id, entry)

    def list_audit_logs(self, limit: int = 50) -> list[AuditLog]:
        try:
            query = (
                self.client.collection(AUDIT_LOGS)
                .order_by("timestamp", direction=firestore.Query.DESCENDING)
                .limit(limit)
            )
            return [AuditLog(**doc.to_dict()) for doc in query.stream()]
        except Exception as e:
            logger.error("Failed to fetch audit logs: %s", str(e))
            return []
