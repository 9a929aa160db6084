"""Core Data Models - Pydantic models for type safety.

All models are value objects with no behavior beyond validation.
Tags are str enums so records serialise to plain strings.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
import uuid


# ==================== Tags ====================


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class ActivityLevel(str, Enum):
    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


class BmiCategory(str, Enum):
    UNDERWEIGHT = "Underweight"
    NORMAL = "Normal"
    OVERWEIGHT = "Overweight"
    OBESE = "Obese"
    NOT_AVAILABLE = "N/A"


class BiomarkerStatus(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class ConditionTag(str, Enum):
    ANEMIA = "anemia"
    DIABETES = "diabetes"
    HYPERTENSION = "hypertension"
    CHOLESTEROL = "cholesterol"
    FIT = "fit"


class MealSlot(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


# ==================== Profile & Metrics ====================


class Profile(BaseModel):
    """Biometric profile as filled in by the user.

    Numeric fields are optional so half-filled forms can still be passed
    to the metrics calculator, which reports zeroed metrics for them.
    """

    age: Optional[float] = Field(default=None, allow_inf_nan=False, description="Age in years")
    gender: Gender = Gender.MALE
    height_cm: Optional[float] = Field(default=None, allow_inf_nan=False, description="Height in centimetres")
    weight_kg: Optional[float] = Field(default=None, allow_inf_nan=False, description="Weight in kilograms")
    activity_level: ActivityLevel = ActivityLevel.MODERATE


class Metrics(BaseModel):
    """Metrics derived from a profile. Never stored on its own."""

    model_config = ConfigDict(frozen=True)

    bmr: float
    tdee: float
    bmi: float
    bmi_category: BmiCategory


# ==================== Biomarkers ====================


class ReferenceRange(BaseModel):
    """Normal range for a canonical biomarker."""

    model_config = ConfigDict(frozen=True)

    name: str
    unit: str
    normal_min: float
    normal_max: float


class BiomarkerReading(BaseModel):
    """A measured lab value. Status is always derived from the range."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1)
    value: float = Field(allow_inf_nan=False)
    unit: str = ""
    normal_min: float = Field(allow_inf_nan=False)
    normal_max: float = Field(allow_inf_nan=False)
    measured_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> BiomarkerStatus:
        from .biomarkers import classify

        return classify(self.value, self.normal_min, self.normal_max)


# ==================== Meal plans ====================


class MacroTargets(BaseModel):
    """Daily macro budget in grams for a calorie target."""

    model_config = ConfigDict(frozen=True)

    calories: float
    carbs_g: int
    protein_g: int
    fats_g: int


class MealAllocation(BaseModel):
    """Calories, macros and foods assigned to one meal slot."""

    model_config = ConfigDict(frozen=True)

    slot: MealSlot
    calories: int
    carbs_g: int
    fats_g: int
    protein_g: int
    foods: tuple[str, ...] = ()


class MealPlan(BaseModel):
    """A generated three-meal plan.

    Totals are sums of the slot values. Only an admin override changes
    them afterwards, and it does not touch the per-meal splits.
    """

    model_config = ConfigDict(frozen=True)

    target_calories: float
    condition: ConditionTag
    breakfast: MealAllocation
    lunch: MealAllocation
    dinner: MealAllocation
    total_calories: int
    total_carbs_g: int
    total_fats_g: int
    total_protein_g: int


class MacroOverride(BaseModel):
    """Admin-supplied replacement totals for a meal plan."""

    total_calories: int = Field(ge=0)
    total_carbs_g: int = Field(ge=0)
    total_fats_g: int = Field(ge=0)
    total_protein_g: int = Field(ge=0)


# ==================== Validation results ====================


class ValidationResult(BaseModel):
    valid: bool
    message: str = ""


class PasswordCheck(ValidationResult):
    strength: int = Field(ge=0, le=100)


# ==================== Stored records ====================


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class FoodCategory(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class ReportType(str, Enum):
    BLOOD_TEST = "blood_test"
    CHECKUP = "checkup"
    SCREENING = "screening"
    OTHER = "other"


class ReportStatus(str, Enum):
    PROCESSED = "processed"
    PENDING = "pending"
    ERROR = "error"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"


class EntityType(str, Enum):
    FOOD = "food"
    CONDITION = "condition"
    SUITABILITY = "suitability"
    AUTH = "auth"
    USER = "user"
    MEAL_PLAN = "meal_plan"
    REPORT = "report"


# Conditions tracked in the suitability matrix. FIT is a plan tag only.
DISEASE_CONDITIONS: tuple[ConditionTag, ...] = (
    ConditionTag.ANEMIA,
    ConditionTag.DIABETES,
    ConditionTag.HYPERTENSION,
    ConditionTag.CHOLESTEROL,
)


class User(BaseModel):
    """Account record with the user's profile and last computed energy needs."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: str
    name: str = ""
    role: Role = Role.USER
    status: AccountStatus = AccountStatus.ACTIVE
    password_hash: str = Field(description="Salted PBKDF2 hash - never store plaintext")
    api_key_hash: Optional[str] = Field(default=None, description="SHA256 hash of the current API key")
    profile: Profile = Field(default_factory=Profile)
    bmr: float = 0
    tdee: float = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)


class FoodItem(BaseModel):
    """Catalog food with nutrients per 100g."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1)
    description: str = ""
    category: FoodCategory = FoodCategory.SNACK
    calories: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0, description="Grams per 100g")
    protein: float = Field(default=0, ge=0, description="Grams per 100g")
    fat: float = Field(default=0, ge=0, description="Grams per 100g")
    sodium: float = Field(default=0, ge=0, description="Milligrams per 100g")
    sugar: float = Field(default=0, ge=0, description="Grams per 100g")
    cholesterol: float = Field(default=0, ge=0, description="Milligrams per 100g")
    iron: float = Field(default=0, ge=0, description="Milligrams per 100g")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class FoodSuitability(BaseModel):
    """Whether a food suits a condition, as set by an admin."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    food_id: str
    condition: ConditionTag
    is_suitable: bool = True
    notes: str = ""
    last_updated_by: str = "system"
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class MedicalReport(BaseModel):
    """An uploaded report and the readings extracted from it."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    file_name: str = ""
    report_type: ReportType = ReportType.BLOOD_TEST
    upload_date: datetime = Field(default_factory=datetime.utcnow)
    report_date: datetime = Field(default_factory=datetime.utcnow)
    status: ReportStatus = ReportStatus.PROCESSED
    readings: list[BiomarkerReading] = Field(default_factory=list)


class MealPlanRecord(BaseModel):
    """A generated plan as stored for a user."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    plan: MealPlan
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    overridden_by: Optional[str] = None


class AuditLog(BaseModel):
    """An audited action, with the pipeline timings shown on the dashboard."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    action: AuditAction = AuditAction.UPDATE
    entity_type: EntityType = EntityType.FOOD
    entity_id: str = ""
    actor_email: str = ""
    changes: dict = Field(default_factory=dict)
    prediction_time_ms: int = Field(default=0, ge=0)
    extraction_time_ms: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
