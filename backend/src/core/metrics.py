"""Metrics Calculations - Pure functions for body metrics.

All functions are pure: same input always produces same output, no side effects.
Profiles are expected to be validated; see validation.py.
"""

from .models import ActivityLevel, BmiCategory, Gender, Metrics, Profile


ACTIVITY_MULTIPLIERS: dict[ActivityLevel, float] = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.ACTIVE: 1.725,
    ActivityLevel.VERY_ACTIVE: 1.9,
}

ZERO_METRICS = Metrics(bmr=0, tdee=0, bmi=0, bmi_category=BmiCategory.NOT_AVAILABLE)


def bmr(profile: Profile) -> float:
    """Basal metabolic rate using the Mifflin-St Jeor equation.

    Args:
        profile: Profile with age, height and weight set

    Returns:
        BMR in kcal/day
    """
    base = 10 * profile.weight_kg + 6.25 * profile.height_cm - 5 * profile.age
    if profile.gender is Gender.MALE:
        return base + 5
    return base - 161


def activity_multiplier(level: ActivityLevel) -> float:
    """PAL multiplier for an activity level."""
    return ACTIVITY_MULTIPLIERS[level]


def tdee(profile: Profile) -> float:
    """Total daily energy expenditure: BMR scaled by activity."""
    return bmr(profile) * activity_multiplier(profile.activity_level)


def bmi(profile: Profile) -> float:
    """Body mass index in kg/m^2."""
    height_m = profile.height_cm / 100
    return profile.weight_kg / (height_m ** 2)


def bmi_category(value: float) -> BmiCategory:
    """Standard WHO category for a BMI value."""
    if value < 18.5:
        return BmiCategory.UNDERWEIGHT
    if value < 25:
        return BmiCategory.NORMAL
    if value < 30:
        return BmiCategory.OVERWEIGHT
    return BmiCategory.OBESE


def _is_complete(profile: Profile) -> bool:
    fields = (profile.age, profile.height_cm, profile.weight_kg)
    return all(v is not None and v > 0 for v in fields)


def calculate_all_metrics(profile: Profile) -> Metrics:
    """Calculate every derived metric for a profile.

    Never raises. A profile missing age, height or weight (or holding a
    non-positive value for one of them) yields zeroed metrics with an
    N/A category, so half-filled forms render cleanly.

    Args:
        profile: The user's profile

    Returns:
        Metrics with BMR, TDEE, BMI and BMI category
    """
    if not _is_complete(profile):
        return ZERO_METRICS

    bmi_value = bmi(profile)
    return Metrics(
        bmr=bmr(profile),
        tdee=tdee(profile),
        bmi=bmi_value,
        bmi_category=bmi_category(bmi_value),
    )
