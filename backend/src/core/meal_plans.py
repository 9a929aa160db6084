"""Meal Plan Allocation - Pure functions for splitting a calorie budget.

All functions are pure: same input always produces same output, no side effects.

Pipeline for a target calorie value:
    1. energy split 40% carbs / 30% protein / 30% fat
    2. grams via Atwater factors (4 / 4 / 9 kcal per gram)
    3. slot shares 30% breakfast / 40% lunch / 30% dinner
    4. foods looked up from the condition rule table

Every stage rounds on its own, so slot values may not add up exactly to
the stage-2 totals. Plan totals are the sums of the slot values.
"""

import logging
import math
from typing import Optional, Union

from .models import (
    ConditionTag,
    MacroOverride,
    MacroTargets,
    MealAllocation,
    MealPlan,
    MealSlot,
)


logger = logging.getLogger(__name__)

DEFAULT_TARGET_CALORIES = 2000

CARBS_SHARE = 0.4
PROTEIN_SHARE = 0.3
FATS_SHARE = 0.3

KCAL_PER_G_CARBS = 4
KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_FAT = 9

SLOT_SHARES: dict[MealSlot, float] = {
    MealSlot.BREAKFAST: 0.3,
    MealSlot.LUNCH: 0.4,
    MealSlot.DINNER: 0.3,
}

CONDITION_MEALS: dict[ConditionTag, dict[MealSlot, tuple[str, ...]]] = {
    ConditionTag.ANEMIA: {
        MealSlot.BREAKFAST: ("Spinach and mushroom omelet", "Whole wheat toast", "Orange juice", "Iron-fortified cereal"),
        MealSlot.LUNCH: ("Grilled chicken breast", "Quinoa with lentils", "Steamed broccoli", "Mixed berries"),
        MealSlot.DINNER: ("Grass-fed beef stir-fry", "Brown rice", "Bok choy", "Dark chocolate (85% cocoa)"),
    },
    ConditionTag.DIABETES: {
        MealSlot.BREAKFAST: ("Greek yogurt with chia seeds", "Almonds", "Berries", "Cinnamon tea"),
        MealSlot.LUNCH: ("Grilled salmon", "Cauliflower rice", "Asparagus", "Mixed green salad"),
        MealSlot.DINNER: ("Baked chicken thigh", "Sweet potato (small)", "Green beans", "Avocado salad"),
    },
    ConditionTag.HYPERTENSION: {
        MealSlot.BREAKFAST: ("Oatmeal with walnuts", "Banana", "Low-fat milk", "Blueberries"),
        MealSlot.LUNCH: ("Grilled turkey breast", "Quinoa", "Roasted Brussels sprouts", "Tomato salad"),
        MealSlot.DINNER: ("Baked cod", "Wild rice", "Steamed carrots", "Spinach salad with olive oil"),
    },
    ConditionTag.CHOLESTEROL: {
        MealSlot.BREAKFAST: ("Oat bran cereal", "Almond milk", "Apple slices", "Ground flaxseed"),
        MealSlot.LUNCH: ("Grilled salmon", "Barley", "Steamed edamame", "Cucumber salad"),
        MealSlot.DINNER: ("Skinless chicken breast", "Bulgur wheat", "Eggplant", "Mixed vegetables"),
    },
    ConditionTag.FIT: {
        MealSlot.BREAKFAST: ("Scrambled eggs", "Avocado toast", "Mixed berries", "Green tea"),
        MealSlot.LUNCH: ("Grilled chicken", "Brown rice", "Roasted vegetables", "Side salad"),
        MealSlot.DINNER: ("Baked fish", "Quinoa", "Steamed broccoli", "Sweet potato"),
    },
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up, unlike round()."""
    return int(math.floor(value + 0.5))


def resolve_condition(tag: Union[ConditionTag, str, None]) -> ConditionTag:
    """Map a raw condition tag to a known one, falling back to FIT."""
    if isinstance(tag, ConditionTag):
        return tag
    try:
        return ConditionTag(tag.strip().lower() if isinstance(tag, str) else tag)
    except ValueError:
        logger.warning("Unknown condition tag %r, using %s", tag, ConditionTag.FIT.value)
        return ConditionTag.FIT


def resolve_target_calories(target_calories: Optional[float]) -> float:
    """Use the default budget when the target is missing, non-finite or not positive."""
    if target_calories is None or not math.isfinite(target_calories) or target_calories <= 0:
        return DEFAULT_TARGET_CALORIES
    return target_calories


def foods_for_condition(tag: Union[ConditionTag, str, None]) -> dict[MealSlot, tuple[str, ...]]:
    """Food names per meal slot for a condition tag."""
    return CONDITION_MEALS[resolve_condition(tag)]


def split_macros(target_calories: Optional[float]) -> MacroTargets:
    """Split a calorie target into daily macro grams.

    Args:
        target_calories: Daily calorie budget (default used when missing)

    Returns:
        MacroTargets with rounded gram values
    """
    calories = resolve_target_calories(target_calories)
    return MacroTargets(
        calories=calories,
        carbs_g=round_half_up(calories * CARBS_SHARE / KCAL_PER_G_CARBS),
        protein_g=round_half_up(calories * PROTEIN_SHARE / KCAL_PER_G_PROTEIN),
        fats_g=round_half_up(calories * FATS_SHARE / KCAL_PER_G_FAT),
    )


def _allocate_slot(slot: MealSlot, macros: MacroTargets, foods: tuple[str, ...]) -> MealAllocation:
    share = SLOT_SHARES[slot]
    return MealAllocation(
        slot=slot,
        calories=round_half_up(macros.calories * share),
        carbs_g=round_half_up(macros.carbs_g * share),
        fats_g=round_half_up(macros.fats_g * share),
        protein_g=round_half_up(macros.protein_g * share),
        foods=foods,
    )


def allocate_meal_plan(
    target_calories: Optional[float],
    condition: Union[ConditionTag, str, None],
) -> MealPlan:
    """Build a three-meal plan for a calorie target and condition.

    Missing or non-positive targets use DEFAULT_TARGET_CALORIES and
    unknown conditions use the FIT foods. Neither raises.

    Args:
        target_calories: Daily calorie budget, usually the profile's TDEE
        condition: Predicted condition tag

    Returns:
        MealPlan with per-slot allocations and summed totals
    """
    tag = resolve_condition(condition)
    macros = split_macros(target_calories)
    menu = CONDITION_MEALS[tag]

    breakfast, lunch, dinner = (
        _allocate_slot(slot, macros, menu[slot])
        for slot in (MealSlot.BREAKFAST, MealSlot.LUNCH, MealSlot.DINNER)
    )
    meals = (breakfast, lunch, dinner)

    return MealPlan(
        target_calories=macros.calories,
        condition=tag,
        breakfast=breakfast,
        lunch=lunch,
        dinner=dinner,
        total_calories=sum(m.calories for m in meals),
        total_carbs_g=sum(m.carbs_g for m in meals),
        total_fats_g=sum(m.fats_g for m in meals),
        total_protein_g=sum(m.protein_g for m in meals),
    )


def apply_macro_override(plan: MealPlan, override: MacroOverride) -> MealPlan:
    """Replace a plan's totals with admin-supplied values.

    Per-meal splits are kept as generated.
    """
    return plan.model_copy(update=override.model_dump())
