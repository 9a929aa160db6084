"""Seed data - sample food catalog for new deployments and local runs."""

import logging
import os

from ..core.models import DISEASE_CONDITIONS, FoodCategory, FoodItem, FoodSuitability, Role
from .auth import AuthClient, DuplicateEmailError
from .repository import Repository


logger = logging.getLogger(__name__)

# name, description, category, calories, carbs, protein, fat, sodium, sugar, cholesterol, iron (per 100g)
SAMPLE_FOODS: tuple[tuple, ...] = (
    ("Spinach", "Fresh leafy green vegetable", FoodCategory.LUNCH, 23, 3.6, 2.9, 0.4, 79, 0.4, 0, 2.7),
    ("White Rice", "Cooked white rice", FoodCategory.LUNCH, 130, 28, 2.7, 0.3, 1, 0.1, 0, 0.2),
    ("Bacon", "Crispy fried bacon", FoodCategory.BREAKFAST, 541, 1.4, 37, 42, 1717, 1.2, 110, 1.0),
    ("Salmon", "Grilled salmon fillet", FoodCategory.DINNER, 206, 0, 22, 13, 59, 0, 63, 0.3),
    ("Brown Rice", "Cooked brown rice", FoodCategory.LUNCH, 111, 23, 2.6, 0.9, 5, 0.4, 0, 0.4),
    ("Greek Yogurt", "Plain Greek yogurt", FoodCategory.BREAKFAST, 59, 3.6, 10, 0.4, 36, 3.2, 5, 0.1),
    ("Almonds", "Raw almonds", FoodCategory.SNACK, 579, 22, 21, 50, 1, 4.4, 0, 3.7),
    ("Soda", "Carbonated soft drink", FoodCategory.SNACK, 41, 10.6, 0, 0, 4, 10.6, 0, 0),
    ("Broccoli", "Steamed broccoli", FoodCategory.LUNCH, 34, 7, 2.8, 0.4, 33, 1.7, 0, 0.7),
    ("Chicken Breast", "Grilled chicken breast", FoodCategory.DINNER, 165, 0, 31, 3.6, 74, 0, 85, 0.9),
    ("Sausage", "Pork sausage", FoodCategory.BREAKFAST, 301, 1.4, 13, 27, 807, 0.7, 71, 1.3),
    ("Quinoa", "Cooked quinoa", FoodCategory.LUNCH, 120, 21, 4.4, 1.9, 7, 0.9, 0, 1.5),
    ("Avocado", "Fresh avocado", FoodCategory.SNACK, 160, 8.5, 2, 15, 7, 0.7, 0, 0.6),
    ("Eggs", "Scrambled eggs", FoodCategory.BREAKFAST, 147, 1.1, 12.6, 9.9, 142, 0.4, 372, 1.8),
    ("Sweet Potato", "Baked sweet potato", FoodCategory.DINNER, 86, 20, 1.6, 0.1, 55, 4.2, 0, 0.6),
    ("Pizza", "Cheese pizza slice", FoodCategory.LUNCH, 266, 33, 11, 10, 551, 3.8, 18, 1.6),
    ("Lentils", "Cooked lentils", FoodCategory.LUNCH, 116, 20, 9, 0.4, 2, 1.8, 0, 3.3),
    ("Cheese", "Cheddar cheese", FoodCategory.SNACK, 402, 1.3, 25, 33, 621, 0.5, 105, 0.7),
    ("Oatmeal", "Cooked oatmeal", FoodCategory.BREAKFAST, 71, 12, 2.5, 1.5, 49, 0.3, 0, 1.0),
    ("Apple", "Fresh apple", FoodCategory.SNACK, 52, 14, 0.3, 0.2, 1, 10, 0, 0.1),
)

_FIELDS = (
    "name", "description", "category", "calories", "carbs", "protein",
    "fat", "sodium", "sugar", "cholesterol", "iron",
)


def sample_foods() -> list[FoodItem]:
    """Build FoodItems for the sample catalog with stable IDs."""
    return [
        FoodItem(id=f"food_{i}", **dict(zip(_FIELDS, row)))
        for i, row in enumerate(SAMPLE_FOODS, start=1)
    ]


def seed_catalog(repo: Repository) -> int:
    """Store the sample foods, each marked suitable for every condition.

    Foods already present are left alone.

    Returns:
        Number of foods added
    """
    added = 0
    for food in sample_foods():
        if repo.get_food(food.id) is not None:
            continue
        repo.save_food(food)
        for condition in DISEASE_CONDITIONS:
            repo.save_suitability(FoodSuitability(food_id=food.id, condition=condition))
        added += 1

    logger.info("Seeded %d foods", added)
    return added


def bootstrap_admin(repo: Repository) -> bool:
    """Create the admin account named by NUTRIX_ADMIN_EMAIL / NUTRIX_ADMIN_PASSWORD.

    Returns:
        True if an account was created
    """
    email = os.environ.get("NUTRIX_ADMIN_EMAIL")
    password = os.environ.get("NUTRIX_ADMIN_PASSWORD")
    if not email or not password:
        return False

    try:
        AuthClient(repo).register_user(email, password, "Admin", role=Role.ADMIN)
    except DuplicateEmailError:
        logger.debug("Admin account already exists: %s", email)
        return False

    logger.info("Bootstrapped admin account: %s", email)
    return True
