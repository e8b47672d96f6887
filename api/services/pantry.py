"""
@file        pantry.py
@brief       Per-user pantry items with expiry tracking and recipe ingredient matching
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17

@details
In-memory storage in the style of the other service singletons. Derived
fields (days until expiry, expiry status, match percentage) are computed on
read and never stored.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
import logging
import math
import threading
import uuid

from services.errors import AppError

logger = logging.getLogger(__name__)

EXPIRING_SOON_DAYS = 3
DEFAULT_CAN_MAKE_PERCENTAGE = 80
STAPLE_INGREDIENTS = ("salt", "pepper", "olive oil", "oil", "water", "sugar")


class ExpirationStatus(str, Enum):
    FRESH = "fresh"
    EXPIRING = "expiring"
    EXPIRED = "expired"


def days_until_expiry(expiry_date: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if expiry_date is None:
        return None
    return (expiry_date - (today or date.today())).days


def expiration_status(days: Optional[int]) -> ExpirationStatus:
    """expired below 0 days, expiring up to 3 days, fresh otherwise (and without a date)"""
    if days is None:
        return ExpirationStatus.FRESH
    if days < 0:
        return ExpirationStatus.EXPIRED
    if days <= EXPIRING_SOON_DAYS:
        return ExpirationStatus.EXPIRING
    return ExpirationStatus.FRESH


@dataclass
class FoodItem:
    id: str
    user_id: str
    name: str
    category: str
    quantity: float
    unit: str
    batch: Optional[str] = None
    purchase_date: Optional[date] = None
    expiry_date: Optional[date] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def days_until_expiry(self, today: Optional[date] = None) -> Optional[int]:
        return days_until_expiry(self.expiry_date, today)

    def status(self, today: Optional[date] = None) -> ExpirationStatus:
        return expiration_status(self.days_until_expiry(today))

    def is_expired(self, today: Optional[date] = None) -> bool:
        return self.status(today) == ExpirationStatus.EXPIRED


@dataclass
class Recipe:
    id: str
    user_id: str
    title: str
    servings: int
    prep_time_minutes: int
    ingredients: List[str]
    tags: List[str] = field(default_factory=list)
    instructions: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class RecipeMatch:
    recipe: Recipe
    match_percentage: int
    available_ingredients: List[str]
    missing_ingredients: List[str]
    can_make: bool


# ---- Ingredient matching -----------------------------------------------------

def ingredient_available(ingredient: str, pantry_names: Iterable[str]) -> bool:
    """Case-insensitive containment in either direction"""
    wanted = ingredient.strip().lower()
    if not wanted:
        return False
    for name in pantry_names:
        have = name.strip().lower()
        if have and (have in wanted or wanted in have):
            return True
    return False


def split_ingredients(ingredients: List[str], pantry_names: List[str]) -> Tuple[List[str], List[str]]:
    available, missing = [], []
    for ingredient in ingredients:
        (available if ingredient_available(ingredient, pantry_names) else missing).append(ingredient)
    return available, missing


def match_percentage(found: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half rounds up: 2 of 8 -> 25, 1 of 8 -> 13
    return int(math.floor(found / total * 100 + 0.5))


def match_recipe(
    recipe: Recipe,
    pantry_names: List[str],
    can_make_percentage: int = DEFAULT_CAN_MAKE_PERCENTAGE,
) -> RecipeMatch:
    available, missing = split_ingredients(recipe.ingredients, pantry_names)
    percentage = match_percentage(len(available), len(recipe.ingredients))
    return RecipeMatch(
        recipe=recipe,
        match_percentage=percentage,
        available_ingredients=available,
        missing_ingredients=missing,
        can_make=bool(recipe.ingredients) and percentage >= can_make_percentage,
    )


# ---- Store -------------------------------------------------------------------

class PantryStore:
    """Pantry items and recipes, partitioned by user id"""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, Dict[str, FoodItem]] = {}
        self._recipes: Dict[str, Dict[str, Recipe]] = {}

    # Items

    def add_item(
        self,
        user_id: str,
        name: str,
        category: str,
        quantity: float,
        unit: str,
        batch: Optional[str] = None,
        purchase_date: Optional[date] = None,
        expiry_date: Optional[date] = None,
    ) -> FoodItem:
        if not name or not name.strip():
            raise AppError.bad_request("Item name is required")
        if quantity <= 0:
            raise AppError.bad_request("Quantity must be greater than zero")
        if purchase_date and expiry_date and expiry_date < purchase_date:
            raise AppError.bad_request("Expiry date cannot be before purchase date")

        item = FoodItem(
            id=f"itm_{uuid.uuid4().hex[:14]}",
            user_id=user_id,
            name=name.strip(),
            category=(category or "other").strip().lower(),
            quantity=quantity,
            unit=unit.strip(),
            batch=batch,
            purchase_date=purchase_date,
            expiry_date=expiry_date,
        )
        with self._lock:
            self._items.setdefault(user_id, {})[item.id] = item

        logger.info(f"Pantry item added: {item.id} for user {user_id}")
        return item

    def list_items(self, user_id: str, category: Optional[str] = None) -> List[FoodItem]:
        """Items ordered by expiry date (undated last), then name"""
        with self._lock:
            items = list(self._items.get(user_id, {}).values())
        if category:
            items = [item for item in items if item.category == category.strip().lower()]
        return sorted(items, key=lambda item: (item.expiry_date is None, item.expiry_date or date.max, item.name.lower()))

    def get_item(self, user_id: str, item_id: str) -> FoodItem:
        with self._lock:
            item = self._items.get(user_id, {}).get(item_id)
        if item is None:
            raise AppError.not_found(f"Pantry item not found: {item_id}")
        return item

    def delete_item(self, user_id: str, item_id: str) -> None:
        with self._lock:
            if self._items.get(user_id, {}).pop(item_id, None) is None:
                raise AppError.not_found(f"Pantry item not found: {item_id}")
        logger.info(f"Pantry item deleted: {item_id} for user {user_id}")

    def expiring_items(self, user_id: str, days: int = EXPIRING_SOON_DAYS, today: Optional[date] = None) -> List[FoodItem]:
        """Items expiring between today and `days` days from now, soonest first"""
        if days < 0:
            raise AppError.bad_request("Days must not be negative")
        result = []
        for item in self.list_items(user_id):
            remaining = item.days_until_expiry(today)
            if remaining is not None and 0 <= remaining <= days:
                result.append(item)
        return result

    def expired_items(self, user_id: str, today: Optional[date] = None) -> List[FoodItem]:
        return [item for item in self.list_items(user_id) if item.is_expired(today)]

    def delete_expired(self, user_id: str, today: Optional[date] = None) -> int:
        expired_ids = [item.id for item in self.expired_items(user_id, today)]
        with self._lock:
            user_items = self._items.get(user_id, {})
            for item_id in expired_ids:
                user_items.pop(item_id, None)
        logger.info(f"Deleted {len(expired_ids)} expired item(s) for user {user_id}")
        return len(expired_ids)

    # Recipes

    def add_recipe(
        self,
        user_id: str,
        title: str,
        servings: int,
        prep_time_minutes: int,
        ingredients: List[str],
        tags: Optional[List[str]] = None,
        instructions: Optional[str] = None,
    ) -> Recipe:
        if not title or not title.strip():
            raise AppError.bad_request("Recipe title is required")
        cleaned = [ingredient.strip() for ingredient in ingredients if ingredient and ingredient.strip()]
        if not cleaned:
            raise AppError.bad_request("A recipe needs at least one ingredient")
        if servings <= 0:
            raise AppError.bad_request("Servings must be greater than zero")
        if prep_time_minutes < 0:
            raise AppError.bad_request("Preparation time must not be negative")

        recipe = Recipe(
            id=f"rcp_{uuid.uuid4().hex[:14]}",
            user_id=user_id,
            title=title.strip(),
            servings=servings,
            prep_time_minutes=prep_time_minutes,
            ingredients=cleaned,
            tags=[tag.strip().lower() for tag in (tags or []) if tag.strip()],
            instructions=instructions,
        )
        with self._lock:
            self._recipes.setdefault(user_id, {})[recipe.id] = recipe

        logger.info(f"Recipe added: {recipe.id} for user {user_id}")
        return recipe

    def list_recipes(self, user_id: str, tag: Optional[str] = None) -> List[Recipe]:
        with self._lock:
            recipes = list(self._recipes.get(user_id, {}).values())
        if tag:
            recipes = [recipe for recipe in recipes if tag.strip().lower() in recipe.tags]
        return sorted(recipes, key=lambda recipe: recipe.title.lower())

    def get_recipe(self, user_id: str, recipe_id: str) -> Recipe:
        with self._lock:
            recipe = self._recipes.get(user_id, {}).get(recipe_id)
        if recipe is None:
            raise AppError.not_found(f"Recipe not found: {recipe_id}")
        return recipe

    def match_recipes(
        self,
        user_id: str,
        min_match: Optional[int] = None,
        only_can_make: bool = False,
        include_staples: bool = False,
        today: Optional[date] = None,
    ) -> List[RecipeMatch]:
        """
        Rank the user's recipes by how many ingredients the pantry covers.

        Expired items never count as available. `min_match` filters the result
        and is also the can-make threshold (80 when not given).
        """
        if min_match is not None and not 0 <= min_match <= 100:
            raise AppError.bad_request("min_match must be between 0 and 100")

        pantry_names = [item.name for item in self.list_items(user_id) if not item.is_expired(today)]
        if include_staples:
            pantry_names.extend(STAPLE_INGREDIENTS)

        threshold = DEFAULT_CAN_MAKE_PERCENTAGE if min_match is None else min_match
        matches = [match_recipe(recipe, pantry_names, threshold) for recipe in self.list_recipes(user_id)]

        if min_match is not None:
            matches = [match for match in matches if match.match_percentage >= min_match]
        if only_can_make:
            matches = [match for match in matches if match.can_make]

        matches.sort(key=lambda match: match.match_percentage, reverse=True)
        return matches


# Singleton instance
_pantry_store: Optional[PantryStore] = None


def get_pantry_store() -> PantryStore:
    """Get or create the pantry store singleton"""
    global _pantry_store
    if _pantry_store is None:
        _pantry_store = PantryStore()
    return _pantry_store


def reset_pantry_store() -> None:
    global _pantry_store
    _pantry_store = None
