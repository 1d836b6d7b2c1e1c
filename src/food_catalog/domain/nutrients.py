"""Nutrient scaling for foods, servings and per-100 snapshots."""

import logging
from dataclasses import dataclass, fields, replace
from decimal import ROUND_HALF_UP, Decimal

from food_catalog.domain.foods import FoodRecord, SavedServing
from food_catalog.domain.servings import (
    RawServingOption,
    ServingOption,
    serving_master_amount,
)
from food_catalog.domain.units import convert_to_master_unit

_logger = logging.getLogger(__name__)

DISPLAY_PLACES = 1
STORAGE_PLACES = 2

# Optional macros left out of write payloads when they come out as zero.
OMIT_WHEN_ZERO = ("saturated_fat_g", "sugar_g", "sodium_mg")

_COLUMNS = {
    "calories": "calories_kcal",
    "protein": "protein_g",
    "carbs": "carbs_g",
    "fat": "fat_g",
    "fiber": "fiber_g",
    "saturated_fat": "saturated_fat_g",
    "sugar": "sugar_g",
    "sodium": "sodium_mg",
}


def round_half_up(value: float, places: int) -> float:
    """Round with ROUND_HALF_UP on the decimal representation of the value."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _round_optional(value: float | None, places: int) -> float | None:
    return None if value is None else round_half_up(value, places)


@dataclass(frozen=True)
class NutrientSet:
    """Nutrient values for a specific amount of a food."""

    calories: float
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    fiber: float | None = None
    saturated_fat: float | None = None
    sugar: float | None = None
    sodium: float | None = None
    data_quality_issue: str | None = None

    def rounded(self, places: int) -> "NutrientSet":
        """Return a copy with every value rounded half-up to the given places."""
        return replace(
            self,
            calories=round_half_up(self.calories, places),
            protein=_round_optional(self.protein, places),
            carbs=_round_optional(self.carbs, places),
            fat=_round_optional(self.fat, places),
            fiber=_round_optional(self.fiber, places),
            saturated_fat=_round_optional(self.saturated_fat, places),
            sugar=_round_optional(self.sugar, places),
            sodium=_round_optional(self.sodium, places),
        )

    def for_display(self) -> "NutrientSet":
        return self.rounded(DISPLAY_PLACES)

    def for_storage(self) -> "NutrientSet":
        return self.rounded(STORAGE_PLACES)

    def to_columns(self) -> dict[str, float | None]:
        """Map values onto their storage column names."""
        return {column: getattr(self, name) for name, column in _COLUMNS.items()}

    def __add__(self, other: "NutrientSet") -> "NutrientSet":
        values: dict[str, float | None] = {}
        for item in fields(self):
            if item.name == "data_quality_issue":
                continue
            left = getattr(self, item.name)
            right = getattr(other, item.name)
            if left is None and right is None:
                values[item.name] = None
            else:
                values[item.name] = (left or 0.0) + (right or 0.0)
        return NutrientSet(
            **values,
            data_quality_issue=self.data_quality_issue or other.data_quality_issue,
        )


ZERO_NUTRIENTS = NutrientSet(
    calories=0.0,
    protein=0.0,
    carbs=0.0,
    fat=0.0,
    fiber=0.0,
    saturated_fat=0.0,
    sugar=0.0,
    sodium=0.0,
)


def food_nutrients(food: FoodRecord) -> NutrientSet:
    """Return the food's authored facts as a nutrient set."""
    return NutrientSet(
        calories=food.calories,
        protein=food.protein,
        carbs=food.carbs,
        fat=food.fat,
        fiber=food.fiber,
        saturated_fat=food.saturated_fat,
        sugar=food.sugar,
        sodium=food.sodium,
    )


def _scale(value: float | None, factor: float) -> float | None:
    return None if value is None else value * factor


def compute_nutrients(food: FoodRecord, master_unit_quantity: float) -> NutrientSet:
    """Scale the food's facts to a quantity expressed in its master unit.

    A zero or missing serving size is a data-quality condition: the result
    carries zeros (nulls stay null) and a flag rather than raising.
    """
    if not food.serving_size or food.serving_size <= 0:
        _logger.warning(
            "Food %s has no usable serving size (%s); returning zero nutrients",
            food.id,
            food.serving_size,
        )
        return NutrientSet(
            calories=0.0,
            protein=_scale(food.protein, 0.0),
            carbs=_scale(food.carbs, 0.0),
            fat=_scale(food.fat, 0.0),
            fiber=_scale(food.fiber, 0.0),
            saturated_fat=_scale(food.saturated_fat, 0.0),
            sugar=_scale(food.sugar, 0.0),
            sodium=_scale(food.sodium, 0.0),
            data_quality_issue=f"invalid serving size for food {food.id}",
        )

    factor = master_unit_quantity / food.serving_size
    return NutrientSet(
        calories=(food.calories or 0.0) * factor,
        protein=_scale(food.protein, factor),
        carbs=_scale(food.carbs, factor),
        fat=_scale(food.fat, factor),
        fiber=_scale(food.fiber, factor),
        saturated_fat=_scale(food.saturated_fat, factor),
        sugar=_scale(food.sugar, factor),
        sodium=_scale(food.sodium, factor),
    )


def master_units_for_option(
    food: FoodRecord, option: ServingOption, quantity: float
) -> float:
    """Return how many master units a quantity of a serving option stands for."""
    if isinstance(option, RawServingOption):
        return convert_to_master_unit(quantity, option.unit, food)
    return serving_master_amount(option.serving, food) * quantity


def nutrients_for_option(
    food: FoodRecord, option: ServingOption, quantity: float
) -> NutrientSet:
    """Compute nutrients for a quantity of a raw or saved serving option."""
    return compute_nutrients(food, master_units_for_option(food, option, quantity))


def nutrients_for_raw_quantity(
    food: FoodRecord, quantity: float, unit: str
) -> NutrientSet:
    """Compute nutrients for a quantity typed in a raw unit."""
    return compute_nutrients(food, convert_to_master_unit(quantity, unit, food))


def nutrients_for_saved_serving(
    food: FoodRecord, serving: SavedServing, quantity: float = 1.0
) -> NutrientSet:
    """Compute nutrients for a number of saved servings."""
    return compute_nutrients(food, serving_master_amount(serving, food) * quantity)


def entry_nutrient_payload(nutrients: NutrientSet) -> dict[str, float | None]:
    """Build the nutrient columns of a write payload.

    Values are rounded for storage. Primary macros are always written; the
    optional macros in OMIT_WHEN_ZERO are dropped when null or zero.
    """
    payload = nutrients.for_storage().to_columns()
    for column in OMIT_WHEN_ZERO:
        if not payload.get(column):
            payload.pop(column, None)
    return payload


def per_100(value: float | None, serving_size: float | None) -> float | None:
    """Convert a per-serving value into a per-100 g/ml value."""
    if value is None or not serving_size:
        return None
    return round_half_up(value / serving_size * 100, STORAGE_PLACES)


def variant_snapshot(food: FoodRecord) -> dict[str, float | None]:
    """Return the per-100 nutrient columns of a food folded into a variant.

    The food's own serving size is used, so the snapshot is unit-independent
    rather than rescaled to the surviving master's serving.
    """
    size = food.serving_size
    return {
        "energy_kcal_100g": per_100(food.calories, size),
        "protein_g_100g": per_100(food.protein, size),
        "carbs_g_100g": per_100(food.carbs, size),
        "fat_g_100g": per_100(food.fat, size),
        "fiber_g_100g": per_100(food.fiber, size),
        "saturated_fat_g_100g": per_100(food.saturated_fat, size),
        "sugar_g_100g": per_100(food.sugar, size),
        "sodium_mg_100g": per_100(food.sodium, size),
    }
