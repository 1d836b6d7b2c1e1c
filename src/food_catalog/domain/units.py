"""Unit families and conversion into a food's master unit."""

from enum import StrEnum
from typing import TYPE_CHECKING

from food_catalog.domain.errors import UnitMismatchError

if TYPE_CHECKING:
    from food_catalog.domain.foods import FoodRecord


class UnitFamily(StrEnum):
    """Family a unit belongs to; conversions never cross families."""

    MASS = "mass"
    VOLUME = "volume"
    COUNT = "count"


# Factors to grams / milliliters / pieces. Insertion order is display order.
MASS_UNITS: dict[str, float] = {
    "g": 1.0,
    "kg": 1000.0,
    "oz": 28.3495,
    "lb": 453.592,
}
VOLUME_UNITS: dict[str, float] = {
    "ml": 1.0,
    "l": 1000.0,
    "cup": 240.0,
    "tbsp": 15.0,
    "tsp": 5.0,
    "floz": 29.5735,
}
COUNT_UNITS: dict[str, float] = {"piece": 1.0}

_FAMILY_UNITS: dict[UnitFamily, dict[str, float]] = {
    UnitFamily.MASS: MASS_UNITS,
    UnitFamily.VOLUME: VOLUME_UNITS,
    UnitFamily.COUNT: COUNT_UNITS,
}

_ALIASES = {
    "fl oz": "floz",
    "fl_oz": "floz",
    "gram": "g",
    "grams": "g",
    "pieces": "piece",
    "pc": "piece",
}

_DISPLAY_NAMES = {
    "l": "L",
    "floz": "fl oz",
}


def normalize_unit(unit: str) -> str:
    """Return the canonical lowercase spelling of a unit."""
    cleaned = " ".join(unit.strip().lower().split())
    return _ALIASES.get(cleaned, cleaned)


def unit_family(unit: str) -> UnitFamily | None:
    """Return the family of a unit, or None when the unit is unknown."""
    normalized = normalize_unit(unit)
    for family, units in _FAMILY_UNITS.items():
        if normalized in units:
            return family
    return None


def food_unit_family(food: "FoodRecord") -> UnitFamily:
    """Return the base family of a food, inferring mass for unknown units."""
    return unit_family(food.serving_unit) or UnitFamily.MASS


def units_for_family(family: UnitFamily) -> list[str]:
    """Return the canonical units of a family in display order."""
    return list(_FAMILY_UNITS[family])


def unit_factor(unit: str) -> float | None:
    """Return the factor of a unit to its family base, if known."""
    normalized = normalize_unit(unit)
    for units in _FAMILY_UNITS.values():
        if normalized in units:
            return units[normalized]
    return None


def unit_display_name(unit: str) -> str:
    """Return the short display name of a unit."""
    normalized = normalize_unit(unit)
    return _DISPLAY_NAMES.get(normalized, normalized)


def convert_to_master_unit(quantity: float, unit: str, food: "FoodRecord") -> float:
    """Convert a quantity in any supported unit into the food's master unit.

    The master unit is the food's own serving unit (grams or milliliters for
    nearly every catalog food). Conversions are pure multiplications through
    the family base unit.

    Raises:
        UnitMismatchError: if the unit is unknown or belongs to another family
            than the food's base unit.
    """
    normalized = normalize_unit(unit)
    food_unit = normalize_unit(food.serving_unit)
    if normalized == food_unit:
        return quantity

    family = unit_family(normalized)
    if family is None:
        raise UnitMismatchError(unit, food.serving_unit, "unrecognized unit")
    target_family = food_unit_family(food)
    if family != target_family:
        raise UnitMismatchError(
            unit,
            food.serving_unit,
            f"{family} unit cannot be used for a {target_family} food",
        )

    base_quantity = quantity * _FAMILY_UNITS[family][normalized]
    target_factor = _FAMILY_UNITS[family].get(food_unit, 1.0)
    return base_quantity / target_factor


def convert_from_master_unit(
    master_quantity: float, unit: str, food: "FoodRecord"
) -> float:
    """Express a master-unit quantity in another unit of the same family."""
    return master_quantity / convert_to_master_unit(1.0, unit, food)
