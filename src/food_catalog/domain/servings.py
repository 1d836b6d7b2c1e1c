"""Serving options offered for a food and default serving resolution."""

from dataclasses import dataclass
from typing import Literal

from food_catalog.domain.foods import FoodRecord, SavedServing
from food_catalog.domain.units import (
    UnitFamily,
    convert_to_master_unit,
    food_unit_family,
    normalize_unit,
    unit_display_name,
    unit_factor,
    units_for_family,
)


@dataclass(frozen=True)
class RawServingOption:
    """A generic unit of measure offered for a food."""

    unit: str
    label: str
    factor: float
    kind: Literal["raw"] = "raw"

    @property
    def key(self) -> str:
        return f"raw-{self.unit}"


@dataclass(frozen=True)
class SavedServingOption:
    """A saved serving of a food offered as a choice."""

    serving: SavedServing
    label: str
    kind: Literal["saved"] = "saved"

    @property
    def key(self) -> str:
        return str(self.serving.id)


ServingOption = RawServingOption | SavedServingOption


@dataclass(frozen=True)
class ServingSelection:
    """A chosen serving option and how many of it."""

    option: ServingOption
    quantity: float


def raw_serving_options(food: FoodRecord) -> list[RawServingOption]:
    """Return the raw unit options matching the food's unit family."""
    return [
        RawServingOption(
            unit=unit,
            label=unit_display_name(unit),
            factor=unit_factor(unit) or 1.0,
        )
        for unit in units_for_family(food_unit_family(food))
    ]


def sort_saved_servings(servings: list[SavedServing]) -> list[SavedServing]:
    """Order servings default first, then by sort order, then by name."""
    return sorted(
        servings,
        key=lambda serving: (
            not serving.is_default,
            serving.sort_order or 0,
            serving.name.lower(),
        ),
    )


def build_serving_options(
    food: FoodRecord, servings: list[SavedServing]
) -> list[ServingOption]:
    """Build the ordered serving options for a food.

    Raw units come first, filtered to the food's family, followed by the
    food's own saved servings.
    """
    options: list[ServingOption] = list(raw_serving_options(food))
    own_servings = [serving for serving in servings if serving.food_id == food.id]
    options.extend(
        SavedServingOption(serving=serving, label=serving.name)
        for serving in sort_saved_servings(own_servings)
    )
    return options


def get_default_serving_selection(
    food: FoodRecord, servings: list[SavedServing]
) -> ServingSelection:
    """Return the option and quantity a food should be pre-selected with.

    A saved serving flagged as default wins with quantity 1. Otherwise the
    raw option matching the food's own unit is selected with the food's own
    serving size, which reproduces the authored nutrient facts.
    """
    options = build_serving_options(food, servings)
    defaults = [
        option
        for option in options
        if isinstance(option, SavedServingOption) and option.serving.is_default
    ]
    if defaults:
        chosen = min(
            defaults,
            key=lambda option: (
                option.serving.sort_order or 0,
                str(option.serving.id),
            ),
        )
        return ServingSelection(option=chosen, quantity=1.0)

    food_unit = normalize_unit(food.serving_unit)
    for option in options:
        if isinstance(option, RawServingOption) and option.unit == food_unit:
            return ServingSelection(option=option, quantity=food.serving_size or 0.0)

    return ServingSelection(option=options[0], quantity=1.0)


def serving_master_amount(serving: SavedServing, food: FoodRecord) -> float:
    """Return one serving's weight or volume expressed in the food's master unit."""
    family = food_unit_family(food)
    if family == UnitFamily.VOLUME:
        return convert_to_master_unit(serving.volume_milliliters or 0.0, "ml", food)
    if family == UnitFamily.MASS:
        return convert_to_master_unit(serving.weight_grams or 0.0, "g", food)
    return serving.weight_grams or 0.0


def serving_matches_family(serving: SavedServing, food: FoodRecord) -> bool:
    """Check a serving stores exactly the measure its food's family uses."""
    family = food_unit_family(food)
    if family == UnitFamily.VOLUME:
        measure, other = serving.volume_milliliters, serving.weight_grams
    else:
        measure, other = serving.weight_grams, serving.volume_milliliters
    return measure is not None and measure >= 0 and other is None


def format_serving(selection: ServingSelection) -> str:
    """Format a selection for display, e.g. "1 slice" or "100 g"."""
    option = selection.option
    if isinstance(option, SavedServingOption):
        if selection.quantity == 1:
            return option.label
        return f"{_format_quantity(selection.quantity)} x {option.label}"
    return f"{_format_quantity(selection.quantity)} {unit_display_name(option.unit)}"


def _format_quantity(quantity: float) -> str:
    if float(quantity).is_integer():
        return str(int(quantity))
    return f"{quantity:g}"
