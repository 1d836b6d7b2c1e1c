"""Catalog lookups, serving menus and nutrient computation."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from food_catalog.domain.errors import RecordNotFoundError, UnitMismatchError
from food_catalog.domain.foods import FoodRecord, FoodVariant, SavedServing
from food_catalog.domain.nutrients import NutrientSet, nutrients_for_option
from food_catalog.domain.servings import (
    RawServingOption,
    SavedServingOption,
    ServingOption,
    ServingSelection,
    build_serving_options,
    get_default_serving_selection,
)
from food_catalog.domain.units import normalize_unit, unit_family


class CatalogRepository(Protocol):
    """Persistence interface for foods, saved servings and variants."""

    def get_food(self, food_id: UUID) -> FoodRecord | None:
        """Return a food by id, if present."""

    def list_foods(self, food_ids: list[UUID]) -> list[FoodRecord]:
        """Return the foods with the given ids."""

    def search_foods(self, query: str, limit: int) -> list[FoodRecord]:
        """Return foods whose name or brand matches the query."""

    def update_food(self, food_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a food."""

    def delete_food(self, food_id: UUID) -> None:
        """Delete a food."""

    def list_servings(self, food_ids: list[UUID]) -> list[SavedServing]:
        """Return the saved servings of the given foods."""

    def update_serving(self, serving_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a saved serving."""

    def relink_servings(self, serving_ids: list[UUID], food_id: UUID) -> None:
        """Move saved servings to another food."""

    def delete_servings(self, serving_ids: list[UUID]) -> None:
        """Delete saved servings."""

    def clear_default_servings(self, food_id: UUID) -> None:
        """Unset the default flag on every serving of a food."""

    def set_default_serving(self, serving_id: UUID) -> None:
        """Flag a serving as its food's default."""

    def list_variants(self, food_master_ids: list[UUID]) -> list[FoodVariant]:
        """Return the variants attached to the given master foods."""

    def create_variant(
        self, food_master_id: UUID, payload: dict[str, object]
    ) -> FoodVariant:
        """Create a variant attached to a master food."""

    def update_variant(self, variant_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a variant."""

    def delete_variant(self, variant_id: UUID) -> None:
        """Delete a variant."""


@dataclass(frozen=True)
class ServingMenu:
    """Selectable servings of a food and the one to pre-select."""

    food: FoodRecord
    options: list[ServingOption]
    default: ServingSelection


@dataclass
class CatalogService:
    """Application service for catalog reads and nutrient math."""

    repository: CatalogRepository

    def get_food(self, food_id: UUID) -> FoodRecord:
        """Return a food or raise RecordNotFoundError."""
        food = self.repository.get_food(food_id)
        if food is None:
            raise RecordNotFoundError("food", food_id)
        return food

    def search(self, query: str, limit: int = 20) -> list[FoodRecord]:
        """Search foods and rank curated data first."""
        cleaned = query.strip()
        if not cleaned:
            return []
        return self._rank(self.repository.search_foods(cleaned, limit))[:limit]

    def serving_menu(self, food_id: UUID) -> ServingMenu:
        """Return the serving options of a food with its default selection."""
        food = self.get_food(food_id)
        servings = self.repository.list_servings([food_id])
        return ServingMenu(
            food=food,
            options=build_serving_options(food, servings),
            default=get_default_serving_selection(food, servings),
        )

    def nutrients(
        self,
        food_id: UUID,
        quantity: float,
        unit: str | None = None,
        serving_id: UUID | None = None,
    ) -> tuple[FoodRecord, ServingSelection, NutrientSet]:
        """Compute nutrients for a quantity of a raw unit or saved serving."""
        menu = self.serving_menu(food_id)
        selection = select_option(menu, quantity, unit=unit, serving_id=serving_id)
        nutrients = nutrients_for_option(menu.food, selection.option, quantity)
        return menu.food, selection, nutrients

    @staticmethod
    def _rank(items: list[FoodRecord]) -> list[FoodRecord]:
        """Rank base foods, then quality data, then manual order, then name."""
        return sorted(
            items,
            key=lambda food: (
                not food.is_base_food,
                not food.is_quality_data,
                food.order_index or 0,
                food.name.lower(),
            ),
        )


def select_option(
    menu: ServingMenu,
    quantity: float,
    unit: str | None = None,
    serving_id: UUID | None = None,
) -> ServingSelection:
    """Pick the menu option matching a unit or saved serving id."""
    if serving_id is not None:
        for option in menu.options:
            if (
                isinstance(option, SavedServingOption)
                and option.serving.id == serving_id
            ):
                return ServingSelection(option=option, quantity=quantity)
        raise RecordNotFoundError("serving", serving_id)
    if unit is None:
        return ServingSelection(option=menu.default.option, quantity=quantity)

    normalized = normalize_unit(unit)
    for option in menu.options:
        if isinstance(option, RawServingOption) and option.unit == normalized:
            return ServingSelection(option=option, quantity=quantity)
    if normalized == normalize_unit(menu.food.serving_unit):
        # The food's own unit is always usable even when no raw option lists it.
        return ServingSelection(
            option=RawServingOption(unit=normalized, label=unit, factor=1.0),
            quantity=quantity,
        )
    reason = "unrecognized unit" if unit_family(unit) is None else "incompatible unit"
    raise UnitMismatchError(unit, menu.food.serving_unit, reason)
