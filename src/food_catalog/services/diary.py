"""Calorie entry logging and bundle services."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

from food_catalog.domain.diary import Bundle, BundleItem, CalorieEntry
from food_catalog.domain.errors import RecordNotFoundError
from food_catalog.domain.nutrients import (
    ZERO_NUTRIENTS,
    NutrientSet,
    entry_nutrient_payload,
)
from food_catalog.domain.servings import SavedServingOption, ServingSelection
from food_catalog.services.catalog import CatalogService

_logger = logging.getLogger(__name__)


class DiaryRepository(Protocol):
    """Persistence interface for calorie entries and bundles."""

    def create_entry(self, payload: dict[str, object]) -> CalorieEntry:
        """Create a calorie entry and return it."""

    def list_entries_for_foods(self, food_ids: list[UUID]) -> list[CalorieEntry]:
        """Return entries referencing any of the given foods."""

    def find_entry_ids_by_food(self, food_id: UUID) -> list[UUID]:
        """Return ids of entries referencing a food."""

    def repoint_entries(self, entry_ids: list[UUID], food_id: UUID) -> None:
        """Point entries at another food."""

    def update_entry(self, entry_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to an entry."""

    def get_bundle(self, bundle_id: UUID) -> Bundle | None:
        """Return a bundle by id, if present."""

    def list_bundles(self, bundle_ids: list[UUID]) -> list[Bundle]:
        """Return bundles with the given ids."""

    def update_bundle(self, bundle_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a bundle."""

    def list_bundle_items(self, bundle_id: UUID) -> list[BundleItem]:
        """Return the items of a bundle in order."""

    def list_bundle_items_for_foods(self, food_ids: list[UUID]) -> list[BundleItem]:
        """Return bundle items referencing any of the given foods."""

    def find_bundle_item_ids_by_food(self, food_id: UUID) -> list[UUID]:
        """Return ids of bundle items referencing a food."""

    def repoint_bundle_items(self, item_ids: list[UUID], food_id: UUID) -> None:
        """Point bundle items at another food."""

    def update_bundle_item(self, item_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a bundle item."""


@dataclass
class DiaryService:
    """Service that snapshots nutrients into logged entries."""

    catalog_service: CatalogService
    repository: DiaryRepository

    def log_food(  # noqa: PLR0913
        self,
        user_id: UUID,
        food_id: UUID,
        quantity: float,
        unit: str | None = None,
        serving_id: UUID | None = None,
        entry_date: date | None = None,
        meal_type: str | None = None,
    ) -> CalorieEntry:
        """Log a food, copying the nutrients computed right now."""
        food, selection, nutrients = self.catalog_service.nutrients(
            food_id, quantity, unit=unit, serving_id=serving_id
        )
        if nutrients.data_quality_issue:
            _logger.warning(
                "Logging food %s with data quality issue: %s",
                food.id,
                nutrients.data_quality_issue,
            )
        payload = _entry_payload(
            user_id=user_id,
            item_name=food.name,
            selection=selection,
            nutrients=nutrients,
            entry_date=entry_date,
            meal_type=meal_type,
        )
        payload["food_id"] = str(food.id)
        return self.repository.create_entry(payload)

    def log_manual(  # noqa: PLR0913
        self,
        user_id: UUID,
        item_name: str,
        nutrients: NutrientSet,
        quantity: float = 1.0,
        unit: str = "serving",
        entry_date: date | None = None,
        meal_type: str | None = None,
    ) -> CalorieEntry:
        """Log a free-text entry that references no food."""
        payload: dict[str, object] = {
            "user_id": str(user_id),
            "item_name": item_name,
            "quantity": quantity,
            "unit": unit,
            "food_id": None,
            "serving_id": None,
            **entry_nutrient_payload(nutrients),
        }
        _add_optional(payload, entry_date, meal_type)
        return self.repository.create_entry(payload)

    def bundle_totals(self, bundle_id: UUID) -> NutrientSet:
        """Sum the current nutrients of every food-backed item in a bundle."""
        self._get_bundle(bundle_id)
        total = ZERO_NUTRIENTS
        for item in self.repository.list_bundle_items(bundle_id):
            if item.food_id is None:
                continue
            _, _, nutrients = self.catalog_service.nutrients(
                item.food_id,
                item.quantity,
                unit=None if item.serving_id else item.unit,
                serving_id=item.serving_id,
            )
            total = total + nutrients
        return total

    def log_bundle(
        self,
        user_id: UUID,
        bundle_id: UUID,
        entry_date: date | None = None,
        meal_type: str | None = None,
    ) -> list[CalorieEntry]:
        """Log every item of a bundle as its own entry."""
        self._get_bundle(bundle_id)
        entries = []
        for item in self.repository.list_bundle_items(bundle_id):
            if item.food_id is None:
                entries.append(
                    self.log_manual(
                        user_id,
                        item.item_name,
                        ZERO_NUTRIENTS,
                        quantity=item.quantity,
                        unit=item.unit,
                        entry_date=entry_date,
                        meal_type=meal_type,
                    )
                )
                continue
            entries.append(
                self.log_food(
                    user_id,
                    item.food_id,
                    item.quantity,
                    unit=None if item.serving_id else item.unit,
                    serving_id=item.serving_id,
                    entry_date=entry_date,
                    meal_type=meal_type,
                )
            )
        return entries

    def _get_bundle(self, bundle_id: UUID) -> Bundle:
        bundle = self.repository.get_bundle(bundle_id)
        if bundle is None:
            raise RecordNotFoundError("bundle", bundle_id)
        return bundle


def _entry_payload(  # noqa: PLR0913
    *,
    user_id: UUID,
    item_name: str,
    selection: ServingSelection,
    nutrients: NutrientSet,
    entry_date: date | None,
    meal_type: str | None,
) -> dict[str, object]:
    option = selection.option
    if isinstance(option, SavedServingOption):
        unit = option.label
        serving_id: str | None = str(option.serving.id)
    else:
        unit = option.unit
        serving_id = None
    payload: dict[str, object] = {
        "user_id": str(user_id),
        "item_name": item_name,
        "quantity": selection.quantity,
        "unit": unit,
        "serving_id": serving_id,
        **entry_nutrient_payload(nutrients),
    }
    _add_optional(payload, entry_date, meal_type)
    return payload


def _add_optional(
    payload: dict[str, object], entry_date: date | None, meal_type: str | None
) -> None:
    if entry_date is not None:
        payload["entry_date"] = entry_date.isoformat()
    if meal_type is not None:
        payload["meal_type"] = meal_type
