"""Operator session for assembling, editing and merging duplicate foods."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

from food_catalog.domain.diary import Bundle, BundleItem, CalorieEntry
from food_catalog.domain.foods import FoodRecord, FoodVariant, SavedServing
from food_catalog.domain.merge import (
    MergeRequest,
    MergeResult,
    MergeSucceeded,
    ServingDecision,
)
from food_catalog.services.catalog import CatalogRepository
from food_catalog.services.diary import DiaryRepository
from food_catalog.services.merge import merge_foods

_logger = logging.getLogger(__name__)


class EditableEntity(StrEnum):
    """Record kinds whose columns can be edited from the workbench grids."""

    FOOD = "food"
    SERVING = "serving"
    VARIANT = "variant"
    ENTRY = "entry"
    BUNDLE = "bundle"
    BUNDLE_ITEM = "bundle_item"


EDITABLE_FIELDS: dict[EditableEntity, frozenset[str]] = {
    EditableEntity.FOOD: frozenset(
        {
            "name",
            "brand",
            "serving_size",
            "serving_unit",
            "calories_kcal",
            "protein_g",
            "carbs_g",
            "fat_g",
            "fiber_g",
            "saturated_fat_g",
            "sugar_g",
            "sodium_mg",
            "barcode",
            "source",
            "is_base_food",
            "is_quality_data",
            "order_index",
        }
    ),
    EditableEntity.SERVING: frozenset(
        {"serving_name", "weight_g", "volume_ml", "sort_order"}
    ),
    EditableEntity.VARIANT: frozenset(
        {
            "variant_name",
            "brand",
            "barcode",
            "quantity_label",
            "energy_kcal_100g",
            "protein_g_100g",
            "carbs_g_100g",
            "fat_g_100g",
            "saturated_fat_g_100g",
            "sugar_g_100g",
            "fiber_g_100g",
            "sodium_mg_100g",
            "source",
        }
    ),
    EditableEntity.ENTRY: frozenset({"item_name", "meal_type", "quantity", "unit"}),
    EditableEntity.BUNDLE: frozenset({"name", "order_index"}),
    EditableEntity.BUNDLE_ITEM: frozenset(
        {"item_name", "quantity", "unit", "order_index"}
    ),
}


@dataclass
class PendingEdits:
    """Staged column edits keyed by record kind, then record id."""

    patches: dict[EditableEntity, dict[UUID, dict[str, object]]] = field(
        default_factory=dict
    )

    def stage(
        self, entity: EditableEntity, record_id: UUID, column: str, value: object
    ) -> None:
        """Stage a column value for a record."""
        if column not in EDITABLE_FIELDS[entity]:
            raise ValueError(f"Column {column!r} of {entity} is not editable")
        self.patches.setdefault(entity, {}).setdefault(record_id, {})[column] = value

    def discard(self, entity: EditableEntity | None = None) -> None:
        """Drop staged edits for one kind, or all of them."""
        if entity is None:
            self.patches.clear()
        else:
            self.patches.pop(entity, None)

    def for_entity(self, entity: EditableEntity) -> dict[UUID, dict[str, object]]:
        return self.patches.get(entity, {})

    def is_empty(self) -> bool:
        return not any(self.patches.values())


@dataclass(frozen=True)
class CommitReport:
    """Outcome of applying staged edits."""

    updated: list[UUID]
    deleted: list[UUID]
    failures: dict[UUID, str]


@dataclass
class MergeWorkbench:
    """Working set of foods plus the operator's merge markers.

    Markers follow the grid rules: master and variant are exclusive per food,
    keep and delete are exclusive per serving, and only a kept serving can be
    the default.
    """

    catalog: CatalogRepository
    diary: DiaryRepository
    debug: bool = False
    foods: list[FoodRecord] = field(default_factory=list)
    master_ids: set[UUID] = field(default_factory=set)
    variant_ids: set[UUID] = field(default_factory=set)
    servings_to_keep: set[UUID] = field(default_factory=set)
    servings_to_delete: set[UUID] = field(default_factory=set)
    make_default_serving_id: UUID | None = None
    servings: list[SavedServing] = field(default_factory=list)
    variants: list[FoodVariant] = field(default_factory=list)
    entries: list[CalorieEntry] = field(default_factory=list)
    bundles: list[Bundle] = field(default_factory=list)
    bundle_items: list[BundleItem] = field(default_factory=list)
    edits: PendingEdits = field(default_factory=PendingEdits)

    @property
    def food_ids(self) -> list[UUID]:
        return [food.id for food in self.foods]

    def add_food(self, food: FoodRecord) -> None:
        """Add a food to the working set and load its associated data."""
        if food.id in self.food_ids:
            return
        self.foods.append(food)
        self.refresh()

    def remove_food(self, food_id: UUID) -> None:
        """Remove a food and every marker tied to it or its servings."""
        self.foods = [food for food in self.foods if food.id != food_id]
        self.master_ids.discard(food_id)
        self.variant_ids.discard(food_id)
        removed = {s.id for s in self.servings if s.food_id == food_id}
        self.servings_to_keep -= removed
        self.servings_to_delete -= removed
        if self.make_default_serving_id in removed:
            self.make_default_serving_id = None
        self.refresh()

    def clear(self) -> None:
        """Empty the working set and all markers."""
        self.foods = []
        self.master_ids.clear()
        self.variant_ids.clear()
        self._clear_serving_markers()
        self._clear_associated()
        self.edits.discard()

    def toggle_master(self, food_id: UUID) -> None:
        if food_id in self.master_ids:
            self.master_ids.discard(food_id)
            return
        self.master_ids.clear()
        self.master_ids.add(food_id)
        self.variant_ids.discard(food_id)

    def toggle_variant(self, food_id: UUID) -> None:
        if food_id in self.variant_ids:
            self.variant_ids.discard(food_id)
            return
        self.variant_ids.add(food_id)
        self.master_ids.discard(food_id)

    def toggle_keep(self, serving_id: UUID) -> None:
        if serving_id in self.servings_to_keep:
            self.servings_to_keep.discard(serving_id)
            self.servings_to_delete.add(serving_id)
            if self.make_default_serving_id == serving_id:
                self.make_default_serving_id = None
            return
        self.servings_to_keep.add(serving_id)
        self.servings_to_delete.discard(serving_id)

    def toggle_delete(self, serving_id: UUID) -> None:
        if serving_id in self.servings_to_delete:
            self.servings_to_delete.discard(serving_id)
            self.servings_to_keep.add(serving_id)
            return
        self.servings_to_delete.add(serving_id)
        self.servings_to_keep.discard(serving_id)
        if self.make_default_serving_id == serving_id:
            self.make_default_serving_id = None

    def toggle_make_default(self, serving_id: UUID) -> None:
        """Choose or clear the default serving; ignored unless the serving is kept."""
        if serving_id not in self.servings_to_keep:
            return
        if self.make_default_serving_id == serving_id:
            self.make_default_serving_id = None
        else:
            self.make_default_serving_id = serving_id

    def build_request(self) -> MergeRequest:
        """Capture the current markers as a merge request."""
        decisions = dict.fromkeys(self.servings_to_keep, ServingDecision.KEEP)
        decisions.update(
            dict.fromkeys(self.servings_to_delete, ServingDecision.DELETE)
        )
        return MergeRequest(
            working_set=tuple(self.foods),
            master_ids=tuple(fid for fid in self.food_ids if fid in self.master_ids),
            variant_ids=tuple(fid for fid in self.food_ids if fid in self.variant_ids),
            servings=tuple(self.servings),
            serving_decisions=decisions,
            make_default_serving_id=self.make_default_serving_id,
        )

    def merge(self) -> MergeResult:
        """Run the merge and, on success, drop the folded foods and reload."""
        result = merge_foods(
            self.build_request(), self.catalog, self.diary, debug=self.debug
        )
        if isinstance(result, MergeSucceeded):
            merged = set(result.variant_ids)
            self.foods = [food for food in self.foods if food.id not in merged]
            self.master_ids.clear()
            self.variant_ids.clear()
            self._clear_serving_markers()
            self.refresh()
        return result

    def refresh(self) -> None:
        """Reload associated records for the current working set from the store."""
        food_ids = self.food_ids
        if not food_ids:
            self._clear_associated()
            return
        self.servings = self.catalog.list_servings(food_ids)
        self.variants = self.catalog.list_variants(food_ids)
        self.entries = self.diary.list_entries_for_foods(food_ids)
        self.bundle_items = self.diary.list_bundle_items_for_foods(food_ids)
        bundle_ids = list(dict.fromkeys(item.bundle_id for item in self.bundle_items))
        self.bundles = self.diary.list_bundles(bundle_ids) if bundle_ids else []

    def commit_edits(self, entity: EditableEntity) -> CommitReport:
        """Apply staged edits of one kind, one update call per record.

        Committing servings also deletes the servings marked for deletion.
        """
        updated: list[UUID] = []
        deleted: list[UUID] = []
        failures: dict[UUID, str] = {}
        if entity == EditableEntity.SERVING and self.servings_to_delete:
            doomed = sorted(self.servings_to_delete, key=str)
            try:
                self.catalog.delete_servings(doomed)
            except Exception as exc:
                _logger.exception("Failed to delete servings %s", doomed)
                failures.update({serving_id: str(exc) for serving_id in doomed})
            else:
                deleted.extend(doomed)
                self.servings_to_delete.clear()
                if self.make_default_serving_id in doomed:
                    self.make_default_serving_id = None

        update = self._updater(entity)
        for record_id, patch in self.edits.for_entity(entity).items():
            if record_id in deleted:
                continue
            try:
                update(record_id, patch)
            except Exception as exc:
                _logger.exception("Failed to update %s %s", entity, record_id)
                failures[record_id] = str(exc)
            else:
                updated.append(record_id)

        remaining = {
            record_id: patch
            for record_id, patch in self.edits.for_entity(entity).items()
            if record_id in failures
        }
        self.edits.discard(entity)
        if remaining:
            self.edits.patches[entity] = remaining
        if entity == EditableEntity.FOOD and updated:
            self._reload_foods()
        self.refresh()
        return CommitReport(updated=updated, deleted=deleted, failures=failures)

    def _updater(
        self, entity: EditableEntity
    ) -> Callable[[UUID, dict[str, object]], None]:
        return {
            EditableEntity.FOOD: self.catalog.update_food,
            EditableEntity.SERVING: self.catalog.update_serving,
            EditableEntity.VARIANT: self.catalog.update_variant,
            EditableEntity.ENTRY: self.diary.update_entry,
            EditableEntity.BUNDLE: self.diary.update_bundle,
            EditableEntity.BUNDLE_ITEM: self.diary.update_bundle_item,
        }[entity]

    def _reload_foods(self) -> None:
        fresh = {food.id: food for food in self.catalog.list_foods(self.food_ids)}
        self.foods = [fresh.get(food.id, food) for food in self.foods]

    def _clear_serving_markers(self) -> None:
        self.servings_to_keep.clear()
        self.servings_to_delete.clear()
        self.make_default_serving_id = None

    def _clear_associated(self) -> None:
        self.servings = []
        self.variants = []
        self.entries = []
        self.bundles = []
        self.bundle_items = []
