"""Supabase repository for calorie entries and bundles."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from supabase import Client

from food_catalog.domain.diary import Bundle, BundleItem, CalorieEntry
from food_catalog.services.diary import DiaryRepository

ENTRIES_TABLE = "calorie_entries"
BUNDLES_TABLE = "bundles"
BUNDLE_ITEMS_TABLE = "bundle_items"


@dataclass
class SupabaseDiaryRepository(DiaryRepository):
    """Supabase implementation for logged entries and bundles."""

    client: Client

    def create_entry(self, payload: dict[str, object]) -> CalorieEntry:
        """Create a calorie entry and return it."""
        response = self.client.table(ENTRIES_TABLE).insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create calorie entry")
        return _parse_entry(response.data[0])

    def list_entries_for_foods(self, food_ids: list[UUID]) -> list[CalorieEntry]:
        """Return entries referencing any of the given foods."""
        if not food_ids:
            return []
        response = (
            self.client.table(ENTRIES_TABLE)
            .select("*")
            .in_("food_id", _ids(food_ids))
            .order("entry_date", desc=True)
            .execute()
        )
        return [_parse_entry(row) for row in response.data or []]

    def find_entry_ids_by_food(self, food_id: UUID) -> list[UUID]:
        """Return ids of entries referencing a food."""
        response = (
            self.client.table(ENTRIES_TABLE)
            .select("id")
            .eq("food_id", str(food_id))
            .execute()
        )
        return [UUID(str(row["id"])) for row in response.data or []]

    def repoint_entries(self, entry_ids: list[UUID], food_id: UUID) -> None:
        """Point entries at another food."""
        if not entry_ids:
            return
        self.client.table(ENTRIES_TABLE).update({"food_id": str(food_id)}).in_(
            "id", _ids(entry_ids)
        ).execute()

    def update_entry(self, entry_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to an entry."""
        response = (
            self.client.table(ENTRIES_TABLE)
            .update(payload)
            .eq("id", str(entry_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to update calorie entry {entry_id}")

    def get_bundle(self, bundle_id: UUID) -> Bundle | None:
        """Return a bundle by id, if present."""
        response = (
            self.client.table(BUNDLES_TABLE)
            .select("*")
            .eq("id", str(bundle_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_bundle(response.data[0])

    def list_bundles(self, bundle_ids: list[UUID]) -> list[Bundle]:
        """Return bundles with the given ids."""
        if not bundle_ids:
            return []
        response = (
            self.client.table(BUNDLES_TABLE)
            .select("*")
            .in_("id", _ids(bundle_ids))
            .order("order_index")
            .execute()
        )
        return [_parse_bundle(row) for row in response.data or []]

    def update_bundle(self, bundle_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a bundle."""
        response = (
            self.client.table(BUNDLES_TABLE)
            .update(payload)
            .eq("id", str(bundle_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to update bundle {bundle_id}")

    def list_bundle_items(self, bundle_id: UUID) -> list[BundleItem]:
        """Return the items of a bundle in order."""
        response = (
            self.client.table(BUNDLE_ITEMS_TABLE)
            .select("*")
            .eq("bundle_id", str(bundle_id))
            .order("order_index")
            .execute()
        )
        return [_parse_bundle_item(row) for row in response.data or []]

    def list_bundle_items_for_foods(self, food_ids: list[UUID]) -> list[BundleItem]:
        """Return bundle items referencing any of the given foods."""
        if not food_ids:
            return []
        response = (
            self.client.table(BUNDLE_ITEMS_TABLE)
            .select("*")
            .in_("food_id", _ids(food_ids))
            .execute()
        )
        return [_parse_bundle_item(row) for row in response.data or []]

    def find_bundle_item_ids_by_food(self, food_id: UUID) -> list[UUID]:
        """Return ids of bundle items referencing a food."""
        response = (
            self.client.table(BUNDLE_ITEMS_TABLE)
            .select("id")
            .eq("food_id", str(food_id))
            .execute()
        )
        return [UUID(str(row["id"])) for row in response.data or []]

    def repoint_bundle_items(self, item_ids: list[UUID], food_id: UUID) -> None:
        """Point bundle items at another food."""
        if not item_ids:
            return
        self.client.table(BUNDLE_ITEMS_TABLE).update({"food_id": str(food_id)}).in_(
            "id", _ids(item_ids)
        ).execute()

    def update_bundle_item(self, item_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a bundle item."""
        response = (
            self.client.table(BUNDLE_ITEMS_TABLE)
            .update(payload)
            .eq("id", str(item_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to update bundle item {item_id}")


def _ids(values: list[UUID]) -> list[str]:
    return [str(value) for value in values]


def _optional_uuid(value: object) -> UUID | None:
    return UUID(str(value)) if value else None


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    return float(value)  # type: ignore[arg-type]


def _optional_int(value: object) -> int | None:
    if value is None:
        return None
    return int(value)  # type: ignore[call-overload]


def _parse_entry(row: dict[str, object]) -> CalorieEntry:
    """Parse a calorie_entries row into a domain model."""
    entry_date_raw = row.get("entry_date")
    entry_date = (
        date.fromisoformat(entry_date_raw[:10])
        if isinstance(entry_date_raw, str) and entry_date_raw
        else None
    )
    return CalorieEntry(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        item_name=str(row.get("item_name") or ""),
        quantity=float(row.get("quantity") or 0.0),  # type: ignore[arg-type]
        unit=str(row.get("unit") or ""),
        calories=float(row.get("calories_kcal") or 0.0),  # type: ignore[arg-type]
        food_id=_optional_uuid(row.get("food_id")),
        serving_id=_optional_uuid(row.get("serving_id")),
        entry_date=entry_date,
        meal_type=row.get("meal_type"),  # type: ignore[arg-type]
        protein=_optional_float(row.get("protein_g")),
        carbs=_optional_float(row.get("carbs_g")),
        fat=_optional_float(row.get("fat_g")),
        fiber=_optional_float(row.get("fiber_g")),
        saturated_fat=_optional_float(row.get("saturated_fat_g")),
        sugar=_optional_float(row.get("sugar_g")),
        sodium=_optional_float(row.get("sodium_mg")),
    )


def _parse_bundle(row: dict[str, object]) -> Bundle:
    """Parse a bundles row into a domain model."""
    return Bundle(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        name=str(row.get("name") or ""),
        order_index=_optional_int(row.get("order_index")),
    )


def _parse_bundle_item(row: dict[str, object]) -> BundleItem:
    """Parse a bundle_items row into a domain model."""
    return BundleItem(
        id=UUID(str(row["id"])),
        bundle_id=UUID(str(row["bundle_id"])),
        item_name=str(row.get("item_name") or ""),
        quantity=float(row.get("quantity") or 0.0),  # type: ignore[arg-type]
        unit=str(row.get("unit") or ""),
        food_id=_optional_uuid(row.get("food_id")),
        serving_id=_optional_uuid(row.get("serving_id")),
        order_index=_optional_int(row.get("order_index")),
    )
