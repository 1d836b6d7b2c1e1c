"""Supabase repository for foods, saved servings and variants."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from food_catalog.domain.foods import FoodRecord, FoodVariant, SavedServing
from food_catalog.services.catalog import CatalogRepository

FOODS_TABLE = "food_master"
SERVINGS_TABLE = "food_servings"
VARIANTS_TABLE = "food_variant"


@dataclass
class SupabaseCatalogRepository(CatalogRepository):
    """Supabase-backed repository for the shared food catalog."""

    client: Client

    def get_food(self, food_id: UUID) -> FoodRecord | None:
        """Return a food by id, if present."""
        response = (
            self.client.table(FOODS_TABLE)
            .select("*")
            .eq("id", str(food_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_food(response.data[0])

    def list_foods(self, food_ids: list[UUID]) -> list[FoodRecord]:
        """Return the foods with the given ids."""
        if not food_ids:
            return []
        response = (
            self.client.table(FOODS_TABLE)
            .select("*")
            .in_("id", _ids(food_ids))
            .execute()
        )
        return [_parse_food(row) for row in response.data or []]

    def search_foods(self, query: str, limit: int) -> list[FoodRecord]:
        """Search foods by name, then by brand."""
        pattern = f"%{query}%"
        by_name = (
            self.client.table(FOODS_TABLE)
            .select("*")
            .ilike("name", pattern)
            .limit(limit)
            .execute()
        )
        foods = [_parse_food(row) for row in by_name.data or []]
        if len(foods) >= limit:
            return foods
        by_brand = (
            self.client.table(FOODS_TABLE)
            .select("*")
            .ilike("brand", pattern)
            .limit(limit)
            .execute()
        )
        seen = {food.id for food in foods}
        for row in by_brand.data or []:
            food = _parse_food(row)
            if food.id not in seen:
                seen.add(food.id)
                foods.append(food)
        return foods[:limit]

    def update_food(self, food_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a food."""
        response = (
            self.client.table(FOODS_TABLE)
            .update(payload)
            .eq("id", str(food_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to update food {food_id}")

    def delete_food(self, food_id: UUID) -> None:
        """Delete a food."""
        self.client.table(FOODS_TABLE).delete().eq("id", str(food_id)).execute()

    def list_servings(self, food_ids: list[UUID]) -> list[SavedServing]:
        """Return the saved servings of the given foods."""
        if not food_ids:
            return []
        response = (
            self.client.table(SERVINGS_TABLE)
            .select(
                "id, food_id, serving_name, weight_g, volume_ml, is_default, "
                "sort_order"
            )
            .in_("food_id", _ids(food_ids))
            .order("sort_order")
            .execute()
        )
        return [_parse_serving(row) for row in response.data or []]

    def update_serving(self, serving_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a saved serving."""
        response = (
            self.client.table(SERVINGS_TABLE)
            .update(payload)
            .eq("id", str(serving_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to update serving {serving_id}")

    def relink_servings(self, serving_ids: list[UUID], food_id: UUID) -> None:
        """Move saved servings to another food."""
        if not serving_ids:
            return
        self.client.table(SERVINGS_TABLE).update({"food_id": str(food_id)}).in_(
            "id", _ids(serving_ids)
        ).execute()

    def delete_servings(self, serving_ids: list[UUID]) -> None:
        """Delete saved servings."""
        if not serving_ids:
            return
        self.client.table(SERVINGS_TABLE).delete().in_(
            "id", _ids(serving_ids)
        ).execute()

    def clear_default_servings(self, food_id: UUID) -> None:
        """Unset the default flag on every serving of a food."""
        self.client.table(SERVINGS_TABLE).update({"is_default": False}).eq(
            "food_id", str(food_id)
        ).execute()

    def set_default_serving(self, serving_id: UUID) -> None:
        """Flag a serving as its food's default."""
        response = (
            self.client.table(SERVINGS_TABLE)
            .update({"is_default": True})
            .eq("id", str(serving_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to set default serving {serving_id}")

    def list_variants(self, food_master_ids: list[UUID]) -> list[FoodVariant]:
        """Return the variants attached to the given master foods."""
        if not food_master_ids:
            return []
        response = (
            self.client.table(VARIANTS_TABLE)
            .select("*")
            .in_("food_master_id", _ids(food_master_ids))
            .order("created_at")
            .execute()
        )
        return [_parse_variant(row) for row in response.data or []]

    def create_variant(
        self, food_master_id: UUID, payload: dict[str, object]
    ) -> FoodVariant:
        """Create a variant attached to a master food and return it."""
        response = (
            self.client.table(VARIANTS_TABLE)
            .insert({"food_master_id": str(food_master_id), **payload})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create food variant")
        return _parse_variant(response.data[0])

    def update_variant(self, variant_id: UUID, payload: dict[str, object]) -> None:
        """Apply a partial update to a variant."""
        response = (
            self.client.table(VARIANTS_TABLE)
            .update(payload)
            .eq("id", str(variant_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to update variant {variant_id}")

    def delete_variant(self, variant_id: UUID) -> None:
        """Delete a variant."""
        self.client.table(VARIANTS_TABLE).delete().eq("id", str(variant_id)).execute()


def _ids(values: list[UUID]) -> list[str]:
    return [str(value) for value in values]


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    return float(value)  # type: ignore[arg-type]


def _optional_int(value: object) -> int | None:
    if value is None:
        return None
    return int(value)  # type: ignore[call-overload]


def _parse_food(row: dict[str, object]) -> FoodRecord:
    """Parse a food_master row into a domain model."""
    owner = row.get("owner_user_id")
    return FoodRecord(
        id=UUID(str(row["id"])),
        name=str(row.get("name") or ""),
        brand=row.get("brand"),  # type: ignore[arg-type]
        serving_size=_optional_float(row.get("serving_size")),
        serving_unit=str(row.get("serving_unit") or "g"),
        calories=float(row.get("calories_kcal") or 0.0),  # type: ignore[arg-type]
        protein=_optional_float(row.get("protein_g")),
        carbs=_optional_float(row.get("carbs_g")),
        fat=_optional_float(row.get("fat_g")),
        fiber=_optional_float(row.get("fiber_g")),
        saturated_fat=_optional_float(row.get("saturated_fat_g")),
        sugar=_optional_float(row.get("sugar_g")),
        sodium=_optional_float(row.get("sodium_mg")),
        barcode=row.get("barcode"),  # type: ignore[arg-type]
        source=row.get("source"),  # type: ignore[arg-type]
        is_base_food=bool(row.get("is_base_food", False)),
        is_quality_data=bool(row.get("is_quality_data", False)),
        order_index=_optional_int(row.get("order_index")),
        owner_user_id=UUID(str(owner)) if owner else None,
    )


def _parse_serving(row: dict[str, object]) -> SavedServing:
    """Parse a food_servings row into a domain model."""
    return SavedServing(
        id=UUID(str(row["id"])),
        food_id=UUID(str(row["food_id"])),
        name=str(row.get("serving_name") or ""),
        weight_grams=_optional_float(row.get("weight_g")),
        volume_milliliters=_optional_float(row.get("volume_ml")),
        is_default=bool(row.get("is_default", False)),
        sort_order=_optional_int(row.get("sort_order")),
    )


def _parse_variant(row: dict[str, object]) -> FoodVariant:
    """Parse a food_variant row into a domain model."""
    created_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_raw)
        if isinstance(created_raw, str) and created_raw
        else None
    )
    return FoodVariant(
        id=UUID(str(row["id"])),
        food_master_id=UUID(str(row["food_master_id"])),
        name=row.get("variant_name"),  # type: ignore[arg-type]
        brand=row.get("brand"),  # type: ignore[arg-type]
        barcode=row.get("barcode"),  # type: ignore[arg-type]
        source=row.get("source"),  # type: ignore[arg-type]
        energy_kcal_100g=_optional_float(row.get("energy_kcal_100g")),
        protein_g_100g=_optional_float(row.get("protein_g_100g")),
        carbs_g_100g=_optional_float(row.get("carbs_g_100g")),
        fat_g_100g=_optional_float(row.get("fat_g_100g")),
        fiber_g_100g=_optional_float(row.get("fiber_g_100g")),
        saturated_fat_g_100g=_optional_float(row.get("saturated_fat_g_100g")),
        sugar_g_100g=_optional_float(row.get("sugar_g_100g")),
        sodium_mg_100g=_optional_float(row.get("sodium_mg_100g")),
        created_at=created_at,
    )
