"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import date
from uuid import UUID, uuid4

import pytest

from food_catalog.config import Settings
from food_catalog.containers import AppContainer
from food_catalog.domain.diary import Bundle, BundleItem, CalorieEntry
from food_catalog.domain.foods import FoodRecord, FoodVariant, SavedServing
from food_catalog.services.catalog import CatalogRepository, CatalogService
from food_catalog.services.diary import DiaryRepository, DiaryService
from food_catalog.services.merge import MergeService

_NUTRIENT_COLUMNS = {
    "calories_kcal": "calories",
    "protein_g": "protein",
    "carbs_g": "carbs",
    "fat_g": "fat",
    "fiber_g": "fiber",
    "saturated_fat_g": "saturated_fat",
    "sugar_g": "sugar",
    "sodium_mg": "sodium",
}
_SERVING_COLUMNS = {
    "serving_name": "name",
    "weight_g": "weight_grams",
    "volume_ml": "volume_milliliters",
}


def make_food(**overrides: object) -> FoodRecord:
    values: dict[str, object] = {
        "id": uuid4(),
        "name": "Oats",
        "brand": None,
        "serving_size": 100.0,
        "serving_unit": "g",
        "calories": 380.0,
        "protein": 13.0,
        "carbs": 67.0,
        "fat": 7.0,
    }
    values.update(overrides)
    return FoodRecord(**values)  # type: ignore[arg-type]


def make_serving(food_id: UUID, **overrides: object) -> SavedServing:
    values: dict[str, object] = {
        "id": uuid4(),
        "food_id": food_id,
        "name": "cup",
        "weight_grams": 80.0,
    }
    values.update(overrides)
    return SavedServing(**values)  # type: ignore[arg-type]


@dataclass
class _FailureInjection:
    """Records write calls and raises for method names listed in fail_on."""

    fail_on: set[str] = field(default_factory=set)
    writes: list[str] = field(default_factory=list)

    def _write(self, name: str) -> None:
        if name in self.fail_on:
            raise RuntimeError(f"{name} unavailable")
        self.writes.append(name)


@dataclass
class InMemoryCatalogRepository(_FailureInjection, CatalogRepository):
    """In-memory catalog repository for tests."""

    foods: dict[UUID, FoodRecord] = field(default_factory=dict)
    servings: dict[UUID, SavedServing] = field(default_factory=dict)
    variants: dict[UUID, FoodVariant] = field(default_factory=dict)
    variant_payloads: dict[UUID, dict[str, object]] = field(default_factory=dict)

    def add_food(self, food: FoodRecord) -> FoodRecord:
        self.foods[food.id] = food
        return food

    def add_serving(self, serving: SavedServing) -> SavedServing:
        self.servings[serving.id] = serving
        return serving

    def get_food(self, food_id: UUID) -> FoodRecord | None:
        return self.foods.get(food_id)

    def list_foods(self, food_ids: list[UUID]) -> list[FoodRecord]:
        return [self.foods[food_id] for food_id in food_ids if food_id in self.foods]

    def search_foods(self, query: str, limit: int) -> list[FoodRecord]:
        needle = query.lower()
        matches = [
            food
            for food in self.foods.values()
            if needle in food.name.lower() or needle in (food.brand or "").lower()
        ]
        return matches[:limit]

    def update_food(self, food_id: UUID, payload: dict[str, object]) -> None:
        self._write("update_food")
        changes = {_NUTRIENT_COLUMNS.get(k, k): v for k, v in payload.items()}
        food = self.foods[food_id]
        self.foods[food_id] = replace(food, **changes)  # type: ignore[arg-type]

    def delete_food(self, food_id: UUID) -> None:
        self._write("delete_food")
        self.foods.pop(food_id, None)

    def list_servings(self, food_ids: list[UUID]) -> list[SavedServing]:
        return [s for s in self.servings.values() if s.food_id in food_ids]

    def update_serving(self, serving_id: UUID, payload: dict[str, object]) -> None:
        self._write("update_serving")
        serving = self.servings[serving_id]
        changes = {_SERVING_COLUMNS.get(k, k): v for k, v in payload.items()}
        self.servings[serving_id] = replace(serving, **changes)  # type: ignore[arg-type]

    def relink_servings(self, serving_ids: list[UUID], food_id: UUID) -> None:
        self._write("relink_servings")
        for serving_id in serving_ids:
            self.servings[serving_id] = replace(
                self.servings[serving_id], food_id=food_id
            )

    def delete_servings(self, serving_ids: list[UUID]) -> None:
        self._write("delete_servings")
        for serving_id in serving_ids:
            self.servings.pop(serving_id, None)

    def clear_default_servings(self, food_id: UUID) -> None:
        self._write("clear_default_servings")
        for serving in list(self.servings.values()):
            if serving.food_id == food_id:
                self.servings[serving.id] = replace(serving, is_default=False)

    def set_default_serving(self, serving_id: UUID) -> None:
        self._write("set_default_serving")
        self.servings[serving_id] = replace(
            self.servings[serving_id], is_default=True
        )

    def list_variants(self, food_master_ids: list[UUID]) -> list[FoodVariant]:
        return [
            v for v in self.variants.values() if v.food_master_id in food_master_ids
        ]

    def create_variant(
        self, food_master_id: UUID, payload: dict[str, object]
    ) -> FoodVariant:
        self._write("create_variant")
        variant = FoodVariant(
            id=uuid4(),
            food_master_id=food_master_id,
            name=payload.get("variant_name"),  # type: ignore[arg-type]
            brand=payload.get("brand"),  # type: ignore[arg-type]
            barcode=payload.get("barcode"),  # type: ignore[arg-type]
            source=payload.get("source"),  # type: ignore[arg-type]
            energy_kcal_100g=payload.get("energy_kcal_100g"),  # type: ignore[arg-type]
            protein_g_100g=payload.get("protein_g_100g"),  # type: ignore[arg-type]
        )
        self.variants[variant.id] = variant
        self.variant_payloads[variant.id] = dict(payload)
        return variant

    def update_variant(self, variant_id: UUID, payload: dict[str, object]) -> None:
        self._write("update_variant")
        self.variant_payloads.setdefault(variant_id, {}).update(payload)

    def delete_variant(self, variant_id: UUID) -> None:
        self._write("delete_variant")
        self.variants.pop(variant_id, None)
        self.variant_payloads.pop(variant_id, None)


@dataclass
class InMemoryDiaryRepository(_FailureInjection, DiaryRepository):
    """In-memory diary repository for tests."""

    entries: dict[UUID, CalorieEntry] = field(default_factory=dict)
    entry_payloads: list[dict[str, object]] = field(default_factory=list)
    bundles: dict[UUID, Bundle] = field(default_factory=dict)
    bundle_items: dict[UUID, BundleItem] = field(default_factory=dict)

    def add_entry(self, food_id: UUID | None, **overrides: object) -> CalorieEntry:
        values: dict[str, object] = {
            "id": uuid4(),
            "user_id": uuid4(),
            "item_name": "Logged food",
            "quantity": 1.0,
            "unit": "g",
            "calories": 100.0,
            "food_id": food_id,
        }
        values.update(overrides)
        entry = CalorieEntry(**values)  # type: ignore[arg-type]
        self.entries[entry.id] = entry
        return entry

    def add_bundle(self, name: str = "Breakfast") -> Bundle:
        bundle = Bundle(id=uuid4(), user_id=uuid4(), name=name)
        self.bundles[bundle.id] = bundle
        return bundle

    def add_bundle_item(
        self, bundle_id: UUID, food_id: UUID | None, **overrides: object
    ) -> BundleItem:
        values: dict[str, object] = {
            "id": uuid4(),
            "bundle_id": bundle_id,
            "item_name": "Item",
            "quantity": 100.0,
            "unit": "g",
            "food_id": food_id,
            "order_index": len(self.bundle_items),
        }
        values.update(overrides)
        item = BundleItem(**values)  # type: ignore[arg-type]
        self.bundle_items[item.id] = item
        return item

    def create_entry(self, payload: dict[str, object]) -> CalorieEntry:
        self._write("create_entry")
        self.entry_payloads.append(dict(payload))
        food_id = payload.get("food_id")
        serving_id = payload.get("serving_id")
        entry_date = payload.get("entry_date")
        nutrients = {
            name: payload.get(column) for column, name in _NUTRIENT_COLUMNS.items()
        }
        entry = CalorieEntry(
            id=uuid4(),
            user_id=UUID(str(payload["user_id"])),
            item_name=str(payload["item_name"]),
            quantity=float(payload["quantity"]),  # type: ignore[arg-type]
            unit=str(payload["unit"]),
            food_id=UUID(str(food_id)) if food_id else None,
            serving_id=UUID(str(serving_id)) if serving_id else None,
            entry_date=date.fromisoformat(str(entry_date)) if entry_date else None,
            meal_type=payload.get("meal_type"),  # type: ignore[arg-type]
            **nutrients,  # type: ignore[arg-type]
        )
        self.entries[entry.id] = entry
        return entry

    def list_entries_for_foods(self, food_ids: list[UUID]) -> list[CalorieEntry]:
        return [e for e in self.entries.values() if e.food_id in food_ids]

    def find_entry_ids_by_food(self, food_id: UUID) -> list[UUID]:
        return [e.id for e in self.entries.values() if e.food_id == food_id]

    def repoint_entries(self, entry_ids: list[UUID], food_id: UUID) -> None:
        self._write("repoint_entries")
        for entry_id in entry_ids:
            self.entries[entry_id] = replace(self.entries[entry_id], food_id=food_id)

    def update_entry(self, entry_id: UUID, payload: dict[str, object]) -> None:
        self._write("update_entry")
        entry = self.entries[entry_id]
        self.entries[entry_id] = replace(entry, **payload)  # type: ignore[arg-type]

    def get_bundle(self, bundle_id: UUID) -> Bundle | None:
        return self.bundles.get(bundle_id)

    def list_bundles(self, bundle_ids: list[UUID]) -> list[Bundle]:
        return [self.bundles[b] for b in bundle_ids if b in self.bundles]

    def update_bundle(self, bundle_id: UUID, payload: dict[str, object]) -> None:
        self._write("update_bundle")
        bundle = self.bundles[bundle_id]
        self.bundles[bundle_id] = replace(bundle, **payload)  # type: ignore[arg-type]

    def list_bundle_items(self, bundle_id: UUID) -> list[BundleItem]:
        items = [i for i in self.bundle_items.values() if i.bundle_id == bundle_id]
        return sorted(items, key=lambda item: item.order_index or 0)

    def list_bundle_items_for_foods(self, food_ids: list[UUID]) -> list[BundleItem]:
        return [i for i in self.bundle_items.values() if i.food_id in food_ids]

    def find_bundle_item_ids_by_food(self, food_id: UUID) -> list[UUID]:
        return [i.id for i in self.bundle_items.values() if i.food_id == food_id]

    def repoint_bundle_items(self, item_ids: list[UUID], food_id: UUID) -> None:
        self._write("repoint_bundle_items")
        for item_id in item_ids:
            self.bundle_items[item_id] = replace(
                self.bundle_items[item_id], food_id=food_id
            )

    def update_bundle_item(self, item_id: UUID, payload: dict[str, object]) -> None:
        self._write("update_bundle_item")
        item = self.bundle_items[item_id]
        self.bundle_items[item_id] = replace(item, **payload)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
    )


@pytest.fixture
def catalog_repository() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture
def diary_repository() -> InMemoryDiaryRepository:
    return InMemoryDiaryRepository()


@pytest.fixture
def catalog_service(catalog_repository: InMemoryCatalogRepository) -> CatalogService:
    return CatalogService(catalog_repository)


@pytest.fixture
def diary_service(
    catalog_service: CatalogService, diary_repository: InMemoryDiaryRepository
) -> DiaryService:
    return DiaryService(catalog_service=catalog_service, repository=diary_repository)


@pytest.fixture
def container(
    settings: Settings,
    catalog_repository: InMemoryCatalogRepository,
    diary_repository: InMemoryDiaryRepository,
    catalog_service: CatalogService,
    diary_service: DiaryService,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        catalog_repository=catalog_repository,
        diary_repository=diary_repository,
        catalog_service=catalog_service,
        diary_service=diary_service,
        merge_service=MergeService(
            catalog_repository=catalog_repository,
            diary_repository=diary_repository,
        ),
    )
