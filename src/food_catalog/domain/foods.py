"""Domain models for the food catalog."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class FoodRecord:
    """A catalog food whose nutrient facts are per serving_size x serving_unit."""

    id: UUID
    name: str
    brand: str | None
    serving_size: float | None
    serving_unit: str
    calories: float
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    fiber: float | None = None
    saturated_fat: float | None = None
    sugar: float | None = None
    sodium: float | None = None
    barcode: str | None = None
    source: str | None = None
    is_base_food: bool = False
    is_quality_data: bool = False
    order_index: int | None = None
    owner_user_id: UUID | None = None


@dataclass(frozen=True)
class SavedServing:
    """A named, food-specific serving with a fixed weight or volume."""

    id: UUID
    food_id: UUID
    name: str
    weight_grams: float | None = None
    volume_milliliters: float | None = None
    is_default: bool = False
    sort_order: int | None = None


@dataclass(frozen=True)
class FoodVariant:
    """Per-100 g/ml nutrient snapshot kept for a food folded into a master."""

    id: UUID
    food_master_id: UUID
    name: str | None
    brand: str | None
    barcode: str | None
    source: str | None
    energy_kcal_100g: float | None
    protein_g_100g: float | None = None
    carbs_g_100g: float | None = None
    fat_g_100g: float | None = None
    fiber_g_100g: float | None = None
    saturated_fat_g_100g: float | None = None
    sugar_g_100g: float | None = None
    sodium_mg_100g: float | None = None
    created_at: datetime | None = None
