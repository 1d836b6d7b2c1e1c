"""Domain models for logged entries and bundles."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID


@dataclass(frozen=True)
class CalorieEntry:
    """A logged meal item with nutrients copied at write time."""

    id: UUID
    user_id: UUID
    item_name: str
    quantity: float
    unit: str
    calories: float
    food_id: UUID | None = None
    serving_id: UUID | None = None
    entry_date: date | None = None
    meal_type: str | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    fiber: float | None = None
    saturated_fat: float | None = None
    sugar: float | None = None
    sodium: float | None = None


@dataclass(frozen=True)
class Bundle:
    """A named group of items logged together."""

    id: UUID
    user_id: UUID
    name: str
    order_index: int | None = None


@dataclass(frozen=True)
class BundleItem:
    """A food reference inside a bundle."""

    id: UUID
    bundle_id: UUID
    item_name: str
    quantity: float
    unit: str
    food_id: UUID | None = None
    serving_id: UUID | None = None
    order_index: int | None = None
