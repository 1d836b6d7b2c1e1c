"""Tests for logging entries and bundles."""

from datetime import date
from uuid import uuid4

import pytest

from food_catalog.domain.errors import RecordNotFoundError
from food_catalog.domain.nutrients import NutrientSet
from tests.conftest import make_food, make_serving


def test_log_food_snapshots_rounded_nutrients(
    diary_service, catalog_repository, diary_repository
) -> None:
    food = catalog_repository.add_food(
        make_food(serving_size=30.0, calories=100.0, protein=4.0, sugar=0.0)
    )
    user_id = uuid4()

    entry = diary_service.log_food(
        user_id,
        food.id,
        45.0,
        unit="g",
        entry_date=date(2026, 3, 1),
        meal_type="breakfast",
    )

    payload = diary_repository.entry_payloads[-1]
    assert payload["calories_kcal"] == 150.0
    assert payload["protein_g"] == 6.0
    assert "sugar_g" not in payload
    assert payload["entry_date"] == "2026-03-01"
    assert payload["unit"] == "g"
    assert payload["serving_id"] is None
    assert entry.food_id == food.id
    assert entry.user_id == user_id


def test_log_food_with_saved_serving(
    diary_service, catalog_repository, diary_repository
) -> None:
    food = catalog_repository.add_food(make_food(serving_size=100.0, calories=250.0))
    slice_ = catalog_repository.add_serving(
        make_serving(food.id, name="slice", weight_grams=40.0)
    )

    entry = diary_service.log_food(uuid4(), food.id, 2, serving_id=slice_.id)

    payload = diary_repository.entry_payloads[-1]
    assert payload["unit"] == "slice"
    assert payload["serving_id"] == str(slice_.id)
    assert entry.calories == 200.0


def test_entry_snapshot_does_not_follow_food_edits(
    diary_service, catalog_repository, diary_repository
) -> None:
    food = catalog_repository.add_food(make_food(serving_size=100.0, calories=100.0))
    entry = diary_service.log_food(uuid4(), food.id, 100.0, unit="g")

    catalog_repository.update_food(food.id, {"calories_kcal": 500.0})

    assert diary_repository.entries[entry.id].calories == 100.0


def test_log_manual_has_no_food(diary_service, diary_repository) -> None:
    entry = diary_service.log_manual(
        uuid4(), "Street taco", NutrientSet(calories=210.0, protein=9.0)
    )
    payload = diary_repository.entry_payloads[-1]
    assert payload["food_id"] is None
    assert payload["serving_id"] is None
    assert entry.calories == 210.0


def test_bundle_totals_sum_food_items(
    diary_service, catalog_repository, diary_repository
) -> None:
    oats = catalog_repository.add_food(make_food(serving_size=100.0, calories=380.0))
    milk = catalog_repository.add_food(
        make_food(name="Milk", serving_unit="ml", serving_size=250.0, calories=120.0)
    )
    bundle = diary_repository.add_bundle()
    diary_repository.add_bundle_item(bundle.id, oats.id, quantity=50.0, unit="g")
    diary_repository.add_bundle_item(bundle.id, milk.id, quantity=1.0, unit="cup")
    diary_repository.add_bundle_item(bundle.id, None, item_name="Coffee")

    totals = diary_service.bundle_totals(bundle.id)

    assert totals.calories == pytest.approx(190.0 + 115.2)


def test_log_bundle_creates_one_entry_per_item(
    diary_service, catalog_repository, diary_repository
) -> None:
    oats = catalog_repository.add_food(make_food(serving_size=100.0, calories=380.0))
    bundle = diary_repository.add_bundle()
    diary_repository.add_bundle_item(bundle.id, oats.id, quantity=50.0, unit="g")
    diary_repository.add_bundle_item(bundle.id, None, item_name="Coffee")

    entries = diary_service.log_bundle(uuid4(), bundle.id, meal_type="breakfast")

    assert [entry.item_name for entry in entries] == ["Oats", "Coffee"]
    assert entries[0].calories == 190.0
    assert entries[1].food_id is None
    assert entries[1].calories == 0.0


def test_unknown_bundle_raises(diary_service) -> None:
    with pytest.raises(RecordNotFoundError):
        diary_service.bundle_totals(uuid4())
