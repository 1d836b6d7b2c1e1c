"""Tests for nutrient scaling, rounding and per-100 snapshots."""

import logging

import pytest

from food_catalog.domain.nutrients import (
    ZERO_NUTRIENTS,
    NutrientSet,
    compute_nutrients,
    entry_nutrient_payload,
    food_nutrients,
    nutrients_for_option,
    nutrients_for_raw_quantity,
    nutrients_for_saved_serving,
    per_100,
    round_half_up,
    variant_snapshot,
)
from food_catalog.domain.servings import get_default_serving_selection
from food_catalog.domain.units import convert_from_master_unit, convert_to_master_unit
from tests.conftest import make_food, make_serving


def test_round_half_up_is_decimal_safe() -> None:
    assert round_half_up(2.675, 2) == 2.68
    assert round_half_up(0.05, 1) == 0.1
    assert round_half_up(1.25, 1) == 1.3


def test_compute_nutrients_scales_by_serving_size() -> None:
    food = make_food(serving_size=50.0, calories=200.0, protein=10.0, fiber=None)
    nutrients = compute_nutrients(food, 125.0)
    assert nutrients.calories == pytest.approx(500.0)
    assert nutrients.protein == pytest.approx(25.0)
    assert nutrients.fiber is None


@pytest.mark.parametrize("serving_size", [0.0, None])
def test_invalid_serving_size_yields_flagged_zeros(
    serving_size, caplog, monkeypatch
) -> None:
    monkeypatch.setattr(logging.getLogger("food_catalog"), "propagate", True)
    food = make_food(serving_size=serving_size, sugar=None)
    with caplog.at_level(logging.WARNING, logger="food_catalog"):
        nutrients = compute_nutrients(food, 100.0)
    assert nutrients.calories == 0.0
    assert nutrients.protein == 0.0
    assert nutrients.sugar is None
    assert nutrients.data_quality_issue is not None
    assert "serving size" in caplog.text


@pytest.mark.parametrize("unit", ["g", "kg", "oz", "lb"])
def test_conversion_round_trip(unit: str) -> None:
    food = make_food(serving_size=100.0, calories=250.0)
    quantity = 3.0
    master_quantity = convert_to_master_unit(quantity, unit, food)
    nutrients = compute_nutrients(food, master_quantity)
    recovered = convert_from_master_unit(
        nutrients.calories / food.calories * food.serving_size, unit, food
    )
    assert recovered == pytest.approx(quantity)


def test_default_selection_reproduces_authored_facts() -> None:
    food = make_food(serving_size=30.0, calories=117.0, protein=4.2, fat=2.1)
    selection = get_default_serving_selection(food, [])
    nutrients = nutrients_for_option(food, selection.option, selection.quantity)
    assert nutrients.for_storage() == food_nutrients(food).for_storage()


def test_nutrients_for_saved_serving_and_raw_quantity() -> None:
    food = make_food(serving_size=100.0, calories=380.0)
    cup = make_serving(food.id, weight_grams=80.0)
    assert nutrients_for_saved_serving(food, cup, 2).calories == pytest.approx(608.0)
    assert nutrients_for_raw_quantity(food, 1, "kg").calories == pytest.approx(3800.0)


def test_saved_serving_matches_raw_amount_for_ounce_food() -> None:
    food = make_food(serving_size=1.0, serving_unit="oz", calories=100.0)
    serving = make_serving(food.id, weight_grams=28.3495)

    saved = nutrients_for_saved_serving(food, serving)
    raw = nutrients_for_raw_quantity(food, 28.3495, "g")

    assert saved.calories == pytest.approx(100.0)
    assert saved.calories == pytest.approx(raw.calories)


def test_saved_serving_on_kilogram_and_liter_foods() -> None:
    rice = make_food(serving_size=1.0, serving_unit="kg", calories=1300.0)
    bowl = make_serving(rice.id, weight_grams=250.0)
    milk = make_food(serving_size=1.0, serving_unit="l", calories=640.0)
    glass = make_serving(milk.id, weight_grams=None, volume_milliliters=250.0)

    assert nutrients_for_saved_serving(rice, bowl).calories == pytest.approx(325.0)
    assert nutrients_for_saved_serving(milk, glass).calories == pytest.approx(160.0)


def test_volume_food_uses_serving_volume() -> None:
    juice = make_food(serving_unit="ml", serving_size=250.0, calories=110.0)
    glass = make_serving(juice.id, weight_grams=None, volume_milliliters=500.0)
    assert nutrients_for_saved_serving(juice, glass).calories == pytest.approx(220.0)


def test_display_and_storage_rounding() -> None:
    nutrients = NutrientSet(calories=123.456, protein=0.049, sodium=None)
    assert nutrients.for_display().calories == 123.5
    assert nutrients.for_display().protein == 0.0
    assert nutrients.for_storage().calories == 123.46
    assert nutrients.for_storage().protein == 0.05
    assert nutrients.for_storage().sodium is None


def test_entry_payload_omits_zero_optional_macros_only() -> None:
    nutrients = NutrientSet(
        calories=0.0,
        protein=0.0,
        carbs=0.001,
        fat=0.0,
        fiber=0.0,
        saturated_fat=0.0,
        sugar=0.004,
        sodium=12.345,
    )
    payload = entry_nutrient_payload(nutrients)
    assert payload["protein_g"] == 0.0
    assert payload["carbs_g"] == 0.0
    assert payload["fiber_g"] == 0.0
    assert "saturated_fat_g" not in payload
    assert "sugar_g" not in payload
    assert payload["sodium_mg"] == 12.35


def test_adding_nutrient_sets_keeps_unknowns_null() -> None:
    total = ZERO_NUTRIENTS + NutrientSet(calories=10.0, protein=None)
    assert total.calories == 10.0
    assert total.protein == 0.0
    both_null = NutrientSet(calories=1.0) + NutrientSet(calories=2.0)
    assert both_null.protein is None
    assert both_null.calories == 3.0


def test_per_100_normalization() -> None:
    assert per_100(85.0, 250.0) == 34.0
    assert per_100(None, 250.0) is None
    assert per_100(10.0, 0.0) is None


def test_variant_snapshot_uses_own_serving_size() -> None:
    drink = make_food(
        serving_unit="ml", serving_size=250.0, calories=85.0, protein=None, sugar=21.0
    )
    snapshot = variant_snapshot(drink)
    assert snapshot["energy_kcal_100g"] == 34.0
    assert snapshot["protein_g_100g"] is None
    assert snapshot["sugar_g_100g"] == 8.4
