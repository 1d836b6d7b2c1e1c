"""Conversions from domain values to JSON-ready dictionaries."""

from dataclasses import asdict

from food_catalog.domain.diary import CalorieEntry
from food_catalog.domain.foods import FoodRecord
from food_catalog.domain.merge import (
    MergeProgress,
    MergeResult,
    MergeSucceeded,
    PartiallyCompleted,
    ValidationFailed,
)
from food_catalog.domain.nutrients import NutrientSet
from food_catalog.domain.servings import (
    RawServingOption,
    ServingOption,
    ServingSelection,
    format_serving,
)


def food_payload(food: FoodRecord) -> dict[str, object]:
    return asdict(food)


def entry_payload(entry: CalorieEntry) -> dict[str, object]:
    return asdict(entry)


def nutrients_payload(nutrients: NutrientSet) -> dict[str, object]:
    return asdict(nutrients)


def option_payload(option: ServingOption) -> dict[str, object]:
    """Describe a serving option for a picker."""
    if isinstance(option, RawServingOption):
        return {
            "key": option.key,
            "kind": option.kind,
            "label": option.label,
            "unit": option.unit,
        }
    return {
        "key": option.key,
        "kind": option.kind,
        "label": option.label,
        "serving_id": option.serving.id,
        "weight_grams": option.serving.weight_grams,
        "volume_milliliters": option.serving.volume_milliliters,
        "is_default": option.serving.is_default,
    }


def selection_payload(selection: ServingSelection) -> dict[str, object]:
    return {
        "option": option_payload(selection.option),
        "quantity": selection.quantity,
        "description": format_serving(selection),
    }


def progress_payload(progress: MergeProgress) -> dict[str, object]:
    payload = asdict(progress)
    payload["completed_steps"] = [step.number for step in progress.completed_steps]
    return payload


def merge_result_payload(result: MergeResult) -> dict[str, object]:
    """Describe a merge outcome, keyed by its status."""
    if isinstance(result, MergeSucceeded):
        return {
            "status": result.status,
            "master_id": result.master_id,
            "variant_ids": list(result.variant_ids),
            "progress": progress_payload(result.progress),
        }
    if isinstance(result, ValidationFailed):
        return {"status": result.status, "reason": result.reason}
    payload: dict[str, object] = {
        "status": result.status,
        "failed_step": result.failed_step.number,
        "failed_step_label": result.failed_step.label,
        "message": result.message,
        "progress": progress_payload(result.progress),
        "rollback_errors": list(result.rollback_errors),
    }
    if isinstance(result, PartiallyCompleted):
        payload["pending_variant_ids"] = list(result.pending_variant_ids)
    return payload
