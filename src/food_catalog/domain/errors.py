"""Error types raised by the food catalog."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from food_catalog.domain.merge import MergeStep


class FoodCatalogError(Exception):
    """Base class for food catalog errors."""


class RecordNotFoundError(FoodCatalogError):
    """Raised when a requested record does not exist in the store."""

    def __init__(self, entity: str, record_id: object) -> None:
        super().__init__(f"{entity} {record_id} not found")
        self.entity = entity
        self.record_id = record_id


class UnitMismatchError(FoodCatalogError):
    """Raised when a unit cannot be converted into a food's master unit."""

    def __init__(self, unit: str, food_unit: str, reason: str) -> None:
        super().__init__(f"Cannot convert {unit!r} to {food_unit!r}: {reason}")
        self.unit = unit
        self.food_unit = food_unit


class MergeValidationError(FoodCatalogError):
    """Base class for merge pre-condition failures."""


class InvalidSelectionError(MergeValidationError):
    """Master/variant marker counts do not allow a merge."""


class MissingDefaultServingError(MergeValidationError):
    """Servings are kept but none of them is chosen as the default."""


class StepFailureError(FoodCatalogError):
    """A store write failed while a merge step was running."""

    def __init__(self, step: "MergeStep", underlying: Exception) -> None:
        super().__init__(f"Step {step.number} ({step.label}) failed: {underlying}")
        self.step = step
        self.underlying = underlying
