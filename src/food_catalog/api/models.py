"""Pydantic models for request bodies."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class NutrientsRequest(BaseModel):
    """Quantity of a raw unit or saved serving to compute nutrients for."""

    quantity: float = Field(ge=0)
    unit: str | None = None
    serving_id: UUID | None = None

    @model_validator(mode="after")
    def _one_serving_kind(self) -> "NutrientsRequest":
        if self.unit is not None and self.serving_id is not None:
            raise ValueError("Provide either unit or serving_id, not both")
        return self


class LogEntryRequest(NutrientsRequest):
    """Calorie entry to log for a food."""

    user_id: UUID
    food_id: UUID
    entry_date: date | None = None
    meal_type: str | None = None


class MergeRequestBody(BaseModel):
    """Merge of variant foods into a master, addressed by ids."""

    master_id: UUID
    variant_ids: list[UUID] = Field(min_length=1)
    servings_to_keep: list[UUID] = Field(default_factory=list)
    servings_to_delete: list[UUID] = Field(default_factory=list)
    make_default_serving_id: UUID | None = None

    @model_validator(mode="after")
    def _disjoint_serving_markers(self) -> "MergeRequestBody":
        if set(self.servings_to_keep) & set(self.servings_to_delete):
            raise ValueError("A serving cannot be both kept and deleted")
        return self
