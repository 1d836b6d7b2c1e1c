"""Value objects describing a food merge request and its outcome."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, StrEnum
from uuid import UUID

from food_catalog.domain.errors import StepFailureError
from food_catalog.domain.foods import FoodRecord, SavedServing


class MergeStep(Enum):
    """Ordered write steps of a merge."""

    CREATE_VARIANTS = (1, "create food variants")
    REPOINT_ENTRIES = (2, "repoint calorie entries")
    REPOINT_BUNDLE_ITEMS = (3, "repoint bundle items")
    RESOLVE_SERVINGS = (4, "relink or delete variant servings")
    ASSIGN_DEFAULT_SERVING = (5, "assign default serving")
    DELETE_VARIANT_FOODS = (6, "delete variant foods")

    def __init__(self, number: int, label: str) -> None:
        self.number = number
        self.label = label


class MergeState(StrEnum):
    """States a single merge invocation moves through."""

    IDLE = "idle"
    VALIDATING = "validating"
    NORMALIZING_VARIANTS = "normalizing_variants"
    REPOINTING_ENTRIES = "repointing_entries"
    REPOINTING_BUNDLE_ITEMS = "repointing_bundle_items"
    RESOLVING_SERVINGS = "resolving_servings"
    DELETING_VARIANTS = "deleting_variants"
    ROLLING_BACK_VARIANTS = "rolling_back_variants"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


STEP_STATES: dict[MergeStep, MergeState] = {
    MergeStep.CREATE_VARIANTS: MergeState.NORMALIZING_VARIANTS,
    MergeStep.REPOINT_ENTRIES: MergeState.REPOINTING_ENTRIES,
    MergeStep.REPOINT_BUNDLE_ITEMS: MergeState.REPOINTING_BUNDLE_ITEMS,
    MergeStep.RESOLVE_SERVINGS: MergeState.RESOLVING_SERVINGS,
    MergeStep.ASSIGN_DEFAULT_SERVING: MergeState.RESOLVING_SERVINGS,
    MergeStep.DELETE_VARIANT_FOODS: MergeState.DELETING_VARIANTS,
}

_FORWARD = [
    MergeState.IDLE,
    MergeState.VALIDATING,
    MergeState.NORMALIZING_VARIANTS,
    MergeState.REPOINTING_ENTRIES,
    MergeState.REPOINTING_BUNDLE_ITEMS,
    MergeState.RESOLVING_SERVINGS,
    MergeState.DELETING_VARIANTS,
    MergeState.SUCCEEDED,
]

ALLOWED_TRANSITIONS: dict[MergeState, set[MergeState]] = {
    state: {following} for state, following in zip(_FORWARD, _FORWARD[1:])
}
ALLOWED_TRANSITIONS[MergeState.RESOLVING_SERVINGS].add(MergeState.RESOLVING_SERVINGS)
for _state in _FORWARD[1:-1]:
    ALLOWED_TRANSITIONS[_state].add(MergeState.ROLLING_BACK_VARIANTS)
ALLOWED_TRANSITIONS[MergeState.VALIDATING].add(MergeState.FAILED)
ALLOWED_TRANSITIONS[MergeState.ROLLING_BACK_VARIANTS] = {MergeState.FAILED}


class ServingDecision(StrEnum):
    """What happens to a saved serving of a folded-in food."""

    KEEP = "keep"
    DELETE = "delete"


@dataclass(frozen=True)
class MergeRequest:
    """Everything the merge engine needs, captured as plain data.

    `servings` holds the saved servings of every working-set member as they
    were loaded; a serving without a decision is deleted when its food is
    folded in.
    """

    working_set: tuple[FoodRecord, ...]
    master_ids: tuple[UUID, ...]
    variant_ids: tuple[UUID, ...]
    servings: tuple[SavedServing, ...] = ()
    serving_decisions: Mapping[UUID, ServingDecision] = field(default_factory=dict)
    make_default_serving_id: UUID | None = None

    def food(self, food_id: UUID) -> FoodRecord | None:
        for food in self.working_set:
            if food.id == food_id:
                return food
        return None

    def kept(self, serving_id: UUID) -> bool:
        return self.serving_decisions.get(serving_id) == ServingDecision.KEEP

    def deleted(self, serving_id: UUID) -> bool:
        return self.serving_decisions.get(serving_id) == ServingDecision.DELETE


@dataclass
class MergeProgress:
    """Ids written so far during one merge invocation."""

    created_variant_ids: list[UUID] = field(default_factory=list)
    repointed_entry_ids: list[UUID] = field(default_factory=list)
    repointed_bundle_item_ids: list[UUID] = field(default_factory=list)
    relinked_serving_ids: list[UUID] = field(default_factory=list)
    deleted_serving_ids: list[UUID] = field(default_factory=list)
    defaults_cleared: bool = False
    default_serving_id: UUID | None = None
    deleted_food_ids: list[UUID] = field(default_factory=list)
    completed_steps: list[MergeStep] = field(default_factory=list)

    def committed_beyond_variants(self) -> bool:
        """Whether any write other than variant creation has happened."""
        return bool(
            self.repointed_entry_ids
            or self.repointed_bundle_item_ids
            or self.relinked_serving_ids
            or self.deleted_serving_ids
            or self.defaults_cleared
            or self.deleted_food_ids
        )


@dataclass(frozen=True)
class MergeSucceeded:
    """All merge steps completed."""

    master_id: UUID
    variant_ids: tuple[UUID, ...]
    progress: MergeProgress
    status: str = "succeeded"


@dataclass(frozen=True)
class ValidationFailed:
    """The request was rejected before any write."""

    reason: str
    error: Exception
    status: str = "validation_failed"


@dataclass(frozen=True)
class MergeFailed:
    """A step failed and nothing beyond the rolled-back variants was written."""

    failed_step: MergeStep
    error: Exception
    progress: MergeProgress
    rollback_errors: tuple[str, ...] = ()
    status: str = "failed"

    @property
    def message(self) -> str:
        return _failure_message(self.failed_step, self.error, self.rollback_errors)


@dataclass(frozen=True)
class PartiallyCompleted:
    """A step failed after later-step writes had committed.

    Only created variants are rolled back; repointed references and deleted
    servings stay as they are and need manual review.
    """

    failed_step: MergeStep
    error: Exception
    progress: MergeProgress
    pending_variant_ids: tuple[UUID, ...]
    rollback_errors: tuple[str, ...] = ()
    status: str = "partially_completed"

    @property
    def completed_steps(self) -> list[MergeStep]:
        return list(self.progress.completed_steps)

    @property
    def message(self) -> str:
        lines = [
            _failure_message(self.failed_step, self.error, self.rollback_errors),
            "Manual review required: some changes were already committed.",
        ]
        if self.progress.repointed_entry_ids:
            lines.append(
                "Repointed calorie entries: "
                + _ids(self.progress.repointed_entry_ids)
            )
        if self.progress.repointed_bundle_item_ids:
            lines.append(
                "Repointed bundle items: "
                + _ids(self.progress.repointed_bundle_item_ids)
            )
        if self.progress.relinked_serving_ids:
            lines.append(
                "Relinked servings: " + _ids(self.progress.relinked_serving_ids)
            )
        if self.progress.deleted_serving_ids:
            lines.append("Deleted servings: " + _ids(self.progress.deleted_serving_ids))
        if self.progress.deleted_food_ids:
            lines.append(
                "Deleted variant foods: " + _ids(self.progress.deleted_food_ids)
            )
        if self.pending_variant_ids:
            lines.append(
                "Variant foods not yet deleted: " + _ids(self.pending_variant_ids)
            )
        return "\n".join(lines)


MergeResult = MergeSucceeded | ValidationFailed | MergeFailed | PartiallyCompleted


def _ids(values: list[UUID] | tuple[UUID, ...]) -> str:
    return ", ".join(str(value) for value in values)


def _failure_message(
    step: MergeStep, error: Exception, rollback_errors: tuple[str, ...]
) -> str:
    cause = error.underlying if isinstance(error, StepFailureError) else error
    message = f"Merge failed at step {step.number} ({step.label}): {cause}"
    if rollback_errors:
        message += "\nRollback incomplete: " + "; ".join(rollback_errors)
    return message
