"""Merge engine folding duplicate foods into one master record.

The store offers no multi-statement transactions, so the merge runs as an
ordered sequence of single writes. If a write fails, the variants created in
this invocation are deleted again; repointed entries, bundle items and
servings are not reverted and the result says so.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from uuid import UUID

from food_catalog.domain.errors import (
    InvalidSelectionError,
    MergeValidationError,
    MissingDefaultServingError,
    StepFailureError,
)
from food_catalog.domain.foods import FoodRecord, SavedServing
from food_catalog.domain.merge import (
    ALLOWED_TRANSITIONS,
    STEP_STATES,
    MergeFailed,
    MergeProgress,
    MergeRequest,
    MergeResult,
    MergeState,
    MergeStep,
    MergeSucceeded,
    PartiallyCompleted,
    ServingDecision,
    ValidationFailed,
)
from food_catalog.domain.nutrients import variant_snapshot
from food_catalog.services.catalog import CatalogRepository
from food_catalog.services.diary import DiaryRepository

_logger = logging.getLogger(__name__)


def validate_merge_request(
    request: MergeRequest,
) -> tuple[FoodRecord, list[FoodRecord]]:
    """Check merge pre-conditions and return the master and variant foods.

    Raises:
        InvalidSelectionError: master/variant markers do not allow a merge.
        MissingDefaultServingError: servings are kept but no kept serving is
            chosen as the default.
    """
    master_ids = list(dict.fromkeys(request.master_ids))
    if len(master_ids) != 1:
        raise InvalidSelectionError(
            f"Please select exactly 1 master food. Currently {len(master_ids)} "
            "selected."
        )
    variant_ids = list(dict.fromkeys(request.variant_ids))
    if not variant_ids:
        raise InvalidSelectionError(
            "Please select at least 1 food to convert to a variant."
        )
    master_id = master_ids[0]
    if master_id in variant_ids:
        raise InvalidSelectionError(
            f"Food {master_id} cannot be both the master and a variant."
        )

    master = request.food(master_id)
    if master is None:
        raise InvalidSelectionError(
            f"Master food {master_id} is not in the working set."
        )
    variants = []
    for variant_id in variant_ids:
        variant = request.food(variant_id)
        if variant is None:
            raise InvalidSelectionError(
                f"Variant food {variant_id} is not in the working set."
            )
        variants.append(variant)

    keep_ids = {serving.id for serving in _kept_servings(request, master_id)}
    if keep_ids and request.make_default_serving_id not in keep_ids:
        raise MissingDefaultServingError(
            "Please mark one kept serving as the default before merging."
        )
    return master, variants


def _kept_servings(request: MergeRequest, master_id: UUID) -> list[SavedServing]:
    owners = {master_id, *request.variant_ids}
    return [
        serving
        for serving in request.servings
        if serving.food_id in owners and request.kept(serving.id)
    ]


def _run_step(step: MergeStep, action: Callable[[], None]) -> None:
    try:
        action()
    except Exception as exc:
        raise StepFailureError(step, exc) from exc


@dataclass
class _MergeRun:
    """Executes one merge invocation and tracks its state."""

    request: MergeRequest
    catalog: CatalogRepository
    diary: DiaryRepository
    log_level: int = logging.DEBUG
    state: MergeState = MergeState.IDLE
    history: list[MergeState] = field(default_factory=list)
    progress: MergeProgress = field(default_factory=MergeProgress)

    def transition(self, target: MergeState) -> None:
        if target not in ALLOWED_TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"Illegal merge transition {self.state} -> {target}")
        _logger.log(self.log_level, "Merge state %s -> %s", self.state, target)
        self.history.append(self.state)
        self.state = target

    def execute(self) -> MergeResult:
        self.transition(MergeState.VALIDATING)
        try:
            master, variants = validate_merge_request(self.request)
        except MergeValidationError as exc:
            self.transition(MergeState.FAILED)
            _logger.info("Merge rejected: %s", exc)
            return ValidationFailed(reason=str(exc), error=exc)

        steps: list[tuple[MergeStep, Callable[[], None]]] = [
            (
                MergeStep.CREATE_VARIANTS,
                lambda: self._create_variants(master, variants),
            ),
            (MergeStep.REPOINT_ENTRIES, lambda: self._repoint_entries(master)),
            (MergeStep.REPOINT_BUNDLE_ITEMS, lambda: self._repoint_items(master)),
            (MergeStep.RESOLVE_SERVINGS, lambda: self._resolve_servings(master)),
            (MergeStep.ASSIGN_DEFAULT_SERVING, lambda: self._assign_default(master)),
            (MergeStep.DELETE_VARIANT_FOODS, self._delete_variant_foods),
        ]
        for step, action in steps:
            self.transition(STEP_STATES[step])
            try:
                _run_step(step, action)
            except StepFailureError as failure:
                _logger.error("Merge into %s failed: %s", master.id, failure)
                return self._fail(failure)
            self.progress.completed_steps.append(step)

        self.transition(MergeState.SUCCEEDED)
        _logger.info(
            "Merged %s food(s) into %s: %s entries, %s bundle items repointed",
            len(variants),
            master.id,
            len(self.progress.repointed_entry_ids),
            len(self.progress.repointed_bundle_item_ids),
        )
        return MergeSucceeded(
            master_id=master.id,
            variant_ids=tuple(variant.id for variant in variants),
            progress=self.progress,
        )

    def _create_variants(self, master: FoodRecord, variants: list[FoodRecord]) -> None:
        for variant in variants:
            payload: dict[str, object] = {
                "variant_name": variant.name,
                "brand": variant.brand,
                "barcode": variant.barcode,
                "source": variant.source,
                **variant_snapshot(variant),
            }
            created = self.catalog.create_variant(master.id, payload)
            self.progress.created_variant_ids.append(created.id)

    def _repoint_entries(self, master: FoodRecord) -> None:
        for variant_id in self._variant_ids():
            entry_ids = self.diary.find_entry_ids_by_food(variant_id)
            if not entry_ids:
                continue
            self.diary.repoint_entries(entry_ids, master.id)
            self.progress.repointed_entry_ids.extend(entry_ids)

    def _repoint_items(self, master: FoodRecord) -> None:
        for variant_id in self._variant_ids():
            item_ids = self.diary.find_bundle_item_ids_by_food(variant_id)
            if not item_ids:
                continue
            self.diary.repoint_bundle_items(item_ids, master.id)
            self.progress.repointed_bundle_item_ids.extend(item_ids)

    def _resolve_servings(self, master: FoodRecord) -> None:
        variant_ids = set(self._variant_ids())
        owned = [s for s in self.request.servings if s.food_id in variant_ids]
        relink = [s.id for s in owned if self.request.kept(s.id)]
        # Servings without an explicit keep decision are removed.
        remove = [s.id for s in owned if not self.request.kept(s.id)]
        if relink:
            self.catalog.relink_servings(relink, master.id)
            self.progress.relinked_serving_ids.extend(relink)
        if remove:
            self.catalog.delete_servings(remove)
            self.progress.deleted_serving_ids.extend(remove)

    def _assign_default(self, master: FoodRecord) -> None:
        self.catalog.clear_default_servings(master.id)
        self.progress.defaults_cleared = True
        if not _kept_servings(self.request, master.id):
            return
        default_id = self.request.make_default_serving_id
        if default_id is None:
            return
        serving = next(
            (s for s in self.request.servings if s.id == default_id), None
        )
        if serving is None:
            return
        owned_by_master = (
            serving.food_id == master.id
            or default_id in self.progress.relinked_serving_ids
        )
        if (
            owned_by_master
            and self.request.kept(default_id)
            and not self.request.deleted(default_id)
        ):
            self.catalog.set_default_serving(default_id)
            self.progress.default_serving_id = default_id

    def _delete_variant_foods(self) -> None:
        for variant_id in self._variant_ids():
            self.catalog.delete_food(variant_id)
            self.progress.deleted_food_ids.append(variant_id)

    def _variant_ids(self) -> list[UUID]:
        return list(dict.fromkeys(self.request.variant_ids))

    def _fail(self, failure: StepFailureError) -> MergeFailed | PartiallyCompleted:
        self.transition(MergeState.ROLLING_BACK_VARIANTS)
        rollback_errors = []
        for variant_id in self.progress.created_variant_ids:
            try:
                self.catalog.delete_variant(variant_id)
            except Exception as exc:
                _logger.exception("Failed to roll back variant %s", variant_id)
                rollback_errors.append(f"variant {variant_id}: {exc}")
        self.transition(MergeState.FAILED)

        if self.progress.committed_beyond_variants():
            pending = tuple(
                variant_id
                for variant_id in self._variant_ids()
                if variant_id not in self.progress.deleted_food_ids
            )
            return PartiallyCompleted(
                failed_step=failure.step,
                error=failure,
                progress=self.progress,
                pending_variant_ids=pending,
                rollback_errors=tuple(rollback_errors),
            )
        return MergeFailed(
            failed_step=failure.step,
            error=failure,
            progress=self.progress,
            rollback_errors=tuple(rollback_errors),
        )


def merge_foods(
    request: MergeRequest,
    catalog: CatalogRepository,
    diary: DiaryRepository,
    *,
    debug: bool = False,
) -> MergeResult:
    """Fold the request's variant foods into its master food.

    Validation failures perform no writes. Step failures delete the variants
    created so far and report which references were already repointed.
    """
    run = _MergeRun(
        request=request,
        catalog=catalog,
        diary=diary,
        log_level=logging.INFO if debug else logging.DEBUG,
    )
    return run.execute()


@dataclass
class MergeService:
    """Application service that loads merge inputs and runs the engine."""

    catalog_repository: CatalogRepository
    diary_repository: DiaryRepository
    debug: bool = False

    def merge(self, request: MergeRequest) -> MergeResult:
        """Run a merge for an already assembled request."""
        return merge_foods(
            request,
            self.catalog_repository,
            self.diary_repository,
            debug=self.debug,
        )

    def merge_by_ids(
        self,
        master_id: UUID,
        variant_ids: list[UUID],
        serving_decisions: Mapping[UUID, ServingDecision] | None = None,
        make_default_serving_id: UUID | None = None,
    ) -> MergeResult:
        """Load the named foods and their servings from the store, then merge."""
        food_ids = list(dict.fromkeys([master_id, *variant_ids]))
        foods = self.catalog_repository.list_foods(food_ids)
        servings = self.catalog_repository.list_servings(food_ids)
        request = MergeRequest(
            working_set=tuple(foods),
            master_ids=(master_id,),
            variant_ids=tuple(variant_ids),
            servings=tuple(servings),
            serving_decisions=dict(serving_decisions or {}),
            make_default_serving_id=make_default_serving_id,
        )
        return self.merge(request)
