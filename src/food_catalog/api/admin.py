"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from food_catalog.api.models import MergeRequestBody  # noqa: TC001
from food_catalog.api.serializers import merge_result_payload
from food_catalog.domain.merge import ServingDecision

if TYPE_CHECKING:
    from food_catalog.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])

_MERGE_STATUS_CODES = {
    "succeeded": status.HTTP_200_OK,
    "validation_failed": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "partially_completed": status.HTTP_409_CONFLICT,
}


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post("/merge", dependencies=[Depends(require_admin)])
def merge_foods(body: MergeRequestBody, request: Request) -> JSONResponse:
    """Fold variant foods into a master food and report the outcome."""
    container: AppContainer = request.app.state.container
    decisions = dict.fromkeys(body.servings_to_keep, ServingDecision.KEEP)
    decisions.update(dict.fromkeys(body.servings_to_delete, ServingDecision.DELETE))
    result = container.merge_service.merge_by_ids(
        body.master_id,
        body.variant_ids,
        serving_decisions=decisions,
        make_default_serving_id=body.make_default_serving_id,
    )
    return JSONResponse(
        status_code=_MERGE_STATUS_CODES[result.status],
        content=jsonable_encoder(merge_result_payload(result)),
    )
