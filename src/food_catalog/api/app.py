"""FastAPI application factory."""

import logging
from uuid import UUID

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from food_catalog.api.admin import router as admin_router
from food_catalog.api.models import LogEntryRequest, NutrientsRequest
from food_catalog.api.serializers import (
    entry_payload,
    food_payload,
    nutrients_payload,
    option_payload,
    selection_payload,
)
from food_catalog.app_logging import configure_logging
from food_catalog.containers import AppContainer
from food_catalog.domain.errors import RecordNotFoundError, UnitMismatchError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(logging.DEBUG if container.settings.debug else logging.INFO)
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(RecordNotFoundError)
    async def not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)}
        )

    @app.exception_handler(UnitMismatchError)
    async def unit_mismatch(request: Request, exc: UnitMismatchError) -> JSONResponse:
        logger.info("Rejected unit %r for %r", exc.unit, exc.food_unit)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/foods/search")
    def search_foods(
        q: str, request: Request, limit: int | None = None
    ) -> dict[str, object]:
        """Search the catalog, curated foods first."""
        state_container: AppContainer = request.app.state.container
        resolved_limit = limit or state_container.settings.search_limit
        foods = state_container.catalog_service.search(q, resolved_limit)
        return {"foods": [food_payload(food) for food in foods]}

    @app.get("/foods/{food_id}/servings")
    def food_servings(food_id: UUID, request: Request) -> dict[str, object]:
        """Return the serving options of a food and the default selection."""
        state_container: AppContainer = request.app.state.container
        menu = state_container.catalog_service.serving_menu(food_id)
        return {
            "food": food_payload(menu.food),
            "options": [option_payload(option) for option in menu.options],
            "default": selection_payload(menu.default),
        }

    @app.post("/foods/{food_id}/nutrients")
    def food_nutrients(
        food_id: UUID, body: NutrientsRequest, request: Request
    ) -> dict[str, object]:
        """Compute nutrients for a quantity of a unit or saved serving."""
        state_container: AppContainer = request.app.state.container
        _, selection, nutrients = state_container.catalog_service.nutrients(
            food_id, body.quantity, unit=body.unit, serving_id=body.serving_id
        )
        return {
            "selection": selection_payload(selection),
            "display": nutrients_payload(nutrients.for_display()),
            "storage": nutrients_payload(nutrients.for_storage()),
        }

    @app.post("/entries", status_code=status.HTTP_201_CREATED)
    def log_entry(body: LogEntryRequest, request: Request) -> dict[str, object]:
        """Log a calorie entry with a nutrient snapshot."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.diary_service.log_food(
            body.user_id,
            body.food_id,
            body.quantity,
            unit=body.unit,
            serving_id=body.serving_id,
            entry_date=body.entry_date,
            meal_type=body.meal_type,
        )
        return {"entry": entry_payload(entry)}

    return app
