"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from food_catalog.adapters.supabase_catalog_repository import (
    SupabaseCatalogRepository,
)
from food_catalog.adapters.supabase_diary_repository import SupabaseDiaryRepository
from food_catalog.config import Settings
from food_catalog.services.catalog import CatalogRepository, CatalogService
from food_catalog.services.diary import DiaryRepository, DiaryService
from food_catalog.services.merge import MergeService
from food_catalog.services.workbench import MergeWorkbench


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog_repository: CatalogRepository
    diary_repository: DiaryRepository
    catalog_service: CatalogService
    diary_service: DiaryService
    merge_service: MergeService

    def new_workbench(self) -> MergeWorkbench:
        """Start an empty merge workbench bound to the store."""
        return MergeWorkbench(
            catalog=self.catalog_repository,
            diary=self.diary_repository,
            debug=self.settings.debug,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    catalog_repository = SupabaseCatalogRepository(supabase_client)
    diary_repository = SupabaseDiaryRepository(supabase_client)
    catalog_service = CatalogService(catalog_repository)
    diary_service = DiaryService(
        catalog_service=catalog_service,
        repository=diary_repository,
    )
    merge_service = MergeService(
        catalog_repository=catalog_repository,
        diary_repository=diary_repository,
        debug=resolved_settings.debug,
    )
    return AppContainer(
        settings=resolved_settings,
        catalog_repository=catalog_repository,
        diary_repository=diary_repository,
        catalog_service=catalog_service,
        diary_service=diary_service,
        merge_service=merge_service,
    )
