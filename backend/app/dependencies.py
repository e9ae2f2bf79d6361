from __future__ import annotations

from functools import lru_cache

from backend.app.config import AppSettings, load_settings
from backend.app.services.article_archive import ArticleArchive
from backend.app.services.structured_data_service import StructuredDataService
from backend.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


@lru_cache(maxsize=1)
def get_article_archive() -> ArticleArchive:
    return ArticleArchive(get_settings().archive_dir)


@lru_cache(maxsize=1)
def get_structured_data_service() -> StructuredDataService:
    return StructuredDataService(
        limits=get_settings().render_limits(),
        telemetry=get_telemetry(),
    )


def reset_cached_dependencies() -> None:
    get_structured_data_service.cache_clear()
    get_article_archive.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
