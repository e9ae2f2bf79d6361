from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from backend.app.dependencies import reset_cached_dependencies
from backend.app.main import create_app
from backend.app.services.link_parser import canonicalize_url, generate_link_id

SOUP_URL = "https://cooking.example.com/soup?utm_source=newsletter"
NEWS_URL = "https://news.example.org/story"
UNSCRAPED_URL = "https://unscraped.example.net/"

SOUP_JSON_LD: list[Any] = [
    {
        "@context": "https://schema.org",
        "@type": "Recipe",
        "name": "Soup",
        "recipeIngredient": ["Water"],
        "video": {"@id": "v1"},
    },
    {"@id": "v1", "@type": "VideoObject", "name": "How to make soup"},
]


def link_id(url: str) -> str:
    return generate_link_id(canonicalize_url(url))


def write_archive_record(archive_dir: Path, record: dict[str, Any]) -> Path:
    article_dir = archive_dir / record["id"]
    article_dir.mkdir(parents=True, exist_ok=True)
    data_file = article_dir / "data.json"
    data_file.write_text(json.dumps(record), encoding="utf-8")
    return data_file


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    runtime_dir = tmp_path / "runtime-data"
    archive_dir = runtime_dir / "archive"
    archive_dir.mkdir(parents=True)
    links_path = tmp_path / "links.md"
    links_path.write_text(
        "\n".join(
            [
                "# Reading list",
                "",
                f"- [Grandma's soup]({SOUP_URL}) #cooking #soup @note:try with leeks",
                f"- {NEWS_URL} #news",
                f"- {UNSCRAPED_URL}",
            ]
        ),
        encoding="utf-8",
    )
    write_archive_record(
        archive_dir,
        {
            "id": link_id(SOUP_URL),
            "original_url": SOUP_URL,
            "canonical_url": canonicalize_url(SOUP_URL),
            "fetched_title": "Soup | Cooking Example",
            "json_ld_objects": SOUP_JSON_LD,
            "scraping_status": "scraped",
            "scraping_timestamp": "2024-05-01T10:00:00Z",
        },
    )
    write_archive_record(
        archive_dir,
        {
            "id": link_id(NEWS_URL),
            "original_url": NEWS_URL,
            "canonical_url": canonicalize_url(NEWS_URL),
            "fetched_title": "Story",
            "json_ld_objects": [],
            "scraping_status": "scraped",
        },
    )

    monkeypatch.setenv("BASTED_POCKET_DATA_DIR", str(runtime_dir))
    monkeypatch.setenv("BASTED_POCKET_LINKS_PATH", str(links_path))
    monkeypatch.setenv("BASTED_POCKET_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("BASTED_POCKET_TELEMETRY_SINK", "none")
    reset_cached_dependencies()
    yield runtime_dir
    reset_cached_dependencies()


@pytest.fixture
def client(data_dir: Path) -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def article_ids() -> dict[str, str]:
    return {
        "soup": link_id(SOUP_URL),
        "news": link_id(NEWS_URL),
        "unscraped": link_id(UNSCRAPED_URL),
    }
