from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from backend.app.services.link_parser import ParsedLink

LOGGER = logging.getLogger("basted_pocket.archive")

DATA_FILE_NAME = "data.json"

ScrapingStatus = Literal["scraped", "error_scraping", "skipped"]


class ScrapedArticle(BaseModel):
    """One `data.json` record written by the scraper."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    original_url: str | None = None
    canonical_url: str
    fetched_title: str | None = None
    author: str | None = None
    publication_date: str | None = None
    key_image_url: str | None = None
    json_ld_objects: list[Any] = Field(default_factory=list)
    scraping_status: ScrapingStatus = "scraped"
    scraping_timestamp: str | None = None
    error: str | None = None

    @field_validator("json_ld_objects", mode="before")
    @classmethod
    def _normalize_json_ld(cls, value: object) -> list[Any]:
        if value is None:
            return []
        if isinstance(value, list):
            return value
        if isinstance(value, dict):
            return [value]
        return []

    @field_validator("fetched_title", "author", "publication_date", mode="before")
    @classmethod
    def _normalize_optional_text(cls, value: object) -> str | None:
        if not isinstance(value, str):
            return None
        return value.strip() or None


class ArticleRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    canonical_url: str
    original_url: str | None = None
    title: str | None = None
    user_tags: tuple[str, ...] = ()
    user_notes: str | None = None
    author: str | None = None
    publication_date: str | None = None
    scraping_status: ScrapingStatus | None = None
    json_ld_objects: list[Any] = Field(default_factory=list)

    @property
    def is_displayable(self) -> bool:
        return self.scraping_status == "scraped"

    @property
    def has_structured_data(self) -> bool:
        return bool(self.json_ld_objects)


class ArticleArchive:
    def __init__(self, archive_dir: Path) -> None:
        self._archive_dir = archive_dir

    @property
    def archive_dir(self) -> Path:
        return self._archive_dir

    def data_path(self, article_id: str) -> Path:
        return self._archive_dir / article_id / DATA_FILE_NAME

    def load(self, article_id: str) -> ScrapedArticle | None:
        # Ids are hex digests; anything else would escape the archive dir.
        if not article_id or "/" in article_id or "\\" in article_id or article_id.startswith("."):
            return None
        return self._read(self.data_path(article_id))

    def load_scraped(self) -> list[ScrapedArticle]:
        if not self._archive_dir.is_dir():
            LOGGER.info("archive directory missing path=%s", self._archive_dir)
            return []
        articles: list[ScrapedArticle] = []
        seen: set[str] = set()
        for article_dir in sorted(self._archive_dir.iterdir()):
            data_file = article_dir / DATA_FILE_NAME
            if not article_dir.is_dir() or not data_file.is_file():
                continue
            article = self._read(data_file)
            if article is None or article.id in seen:
                continue
            seen.add(article.id)
            articles.append(article)
        LOGGER.debug("archive loaded path=%s articles=%s", self._archive_dir, len(articles))
        return articles

    def _read(self, data_file: Path) -> ScrapedArticle | None:
        if not data_file.is_file():
            return None
        try:
            payload = json.loads(data_file.read_text(encoding="utf-8"))
            return ScrapedArticle.model_validate(payload)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            LOGGER.warning(
                "skipping unreadable archive record path=%s error=%s",
                data_file,
                type(exc).__name__,
            )
            return None


def to_record(article: ScrapedArticle, link: ParsedLink | None = None) -> ArticleRecord:
    return ArticleRecord(
        id=article.id,
        canonical_url=article.canonical_url,
        original_url=article.original_url,
        title=(link.user_title if link else None) or article.fetched_title,
        user_tags=link.user_tags if link else (),
        user_notes=link.user_notes if link else None,
        author=article.author,
        publication_date=article.publication_date,
        scraping_status=article.scraping_status,
        json_ld_objects=article.json_ld_objects,
    )


def merge_articles(
    links: Sequence[ParsedLink],
    scraped: Iterable[ScrapedArticle],
) -> list[ArticleRecord]:
    """Join link-list entries with scrape results by id, in link-list order.

    Links that were never scraped are still listed; scraped records whose
    link was removed from the list are dropped.
    """
    scraped_by_id = {article.id: article for article in scraped}
    records: list[ArticleRecord] = []
    for link in links:
        article = scraped_by_id.get(link.id)
        if article is None:
            records.append(
                ArticleRecord(
                    id=link.id,
                    canonical_url=link.canonical_url,
                    original_url=link.original_url,
                    title=link.user_title,
                    user_tags=link.user_tags,
                    user_notes=link.user_notes,
                )
            )
            continue
        records.append(to_record(article, link))
    return records
