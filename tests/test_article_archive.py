from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from backend.app.services.article_archive import ArticleArchive, ScrapedArticle, merge_articles
from backend.app.services.link_parser import parse_links_markdown


def write_archive_record(archive_dir: Path, record: dict[str, object]) -> None:
    article_dir = archive_dir / str(record["id"])
    article_dir.mkdir(parents=True, exist_ok=True)
    (article_dir / "data.json").write_text(json.dumps(record), encoding="utf-8")


def _record(article_id: str, **overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "id": article_id,
        "canonical_url": f"https://example.com/{article_id}",
        "scraping_status": "scraped",
        "json_ld_objects": [{"@type": "Recipe", "name": article_id}],
    }
    record.update(overrides)
    return record


def test_load_scraped_reads_every_record(tmp_path: Path) -> None:
    write_archive_record(tmp_path, _record("aaa"))
    write_archive_record(tmp_path, _record("bbb", scraping_status="error_scraping", error="timeout"))
    (tmp_path / "stray.txt").write_text("ignore me", encoding="utf-8")

    articles = ArticleArchive(tmp_path).load_scraped()

    assert [article.id for article in articles] == ["aaa", "bbb"]
    assert articles[1].scraping_status == "error_scraping"


def test_load_scraped_skips_unreadable_records(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    write_archive_record(tmp_path, _record("good"))
    broken_dir = tmp_path / "broken"
    broken_dir.mkdir()
    (broken_dir / "data.json").write_text("{not json", encoding="utf-8")
    write_archive_record(tmp_path, {"id": "no-url"})
    monkeypatch.setattr(logging.getLogger("basted_pocket"), "propagate", True)

    with caplog.at_level(logging.WARNING, logger="basted_pocket.archive"):
        articles = ArticleArchive(tmp_path).load_scraped()

    assert [article.id for article in articles] == ["good"]
    assert sum("skipping unreadable archive record" in r.getMessage() for r in caplog.records) == 2


def test_missing_archive_dir_is_empty(tmp_path: Path) -> None:
    assert ArticleArchive(tmp_path / "nope").load_scraped() == []


def test_load_single_article_and_reject_path_escape(tmp_path: Path) -> None:
    write_archive_record(tmp_path, _record("abc"))
    archive = ArticleArchive(tmp_path)
    loaded = archive.load("abc")
    assert loaded is not None
    assert loaded.json_ld_objects == [{"@type": "Recipe", "name": "abc"}]
    assert archive.load("missing") is None
    assert archive.load("../abc") is None
    assert archive.load("") is None


def test_json_ld_objects_are_normalized() -> None:
    single = ScrapedArticle.model_validate(
        {"id": "x", "canonical_url": "https://x", "json_ld_objects": {"@type": "Thing"}}
    )
    assert single.json_ld_objects == [{"@type": "Thing"}]
    missing = ScrapedArticle.model_validate({"id": "y", "canonical_url": "https://y", "json_ld_objects": None})
    assert missing.json_ld_objects == []


def test_merge_prefers_link_fields_and_keeps_link_order() -> None:
    links = parse_links_markdown(
        "- [My title](https://example.com/two) #mine @note:hello\n- https://example.com/one\n"
    )
    scraped = [
        ScrapedArticle(
            id=links[1].id,
            canonical_url=links[1].canonical_url,
            fetched_title="Fetched one",
        ),
        ScrapedArticle(
            id=links[0].id,
            canonical_url=links[0].canonical_url,
            fetched_title="Fetched two",
            json_ld_objects=[{"@type": "Recipe"}],
        ),
        ScrapedArticle(id="orphan", canonical_url="https://example.com/orphan"),
    ]

    records = merge_articles(links, scraped)

    assert [record.id for record in records] == [links[0].id, links[1].id]
    assert records[0].title == "My title"
    assert records[0].user_tags == ("mine",)
    assert records[0].user_notes == "hello"
    assert records[0].has_structured_data
    assert records[1].title == "Fetched one"
    assert records[1].is_displayable


def test_unscraped_links_are_listed_but_not_displayable() -> None:
    links = parse_links_markdown("- https://example.com/new\n")
    records = merge_articles(links, [])
    assert len(records) == 1
    assert records[0].scraping_status is None
    assert not records[0].is_displayable
