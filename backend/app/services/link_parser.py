from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

LOGGER = logging.getLogger("basted_pocket.links")

TRACKING_PARAMETERS: frozenset[str] = frozenset(
    {"utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term"}
)
LINK_ID_LENGTH = 16

_MARKDOWN_LINK_PATTERN = re.compile(r"\[([^\]]*)\]\(([^)]+)\)")
_BARE_URL_PATTERN = re.compile(r"https?://[^\s#@]+")
_TAG_PATTERN = re.compile(r"#([\w-]+)")
_NOTE_PATTERN = re.compile(r"@note:([^#]*)")


@dataclass(frozen=True)
class ParsedLink:
    id: str
    original_url: str
    canonical_url: str
    user_title: str | None = None
    user_tags: tuple[str, ...] = field(default_factory=tuple)
    user_notes: str | None = None


def canonicalize_url(url: str) -> str:
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        return url
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMETERS
    ]
    return urlunsplit(
        (
            parts.scheme,
            parts.netloc.lower(),
            parts.path or "/",
            urlencode(query),
            parts.fragment,
        )
    )


def generate_link_id(canonical_url: str) -> str:
    return hashlib.sha256(canonical_url.encode("utf-8")).hexdigest()[:LINK_ID_LENGTH]


def parse_link_line(line: str) -> ParsedLink | None:
    trimmed = line.strip()
    if not trimmed.startswith("-"):
        return None

    title: str | None = None
    link_match = _MARKDOWN_LINK_PATTERN.search(trimmed)
    if link_match is not None:
        title = link_match.group(1).strip() or None
        url = link_match.group(2).strip()
    else:
        url_match = _BARE_URL_PATTERN.search(trimmed)
        if url_match is None:
            return None
        url = url_match.group(0)
    if not url:
        return None

    note_match = _NOTE_PATTERN.search(trimmed)
    notes = note_match.group(1).strip() if note_match is not None else ""
    canonical_url = canonicalize_url(url)
    return ParsedLink(
        id=generate_link_id(canonical_url),
        original_url=url,
        canonical_url=canonical_url,
        user_title=title,
        user_tags=tuple(_TAG_PATTERN.findall(trimmed)),
        user_notes=notes or None,
    )


def parse_links_markdown(text: str) -> list[ParsedLink]:
    """Parse a markdown bullet list of links.

    Each `- ` line holds either `[title](url)` or a bare URL, optionally
    followed by `#tags` and an `@note:free text` annotation. Other lines are
    ignored.
    """
    links: list[ParsedLink] = []
    for line in text.splitlines():
        parsed = parse_link_line(line)
        if parsed is not None:
            links.append(parsed)
    return links


def load_links(path: Path) -> list[ParsedLink]:
    if not path.exists():
        LOGGER.info("link list not found path=%s", path)
        return []
    links = parse_links_markdown(path.read_text(encoding="utf-8"))
    LOGGER.debug("link list parsed path=%s links=%s", path, len(links))
    return links
