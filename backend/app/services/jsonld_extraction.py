from __future__ import annotations

import json
import logging
from html.parser import HTMLParser
from typing import Any

LOGGER = logging.getLogger("basted_pocket.structured_data.extraction")

JSON_LD_MIME_TYPE = "application/ld+json"
_PREVIEW_LENGTH = 280


class _JsonLdScriptParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.blocks: list[str] = []
        self._parts: list[str] | None = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag.lower() != "script":
            return
        attrs_map = {name.lower(): (value or "").strip() for name, value in attrs}
        mime_type = attrs_map.get("type", "").split(";", 1)[0].strip().lower()
        if mime_type == JSON_LD_MIME_TYPE:
            self._parts = []

    def handle_endtag(self, tag: str) -> None:
        if tag.lower() != "script" or self._parts is None:
            return
        text = "".join(self._parts).strip()
        if text:
            self.blocks.append(text)
        self._parts = None

    def handle_data(self, data: str) -> None:
        if self._parts is not None:
            self._parts.append(data)


def extract_jsonld_blocks(html: str) -> list[str]:
    parser = _JsonLdScriptParser()
    parser.feed(html)
    parser.close()
    return parser.blocks


def parse_jsonld_blocks(raw_blocks: list[str]) -> tuple[list[Any], list[dict[str, Any]]]:
    """Parse script bodies into the `json_ld_objects` shape.

    Objects and arrays are kept exactly as parsed; anything else is reported
    in the error list alongside a short preview of the offending block.
    """
    parsed: list[Any] = []
    errors: list[dict[str, Any]] = []
    for index, raw in enumerate(raw_blocks):
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as exc:
            errors.append({"block": index, "error": str(exc), "preview": raw[:_PREVIEW_LENGTH]})
            continue
        if isinstance(value, dict | list):
            parsed.append(value)
            continue
        errors.append(
            {
                "block": index,
                "error": f"Unexpected root type: {type(value).__name__}",
                "preview": raw[:_PREVIEW_LENGTH],
            }
        )
    if errors:
        LOGGER.debug("json-ld blocks rejected count=%s", len(errors))
    return parsed, errors


def extract_json_ld_objects(html: str) -> list[Any]:
    objects, _ = parse_jsonld_blocks(extract_jsonld_blocks(html))
    return objects
