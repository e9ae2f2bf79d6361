from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from backend.app.models.structured_data import RenderLimits
from backend.app.services.jsonld_classifier import classify_graph
from backend.app.services.jsonld_dedupe import build_render_plan
from backend.app.services.jsonld_graph import build_reference_graph
from backend.app.services.jsonld_renderers import render_plan
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("basted_pocket.structured_data")

# Raised by malformed-but-well-typed JSON reaching an unexpected code path.
_RECOVERABLE_ERRORS: tuple[type[BaseException], ...] = (
    TypeError,
    ValueError,
    AttributeError,
    KeyError,
    RecursionError,
    ArithmeticError,
)


@dataclass(frozen=True)
class StructuredDataRendering:
    html: str
    buckets: dict[str, int] = field(default_factory=dict)
    suppressed_videos: int = 0
    suppressed_comments: int = 0
    failed: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.html


class StructuredDataService:
    def __init__(
        self,
        *,
        limits: RenderLimits | None = None,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._limits = limits or RenderLimits()
        self._telemetry = telemetry or TelemetryClient.disabled()

    def render(
        self, json_ld_objects: Any, *, article_id: str | None = None
    ) -> StructuredDataRendering:
        if not json_ld_objects:
            return StructuredDataRendering(html="")
        try:
            graph = build_reference_graph(json_ld_objects)
            buckets = classify_graph(graph)
            plan = build_render_plan(graph, buckets, self._limits)
            rendering = StructuredDataRendering(
                html=render_plan(plan),
                buckets={name: count for name, count in buckets.counts().items() if count},
                suppressed_videos=plan.suppressed_videos,
                suppressed_comments=plan.suppressed_comments,
            )
        except _RECOVERABLE_ERRORS as exc:
            LOGGER.warning(
                "structured data render failed; treating as empty article_id=%s error=%s",
                article_id,
                type(exc).__name__,
                exc_info=True,
            )
            rendering = StructuredDataRendering(html="", failed=True)

        self._telemetry.emit(
            "structured_data.rendered",
            article_id=article_id,
            empty=rendering.is_empty,
            failed=rendering.failed,
            buckets=rendering.buckets,
            suppressed_videos=rendering.suppressed_videos,
            suppressed_comments=rendering.suppressed_comments,
        )
        LOGGER.debug(
            "structured data rendered article_id=%s buckets=%s html_chars=%s",
            article_id,
            rendering.buckets,
            len(rendering.html),
        )
        return rendering


def render_structured_data(
    json_ld_objects: Any,
    *,
    limits: RenderLimits | None = None,
    telemetry: TelemetryClient | None = None,
) -> str:
    """Render one article's scraped JSON-LD objects as a single HTML fragment.

    Never raises for JSON-shaped input: absent, empty or unusable data yields
    an empty string.
    """
    service = StructuredDataService(limits=limits, telemetry=telemetry)
    return service.render(json_ld_objects).html
