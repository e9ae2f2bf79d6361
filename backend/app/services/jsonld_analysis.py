"""Corpus-wide statistics over archived JSON-LD.

Used to decide which structured-data types and recipe properties deserve a
dedicated renderer.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from backend.app.models.structured_data import CONTEXT_KEY, TYPE_KEY, StructuredObject, type_labels
from backend.app.services.article_archive import ScrapedArticle
from backend.app.services.jsonld_classifier import normalized_types
from backend.app.services.jsonld_graph import flatten_json_ld, unwrap_graphs

MAX_EXAMPLES_PER_TYPE = 3
_EXAMPLE_PROPERTIES: tuple[str, ...] = (
    "name",
    "headline",
    "description",
    "url",
    "image",
    "author",
    "datePublished",
    "publisher",
)
_EXAMPLE_TEXT_LENGTH = 100

RENDERED_RECIPE_PROPERTIES: frozenset[str] = frozenset(
    {
        "@type",
        "@id",
        "@context",
        "name",
        "description",
        "video",
        "image",
        "prepTime",
        "cookTime",
        "totalTime",
        "recipeYield",
        "recipeIngredient",
        "recipeInstructions",
        "nutrition",
        "comment",
        "author",
        "datePublished",
        "aggregateRating",
        "keywords",
        "recipeCategory",
        "recipeCuisine",
    }
)


@dataclass
class TypeStatistics:
    type_label: str
    count: int = 0
    properties: set[str] = field(default_factory=set)
    sources: set[str] = field(default_factory=set)
    examples: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class StructuredDataReport:
    articles_with_data: int
    total_objects: int
    types: tuple[TypeStatistics, ...]

    def property_totals(self) -> Counter[str]:
        totals: Counter[str] = Counter()
        for stats in self.types:
            for prop in stats.properties:
                totals[prop] += stats.count
        return totals

    def source_totals(self) -> Counter[str]:
        totals: Counter[str] = Counter()
        for stats in self.types:
            for source in stats.sources:
                totals[source] += stats.count
        return totals


@dataclass
class RecipePropertyStatistics:
    name: str
    count: int = 0
    value_shapes: set[str] = field(default_factory=set)

    @property
    def is_rendered(self) -> bool:
        return self.name in RENDERED_RECIPE_PROPERTIES


@dataclass(frozen=True)
class RecipePropertyReport:
    total_recipes: int
    properties: tuple[RecipePropertyStatistics, ...]

    def unrendered(self) -> tuple[RecipePropertyStatistics, ...]:
        return tuple(stats for stats in self.properties if not stats.is_rendered)


def analysis_type_label(label: str) -> str:
    normalized = label.strip()
    return "Recipe" if normalized == "recipe" else normalized


def hostname(url: str | None) -> str:
    if not url:
        return "unknown"
    return urlparse(url).hostname or "unknown"


def _example_value(value: Any) -> Any:
    if isinstance(value, str):
        if len(value) > _EXAMPLE_TEXT_LENGTH:
            return f"{value[:_EXAMPLE_TEXT_LENGTH]}..."
        return value
    if isinstance(value, list):
        return f"[{len(value)} items]"
    if isinstance(value, dict):
        return {"name": value["name"]} if value.get("name") else "[object]"
    return value


def trimmed_example(obj: StructuredObject) -> dict[str, Any]:
    example: dict[str, Any] = {TYPE_KEY: obj.get(TYPE_KEY)}
    for prop in _EXAMPLE_PROPERTIES:
        if obj.get(prop):
            example[prop] = _example_value(obj[prop])
    return example


class _TypeWalker:
    def __init__(self) -> None:
        self.statistics: dict[str, TypeStatistics] = {}

    def walk(self, value: Any, source: str) -> None:
        if isinstance(value, list):
            for item in value:
                self.walk(item, source)
            return
        if not isinstance(value, dict):
            return
        for label in dict.fromkeys(analysis_type_label(raw) for raw in type_labels(value)):
            stats = self.statistics.setdefault(label, TypeStatistics(type_label=label))
            stats.count += 1
            stats.sources.add(source)
            stats.properties.update(key for key in value if key not in {CONTEXT_KEY, TYPE_KEY})
            if len(stats.examples) < MAX_EXAMPLES_PER_TYPE:
                stats.examples.append(trimmed_example(value))
        for key, child in value.items():
            if key != CONTEXT_KEY:
                self.walk(child, source)


def analyze_structured_data(articles: Iterable[ScrapedArticle]) -> StructuredDataReport:
    walker = _TypeWalker()
    articles_with_data = 0
    total_objects = 0
    for article in articles:
        if not article.json_ld_objects:
            continue
        articles_with_data += 1
        objects = [
            item for item in flatten_json_ld(article.json_ld_objects) if isinstance(item, dict)
        ]
        total_objects += len(objects)
        source = hostname(article.canonical_url or article.original_url)
        for obj in objects:
            walker.walk(obj, source)
    ranked = sorted(walker.statistics.values(), key=lambda stats: stats.count, reverse=True)
    return StructuredDataReport(
        articles_with_data=articles_with_data,
        total_objects=total_objects,
        types=tuple(ranked),
    )


def value_shape(value: Any) -> list[str]:
    if isinstance(value, list):
        shapes = ["array"]
        if value:
            first = value[0]
            labels = type_labels(first)
            shapes.append(f"array<{labels[0]}>" if labels else f"array<{_scalar_name(first)}>")
        return shapes
    if isinstance(value, dict):
        labels = type_labels(value)
        if labels:
            return [labels[0]]
        return ["reference" if value.get("@id") else "object"]
    return [_scalar_name(value)]


def _scalar_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict | list):
        return "object"
    return type(value).__name__


def analyze_recipe_properties(articles: Iterable[ScrapedArticle]) -> RecipePropertyReport:
    total_recipes = 0
    properties: dict[str, RecipePropertyStatistics] = {}
    for article in articles:
        for obj in unwrap_graphs(flatten_json_ld(article.json_ld_objects)):
            if "Recipe" not in normalized_types(obj):
                continue
            total_recipes += 1
            for prop, value in obj.items():
                stats = properties.setdefault(prop, RecipePropertyStatistics(name=prop))
                stats.count += 1
                stats.value_shapes.update(value_shape(value))
    ranked = sorted(properties.values(), key=lambda stats: stats.count, reverse=True)
    return RecipePropertyReport(total_recipes=total_recipes, properties=tuple(ranked))
