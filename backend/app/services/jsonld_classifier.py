from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from backend.app.models.structured_data import (
    CONTEXT_KEY,
    ArrayNode,
    Category,
    ClassifiedBuckets,
    ObjectNode,
    ReferenceGraph,
    StructuredObject,
    VideoExclusionSet,
    object_id,
    to_node,
    type_labels,
)

LOGGER = logging.getLogger("basted_pocket.structured_data.classifier")

TypePredicate = Callable[[frozenset[str], StructuredObject], bool]

ARTICLE_TYPES: frozenset[str] = frozenset(
    {"Article", "NewsArticle", "BlogPosting", "TechArticle", "ScholarlyArticle", "Report"}
)
REVIEW_TYPES: frozenset[str] = frozenset({"Review", "CriticReview", "UserReview", "EmployerReview"})
ENTITY_TYPES: frozenset[str] = frozenset(
    {"Organization", "Person", "Corporation", "NewsMediaOrganization"}
)
DIMENSION_NAMES: frozenset[str] = frozenset({"width", "height"})


def _any_of(labels: Iterable[str]) -> TypePredicate:
    wanted = frozenset(labels)

    def predicate(types: frozenset[str], _obj: StructuredObject) -> bool:
        return not types.isdisjoint(wanted)

    return predicate


def _any_type(types: frozenset[str], _obj: StructuredObject) -> bool:
    return bool(types)


# Evaluated top to bottom; the first match wins.
CATEGORY_PRECEDENCE: tuple[tuple[TypePredicate, Category], ...] = (
    (_any_of({"Recipe"}), Category.RECIPE),
    (_any_of(REVIEW_TYPES), Category.REVIEW),
    (_any_of({"Comment"}), Category.COMMENT),
    (_any_of(ARTICLE_TYPES), Category.ARTICLE),
    (_any_of({"VideoObject"}), Category.VIDEO),
    (_any_of({"ImageObject"}), Category.IMAGE),
    (_any_of({"HowToStep"}), Category.HOW_TO_STEP),
    (_any_of({"Question"}), Category.QUESTION),
    (_any_of({"Answer"}), Category.ANSWER),
    (_any_of({"AggregateRating"}), Category.RATING),
    (_any_of({"NutritionInformation"}), Category.NUTRITION),
    (_any_of({"Product"}), Category.PRODUCT),
    (_any_of(ENTITY_TYPES), Category.ENTITY),
    (_any_of({"Event"}), Category.EVENT),
    (_any_of({"BreadcrumbList"}), Category.BREADCRUMB),
    (_any_type, Category.OTHER),
)


def _is_dimension_quantity(types: frozenset[str], obj: StructuredObject) -> bool:
    name = obj.get("name")
    return (
        "QuantitativeValue" in types
        and isinstance(name, str)
        and name.strip().lower() in DIMENSION_NAMES
    )


LOW_VALUE_RULES: tuple[TypePredicate, ...] = (_is_dimension_quantity,)


def normalize_type_label(label: str) -> str:
    """`https://schema.org/Recipe`, `schema:Recipe` and `recipe` all become `Recipe`."""
    normalized = label.strip().rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if normalized == "recipe":
        return "Recipe"
    return normalized


def normalized_types(obj: StructuredObject) -> frozenset[str]:
    return frozenset(normalize_type_label(label) for label in type_labels(obj))


def is_low_value(obj: StructuredObject) -> bool:
    types = normalized_types(obj)
    return any(rule(types, obj) for rule in LOW_VALUE_RULES)


def classify_object(obj: Any) -> Category | None:
    if not isinstance(obj, dict):
        return None
    types = normalized_types(obj)
    if not types:
        return None
    if any(rule(types, obj) for rule in LOW_VALUE_RULES):
        return None
    for predicate, category in CATEGORY_PRECEDENCE:
        if predicate(types, obj):
            return category
    return None


class _BucketCollector:
    def __init__(self, graph: ReferenceGraph) -> None:
        self._lookup = graph.id_lookup
        self._buckets: dict[Category, list[StructuredObject]] = {
            category: [] for category in Category
        }
        self._video_ids: set[str] = set()
        self._inline_video_keys: set[int] = set()
        self._active: set[int] = set()

    def visit_root(self, obj: StructuredObject) -> None:
        # Top-level objects are always classified, even when a later object
        # with the same @id won the lookup slot.
        self._visit_object(obj)

    def _visit_value(self, value: Any) -> None:
        node = to_node(value, self._lookup)
        if isinstance(node, ArrayNode):
            for item in node.items:
                self._visit_value(item)
        elif isinstance(node, ObjectNode):
            self._visit_object(node.obj)

    def _visit_object(self, obj: StructuredObject) -> None:
        key = id(obj)
        if key in self._active:
            return
        self._active.add(key)
        try:
            category = classify_object(obj)
            if category is not None:
                self._buckets[category].append(obj)
            if category is Category.RECIPE:
                self._collect_recipe_videos(obj)
            for prop, child in obj.items():
                if prop == CONTEXT_KEY:
                    continue
                self._visit_value(child)
        finally:
            self._active.discard(key)

    def _collect_recipe_videos(self, recipe: StructuredObject) -> None:
        raw = recipe.get("video")
        for item in raw if isinstance(raw, list) else [raw]:
            if isinstance(item, str) and item.strip():
                self._video_ids.add(item)
            elif isinstance(item, dict):
                video_id = object_id(item)
                if video_id is not None:
                    self._video_ids.add(video_id)
                else:
                    self._inline_video_keys.add(id(item))

    def result(self) -> ClassifiedBuckets:
        return ClassifiedBuckets(
            buckets={category: tuple(items) for category, items in self._buckets.items()},
            video_exclusions=VideoExclusionSet(
                ids=frozenset(self._video_ids),
                inline_object_keys=frozenset(self._inline_video_keys),
            ),
        )


def classify_graph(graph: ReferenceGraph) -> ClassifiedBuckets:
    collector = _BucketCollector(graph)
    for obj in graph.objects:
        collector.visit_root(obj)
    buckets = collector.result()
    LOGGER.debug(
        "structured data classified objects=%s buckets=%s excluded_videos=%s",
        len(graph.objects),
        {name: count for name, count in buckets.counts().items() if count},
        len(buckets.video_exclusions.ids) + len(buckets.video_exclusions.inline_object_keys),
    )
    return buckets
