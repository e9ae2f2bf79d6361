from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from backend.app.models.structured_data import (
    Category,
    ClassifiedBuckets,
    QuestionThread,
    RecipeGroup,
    ReferenceGraph,
    RenderLimits,
    RenderPlan,
    ResolvedRecipe,
    StructuredObject,
    VideoExclusionSet,
    object_id,
)
from backend.app.services.jsonld_resolver import resolve_recipe, resolve_references

LOGGER = logging.getLogger("basted_pocket.structured_data.dedupe")

_T = TypeVar("_T")
_LEADING_NUMBER_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)")


def dedupe_recipes(recipes: Sequence[StructuredObject]) -> list[StructuredObject]:
    """Keep only recipes with an `@id` when several exist and at least one has one.

    Heuristic: id-less copies are assumed to be fragments of the canonical,
    id-carrying recipe. Without any id there is no key, so everything is kept.
    """
    if len(recipes) <= 1:
        return list(recipes)
    with_id = [recipe for recipe in recipes if object_id(recipe) is not None]
    if not with_id:
        return list(recipes)
    if len(with_id) != len(recipes):
        LOGGER.debug(
            "recipe dedupe dropped id-less variants kept=%s dropped=%s",
            len(with_id),
            len(recipes) - len(with_id),
        )
    return with_id


def group_recipes(recipes: Iterable[ResolvedRecipe]) -> tuple[RecipeGroup, ...]:
    grouped: dict[str, list[ResolvedRecipe]] = {}
    for recipe in recipes:
        grouped.setdefault(recipe.name, []).append(recipe)
    return tuple(RecipeGroup(name=name, recipes=tuple(items)) for name, items in grouped.items())


def best_date(obj: StructuredObject) -> str:
    value = obj.get("dateCreated")
    if value is None:
        value = obj.get("datePublished")
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def sort_by_date_desc(items: Iterable[StructuredObject]) -> list[StructuredObject]:
    # ISO-8601 strings order correctly as plain strings; the sort is stable.
    return sorted(items, key=best_date, reverse=True)


def split_visible(items: Sequence[_T], limit: int) -> tuple[tuple[_T, ...], tuple[_T, ...]]:
    return tuple(items[:limit]), tuple(items[limit:])


def aggregate_comments(
    standalone: Iterable[StructuredObject],
    recipes: Iterable[ResolvedRecipe],
) -> tuple[list[StructuredObject], int]:
    """Union of standalone comments and recipe comments, each object once.

    Comments inlined in a recipe are also found by the classifier walk, so the
    same object (or the same `@id`) is only kept the first time it is seen.
    """
    seen_keys: set[int] = set()
    seen_ids: set[str] = set()
    merged: list[StructuredObject] = []
    suppressed = 0
    inline = (comment for recipe in recipes for comment in recipe.resolved_comments)
    candidates = [*standalone, *inline]
    for comment in candidates:
        comment_id = object_id(comment)
        if id(comment) in seen_keys or (comment_id is not None and comment_id in seen_ids):
            suppressed += 1
            continue
        seen_keys.add(id(comment))
        if comment_id is not None:
            seen_ids.add(comment_id)
        merged.append(comment)
    return sort_by_date_desc(merged), suppressed


def filter_standalone_videos(
    videos: Iterable[StructuredObject],
    exclusions: VideoExclusionSet,
) -> tuple[list[StructuredObject], int]:
    kept: list[StructuredObject] = []
    suppressed = 0
    for video in videos:
        if exclusions.excludes(video):
            suppressed += 1
            continue
        kept.append(video)
    return kept, suppressed


def parse_dimension(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # NaN and infinities (JSON 1e400) count as undeclared.
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_NUMBER_PATTERN.match(value)
        return parse_dimension(float(match.group(1))) if match else None
    if isinstance(value, dict):
        return parse_dimension(value.get("value"))
    if isinstance(value, list) and value:
        return parse_dimension(value[0])
    return None


def is_meaningful_image(image: StructuredObject, min_dimension: int) -> bool:
    width = parse_dimension(image.get("width"))
    height = parse_dimension(image.get("height"))
    if width is None and height is None:
        return True
    return (width or 0) >= min_dimension or (height or 0) >= min_dimension


def select_images(
    images: Sequence[StructuredObject], limits: RenderLimits
) -> list[StructuredObject]:
    if len(images) > limits.image_max_collection_size:
        return []
    return [image for image in images if is_meaningful_image(image, limits.image_min_dimension)]


def _parent_id(answer: StructuredObject) -> str | None:
    parent = answer.get("parentItem")
    if isinstance(parent, str) and parent.strip():
        return parent
    return object_id(parent)


def pair_questions(
    questions: Sequence[StructuredObject],
    answers: Sequence[StructuredObject],
    id_lookup: Mapping[str, StructuredObject],
) -> tuple[tuple[QuestionThread, ...], tuple[StructuredObject, ...]]:
    question_index_by_id: dict[str, int] = {}
    owner_by_answer_key: dict[int, int] = {}
    for index, question in enumerate(questions):
        question_id = object_id(question)
        if question_id is not None:
            question_index_by_id.setdefault(question_id, index)
        for key in ("acceptedAnswer", "suggestedAnswer"):
            for nested in resolve_references(question.get(key), id_lookup):
                if isinstance(nested, dict):
                    owner_by_answer_key.setdefault(id(nested), index)

    paired: list[list[StructuredObject]] = [[] for _ in questions]
    standalone: list[StructuredObject] = []
    for answer in answers:
        owner = owner_by_answer_key.get(id(answer))
        if owner is None:
            parent_id = _parent_id(answer)
            owner = question_index_by_id.get(parent_id) if parent_id is not None else None
        if owner is None:
            standalone.append(answer)
        else:
            paired[owner].append(answer)

    threads = tuple(
        QuestionThread(question=question, answers=tuple(paired[index]))
        for index, question in enumerate(questions)
    )
    return threads, tuple(standalone)


def build_render_plan(
    graph: ReferenceGraph,
    buckets: ClassifiedBuckets,
    limits: RenderLimits | None = None,
) -> RenderPlan:
    limits = limits or RenderLimits()
    recipes = [
        resolve_recipe(recipe, graph.id_lookup)
        for recipe in dedupe_recipes(buckets.get(Category.RECIPE))
    ]
    comments, suppressed_comments = aggregate_comments(buckets.get(Category.COMMENT), recipes)
    videos, suppressed_videos = filter_standalone_videos(
        buckets.get(Category.VIDEO), buckets.video_exclusions
    )
    threads, standalone_answers = pair_questions(
        buckets.get(Category.QUESTION),
        buckets.get(Category.ANSWER),
        graph.id_lookup,
    )
    return RenderPlan(
        recipe_groups=group_recipes(recipes),
        comments=tuple(comments),
        reviews=tuple(sort_by_date_desc(buckets.get(Category.REVIEW))),
        videos=tuple(videos),
        images=tuple(select_images(buckets.get(Category.IMAGE), limits)),
        question_threads=threads,
        standalone_answers=standalone_answers,
        buckets=buckets,
        suppressed_videos=suppressed_videos,
        suppressed_comments=suppressed_comments,
        limits=limits,
        id_lookup=graph.id_lookup,
    )
