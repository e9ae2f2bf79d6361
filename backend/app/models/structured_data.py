"""Page-scoped data model for scraped JSON-LD structured data.

Everything here is rebuilt for every render call and discarded afterwards; the
`@id` lookup in particular must never be shared between two articles.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

StructuredObject = dict[str, Any]

ID_KEY = "@id"
TYPE_KEY = "@type"
GRAPH_KEY = "@graph"
CONTEXT_KEY = "@context"

DEFAULT_COMMENT_VISIBLE_LIMIT = 8
DEFAULT_REVIEW_VISIBLE_LIMIT = 10
DEFAULT_IMAGE_MAX_COLLECTION_SIZE = 10
DEFAULT_IMAGE_MIN_DIMENSION = 200
UNNAMED_RECIPE_LABEL = "Unnamed Recipe"


class Category(str, Enum):
    RECIPE = "recipe"
    REVIEW = "review"
    COMMENT = "comment"
    ARTICLE = "article"
    VIDEO = "video"
    IMAGE = "image"
    HOW_TO_STEP = "how_to_step"
    QUESTION = "question"
    ANSWER = "answer"
    RATING = "rating"
    NUTRITION = "nutrition"
    PRODUCT = "product"
    ENTITY = "entity"
    EVENT = "event"
    BREADCRUMB = "breadcrumb"
    OTHER = "other"


def object_id(value: object) -> str | None:
    if not isinstance(value, dict):
        return None
    raw = value.get(ID_KEY)
    if isinstance(raw, str) and raw.strip():
        return raw
    return None


def type_labels(value: object) -> tuple[str, ...]:
    if not isinstance(value, dict):
        return ()
    raw = value.get(TYPE_KEY)
    if isinstance(raw, str):
        return (raw,) if raw.strip() else ()
    if isinstance(raw, list):
        return tuple(label for label in raw if isinstance(label, str) and label.strip())
    return ()


# A single recursive walk replaces shape checks at every call site: each raw
# JSON value is viewed as exactly one of these four variants.


@dataclass(frozen=True)
class ScalarValue:
    value: str | int | float | bool | None


@dataclass(frozen=True)
class Reference:
    ref_id: str


@dataclass(frozen=True)
class ObjectNode:
    obj: StructuredObject

    @property
    def types(self) -> tuple[str, ...]:
        return type_labels(self.obj)


@dataclass(frozen=True)
class ArrayNode:
    items: tuple[Any, ...]


StructuredNode = ScalarValue | Reference | ObjectNode | ArrayNode


def to_node(value: Any, id_lookup: Mapping[str, StructuredObject]) -> StructuredNode:
    """View a raw JSON value as one node variant.

    An object is a reference when its `@id` is in the lookup table and the
    table holds a *different* object under that id; the full object itself
    stays an `ObjectNode`.
    """
    if isinstance(value, list):
        return ArrayNode(items=tuple(value))
    if isinstance(value, dict):
        ref_id = object_id(value)
        if ref_id is not None:
            target = id_lookup.get(ref_id)
            if target is not None and target is not value:
                return Reference(ref_id=ref_id)
        return ObjectNode(obj=value)
    if isinstance(value, str | int | float | bool) or value is None:
        return ScalarValue(value=value)
    return ScalarValue(value=str(value))


@dataclass(frozen=True)
class ReferenceGraph:
    objects: tuple[StructuredObject, ...]
    id_lookup: Mapping[str, StructuredObject]


@dataclass(frozen=True)
class VideoExclusionSet:
    """Videos already embedded in a recipe.

    Referenced videos are keyed by `@id`; inline videos without an id are keyed
    by object identity so they are not rendered a second time either.
    """

    ids: frozenset[str] = frozenset()
    inline_object_keys: frozenset[int] = frozenset()

    def excludes(self, video: StructuredObject) -> bool:
        video_id = object_id(video)
        if video_id is not None and video_id in self.ids:
            return True
        return id(video) in self.inline_object_keys


@dataclass(frozen=True)
class ClassifiedBuckets:
    buckets: Mapping[Category, tuple[StructuredObject, ...]]
    video_exclusions: VideoExclusionSet

    def get(self, category: Category) -> tuple[StructuredObject, ...]:
        return self.buckets.get(category, ())

    def counts(self) -> dict[str, int]:
        return {category.value: len(self.get(category)) for category in Category}


@dataclass(frozen=True)
class ResolvedRecipe:
    recipe: StructuredObject
    resolved_comments: tuple[StructuredObject, ...] = ()
    resolved_videos: tuple[StructuredObject, ...] = ()
    resolved_author: Any = None
    resolved_nutrition: StructuredObject | None = None
    resolved_rating: StructuredObject | None = None

    @property
    def name(self) -> str:
        raw = self.recipe.get("name")
        if isinstance(raw, str) and raw.strip():
            return raw.strip()
        return UNNAMED_RECIPE_LABEL


@dataclass(frozen=True)
class RecipeGroup:
    name: str
    recipes: tuple[ResolvedRecipe, ...]

    @property
    def is_single(self) -> bool:
        return len(self.recipes) == 1


@dataclass(frozen=True)
class QuestionThread:
    question: StructuredObject
    answers: tuple[StructuredObject, ...]


@dataclass(frozen=True)
class RenderLimits:
    comment_visible_limit: int = DEFAULT_COMMENT_VISIBLE_LIMIT
    review_visible_limit: int = DEFAULT_REVIEW_VISIBLE_LIMIT
    image_max_collection_size: int = DEFAULT_IMAGE_MAX_COLLECTION_SIZE
    image_min_dimension: int = DEFAULT_IMAGE_MIN_DIMENSION


@dataclass(frozen=True)
class RenderPlan:
    """Classified, resolved and de-duplicated objects ready for the renderers."""

    recipe_groups: tuple[RecipeGroup, ...]
    comments: tuple[StructuredObject, ...]
    reviews: tuple[StructuredObject, ...]
    videos: tuple[StructuredObject, ...]
    images: tuple[StructuredObject, ...]
    question_threads: tuple[QuestionThread, ...]
    standalone_answers: tuple[StructuredObject, ...]
    buckets: ClassifiedBuckets
    suppressed_videos: int = 0
    suppressed_comments: int = 0
    limits: RenderLimits = field(default_factory=RenderLimits)
    id_lookup: Mapping[str, StructuredObject] = field(default_factory=dict)
