from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from backend.app.models.structured_data import (
    Category,
    ResolvedRecipe,
    StructuredObject,
    object_id,
)
from backend.app.services.jsonld_classifier import classify_object


def resolve_reference(value: Any, id_lookup: Mapping[str, StructuredObject]) -> Any:
    """Return the fuller object a reference stands for.

    A reference that cannot be resolved comes back unchanged; callers decide
    whether an unresolved value is still useful.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return id_lookup.get(value, value)
    ref_id = object_id(value)
    if ref_id is None:
        return value
    return id_lookup.get(ref_id, value)


def resolve_references(value: Any, id_lookup: Mapping[str, StructuredObject]) -> list[Any]:
    items = value if isinstance(value, list) else [value]
    resolved = (resolve_reference(item, id_lookup) for item in items)
    return [item for item in resolved if item is not None]


def resolve_party(value: Any, id_lookup: Mapping[str, StructuredObject]) -> Any:
    """Resolve an author, publisher or brand, which may be a list of references."""
    if isinstance(value, list):
        return [resolve_party(item, id_lookup) for item in value]
    if isinstance(value, dict):
        return resolve_reference(value, id_lookup)
    # Bare strings are names unless they match a known id.
    if isinstance(value, str) and value in id_lookup:
        return id_lookup[value]
    return value


def _first_object(
    value: Any, id_lookup: Mapping[str, StructuredObject]
) -> StructuredObject | None:
    for item in resolve_references(value, id_lookup):
        if isinstance(item, dict):
            return item
    return None


def resolve_recipe(
    recipe: StructuredObject,
    id_lookup: Mapping[str, StructuredObject],
) -> ResolvedRecipe:
    comments = tuple(
        item
        for item in resolve_references(recipe.get("comment"), id_lookup)
        if isinstance(item, dict)
    )
    # A video reference may point at an unrelated object; only real videos survive.
    videos = tuple(
        item
        for item in resolve_references(recipe.get("video"), id_lookup)
        if classify_object(item) is Category.VIDEO
    )
    return ResolvedRecipe(
        recipe=recipe,
        resolved_comments=comments,
        resolved_videos=videos,
        resolved_author=resolve_party(recipe.get("author"), id_lookup),
        resolved_nutrition=_first_object(recipe.get("nutrition"), id_lookup),
        resolved_rating=_first_object(recipe.get("aggregateRating"), id_lookup),
    )
