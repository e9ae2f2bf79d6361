from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from backend.app.models.structured_data import (
    GRAPH_KEY,
    ReferenceGraph,
    StructuredObject,
    object_id,
)


def flatten_json_ld(values: Iterable[Any]) -> list[Any]:
    """Expand nested arrays in place, at any depth, dropping nulls."""
    flattened: list[Any] = []
    for item in values:
        if isinstance(item, list):
            flattened.extend(flatten_json_ld(item))
        elif item is not None:
            flattened.append(item)
    return flattened


def unwrap_graphs(candidates: Iterable[Any]) -> list[StructuredObject]:
    objects: list[StructuredObject] = []
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        graph = candidate.get(GRAPH_KEY)
        if isinstance(graph, list):
            objects.extend(
                child for child in flatten_json_ld(graph) if isinstance(child, dict)
            )
            continue
        objects.append(candidate)
    return objects


def build_id_lookup(objects: Iterable[StructuredObject]) -> dict[str, StructuredObject]:
    # Repeated ids are assumed to describe the same object; the last one wins.
    lookup: dict[str, StructuredObject] = {}
    for obj in objects:
        obj_id = object_id(obj)
        if obj_id is not None:
            lookup[obj_id] = obj
    return lookup


def build_reference_graph(json_ld_objects: Any) -> ReferenceGraph:
    if isinstance(json_ld_objects, dict):
        json_ld_objects = [json_ld_objects]
    if not isinstance(json_ld_objects, list):
        return ReferenceGraph(objects=(), id_lookup={})

    objects = unwrap_graphs(flatten_json_ld(json_ld_objects))
    return ReferenceGraph(objects=tuple(objects), id_lookup=build_id_lookup(objects))
