from __future__ import annotations

from backend.app.services.jsonld_resolver import (
    resolve_party,
    resolve_recipe,
    resolve_reference,
    resolve_references,
)

VIDEO = {"@id": "x", "@type": "VideoObject", "name": "V"}
COMMENT = {"@id": "c1", "@type": "Comment", "text": "Nice"}
LOOKUP = {"x": VIDEO, "c1": COMMENT, "org": {"@id": "org", "@type": "Organization"}}


def test_resolve_partial_object_to_full_object() -> None:
    assert resolve_reference({"@id": "x"}, LOOKUP) is VIDEO


def test_resolve_string_id() -> None:
    assert resolve_reference("c1", LOOKUP) is COMMENT


def test_unresolvable_references_come_back_unchanged() -> None:
    partial = {"@id": "missing"}
    assert resolve_reference(partial, LOOKUP) is partial
    assert resolve_reference("missing", LOOKUP) == "missing"
    inline = {"@type": "Comment", "text": "no id"}
    assert resolve_reference(inline, LOOKUP) is inline


def test_resolve_references_drops_nothing_but_null() -> None:
    assert resolve_references(None, LOOKUP) == []
    assert resolve_references([None, "x", {"@id": "nope"}], LOOKUP) == [VIDEO, {"@id": "nope"}]
    assert resolve_references({"@id": "c1"}, LOOKUP) == [COMMENT]


def test_resolved_recipe_videos() -> None:
    recipe = {"@type": "Recipe", "name": "Soup", "video": {"@id": "x"}}
    resolved = resolve_recipe(recipe, LOOKUP)
    assert list(resolved.resolved_videos) == [{"@id": "x", "@type": "VideoObject", "name": "V"}]
    assert resolved.recipe is recipe
    assert "resolvedVideos" not in recipe


def test_recipe_video_resolving_to_other_type_is_discarded() -> None:
    recipe = {"@type": "Recipe", "video": ["org", "missing", {"@id": "x"}]}
    resolved = resolve_recipe(recipe, LOOKUP)
    assert resolved.resolved_videos == (VIDEO,)


def test_recipe_comments_keep_inline_and_resolved_objects() -> None:
    inline = {"@type": "Comment", "text": "inline"}
    recipe = {"@type": "Recipe", "comment": [{"@id": "c1"}, inline, "dangling"]}
    resolved = resolve_recipe(recipe, LOOKUP)
    assert resolved.resolved_comments == (COMMENT, inline)


def test_unnamed_recipe_label() -> None:
    assert resolve_recipe({"@type": "Recipe"}, {}).name == "Unnamed Recipe"
    assert resolve_recipe({"@type": "Recipe", "name": "  Stew "}, {}).name == "Stew"


def test_resolved_recipe_nutrition_rating_and_author() -> None:
    nutrition = {"@id": "#n", "@type": "NutritionInformation", "calories": "250 kcal"}
    rating = {"@id": "#r", "@type": "AggregateRating", "ratingValue": 4.5}
    person = {"@id": "#p", "@type": "Person", "name": "Jane"}
    lookup = {"#n": nutrition, "#r": rating, "#p": person}
    recipe = {
        "@type": "Recipe",
        "name": "Soup",
        "nutrition": {"@id": "#n"},
        "aggregateRating": "#r",
        "author": [{"@id": "#p"}, "Chef Bob"],
    }

    resolved = resolve_recipe(recipe, lookup)

    assert resolved.resolved_nutrition is nutrition
    assert resolved.resolved_rating is rating
    assert resolved.resolved_author == [person, "Chef Bob"]


def test_resolved_recipe_without_optional_fields() -> None:
    resolved = resolve_recipe({"@type": "Recipe", "nutrition": "lots"}, LOOKUP)
    assert resolved.resolved_nutrition is None
    assert resolved.resolved_rating is None
    assert resolved.resolved_author is None


def test_resolve_party_keeps_plain_names() -> None:
    assert resolve_party("Jane Doe", LOOKUP) == "Jane Doe"
    assert resolve_party("org", LOOKUP) == LOOKUP["org"]
    assert resolve_party({"@id": "missing", "name": "Acme"}, LOOKUP) == {
        "@id": "missing",
        "name": "Acme",
    }
