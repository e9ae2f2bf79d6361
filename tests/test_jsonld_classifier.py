from __future__ import annotations

from backend.app.models.structured_data import Category
from backend.app.services.jsonld_classifier import (
    CATEGORY_PRECEDENCE,
    classify_graph,
    classify_object,
    is_low_value,
    normalize_type_label,
)
from backend.app.services.jsonld_graph import build_reference_graph


def _classify(json_ld: list[object]):
    return classify_graph(build_reference_graph(json_ld))


def test_multi_typed_object_takes_first_category_in_precedence() -> None:
    assert classify_object({"@type": ["Recipe", "Article"]}) is Category.RECIPE
    assert classify_object({"@type": ["Article", "Recipe"]}) is Category.RECIPE
    assert classify_object({"@type": ["Person", "Product"]}) is Category.PRODUCT
    assert classify_object({"@type": ["BreadcrumbList", "Event"]}) is Category.EVENT


def test_precedence_table_order() -> None:
    categories = [category for _, category in CATEGORY_PRECEDENCE]
    assert categories == [
        Category.RECIPE,
        Category.REVIEW,
        Category.COMMENT,
        Category.ARTICLE,
        Category.VIDEO,
        Category.IMAGE,
        Category.HOW_TO_STEP,
        Category.QUESTION,
        Category.ANSWER,
        Category.RATING,
        Category.NUTRITION,
        Category.PRODUCT,
        Category.ENTITY,
        Category.EVENT,
        Category.BREADCRUMB,
        Category.OTHER,
    ]


def test_article_family_and_entities() -> None:
    for label in ("Article", "NewsArticle", "BlogPosting"):
        assert classify_object({"@type": label}) is Category.ARTICLE
    assert classify_object({"@type": "Organization"}) is Category.ENTITY
    assert classify_object({"@type": "Person"}) is Category.ENTITY


def test_unknown_type_is_other_and_untyped_is_inert() -> None:
    assert classify_object({"@type": "SoftwareApplication"}) is Category.OTHER
    assert classify_object({"name": "no type"}) is None
    assert classify_object("Recipe") is None


def test_type_labels_are_normalized() -> None:
    assert normalize_type_label("https://schema.org/Recipe") == "Recipe"
    assert normalize_type_label("schema:Recipe") == "Recipe"
    assert normalize_type_label("recipe") == "Recipe"
    assert classify_object({"@type": "http://schema.org/VideoObject"}) is Category.VIDEO


def test_low_value_quantities_are_dropped_everywhere() -> None:
    width = {"@type": "QuantitativeValue", "name": "width", "value": 400}
    height = {"@type": "QuantitativeValue", "name": "Height", "value": 300}
    assert is_low_value(width)
    assert classify_object(width) is None
    assert classify_object(height) is None

    buckets = _classify([{"@type": "ImageObject", "width": width, "height": height}, width])
    assert buckets.get(Category.OTHER) == ()
    assert all(width not in items for items in buckets.buckets.values())


def test_other_quantitative_values_are_kept() -> None:
    weight = {"@type": "QuantitativeValue", "name": "weight"}
    assert classify_object(weight) is Category.OTHER


def test_nested_objects_are_classified_after_their_parent() -> None:
    nutrition = {"@type": "NutritionInformation", "calories": "120 kcal"}
    recipe = {"@type": "Recipe", "name": "Soup", "nutrition": nutrition}
    buckets = _classify([recipe])
    assert buckets.get(Category.RECIPE) == (recipe,)
    assert buckets.get(Category.NUTRITION) == (nutrition,)


def test_untyped_wrappers_are_still_walked() -> None:
    review = {"@type": "Review", "reviewBody": "Great"}
    buckets = _classify([{"mainEntity": {"items": [review]}}])
    assert buckets.get(Category.REVIEW) == (review,)


def test_context_is_not_walked() -> None:
    buckets = _classify([{"@context": {"@type": "Person", "name": "ctx"}, "@type": "Event"}])
    assert buckets.get(Category.ENTITY) == ()
    assert len(buckets.get(Category.EVENT)) == 1


def test_references_are_not_counted_twice() -> None:
    author = {"@id": "#author", "@type": "Person", "name": "Ana"}
    article = {"@type": "Article", "author": {"@id": "#author"}}
    buckets = _classify([article, author])
    assert buckets.get(Category.ENTITY) == (author,)


def test_bucket_order_is_insertion_order() -> None:
    first = {"@type": "Comment", "text": "first"}
    second = {"@type": "Comment", "text": "second"}
    third = {"@type": "Comment", "text": "third"}
    buckets = _classify([first, [second, third]])
    assert buckets.get(Category.COMMENT) == (first, second, third)
    assert _classify([first, [second, third]]).counts() == buckets.counts()


def test_cyclic_input_terminates() -> None:
    parent: dict[str, object] = {"@type": "Question", "name": "Why?"}
    child: dict[str, object] = {"@type": "Answer", "text": "Because", "parentItem": parent}
    parent["acceptedAnswer"] = child
    buckets = _classify([parent])
    assert buckets.get(Category.QUESTION) == (parent,)
    assert buckets.get(Category.ANSWER) == (child,)


def test_recipe_videos_feed_the_exclusion_set() -> None:
    inline_video = {"@type": "VideoObject", "name": "inline"}
    recipe = {"@type": "Recipe", "video": ["v1", {"@id": "v2"}, inline_video]}
    buckets = _classify([recipe])
    exclusions = buckets.video_exclusions
    assert exclusions.ids == frozenset({"v1", "v2"})
    assert exclusions.excludes(inline_video)
    assert exclusions.excludes({"@id": "v2", "@type": "VideoObject"})
    assert not exclusions.excludes({"@id": "v3", "@type": "VideoObject"})
