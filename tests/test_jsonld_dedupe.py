from __future__ import annotations

from backend.app.models.structured_data import Category, RenderLimits, ResolvedRecipe
from backend.app.services.jsonld_classifier import classify_graph
from backend.app.services.jsonld_dedupe import (
    aggregate_comments,
    build_render_plan,
    dedupe_recipes,
    group_recipes,
    is_meaningful_image,
    pair_questions,
    parse_dimension,
    select_images,
    sort_by_date_desc,
)
from backend.app.services.jsonld_graph import build_reference_graph


def _plan(json_ld: list[object], limits: RenderLimits | None = None):
    graph = build_reference_graph(json_ld)
    return build_render_plan(graph, classify_graph(graph), limits)


def test_dedupe_keeps_only_recipes_with_id_when_some_have_one() -> None:
    canonical = {"@type": "Recipe", "@id": "r1", "name": "Soup"}
    fragments = [{"@type": "Recipe", "name": "Soup"}, {"@type": "Recipe", "name": "Soup"}]
    assert dedupe_recipes([fragments[0], canonical, fragments[1]]) == [canonical]


def test_dedupe_keeps_everything_without_ids() -> None:
    recipes = [{"@type": "Recipe", "name": str(index)} for index in range(3)]
    assert dedupe_recipes(recipes) == recipes


def test_dedupe_single_recipe_without_id_survives() -> None:
    recipe = {"@type": "Recipe"}
    assert dedupe_recipes([recipe]) == [recipe]


def test_grouping_by_name_preserves_first_seen_order() -> None:
    soup_a = ResolvedRecipe(recipe={"name": "Soup"})
    bread = ResolvedRecipe(recipe={"name": "Bread"})
    soup_b = ResolvedRecipe(recipe={"name": "Soup"})
    unnamed = ResolvedRecipe(recipe={})
    groups = group_recipes([soup_a, bread, soup_b, unnamed])
    assert [group.name for group in groups] == ["Soup", "Bread", "Unnamed Recipe"]
    assert groups[0].recipes == (soup_a, soup_b)
    assert not groups[0].is_single
    assert groups[1].is_single


def test_sort_by_date_prefers_date_created_and_is_stable() -> None:
    old = {"dateCreated": "2023-01-01"}
    new = {"datePublished": "2024-06-01"}
    created_wins = {"dateCreated": "2022-01-01", "datePublished": "2025-01-01"}
    undated_a = {"text": "a"}
    undated_b = {"text": "b"}
    ordered = sort_by_date_desc([undated_a, old, created_wins, new, undated_b])
    assert ordered == [new, old, created_wins, undated_a, undated_b]


def test_comment_aggregation_unions_recipe_and_standalone_comments_once() -> None:
    shared = {"@id": "c1", "@type": "Comment", "dateCreated": "2024-01-02"}
    standalone = {"@type": "Comment", "dateCreated": "2024-01-03"}
    recipe_only = {"@type": "Comment", "dateCreated": "2024-01-01"}
    recipe = ResolvedRecipe(recipe={}, resolved_comments=(shared, recipe_only))
    comments, suppressed = aggregate_comments([standalone, shared], [recipe])
    assert comments == [standalone, shared, recipe_only]
    assert suppressed == 1


def test_parse_dimension_shapes() -> None:
    assert parse_dimension(640) == 640
    assert parse_dimension("480px") == 480
    assert parse_dimension({"@type": "QuantitativeValue", "value": "300"}) == 300
    assert parse_dimension(["120", "999"]) == 120
    assert parse_dimension("auto") is None
    assert parse_dimension(None) is None
    assert parse_dimension(True) is None


def test_non_finite_dimensions_count_as_undeclared() -> None:
    assert parse_dimension(float("inf")) is None
    assert parse_dimension(float("nan")) is None
    assert parse_dimension("9" * 400) is None
    assert parse_dimension("12.7px") == 12
    assert is_meaningful_image({"width": float("nan"), "height": float("inf")}, 200)


def test_image_meaningfulness() -> None:
    assert not is_meaningful_image({"width": 50, "height": 50}, 200)
    assert is_meaningful_image({"url": "https://x/y.png"}, 200)
    assert is_meaningful_image({"width": 50, "height": 400}, 200)
    assert is_meaningful_image({"width": "1200"}, 200)


def test_large_image_collections_are_skipped() -> None:
    limits = RenderLimits()
    images = [{"@type": "ImageObject", "url": f"https://x/{index}.png"} for index in range(11)]
    assert select_images(images, limits) == []
    assert len(select_images(images[:10], limits)) == 10


def test_questions_pair_with_answers_by_parent_item() -> None:
    question = {"@id": "q1", "@type": "Question", "name": "Freeze it?"}
    by_string = {"@type": "Answer", "text": "Yes", "parentItem": "q1"}
    by_object = {"@type": "Answer", "text": "Sure", "parentItem": {"@id": "q1"}}
    orphan = {"@type": "Answer", "text": "Orphan", "parentItem": "q404"}
    threads, standalone = pair_questions([question], [by_string, orphan, by_object], {"q1": question})
    assert threads[0].answers == (by_string, by_object)
    assert standalone == (orphan,)


def test_nested_accepted_answers_belong_to_their_question() -> None:
    answer = {"@type": "Answer", "text": "Inline"}
    question = {"@type": "Question", "name": "How?", "acceptedAnswer": answer}
    plan = _plan([question])
    assert plan.question_threads[0].answers == (answer,)
    assert plan.standalone_answers == ()


def test_plan_suppresses_recipe_videos_from_standalone_list() -> None:
    plan = _plan(
        [
            {"@type": "Recipe", "name": "Soup", "video": {"@id": "v1"}},
            {"@id": "v1", "@type": "VideoObject", "name": "How to make soup"},
            {"@id": "v2", "@type": "VideoObject", "name": "Unrelated"},
        ]
    )
    assert [video["name"] for video in plan.videos] == ["Unrelated"]
    assert plan.suppressed_videos == 1
    assert plan.recipe_groups[0].recipes[0].resolved_videos[0]["name"] == "How to make soup"


def test_plan_drops_id_less_recipe_fragments() -> None:
    plan = _plan(
        [
            {"@type": "Recipe", "name": "Soup"},
            {"@type": "Recipe", "@id": "#recipe", "name": "Soup"},
        ]
    )
    assert len(plan.recipe_groups) == 1
    assert plan.recipe_groups[0].is_single
    assert len(plan.buckets.get(Category.RECIPE)) == 2


def test_plan_keeps_every_review_sorted() -> None:
    reviews = [
        {"@type": "Review", "datePublished": f"2024-01-{day:02d}"} for day in range(1, 13)
    ]
    plan = _plan(reviews)
    assert len(plan.reviews) == 12
    assert plan.reviews[0]["datePublished"] == "2024-01-12"
