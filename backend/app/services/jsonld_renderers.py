from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping, Sequence
from html import escape
from typing import Any

from backend.app.models.structured_data import (
    Category,
    QuestionThread,
    RecipeGroup,
    RenderPlan,
    ResolvedRecipe,
    StructuredObject,
    type_labels,
)
from backend.app.services.jsonld_dedupe import split_visible
from backend.app.services.jsonld_formatters import (
    format_author,
    format_brand,
    format_date,
    format_duration,
    format_location,
    format_price,
    format_publisher,
    format_rating,
    format_yield,
    has_value,
    text_value,
)
from backend.app.services.jsonld_resolver import resolve_party

NUTRITION_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("calories", "calories", "Calories"),
    ("proteinContent", "protein", "Protein"),
    ("carbohydrateContent", "carbohydrate", "Carbs"),
    ("fatContent", "fat", "Fat"),
    ("saturatedFatContent", "saturatedFat", "Saturated fat"),
    ("fiberContent", "fiber", "Fiber"),
    ("sugarContent", "sugar", "Sugar"),
    ("sodiumContent", "sodium", "Sodium"),
    ("cholesterolContent", "cholesterol", "Cholesterol"),
    ("servingSize", "servingSize", "Serving size"),
)


def _text(value: Any) -> str | None:
    text = text_value(value)
    return escape(text) if text is not None else None


def _safe_url(value: Any) -> str | None:
    if isinstance(value, dict):
        value = value.get("url") or value.get("contentUrl") or value.get("@id")
    if isinstance(value, list):
        value = value[0] if value else None
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    if not stripped.lower().startswith(("http://", "https://", "/")):
        return None
    return escape(stripped, quote=True)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _span(css_class: str, label: str) -> str:
    return f'<span class="{css_class}">{label}</span>'


def _external_link(url: str, label: str) -> str:
    return f'<p><a href="{url}" target="_blank" rel="noopener">{label}</a></p>'


def _heading(tag: str, value: Any) -> list[str]:
    text = _text(value)
    return [f"<{tag}>{text}</{tag}>"] if text is not None else []


def _paragraph(value: Any, css_class: str | None = None) -> list[str]:
    text = _text(value)
    if text is None:
        return []
    class_attr = f' class="{css_class}"' if css_class else ""
    return [f"<p{class_attr}>{text}</p>"]


def _meta_block(css_class: str, spans: Iterable[str]) -> list[str]:
    collected = list(spans)
    if not collected:
        return []
    return [f'<div class="{css_class}">', *collected, "</div>"]


def _section(css_class: str, title: str, body: Sequence[str]) -> str:
    if not body:
        return ""
    lines = [f'<div class="structured-data {css_class}">', f"<h3>{title}</h3>", *body, "</div>"]
    return "\n".join(lines)


def _party(value: Any, id_lookup: Mapping[str, StructuredObject]) -> str:
    return format_author(resolve_party(value, id_lookup))


# Recipes


def _instruction_lines(instructions: Any) -> list[str]:
    if isinstance(instructions, str):
        return [escape(line.strip()) for line in instructions.splitlines() if line.strip()]
    steps: list[str] = []
    for item in _as_list(instructions):
        if isinstance(item, dict) and "HowToSection" in type_labels(item):
            section_name = _text(item.get("name"))
            if section_name is not None:
                steps.append(f'<strong class="instruction-section">{section_name}</strong>')
            steps.extend(_instruction_lines(item.get("itemListElement")))
            continue
        if isinstance(item, dict):
            text = _text(item.get("text")) or _text(item.get("name"))
        else:
            text = _text(item)
        if text is not None:
            steps.append(text)
    return steps


def _nutrition_spans(nutrition: Any) -> list[str]:
    if not isinstance(nutrition, dict):
        return []
    spans: list[str] = []
    for schema_key, short_key, label in NUTRITION_FIELDS:
        value = nutrition.get(schema_key)
        if not has_value(value):
            value = nutrition.get(short_key)
        text = _text(value)
        if text is not None:
            spans.append(f"<span>{label}: {text}</span>")
    return spans


def _recipe_body(resolved: ResolvedRecipe) -> list[str]:
    recipe = resolved.recipe
    lines: list[str] = []
    lines.extend(_heading("h4", recipe.get("name")))
    lines.extend(_paragraph(recipe.get("description"), "recipe-description"))

    meta: list[str] = []
    for key, css_class, label in (
        ("prepTime", "prep-time", "⏱️ Prep"),
        ("cookTime", "cook-time", "🔥 Cook"),
        ("totalTime", "total-time", "⏰ Total"),
    ):
        if has_value(recipe.get(key)):
            meta.append(_span(css_class, f"{label}: {escape(format_duration(recipe.get(key)))}"))
    servings = format_yield(recipe.get("recipeYield"))
    if servings is not None:
        meta.append(_span("servings", f"👥 Serves: {escape(servings)}"))
    for key, css_class in (("recipeCategory", "category"), ("recipeCuisine", "cuisine")):
        text = _text(recipe.get(key))
        if text is not None:
            meta.append(_span(css_class, text))
    if resolved.resolved_rating is not None:
        meta.append(_span("rating", f"⭐ {escape(format_rating(resolved.resolved_rating))}"))
    if has_value(resolved.resolved_author):
        meta.append(_span("author", f"✍️ {escape(format_author(resolved.resolved_author))}"))
    lines.extend(_meta_block("recipe-meta", meta))

    ingredients = [_text(item) for item in _as_list(recipe.get("recipeIngredient"))]
    ingredient_items = [f"<li>{item}</li>" for item in ingredients if item is not None]
    if ingredient_items:
        lines.extend(
            ['<div class="recipe-ingredients">', "<h5>Ingredients:</h5>", "<ul>"]
            + ingredient_items
            + ["</ul>", "</div>"]
        )

    steps = _instruction_lines(recipe.get("recipeInstructions"))
    if steps:
        lines.extend(
            ['<div class="recipe-instructions">', "<h5>Instructions:</h5>", "<ol>"]
            + [f"<li>{step}</li>" for step in steps]
            + ["</ol>", "</div>"]
        )

    nutrition = _nutrition_spans(resolved.resolved_nutrition)
    if nutrition:
        lines.extend(
            ['<div class="recipe-nutrition">', "<h5>Nutrition:</h5>"]
            + _meta_block("nutrition-facts", nutrition)
            + ["</div>"]
        )

    keywords = _text(recipe.get("keywords"))
    if keywords is not None:
        lines.append(f'<p class="recipe-keywords">🏷️ {keywords}</p>')

    if resolved.resolved_videos:
        lines.append('<div class="recipe-videos">')
        lines.append("<h5>Video:</h5>")
        for video in resolved.resolved_videos:
            lines.extend(_video_card(video))
        lines.append("</div>")

    if resolved.resolved_comments:
        count = len(resolved.resolved_comments)
        noun = "comment" if count == 1 else "comments"
        lines.append(f'<p class="recipe-comment-count">💬 {count} {noun}</p>')
    return lines


def render_recipe(resolved: ResolvedRecipe) -> str:
    body = ['<div class="recipe-details">', *_recipe_body(resolved), "</div>"]
    return _section("recipe-data", "🍳 Recipe Information", body)


def render_recipe_group(group: RecipeGroup) -> str:
    if group.is_single:
        return render_recipe(group.recipes[0])
    lines = [
        f'<p class="variant-count">{len(group.recipes)} variants of {escape(group.name)}</p>',
    ]
    for index, resolved in enumerate(group.recipes, start=1):
        lines.append(f'<div class="recipe-variant" data-variant="{index}">')
        lines.append(f"<h5>Variant {index}</h5>")
        lines.extend(_recipe_body(resolved))
        lines.append("</div>")
    return _section("recipe-data recipe-variants", f"🍳 {escape(group.name)}", lines)


def render_recipes(plan: RenderPlan) -> str:
    return "\n".join(render_recipe_group(group) for group in plan.recipe_groups)


# Breadcrumbs


def _position(item: Any) -> float:
    if not isinstance(item, dict):
        return float("inf")
    raw = item.get("position")
    try:
        return float(raw)
    except (TypeError, ValueError):
        return float("inf")


def render_breadcrumb(breadcrumb: StructuredObject) -> str:
    items = sorted(_as_list(breadcrumb.get("itemListElement")), key=_position)
    crumbs: list[str] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        target = item.get("item")
        name = _text(item.get("name")) or (
            _text(target.get("name")) if isinstance(target, dict) else None
        )
        url = _safe_url(target) if target is not None else _safe_url(item.get("url"))
        if name is None:
            continue
        crumbs.append(f'<li><a href="{url}">{name}</a></li>' if url else f"<li>{name}</li>")
    if not crumbs:
        return ""
    lines = ['<nav class="structured-data breadcrumb-data">', "<ol>", *crumbs, "</ol>", "</nav>"]
    return "\n".join(lines)


def render_breadcrumbs(plan: RenderPlan) -> str:
    return _join(render_breadcrumb(item) for item in plan.buckets.get(Category.BREADCRUMB))


# Reviews and ratings


def _review_item(
    review: StructuredObject, id_lookup: Mapping[str, StructuredObject]
) -> list[str]:
    meta: list[str] = []
    if has_value(review.get("author")):
        meta.append(_span("author", f"👤 {escape(_party(review.get('author'), id_lookup))}"))
    if isinstance(review.get("reviewRating"), dict):
        meta.append(_span("rating", f"⭐ {escape(format_rating(review['reviewRating']))}"))
    date = format_date(review.get("datePublished") or review.get("dateCreated"))
    if date is not None:
        meta.append(_span("date", f"📅 {escape(date)}"))
    lines = ['<div class="review-item">']
    lines.extend(_heading("h4", review.get("name") or review.get("headline")))
    lines.extend(_meta_block("review-meta", meta))
    lines.extend(_paragraph(review.get("reviewBody") or review.get("description"), "review-body"))
    lines.append("</div>")
    return lines


def render_reviews(plan: RenderPlan) -> str:
    if not plan.reviews:
        return ""
    visible, remainder = split_visible(plan.reviews, plan.limits.review_visible_limit)
    body: list[str] = []
    for review in visible:
        body.extend(_review_item(review, plan.id_lookup))
    if remainder:
        noun = "review" if len(remainder) == 1 else "reviews"
        body.append(f'<p class="more-reviews">…and {len(remainder)} more {noun}</p>')
    return _section("review-data", f"⭐ Reviews ({len(plan.reviews)})", body)


def render_rating(rating: StructuredObject) -> str:
    spans = [_span("rating", f"⭐ {escape(format_rating(rating))}")]
    for key, label in (("ratingCount", "ratings"), ("reviewCount", "reviews")):
        count = _text(rating.get(key))
        if count is not None:
            spans.append(_span(key, f"{count} {label}"))
    return _section("rating-data", "⭐ Rating", _meta_block("rating-meta", spans))


def render_ratings(plan: RenderPlan) -> str:
    return _join(render_rating(item) for item in plan.buckets.get(Category.RATING))


# Videos and comments


def _video_card(video: StructuredObject) -> list[str]:
    lines = ['<div class="video-card">']
    thumbnail = _safe_url(video.get("thumbnailUrl"))
    if thumbnail is not None:
        alt = _text(video.get("name")) or "Video thumbnail"
        lines.append(f'<img src="{thumbnail}" alt="{alt}" loading="lazy">')
    lines.extend(_heading("h4", video.get("name")))
    lines.extend(_paragraph(video.get("description")))
    meta: list[str] = []
    if has_value(video.get("duration")):
        meta.append(_span("duration", f"⏱️ {escape(format_duration(video.get('duration')))}"))
    upload = format_date(video.get("uploadDate"))
    if upload is not None:
        meta.append(_span("upload-date", f"📅 {escape(upload)}"))
    lines.extend(_meta_block("video-meta", meta))
    link = _safe_url(video.get("embedUrl")) or _safe_url(video.get("contentUrl"))
    if link is not None:
        lines.append(_external_link(link, "▶️ Watch video"))
    lines.append("</div>")
    return lines


def render_videos(plan: RenderPlan) -> str:
    body: list[str] = []
    for video in plan.videos:
        body.extend(_video_card(video))
    return _section("video-data", "🎬 Videos", body)


def _comment_item(
    comment: StructuredObject, id_lookup: Mapping[str, StructuredObject]
) -> list[str]:
    meta: list[str] = []
    if has_value(comment.get("author")):
        meta.append(_span("author", f"👤 {escape(_party(comment.get('author'), id_lookup))}"))
    date = format_date(comment.get("dateCreated") or comment.get("datePublished"))
    if date is not None:
        meta.append(_span("date", f"📅 {escape(date)}"))
    upvotes = _text(comment.get("upvoteCount"))
    if upvotes is not None:
        meta.append(_span("upvotes", f"👍 {upvotes}"))
    lines = ['<div class="comment-item">']
    lines.extend(_meta_block("comment-meta", meta))
    lines.extend(_paragraph(comment.get("text") or comment.get("description"), "comment-text"))
    lines.append("</div>")
    return lines


def render_comments(plan: RenderPlan) -> str:
    if not plan.comments:
        return ""
    visible, hidden = split_visible(plan.comments, plan.limits.comment_visible_limit)
    body: list[str] = []
    for comment in visible:
        body.extend(_comment_item(comment, plan.id_lookup))
    if hidden:
        noun = "comment" if len(hidden) == 1 else "comments"
        body.append('<details class="hidden-comments">')
        body.append(f'<summary class="show-more-comments">Show {len(hidden)} more {noun}</summary>')
        for comment in hidden:
            body.extend(_comment_item(comment, plan.id_lookup))
        body.append("</details>")
    return _section("comment-data", f"💬 Comments ({len(plan.comments)})", body)


# Steps, images, Q&A, nutrition


def render_how_to_steps(plan: RenderPlan) -> str:
    steps = [
        _text(step.get("text")) or _text(step.get("name"))
        for step in plan.buckets.get(Category.HOW_TO_STEP)
    ]
    items = [f"<li>{step}</li>" for step in steps if step is not None]
    if not items:
        return ""
    return _section("howto-data", "📝 Steps", ["<ol>", *items, "</ol>"])


def render_images(plan: RenderPlan) -> str:
    figures: list[str] = []
    for image in plan.images:
        url = _safe_url(image.get("url")) or _safe_url(image.get("contentUrl"))
        if url is None:
            continue
        caption = _text(image.get("caption")) or _text(image.get("name"))
        figures.append("<figure>")
        figures.append(f'<img src="{url}" alt="{caption or "Image"}" loading="lazy">')
        if caption is not None:
            figures.append(f"<figcaption>{caption}</figcaption>")
        figures.append("</figure>")
    if not figures:
        return ""
    gallery = ['<div class="image-gallery">', *figures, "</div>"]
    return _section("image-data", "🖼️ Images", gallery)


def _answer_item(
    answer: StructuredObject, id_lookup: Mapping[str, StructuredObject]
) -> list[str]:
    meta: list[str] = []
    if has_value(answer.get("author")):
        meta.append(_span("author", f"👤 {escape(_party(answer.get('author'), id_lookup))}"))
    upvotes = _text(answer.get("upvoteCount"))
    if upvotes is not None:
        meta.append(_span("upvotes", f"👍 {upvotes}"))
    lines = ['<div class="answer-item">']
    lines.extend(_paragraph(answer.get("text") or answer.get("name"), "answer-text"))
    lines.extend(_meta_block("answer-meta", meta))
    lines.append("</div>")
    return lines


def _question_thread(
    thread: QuestionThread, id_lookup: Mapping[str, StructuredObject]
) -> list[str]:
    question = thread.question
    lines = ['<div class="question-item">']
    lines.extend(_heading("h4", question.get("name") or question.get("text")))
    if has_value(question.get("name")):
        lines.extend(_paragraph(question.get("text"), "question-text"))
    for answer in thread.answers:
        lines.extend(_answer_item(answer, id_lookup))
    lines.append("</div>")
    return lines


def render_questions_and_answers(plan: RenderPlan) -> str:
    body: list[str] = []
    for thread in plan.question_threads:
        body.extend(_question_thread(thread, plan.id_lookup))
    if plan.standalone_answers:
        body.append('<div class="standalone-answers">')
        body.append("<h4>Answers</h4>")
        for answer in plan.standalone_answers:
            body.extend(_answer_item(answer, plan.id_lookup))
        body.append("</div>")
    return _section("qa-data", "❓ Questions &amp; Answers", body)


def render_nutrition(plan: RenderPlan) -> str:
    return _join(
        _section(
            "nutrition-data",
            "🥗 Nutrition",
            _meta_block("nutrition-facts", _nutrition_spans(item)),
        )
        for item in plan.buckets.get(Category.NUTRITION)
    )


# Articles, products, entities, events, everything else


def render_article(
    article: StructuredObject, id_lookup: Mapping[str, StructuredObject] | None = None
) -> str:
    id_lookup = id_lookup or {}
    meta: list[str] = []
    if has_value(article.get("author")):
        meta.append(_span("author", f"✍️ {escape(_party(article.get('author'), id_lookup))}"))
    published = format_date(article.get("datePublished"))
    if published is not None:
        meta.append(_span("published", f"📅 {escape(published)}"))
    if has_value(article.get("publisher")):
        publisher = format_publisher(resolve_party(article.get("publisher"), id_lookup))
        meta.append(_span("publisher", f"🏢 {escape(publisher)}"))
    body = [
        '<div class="article-details">',
        *_heading("h4", article.get("headline") or article.get("name")),
        *_paragraph(article.get("description")),
        *_meta_block("article-meta", meta),
        "</div>",
    ]
    return _section("article-data", "📄 Article Information", body)


def render_articles(plan: RenderPlan) -> str:
    articles = plan.buckets.get(Category.ARTICLE)
    return _join(render_article(item, plan.id_lookup) for item in articles)


def render_product(
    product: StructuredObject, id_lookup: Mapping[str, StructuredObject] | None = None
) -> str:
    id_lookup = id_lookup or {}
    meta: list[str] = []
    if has_value(product.get("brand")):
        brand = format_brand(resolve_party(product.get("brand"), id_lookup))
        meta.append(_span("brand", f"🏷️ {escape(brand)}"))
    if has_value(product.get("offers")):
        meta.append(_span("price", f"💰 {escape(format_price(product.get('offers')))}"))
    if has_value(product.get("aggregateRating")):
        meta.append(_span("rating", f"⭐ {escape(format_rating(product.get('aggregateRating')))}"))
    body = [
        '<div class="product-details">',
        *_heading("h4", product.get("name")),
        *_paragraph(product.get("description")),
        *_meta_block("product-meta", meta),
        "</div>",
    ]
    return _section("product-data", "🛍️ Product Information", body)


def render_products(plan: RenderPlan) -> str:
    products = plan.buckets.get(Category.PRODUCT)
    return _join(render_product(item, plan.id_lookup) for item in products)


def render_entity(entity: StructuredObject) -> str:
    labels = type_labels(entity)
    type_label = labels[0] if labels else "Entity"
    icon = "👤" if "Person" in labels else "🏢"
    url = _safe_url(entity.get("url"))
    body = [
        '<div class="entity-details">',
        *_heading("h4", entity.get("name")),
        *_paragraph(entity.get("description")),
        *([_external_link(url, "🔗 Website")] if url else []),
        "</div>",
    ]
    return _section("entity-data", f"{icon} {escape(type_label)} Information", body)


def render_event(event: StructuredObject) -> str:
    meta: list[str] = []
    start = format_date(event.get("startDate"), with_time=True)
    if start is not None:
        meta.append(_span("start-date", f"🕐 Start: {escape(start)}"))
    end = format_date(event.get("endDate"), with_time=True)
    if end is not None:
        meta.append(_span("end-date", f"🕕 End: {escape(end)}"))
    if has_value(event.get("location")):
        meta.append(_span("location", f"📍 {escape(format_location(event.get('location')))}"))
    body = [
        '<div class="event-details">',
        *_heading("h4", event.get("name")),
        *_paragraph(event.get("description")),
        *_meta_block("event-meta", meta),
        "</div>",
    ]
    return _section("event-data", "📅 Event Information", body)


def render_generic(obj: StructuredObject) -> str:
    type_label = ", ".join(type_labels(obj)) or "Data"
    raw_json = json.dumps(obj, indent=2, ensure_ascii=False, default=str)
    body = [
        '<div class="generic-details">',
        *_heading("h4", obj.get("name")),
        *_paragraph(obj.get("description")),
        "<details>",
        "<summary>View Raw Data</summary>",
        f"<pre><code>{escape(raw_json)}</code></pre>",
        "</details>",
        "</div>",
    ]
    return _section("generic-data", f"📊 {escape(type_label)} Information", body)


def _per_object(
    category: Category,
    renderer: Callable[[StructuredObject], str],
) -> Callable[[RenderPlan], str]:
    def render(plan: RenderPlan) -> str:
        return _join(renderer(obj) for obj in plan.buckets.get(category))

    return render


def _join(fragments: Iterable[str]) -> str:
    return "\n".join(fragment for fragment in fragments if fragment)


SECTION_RENDERERS: tuple[tuple[str, Callable[[RenderPlan], str]], ...] = (
    ("recipes", render_recipes),
    ("breadcrumbs", render_breadcrumbs),
    ("reviews", render_reviews),
    ("ratings", render_ratings),
    ("videos", render_videos),
    ("comments", render_comments),
    ("how_to_steps", render_how_to_steps),
    ("images", render_images),
    ("questions_and_answers", render_questions_and_answers),
    ("nutrition", render_nutrition),
    ("articles", render_articles),
    ("products", render_products),
    ("entities", _per_object(Category.ENTITY, render_entity)),
    ("events", _per_object(Category.EVENT, render_event)),
    ("other", _per_object(Category.OTHER, render_generic)),
)


def render_plan(plan: RenderPlan) -> str:
    return _join(renderer(plan) for _, renderer in SECTION_RENDERERS)
