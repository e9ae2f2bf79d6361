from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.config import AppSettings
from backend.app.dependencies import (
    get_article_archive,
    get_settings,
    get_structured_data_service,
)
from backend.app.models.article_contracts import (
    ArticleStructuredDataResponse,
    ArticleSummary,
    StructuredDataRenderRequest,
    StructuredDataRenderResponse,
)
from backend.app.services.article_archive import ArticleArchive, merge_articles
from backend.app.services.link_parser import load_links
from backend.app.services.structured_data_service import StructuredDataService

router = APIRouter()


@router.get(
    "/articles",
    response_model=list[ArticleSummary],
    tags=["articles"],
    operation_id="list_articles",
)
def list_articles(
    settings: Annotated[AppSettings, Depends(get_settings)],
    archive: Annotated[ArticleArchive, Depends(get_article_archive)],
) -> list[ArticleSummary]:
    records = merge_articles(load_links(settings.links_path), archive.load_scraped())
    return [
        ArticleSummary(
            id=record.id,
            url=record.canonical_url,
            title=record.title,
            tags=list(record.user_tags),
            scraping_status=record.scraping_status,
            has_structured_data=record.has_structured_data,
        )
        for record in records
    ]


@router.get(
    "/articles/{article_id}/structured-data",
    response_model=ArticleStructuredDataResponse,
    tags=["structured-data"],
    operation_id="get_article_structured_data",
)
def get_article_structured_data(
    article_id: str,
    archive: Annotated[ArticleArchive, Depends(get_article_archive)],
    service: Annotated[StructuredDataService, Depends(get_structured_data_service)],
) -> ArticleStructuredDataResponse:
    article = archive.load(article_id)
    if article is None:
        raise HTTPException(status_code=404, detail=f"Unknown article: {article_id}")

    context_tokens = bind_contextvars(article_id=article_id)
    try:
        rendering = service.render(article.json_ld_objects, article_id=article_id)
    finally:
        reset_contextvars(**context_tokens)
    return ArticleStructuredDataResponse(
        article_id=article_id,
        html=rendering.html,
        buckets=rendering.buckets,
    )


@router.post(
    "/structured-data/render",
    response_model=StructuredDataRenderResponse,
    tags=["structured-data"],
    operation_id="render_structured_data",
)
def render_structured_data(
    request: StructuredDataRenderRequest,
    service: Annotated[StructuredDataService, Depends(get_structured_data_service)],
) -> StructuredDataRenderResponse:
    rendering = service.render(request.json_ld_objects)
    return StructuredDataRenderResponse(html=rendering.html, buckets=rendering.buckets)
