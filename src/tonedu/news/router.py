"""TON news endpoint."""

from fastapi import APIRouter, Query

from tonedu.news.schemas import NewsItem, NewsSource
from tonedu.news.service import list_news

router = APIRouter(prefix="/api/v1", tags=["News"])


@router.get("/ton-news")
async def get_ton_news(
    source: NewsSource | None = None,
    limit: int | None = Query(default=None, ge=1, le=50),
) -> list[NewsItem]:
    return list_news(source=source, limit=limit)
