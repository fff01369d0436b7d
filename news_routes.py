"""Weekly news digest endpoint (search-grounded)."""
from fastapi import APIRouter, Depends, HTTPException

from log import get_logger

logger = get_logger("taihua.news_routes")

from deps import get_client
from llm import LLMError
from tutor import weekly_news

router = APIRouter()


@router.get("/api/news", tags=["News"], summary="This week's Taiwan news, summarised for learners")
async def get_news(client=Depends(get_client)):
    try:
        digest = await weekly_news(client)
    except LLMError:
        logger.exception("News digest failed", extra={"endpoint": "/api/news"})
        raise HTTPException(502, "ニュースの取得に失敗しました。")
    logger.info("News digest loaded", extra={"endpoint": "/api/news", "count": len(digest.sources)})
    return digest
