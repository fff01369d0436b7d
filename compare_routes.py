"""Semantic compare endpoint."""
from fastapi import APIRouter, Depends, HTTPException

from log import get_logger

logger = get_logger("taihua.compare_routes")

from models import QueryRequest
from deps import get_client, check_input
from llm import LLMError
from tutor import analyze_semantic_difference

router = APIRouter()


@router.post("/api/compare", tags=["Semantic"], summary="Explain meaning and nuance differences in Japanese")
async def compare(req: QueryRequest, client=Depends(get_client)):
    query = check_input(req.query, "Query")
    try:
        result = await analyze_semantic_difference(client, query)
    except LLMError:
        logger.exception("Semantic compare failed", extra={"endpoint": "/api/compare"})
        raise HTTPException(502, "解析に失敗しました。")
    return result
