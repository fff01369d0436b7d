"""Japanese ⇄ Taiwanese Mandarin dictionary endpoint."""
from fastapi import APIRouter, Depends, HTTPException

from log import get_logger

logger = get_logger("taihua.dictionary_routes")

from models import QueryRequest
from deps import get_client, check_input
from llm import LLMError
from tutor import search_dictionary

router = APIRouter()


@router.post("/api/dictionary", tags=["Dictionary"], summary="Look up a word with pinyin and zhuyin")
async def dictionary_lookup(req: QueryRequest, client=Depends(get_client)):
    query = check_input(req.query, "Query")
    try:
        result = await search_dictionary(client, query)
    except LLMError:
        logger.exception("Dictionary lookup failed", extra={"endpoint": "/api/dictionary"})
        raise HTTPException(502, "検索に失敗しました。")
    return result
