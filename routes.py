"""API router for Taihua: health plus one sub-router per tab."""
from fastapi import APIRouter, Depends

from models import TABS
from deps import get_client, get_speech

from conversation_routes import router as conversation_router
from compare_routes import router as compare_router
from dictionary_routes import router as dictionary_router
from vocab_routes import router as vocab_router
from news_routes import router as news_router
from speech_routes import router as speech_router

router = APIRouter()
router.include_router(conversation_router)
router.include_router(compare_router)
router.include_router(dictionary_router)
router.include_router(vocab_router)
router.include_router(news_router)
router.include_router(speech_router)


@router.get("/api/health", tags=["Meta"])
async def health(client=Depends(get_client), speech=Depends(get_speech)):
    return {
        "status": "ok",
        "model": client.model,
        "api_key_configured": client.configured,
        "speech": speech.capabilities(),
    }


@router.get("/api/tabs", tags=["Meta"])
async def list_tabs():
    return TABS
