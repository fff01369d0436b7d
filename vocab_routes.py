"""Vocabulary flashcard endpoints: generation under a daily limit, saved words."""
from fastapi import APIRouter, Depends, HTTPException

from log import get_logger

logger = get_logger("taihua.vocab_routes")

from models import CATEGORIES, DIFFICULTIES, GenerateRequest, VocabWord
from deps import get_vocab
from llm import LLMError, Busy
from quota import QuotaExceeded

router = APIRouter(prefix="/api/vocab", tags=["Vocabulary"])


@router.get("/categories", summary="Topic categories and difficulty levels")
async def list_categories():
    return {"categories": CATEGORIES, "difficulties": DIFFICULTIES}


@router.get("/quota", summary="Generations used and left today")
async def quota_status(vocab=Depends(get_vocab)):
    return vocab.status()


@router.post("/generate", summary="Generate a new batch of words")
async def generate_words(req: GenerateRequest, vocab=Depends(get_vocab)):
    try:
        await vocab.generate(req.category, req.difficulty)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except QuotaExceeded as e:
        raise HTTPException(429, str(e))
    except Busy as e:
        raise HTTPException(409, str(e))
    except LLMError:
        logger.exception("Vocabulary generation failed", extra={
            "endpoint": "/api/vocab/generate", "category": req.category, "difficulty": req.difficulty,
        })
        raise HTTPException(502, "生成に失敗しました。")
    return {"words": vocab.batch_view(), "quota": vocab.status()}


@router.get("/batch", summary="The current batch, each word marked saved or not")
async def current_batch(vocab=Depends(get_vocab)):
    return {"words": vocab.batch_view()}


@router.get("/saved", summary="Saved words in the order they were saved")
async def saved_words(vocab=Depends(get_vocab)):
    return {"words": vocab.saved, "count": len(vocab.saved)}


@router.post("/saved/toggle", summary="Save a word, or unsave it if already saved")
async def toggle_saved(word: VocabWord, vocab=Depends(get_vocab)):
    saved = vocab.toggle_save(word)
    return {"ok": True, "saved": saved, "count": len(vocab.saved)}


@router.delete("/saved/{word_id}", summary="Remove a saved word")
async def remove_saved(word_id: str, vocab=Depends(get_vocab)):
    removed = vocab.remove(word_id)
    return {"ok": True, "removed": removed, "count": len(vocab.saved)}
