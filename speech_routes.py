"""Speech-to-text passthrough to the injected speech engine."""
from fastapi import APIRouter, Depends, HTTPException, Request

from deps import get_speech
from speech import SPEECH_LANG, SpeechUnavailable

router = APIRouter()


@router.post("/api/speech/transcribe", tags=["Speech"], summary="Transcribe recorded Taiwanese Mandarin audio")
async def transcribe(request: Request, lang: str = SPEECH_LANG, speech=Depends(get_speech)):
    audio = await request.body()
    if not audio:
        raise HTTPException(400, "Audio cannot be empty")
    try:
        text = speech.transcribe(audio, lang)
    except SpeechUnavailable as e:
        raise HTTPException(501, str(e))
    return {"text": text, "lang": lang}
