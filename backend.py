"""Taihua: Taiwanese Mandarin practice for Japanese speakers."""
import os
from typing import Callable, Optional
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from log import get_logger

logger = get_logger("taihua.backend")

from llm import GeminiClient, GEMINI_API_KEY
from store import StateStore
from quota import local_today
from speech import SpeechEngine
from vocab import VocabularyService
from conversation import ConversationRegistry
from routes import router

STATIC_DIR = Path(__file__).parent / "static"


def create_app(client=None, store: Optional[StateStore] = None,
               today: Callable[[], str] = local_today,
               speech: Optional[SpeechEngine] = None) -> FastAPI:
    """Build the app. Collaborators default to ones configured from the environment."""
    if client is None:
        client = GeminiClient(GEMINI_API_KEY)
        if not client.configured:
            logger.warning("GEMINI_API_KEY is not set; every generation request will fail",
                           extra={"component": "config"})
    store = store or StateStore()
    speech = speech or SpeechEngine()

    app = FastAPI(title="Taihua")
    app.state.client = client
    app.state.speech = speech
    app.state.vocab = VocabularyService(client, store, today=today)
    app.state.conversations = ConversationRegistry(client, speech=speech)
    app.include_router(router)

    if STATIC_DIR.is_dir():
        app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("TAIHUA_PORT", "8847")))
