"""FastAPI dependencies and input checks shared by the route modules."""
from fastapi import HTTPException, Request

from models import MAX_INPUT_LEN


def get_client(request: Request):
    return request.app.state.client


def get_vocab(request: Request):
    return request.app.state.vocab


def get_conversations(request: Request):
    return request.app.state.conversations


def get_speech(request: Request):
    return request.app.state.speech


def check_input(text: str, field: str = "Input") -> str:
    """Strip `text`, rejecting blank or over-long input with a 400."""
    if not text or not text.strip():
        raise HTTPException(400, f"{field} cannot be empty")
    if len(text) > MAX_INPUT_LEN:
        raise HTTPException(400, f"Input too long (max {MAX_INPUT_LEN} characters)")
    return text.strip()
