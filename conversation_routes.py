"""Conversation practice endpoints."""
from fastapi import APIRouter, Depends, HTTPException

from log import get_logger

logger = get_logger("taihua.conversation_routes")

from models import TopicRequest, MessageRequest, AnalyzeRequest
from deps import get_conversations, check_input
from llm import LLMError, Busy

router = APIRouter(prefix="/api/conversation", tags=["Conversation"])


def _session_or_404(conversations, session_id: str):
    try:
        return conversations.get(session_id)
    except KeyError:
        raise HTTPException(404, "Session not found")


@router.post("", summary="Start a practice session on a topic")
async def start_conversation(req: TopicRequest, conversations=Depends(get_conversations)):
    topic = check_input(req.topic, "Topic")
    try:
        session = await conversations.start(topic)
    except LLMError:
        logger.exception("Conversation start failed", extra={"endpoint": "/api/conversation"})
        raise HTTPException(502, "エラーが発生しました。")
    return session.snapshot()


@router.get("/{session_id}", summary="Current session state and history")
async def get_conversation(session_id: str, conversations=Depends(get_conversations)):
    return _session_or_404(conversations, session_id).snapshot()


@router.post("/{session_id}/messages", summary="Send a message and get the tutor's reply")
async def send_message(session_id: str, req: MessageRequest, conversations=Depends(get_conversations)):
    session = _session_or_404(conversations, session_id)
    text = check_input(req.text, "Message")
    try:
        reply = await session.send(text)
    except Busy as e:
        raise HTTPException(409, str(e))
    except LLMError:
        logger.exception("Conversation reply failed", extra={"session_id": session_id})
        raise HTTPException(502, "エラーが発生しました。")
    return {"message": reply, "session": session.snapshot()}


@router.post("/{session_id}/analyze", summary="Check a sentence without adding it to the conversation")
async def analyze_sentence(session_id: str, req: AnalyzeRequest, conversations=Depends(get_conversations)):
    session = _session_or_404(conversations, session_id)
    sentence = check_input(req.sentence, "Sentence")
    try:
        result = await session.analyze(sentence)
    except Busy as e:
        raise HTTPException(409, str(e))
    except LLMError:
        logger.exception("Sentence analysis failed", extra={"session_id": session_id})
        raise HTTPException(502, "分析に失敗しました。")
    return {"message": result, "session": session.snapshot()}


@router.post("/{session_id}/hint", summary="Three suggested next sentences")
async def get_hint(session_id: str, conversations=Depends(get_conversations)):
    session = _session_or_404(conversations, session_id)
    try:
        hints = await session.hint()
    except Busy as e:
        raise HTTPException(409, str(e))
    except LLMError:
        logger.exception("Hint request failed", extra={"session_id": session_id})
        raise HTTPException(502, "ヒントを取得できませんでした。")
    return {"hints": hints}


@router.delete("/{session_id}", summary="End the session and discard its history")
async def end_conversation(session_id: str, conversations=Depends(get_conversations)):
    if not conversations.end(session_id):
        raise HTTPException(404, "Session not found")
    return {"ok": True}
