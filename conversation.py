"""Conversation practice sessions.

A session exists only between `start` (NOT_STARTED -> ACTIVE) and `end`
(ACTIVE -> NOT_STARTED). Nothing here is persisted.
"""
import secrets
import time
from typing import Dict, List, Optional

from log import get_logger

logger = get_logger("taihua.conversation")

from models import ChatMessage, Hint
from llm import BusyFlag, MalformedResponse, LLMError, user_content, model_content
from speech import SpeechEngine, SPEECH_LANG, speakable_text
from tutor import (
    GREETING_REQUEST, conversation_instruction,
    analyze_sentence_structure, next_sentence_hints,
)

NOT_STARTED = "NOT_STARTED"
ACTIVE = "ACTIVE"


def new_message_id() -> str:
    return secrets.token_hex(6)


class ChatSession:
    def __init__(self, client, topic: str, speech: Optional[SpeechEngine] = None):
        self.id = secrets.token_hex(8)
        self.client = client
        self.topic = topic
        self.system_instruction = conversation_instruction(topic)
        self.speech = speech or SpeechEngine()
        self.state = NOT_STARTED
        self.created_at = time.time()
        # Turns the model sees; analysis and hints never land here
        self.contents: List[dict] = []
        # What the learner sees
        self.messages: List[ChatMessage] = []
        self.hints: List[Hint] = []
        self.busy = BusyFlag()

    async def _send_turn(self, text: str) -> str:
        turn = user_content(text)
        result = await self.client.generate(
            self.contents + [turn], system_instruction=self.system_instruction, feature="conversation",
        )
        reply = result.text.strip()
        if not reply:
            raise MalformedResponse("Empty chat reply")
        self.contents.extend([turn, model_content(reply)])
        return reply

    def _speak(self, text: str):
        try:
            self.speech.speak(speakable_text(text), SPEECH_LANG)
        except Exception:
            logger.exception("Speech playback failed", extra={"component": "speech", "session_id": self.id})

    async def greet(self) -> ChatMessage:
        with self.busy:
            reply = await self._send_turn(GREETING_REQUEST)
            message = ChatMessage(id="init", role="model", text=reply)
            self.messages = [message]
            self.state = ACTIVE
        self._speak(reply)
        return message

    async def send(self, text: str) -> ChatMessage:
        with self.busy:
            self.hints = []
            user_msg = ChatMessage(id=new_message_id(), role="user", text=text)
            self.messages.append(user_msg)
            try:
                reply = await self._send_turn(text)
            except LLMError:
                self.messages.remove(user_msg)
                raise
            model_msg = ChatMessage(id=new_message_id(), role="model", text=reply)
            self.messages.append(model_msg)
        self._speak(reply)
        return model_msg

    async def analyze(self, sentence: str) -> ChatMessage:
        """Score `sentence` on the side; the chat context is left untouched."""
        with self.busy:
            analysis = await analyze_sentence_structure(self.client, sentence)
            echo = ChatMessage(id=new_message_id(), role="user", text=f"「{sentence}」\n(この文をチェックしてください)")
            result = ChatMessage(id=new_message_id(), role="model", text="分析結果", isAnalysis=True, analysis=analysis)
            self.messages.extend([echo, result])
            return result

    def history_text(self) -> str:
        return "\n".join(f"{m.role}: {m.text}" for m in self.messages)

    async def hint(self) -> List[Hint]:
        with self.busy:
            self.hints = await next_sentence_hints(self.client, self.history_text(), self.topic)
            return self.hints

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "topic": self.topic,
            "state": self.state,
            "busy": self.busy.active,
            "messages": [m.model_dump() for m in self.messages],
            "hints": [h.model_dump() for h in self.hints],
        }


class ConversationRegistry:
    """Active sessions by id. A failed start leaves no session behind."""

    def __init__(self, client, speech: Optional[SpeechEngine] = None):
        self.client = client
        self.speech = speech
        self.sessions: Dict[str, ChatSession] = {}

    async def start(self, topic: str) -> ChatSession:
        session = ChatSession(self.client, topic, speech=self.speech)
        await session.greet()
        self.sessions[session.id] = session
        logger.info("Conversation started", extra={"component": "conversation", "session_id": session.id})
        return session

    def get(self, session_id: str) -> ChatSession:
        return self.sessions[session_id]

    def end(self, session_id: str) -> bool:
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        session.state = NOT_STARTED
        logger.info("Conversation ended", extra={
            "component": "conversation", "session_id": session_id, "count": len(session.messages),
        })
        return True
