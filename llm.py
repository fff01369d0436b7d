"""Gemini interaction, structured-response parsing, and Chinese post-processing."""
import os
import json
import time
from typing import Optional, List, Type, TypeVar

from log import get_logger

logger = get_logger("taihua.llm")

import httpx
from opencc import OpenCC
from pydantic import BaseModel, ValidationError
from pypinyin import pinyin, Style as PinyinStyle

from models import GroundingSource

# --- Config ---
GEMINI_URL = os.environ.get("TAIHUA_GEMINI_URL", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_MODEL = os.environ.get("TAIHUA_MODEL", "gemini-2.5-flash")
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY", "")
GEMINI_TIMEOUT = 60

_s2tw = OpenCC('s2tw')  # Simplified → Traditional (Taiwan characters), character by character

M = TypeVar("M", bound=BaseModel)


class LLMError(Exception):
    """The generation service failed or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(LLMError):
    """The service answered, but not with data of the declared shape."""


class Busy(Exception):
    """A request is already in flight for this screen."""


class BusyFlag:
    """One-action-at-a-time guard. Raises Busy on re-entry, clears on exit."""

    def __init__(self):
        self.active = False

    def __enter__(self):
        if self.active:
            raise Busy("処理中です。")
        self.active = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self.active = False
        return False


class GenerationResult:
    def __init__(self, text: str, sources: Optional[List[GroundingSource]] = None):
        self.text = text
        self.sources = sources or []


def user_content(text: str) -> dict:
    return {"role": "user", "parts": [{"text": text}]}


def model_content(text: str) -> dict:
    return {"role": "model", "parts": [{"text": text}]}


def grounding_sources(metadata: Optional[dict]) -> List[GroundingSource]:
    """Pull `{title, url}` pairs out of Gemini grounding metadata.

    Chunks without a web uri are skipped; a missing title falls back to the uri.
    """
    sources = []
    for chunk in (metadata or {}).get("groundingChunks") or []:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        uri = web.get("uri") if isinstance(web, dict) else None
        if not isinstance(uri, str) or not uri:
            continue
        title = web.get("title")
        sources.append(GroundingSource(title=title if isinstance(title, str) and title else uri, url=uri))
    return sources


def read_candidate(data) -> GenerationResult:
    """First candidate's text and grounding sources; any other body shape is MalformedResponse."""
    if not isinstance(data, dict):
        raise MalformedResponse("Response body is not a JSON object")
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list) or not candidates:
        feedback = data.get("promptFeedback")
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        raise MalformedResponse(f"No candidates in response (blockReason={reason})")
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise MalformedResponse("Candidate is not a JSON object")
    content = candidate.get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise MalformedResponse("Candidate has no content parts")
    texts = []
    for part in parts:
        if not isinstance(part, dict):
            raise MalformedResponse("Content part is not a JSON object")
        if "text" not in part:
            continue
        if not isinstance(part["text"], str):
            raise MalformedResponse("Content part text is not a string")
        texts.append(part["text"])
    metadata = candidate.get("groundingMetadata")
    return GenerationResult("".join(texts), grounding_sources(metadata if isinstance(metadata, dict) else None))


class GeminiClient:
    """Thin async client for the Gemini `generateContent` REST endpoint.

    Constructed once at startup and handed to whatever needs it. Every call
    is a single request: no retries, no streaming.
    """

    def __init__(self, api_key: str, model: str = GEMINI_MODEL, base_url: str = GEMINI_URL,
                 timeout: float = GEMINI_TIMEOUT, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, contents: list, system_instruction: Optional[str] = None,
                       response_schema: Optional[dict] = None, search: bool = False,
                       feature: str = "generate") -> GenerationResult:
        """Send one generateContent request and return the first candidate."""
        if not self.api_key:
            raise LLMError("GEMINI_API_KEY is not configured")

        body: dict = {"contents": contents}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if response_schema is not None:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            }
        if search:
            body["tools"] = [{"google_search": {}}]

        started = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    f"{self.base_url}/models/{self.model}:generateContent",
                    headers={"x-goog-api-key": self.api_key},
                    json=body,
                )
        except httpx.HTTPError as e:
            logger.warning("Gemini unreachable", extra={"component": "gemini", "feature": feature, "detail": str(e)})
            raise LLMError(f"Gemini request failed: {e}") from e

        duration_ms = round((time.time() - started) * 1000)
        if resp.status_code != 200:
            logger.warning("Gemini returned an error", extra={
                "component": "gemini", "feature": feature, "status_code": resp.status_code,
                "duration_ms": duration_ms, "detail": resp.text[:300],
            })
            raise LLMError(f"Gemini API error {resp.status_code}", status_code=resp.status_code)

        logger.info("Gemini call done", extra={
            "component": "gemini", "feature": feature, "model": self.model, "duration_ms": duration_ms,
        })
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponse("Gemini returned a non-JSON body") from e
        return read_candidate(data)


def parse_structured(text: str, model_cls: Type[M]) -> M:
    """Parse model output as `model_cls`, failing closed.

    No extraction from surrounding prose and no repair: the whole text must be
    one JSON object that validates against the schema.
    """
    if not text or not text.strip():
        raise MalformedResponse("Empty response")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Response is not valid JSON: {text[:200]}") from e
    if not isinstance(data, dict):
        raise MalformedResponse("Response is not a JSON object")
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise MalformedResponse(
            f"Response does not match {model_cls.__name__} ({e.error_count()} errors)"
        ) from e


async def generate_structured(client, prompt: str, model_cls: Type[M], response_schema: dict,
                              feature: str) -> M:
    result = await client.generate([user_content(prompt)], response_schema=response_schema, feature=feature)
    try:
        return parse_structured(result.text, model_cls)
    except MalformedResponse:
        logger.warning("Malformed structured response", extra={
            "component": "contract", "feature": feature, "detail": result.text[:300],
        })
        raise


# --- Chinese post-processing ---

def ensure_traditional_chinese(text: str) -> str:
    """Convert simplified characters to Taiwan traditional ones.

    Character-level only: words are never swapped for regional synonyms, so
    the result still reads the same and keeps its pronunciation.
    """
    return _s2tw.convert(text) if text else text


def deterministic_pinyin(text: str) -> str:
    return " ".join(p[0] for p in pinyin(text, style=PinyinStyle.TONE))


def deterministic_zhuyin(text: str) -> str:
    return " ".join(p[0] for p in pinyin(text, style=PinyinStyle.BOPOMOFO))
