"""Fixtures for the API tests: an app wired to a scripted Gemini stand-in."""
import json

import pytest
from fastapi.testclient import TestClient

from backend import create_app
from llm import GenerationResult
from store import StateStore

TODAY = "2026-10-19"


class FakeGemini:
    """Replays queued replies in order and records every call.

    A reply may be a str (raw text), a dict (sent as JSON text), a
    GenerationResult, or an exception to raise.
    """

    model = "fake-gemini"
    configured = True

    def __init__(self):
        self.replies = []
        self.calls = []

    def queue(self, *replies):
        self.replies.extend(replies)

    def prompt(self, index: int = -1) -> str:
        return self.calls[index]["contents"][-1]["parts"][0]["text"]

    async def generate(self, contents, system_instruction=None, response_schema=None,
                       search=False, feature="generate"):
        self.calls.append({
            "contents": contents,
            "system_instruction": system_instruction,
            "response_schema": response_schema,
            "search": search,
            "feature": feature,
        })
        if not self.replies:
            raise AssertionError(f"unexpected Gemini call ({feature})")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, GenerationResult):
            return reply
        if isinstance(reply, dict):
            reply = json.dumps(reply, ensure_ascii=False)
        return GenerationResult(reply)


class FakeClock:
    def __init__(self, day: str = TODAY):
        self.day = day

    def __call__(self) -> str:
        return self.day


@pytest.fixture()
def gemini():
    return FakeGemini()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(tmp_path):
    return StateStore(tmp_path / "taihua-test.db")


@pytest.fixture()
def app(gemini, store, clock):
    return create_app(client=gemini, store=store, today=clock)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def word_list():
    """Build a vocabulary-generation reply for the given Chinese words."""
    def _build(*chinese, category=None):
        words = []
        for zh in chinese:
            item = {"chinese": zh, "pinyin": "pīn yīn", "zhuyin": "ㄆㄧㄣ ㄧㄣ", "japanese": f"{zh}の意味"}
            if category:
                item["category"] = category
            words.append(item)
        return {"words": words}
    return _build
