"""Tests for the Gemini transport and the structured-response parser."""
import asyncio
import json

import httpx
import pytest

from llm import (
    GeminiClient, GenerationResult, LLMError, MalformedResponse, Busy, BusyFlag,
    parse_structured, grounding_sources, user_content,
    ensure_traditional_chinese, deterministic_zhuyin, deterministic_pinyin,
)
from models import DictionaryResult, SentenceAnalysis, DICTIONARY_SCHEMA

DICTIONARY_REPLY = {
    "word": "捷運",
    "pinyin": "jié yùn",
    "zhuyin": "ㄐㄧㄝˊ ㄩㄣˋ",
    "meaning": "地下鉄・MRT",
    "examples": [{"sentence": "我搭捷運上班。", "translation": "私はMRTで通勤します。"}],
}


def _candidate_body(text, grounding=None):
    candidate = {"content": {"role": "model", "parts": [{"text": text}]}}
    if grounding is not None:
        candidate["groundingMetadata"] = grounding
    return {"candidates": [candidate]}


def _client(handler, api_key="test-key"):
    return GeminiClient(api_key, model="gemini-2.5-flash", transport=httpx.MockTransport(handler))


# --- parse_structured ---

def test_parse_valid_dictionary_result():
    result = parse_structured(json.dumps(DICTIONARY_REPLY, ensure_ascii=False), DictionaryResult)
    assert result.word == "捷運"
    assert result.examples[0].translation == "私はMRTで通勤します。"


def test_parse_missing_required_field_fails():
    reply = {k: v for k, v in DICTIONARY_REPLY.items() if k != "meaning"}
    with pytest.raises(MalformedResponse):
        parse_structured(json.dumps(reply, ensure_ascii=False), DictionaryResult)


def test_parse_missing_nested_field_fails():
    reply = dict(DICTIONARY_REPLY, examples=[{"sentence": "我搭捷運上班。"}])
    with pytest.raises(MalformedResponse):
        parse_structured(json.dumps(reply, ensure_ascii=False), DictionaryResult)


@pytest.mark.parametrize("text", [
    "",
    "   ",
    "not json at all",
    "```json\n" + json.dumps(DICTIONARY_REPLY) + "\n```",
    "Here you go: " + json.dumps(DICTIONARY_REPLY),
    json.dumps([DICTIONARY_REPLY]),
])
def test_parse_rejects_anything_but_a_bare_object(text):
    with pytest.raises(MalformedResponse):
        parse_structured(text, DictionaryResult)


def test_parse_wrong_type_fails():
    reply = {
        "isValid": "perhaps",
        "meaning": "こんにちは",
        "pronunciation": "ㄋㄧˇ ㄏㄠˇ",
        "breakdown": [],
        "explanation": "...",
    }
    with pytest.raises(MalformedResponse):
        parse_structured(json.dumps(reply, ensure_ascii=False), SentenceAnalysis)


def test_parse_optional_correction_may_be_null():
    reply = {
        "isValid": True,
        "correction": None,
        "meaning": "こんにちは",
        "pronunciation": "ㄋㄧˇ ㄏㄠˇ",
        "breakdown": [{"word": "你好", "bopomofo": "ㄋㄧˇ ㄏㄠˇ", "meaning": "こんにちは"}],
        "explanation": "基本のあいさつ",
    }
    analysis = parse_structured(json.dumps(reply, ensure_ascii=False), SentenceAnalysis)
    assert analysis.isValid is True
    assert analysis.correction is None


def test_malformed_is_an_llm_error():
    assert issubclass(MalformedResponse, LLMError)


# --- GeminiClient ---

def test_generate_posts_schema_and_reads_text():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_candidate_body(json.dumps(DICTIONARY_REPLY, ensure_ascii=False)))

    client = _client(handler)
    result = asyncio.run(client.generate(
        [user_content("捷運")], system_instruction="辞書", response_schema=DICTIONARY_SCHEMA, feature="dictionary",
    ))

    assert seen["url"].endswith("/models/gemini-2.5-flash:generateContent")
    assert seen["key"] == "test-key"
    assert seen["body"]["contents"] == [{"role": "user", "parts": [{"text": "捷運"}]}]
    assert seen["body"]["systemInstruction"] == {"parts": [{"text": "辞書"}]}
    assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"
    assert seen["body"]["generationConfig"]["responseSchema"] == DICTIONARY_SCHEMA
    assert "tools" not in seen["body"]
    assert json.loads(result.text)["word"] == "捷運"


def test_generate_with_search_adds_tool_and_sources():
    seen = {}
    grounding = {"groundingChunks": [
        {"web": {"uri": "https://example.tw/a", "title": "台灣新聞"}},
        {"web": {"uri": "https://example.tw/b"}},
        {"retrievedContext": {"text": "no web uri"}},
    ]}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_candidate_body("### 今週のニュース", grounding))

    result = asyncio.run(_client(handler).generate([user_content("news")], search=True))

    assert seen["body"]["tools"] == [{"google_search": {}}]
    assert "generationConfig" not in seen["body"]
    assert [(s.title, s.url) for s in result.sources] == [
        ("台灣新聞", "https://example.tw/a"),
        ("https://example.tw/b", "https://example.tw/b"),
    ]


def test_generate_joins_multiple_parts():
    def handler(request):
        body = {"candidates": [{"content": {"parts": [{"text": "你好！"}, {"text": " (こんにちは！)"}]}}]}
        return httpx.Response(200, json=body)

    result = asyncio.run(_client(handler).generate([user_content("hi")]))
    assert result.text == "你好！ (こんにちは！)"


def test_non_200_raises_llm_error():
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "internal"}})

    with pytest.raises(LLMError) as exc_info:
        asyncio.run(_client(handler).generate([user_content("hi")]))
    assert exc_info.value.status_code == 500
    assert not isinstance(exc_info.value, MalformedResponse)


def test_no_candidates_is_malformed():
    def handler(request):
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

    with pytest.raises(MalformedResponse):
        asyncio.run(_client(handler).generate([user_content("hi")]))


@pytest.mark.parametrize("body", [
    [],
    "just a string",
    {"candidates": "nope"},
    {"candidates": ["not an object"]},
    {"candidates": [{"content": "text"}]},
    {"candidates": [{"content": {"parts": "text"}}]},
    {"candidates": [{"finishReason": "SAFETY"}]},
    {"candidates": [{"content": {"parts": [{"text": None}]}}]},
    {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
    {"candidates": [{"content": {"parts": ["你好"]}}]},
    {"promptFeedback": "blocked"},
])
def test_unexpected_body_shape_is_malformed(body):
    def handler(request):
        return httpx.Response(200, json=body)

    with pytest.raises(MalformedResponse):
        asyncio.run(_client(handler).generate([user_content("hi")]))


def test_parts_without_text_are_skipped():
    def handler(request):
        body = {"candidates": [{"content": {"parts": [{"functionCall": {"name": "x"}}, {"text": "你好"}]}}]}
        return httpx.Response(200, json=body)

    assert asyncio.run(_client(handler).generate([user_content("hi")])).text == "你好"


def test_odd_grounding_chunks_are_skipped():
    metadata = {"groundingChunks": [
        "not an object",
        {"web": "https://example.tw/a"},
        {"web": {"uri": 5}},
        {"web": {"uri": "https://example.tw/b", "title": None}},
    ]}
    assert [(s.title, s.url) for s in grounding_sources(metadata)] == [
        ("https://example.tw/b", "https://example.tw/b"),
    ]


def test_network_failure_raises_llm_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(LLMError):
        asyncio.run(_client(handler).generate([user_content("hi")]))


def test_missing_key_fails_without_request():
    def handler(request):
        raise AssertionError("no request should be sent")

    client = _client(handler, api_key="")
    assert client.configured is False
    with pytest.raises(LLMError):
        asyncio.run(client.generate([user_content("hi")]))


def test_grounding_sources_tolerates_missing_metadata():
    assert grounding_sources(None) == []
    assert grounding_sources({}) == []


def test_generation_result_defaults_to_no_sources():
    assert GenerationResult("text").sources == []


# --- BusyFlag ---

def test_busy_flag_refuses_reentry_and_clears_on_error():
    flag = BusyFlag()
    with pytest.raises(RuntimeError):
        with flag:
            with pytest.raises(Busy):
                with flag:
                    pass
            raise RuntimeError("call failed")
    assert flag.active is False
    with flag:
        assert flag.active is True


# --- Chinese post-processing ---

def test_simplified_is_converted_to_taiwan_traditional():
    assert ensure_traditional_chinese("学习") == "學習"
    assert ensure_traditional_chinese("") == ""


def test_conversion_is_character_level():
    # Regional synonyms (滑鼠, 軟體) would not match the model's pronunciation
    assert ensure_traditional_chinese("鼠标") == "鼠標"
    assert ensure_traditional_chinese("软件") == "軟件"
    assert ensure_traditional_chinese("捷運") == "捷運"


def test_deterministic_pronunciations():
    assert deterministic_pinyin("你好") == "nǐ hǎo"
    assert deterministic_zhuyin("你好").startswith("ㄋㄧ")
