import asyncio
import json

import httpx
import pytest

from string_analyzer.filters import INTERPRETER_SCHEMA
from string_analyzer.services.interpreter import (
    GeminiInterpreter,
    InterpreterError,
    RuleBasedInterpreter,
    parse_natural_language_query,
)


def gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_interpreter(handler, max_retries=3):
    return GeminiInterpreter(
        api_key="test-key",
        model="test-model",
        api_base="https://llm.example/v1beta",
        max_retries=max_retries,
        base_delay=0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.parametrize("query, expected", [
    ("all single word palindromic strings", {"word_count": 1, "is_palindrome": True}),
    ("strings longer than 10 characters", {"min_length": 11}),
    ("strings shorter than 5 characters", {"max_length": 4}),
    ("strings of at least 3 and up to 8 characters", {"min_length": 3, "max_length": 8}),
    ("strings containing the letter z", {"contains_character": "z"}),
    ("palindromic strings that contain the first vowel", {"is_palindrome": True, "contains_character": "a"}),
    ("non-palindromic strings with three words", {"is_palindrome": False, "word_count": 3}),
    ("strings with 4 words", {"word_count": 4}),
    ("tell me a joke", {}),
])
def test_rule_based_parsing(query, expected):
    assert parse_natural_language_query(query) == expected


def test_rule_based_interpreter_respects_schema():
    schema = {"properties": {"word_count": {"type": "INTEGER"}}}
    result = asyncio.run(RuleBasedInterpreter().interpret("single word palindromes", schema))
    assert result == {"word_count": 1}


def test_gemini_success_sends_schema_and_key():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=gemini_reply(json.dumps({"is_palindrome": True, "word_count": 1})))

    result = asyncio.run(make_interpreter(handler).interpret("single word palindromes", INTERPRETER_SCHEMA))

    assert result == {"is_palindrome": True, "word_count": 1}
    assert len(seen) == 1
    assert seen[0].url.path == "/v1beta/models/test-model:generateContent"
    assert seen[0].url.params["key"] == "test-key"
    body = json.loads(seen[0].content)
    assert body["generationConfig"]["responseSchema"] == INTERPRETER_SCHEMA
    assert "single word palindromes" in body["contents"][0]["parts"][0]["text"]


def test_gemini_retries_then_succeeds():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(503, json={"error": "overloaded"})
        return httpx.Response(200, json=gemini_reply('{"min_length": 11}'))

    result = asyncio.run(make_interpreter(handler).interpret("longer than 10", INTERPRETER_SCHEMA))
    assert result == {"min_length": 11}
    assert len(attempts) == 3


def test_gemini_gives_up_after_attempt_ceiling():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(InterpreterError):
        asyncio.run(make_interpreter(handler, max_retries=2).interpret("anything", INTERPRETER_SCHEMA))
    assert len(attempts) == 2


def test_gemini_backoff_doubles(monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr("string_analyzer.services.interpreter.asyncio.sleep", fake_sleep)

    interpreter = make_interpreter(lambda request: httpx.Response(500), max_retries=4)
    interpreter.base_delay = 0.5

    with pytest.raises(InterpreterError):
        asyncio.run(interpreter.interpret("anything", INTERPRETER_SCHEMA))
    assert delays == [0.5, 1.0, 2.0]


@pytest.mark.parametrize("reply", [
    gemini_reply(""),
    gemini_reply("not json"),
    gemini_reply("[1, 2]"),
    {"candidates": []},
])
def test_gemini_unusable_output(reply):
    interpreter = make_interpreter(lambda request: httpx.Response(200, json=reply))
    with pytest.raises(InterpreterError):
        asyncio.run(interpreter.interpret("anything", INTERPRETER_SCHEMA))
