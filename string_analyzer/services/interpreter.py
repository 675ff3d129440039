"""Natural language query interpreters.

An interpreter turns free text into a JSON object whose keys come from a
closed schema (see ``string_analyzer.filters.INTERPRETER_SCHEMA``). It does
not validate values; the filter translator does that on whatever comes back.
"""
import asyncio
import json
import logging
import re
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from string_analyzer.config import (
    GEMINI_API_BASE,
    GEMINI_API_KEY,
    GEMINI_MODEL,
    INTERPRETER_BASE_DELAY,
    INTERPRETER_MAX_RETRIES,
    INTERPRETER_TIMEOUT,
)

logger = logging.getLogger(__name__)


class InterpreterError(Exception):
    """The interpreter could not produce a filter object."""


class QueryInterpreter:
    async def interpret(self, text: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


# ------------------------------------------------------------------------------
# RULE-BASED (offline)
# ------------------------------------------------------------------------------

NUMBER_WORDS = {
    "one": 1, "single": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}


def parse_natural_language_query(query: str) -> Dict[str, Any]:
    """
    Parse natural language query into filter parameters
    Examples:
    - "all single word palindromic strings" -> {word_count: 1, is_palindrome: true}
    - "strings longer than 10 characters" -> {min_length: 11}
    - "strings containing the letter z" -> {contains_character: "z"}
    """
    query = query.lower()
    filters: Dict[str, Any] = {}

    # Palindrome, possibly negated
    if re.search(r"\b(?:non-?|not )palindrom", query):
        filters["is_palindrome"] = False
    elif "palindrom" in query:
        filters["is_palindrome"] = True

    # Word count: "single word", "two words", "3 words"
    word_match = re.search(r"(?<!than )\b(\d+|" + "|".join(NUMBER_WORDS) + r")[\s-]words?\b", query)
    if word_match:
        amount = word_match.group(1)
        filters["word_count"] = int(amount) if amount.isdigit() else NUMBER_WORDS[amount]

    # Lengths
    length_match = re.search(r"longer than (\d+)", query)
    if length_match:
        filters["min_length"] = int(length_match.group(1)) + 1

    length_match = re.search(r"at least (\d+)", query)
    if length_match:
        filters["min_length"] = int(length_match.group(1))

    length_match = re.search(r"shorter than (\d+)", query)
    if length_match:
        filters["max_length"] = int(length_match.group(1)) - 1

    length_match = re.search(r"(?:up to|at most) (\d+)", query)
    if length_match:
        filters["max_length"] = int(length_match.group(1))

    # "containing the letter x", "contains the character x"
    letter_match = re.search(r"contain(?:s|ing)?(?: the)? (?:letter|character) (\S)", query)
    if letter_match:
        filters["contains_character"] = letter_match.group(1)

    if "first vowel" in query:
        filters["contains_character"] = "a"

    return filters


class RuleBasedInterpreter(QueryInterpreter):
    async def interpret(self, text: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        allowed = schema.get("properties", {})
        return {key: value for key, value in parse_natural_language_query(text).items() if key in allowed}


# ------------------------------------------------------------------------------
# GEMINI (LLM over REST)
# ------------------------------------------------------------------------------

SYSTEM_INSTRUCTION = (
    "You are a filter interpretation engine. Convert the user's request into a JSON object "
    "that maps directly to the string filter parameters.\n"
    "1. Only include parameters that are explicitly requested or clearly implied.\n"
    "2. Numbers must be JSON integers and flags JSON booleans, never strings.\n"
    "3. Interpret 'first vowel' as the character 'a'.\n"
    "4. 'longer than X' means min_length=X+1, 'shorter than X' means max_length=X-1, "
    "'at least X' means min_length=X, 'up to X' means max_length=X.\n"
    "5. Always return a JSON object matching the provided schema."
)


class GeminiInterpreter(QueryInterpreter):
    """Calls the Gemini generateContent endpoint with bounded exponential backoff."""

    def __init__(
        self,
        api_key: str,
        model: str = GEMINI_MODEL,
        api_base: str = GEMINI_API_BASE,
        max_retries: int = INTERPRETER_MAX_RETRIES,
        base_delay: float = INTERPRETER_BASE_DELAY,
        timeout: float = INTERPRETER_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = f"{api_base.rstrip('/')}/models/{model}:generateContent"
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self.timeout = timeout
        self.transport = transport

    def build_payload(self, text: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": f'Analyze this filter query: "{text}"'}]}],
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }

    async def interpret(self, text: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._post_with_retries(self.build_payload(text, schema))
        return self._extract_filters(result)

    async def _post_with_retries(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        delay = self.base_delay
        last_error = "no attempt made"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    response = await client.post(self.url, params={"key": self.api_key}, json=payload)
                    response.raise_for_status()
                    return response.json()
                except httpx.TimeoutException:
                    last_error = "Request timed out"
                except httpx.HTTPStatusError as e:
                    last_error = f"HTTP {e.response.status_code}"
                except httpx.HTTPError as e:
                    last_error = str(e) or e.__class__.__name__
                except ValueError:
                    last_error = "Response body was not JSON"

                if attempt < self.max_retries:
                    logger.warning(
                        f"Interpreter attempt {attempt}/{self.max_retries} failed ({last_error}); "
                        f"retrying in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)
                    delay *= 2

        logger.error(f"Interpreter failed after {self.max_retries} attempts: {last_error}")
        raise InterpreterError(f"Interpreter failed after {self.max_retries} attempts: {last_error}")

    @staticmethod
    def _extract_filters(result: Dict[str, Any]) -> Dict[str, Any]:
        try:
            text = result["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise InterpreterError("Interpreter response contained no content")

        if not text or not text.strip():
            raise InterpreterError("Interpreter output was empty")

        try:
            parsed = json.loads(text)
        except ValueError:
            raise InterpreterError("Interpreter output was not valid JSON")

        if not isinstance(parsed, dict):
            raise InterpreterError("Interpreter output was not a JSON object")
        return parsed


@lru_cache(maxsize=1)
def get_interpreter() -> QueryInterpreter:
    """Dependency: Gemini when an API key is configured, rules otherwise."""
    if GEMINI_API_KEY:
        logger.info(f"Using Gemini interpreter ({GEMINI_MODEL})")
        return GeminiInterpreter(GEMINI_API_KEY)
    logger.info("GEMINI_API_KEY not set, using rule-based interpreter")
    return RuleBasedInterpreter()
