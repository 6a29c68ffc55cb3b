"""Tests for RephraseRelay."""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from errors import (
    EMPTY_RESPONSE,
    EMPTY_TEXT,
    INVALID_INPUT,
    INVALID_PROVIDER,
    INVALID_STYLE,
    MISSING_API_KEY,
    PROVIDER_BUSY,
    PROVIDER_UNAVAILABLE,
    RATE_LIMITED,
    SERVER_MISCONFIGURED,
    TEXT_TOO_LONG,
    RephraserError,
)
from models import Provider, Style
from registry import SYSTEM_INSTRUCTION
from relay import MAX_TEXT_LENGTH, RephraseRelay, compute_max_tokens

SECRET = "sk-very-secret-credential"
INFORMAL = "hey can u send me the file"


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

def _relay(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> RephraseRelay:  # noqa: ANN003
    return RephraseRelay(client=httpx.Client(transport=httpx.MockTransport(handler)), **kwargs)


def _openai_reply(content: object) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})

    return handler


def _status(code: int, body: object = None) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(code, json=body if body is not None else {"error": {"message": f"key {SECRET} rejected"}})

    return handler


def _never_called(request: httpx.Request) -> httpx.Response:
    raise AssertionError("provider must not be called")


def _code(fn: Callable[[], object]) -> str:
    with pytest.raises(RephraserError) as exc_info:
        fn()
    return exc_info.value.code


# ---------------------------------------------------------------
# Token budget
# ---------------------------------------------------------------

@pytest.mark.parametrize(
    ("length", "expected"),
    [
        (1, 150),
        (100, 150),
        (400, 150),
        (1000, 375),
        (5328, 1998),
        (5332, 2000),
        (8000, 2000),
        (10_000, 2000),
    ],
)
def test_compute_max_tokens(length: int, expected: int) -> None:
    assert compute_max_tokens("x" * length) == expected


# ---------------------------------------------------------------
# Validation happens before any network call
# ---------------------------------------------------------------

def test_text_too_long_rejected_without_network() -> None:
    relay = _relay(_never_called)

    code = _code(lambda: relay.transform("x" * (MAX_TEXT_LENGTH + 1), "professional", "openai", SECRET))

    assert code == TEXT_TOO_LONG


def test_text_at_limit_is_accepted() -> None:
    relay = _relay(_openai_reply("ok"))

    assert relay.transform("x" * MAX_TEXT_LENGTH, "professional", "openai", SECRET) == "ok"


@pytest.mark.parametrize("text", ["", "   \n\t", None, 42])
def test_empty_or_non_string_text_rejected(text: object) -> None:
    relay = _relay(_never_called)

    assert _code(lambda: relay.transform(text, "casual", "openai", SECRET)) == EMPTY_TEXT


def test_invalid_style_rejected() -> None:
    relay = _relay(_never_called)

    assert _code(lambda: relay.transform("hello", "pirate", "openai", SECRET)) == INVALID_STYLE


def test_invalid_provider_rejected() -> None:
    relay = _relay(_never_called)

    assert _code(lambda: relay.transform("hello", "casual", "mystery", SECRET)) == INVALID_PROVIDER


def test_direct_provider_requires_credential() -> None:
    relay = _relay(_never_called)

    assert _code(lambda: relay.transform("hello", "casual", Provider.OPENAI, "  ")) == MISSING_API_KEY


# ---------------------------------------------------------------
# Successful calls
# ---------------------------------------------------------------

def test_openai_request_shape_and_trimmed_result() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"choices": [{"message": {"content": "  Could you please send me the file?\n"}}]},
        )

    relay = _relay(handler)
    result = relay.transform(INFORMAL, Style.PROFESSIONAL, Provider.OPENAI, SECRET)

    assert result == "Could you please send me the file?"
    request = seen[0]
    assert str(request.url) == "https://api.openai.com/v1/chat/completions"
    assert request.headers["Authorization"] == f"Bearer {SECRET}"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o-mini"
    assert body["max_tokens"] == 150
    assert body["temperature"] == 0.7
    assert body["messages"][0] == {"role": "system", "content": SYSTEM_INSTRUCTION}
    assert body["messages"][1]["role"] == "user"
    assert INFORMAL in body["messages"][1]["content"]
    assert "professional" in body["messages"][1]["content"]


def test_proxy_end_to_end_returns_rephrased_text() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"rephrased": "Could you please send me the file?"})

    relay = _relay(handler, proxy_url="http://relay.local:3000/")
    result = relay.transform(INFORMAL, "professional", "proxy")

    assert result
    assert result != INFORMAL
    assert " u " not in f" {result} "
    assert str(seen[0].url) == "http://relay.local:3000/api/rephrase"
    assert json.loads(seen[0].content) == {"text": INFORMAL, "style": "professional"}
    assert "Authorization" not in seen[0].headers


def test_anthropic_request_and_response() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"content": [{"type": "text", "text": "Hi there."}]})

    result = _relay(handler).transform("hi", "casual", "anthropic", SECRET)

    assert result == "Hi there."
    assert seen[0].headers["x-api-key"] == SECRET
    assert "anthropic-version" in seen[0].headers
    body = json.loads(seen[0].content)
    assert body["system"] == SYSTEM_INSTRUCTION
    assert body["max_tokens"] == 150


def test_google_request_and_response() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "Oh, wonderful."}]}}]},
        )

    result = _relay(handler).transform("great", "sarcasm", "gemini", SECRET)

    assert result == "Oh, wonderful."
    assert seen[0].headers["x-goog-api-key"] == SECRET
    assert SECRET not in str(seen[0].url)
    assert json.loads(seen[0].content)["generationConfig"]["maxOutputTokens"] == 150


def test_perplexity_uses_openai_shape() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Done."}}]})

    assert _relay(handler).transform("done", "casual", "perplexity", SECRET) == "Done."
    assert seen[0].url.host == "api.perplexity.ai"


# ---------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------

def test_provider_401_is_server_misconfigured_without_credential() -> None:
    relay = _relay(_status(401))

    with pytest.raises(RephraserError) as exc_info:
        relay.transform(INFORMAL, "professional", "openai", SECRET)

    assert exc_info.value.code == SERVER_MISCONFIGURED
    assert SECRET not in str(exc_info.value)
    assert SECRET not in exc_info.value.message


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (429, PROVIDER_BUSY),
        (500, PROVIDER_UNAVAILABLE),
        (502, PROVIDER_UNAVAILABLE),
        (503, PROVIDER_UNAVAILABLE),
        (400, EMPTY_RESPONSE),
        (404, EMPTY_RESPONSE),
    ],
)
def test_provider_status_mapping(status: int, expected: str) -> None:
    relay = _relay(_status(status))

    assert _code(lambda: relay.transform("hello", "casual", "openai", SECRET)) == expected


def test_timeout_is_provider_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    relay = _relay(handler)

    assert _code(lambda: relay.transform("hello", "casual", "openai", SECRET)) == PROVIDER_UNAVAILABLE


def test_connection_error_is_provider_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    relay = _relay(handler)

    assert _code(lambda: relay.transform("hello", "casual", "proxy")) == PROVIDER_UNAVAILABLE


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": None}}]},
        {"choices": [{"message": {"content": "   "}}]},
        ["not", "a", "dict"],
    ],
)
def test_missing_or_blank_content_is_empty_response(payload: object) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    relay = _relay(handler)

    assert _code(lambda: relay.transform("hello", "casual", "openai", SECRET)) == EMPTY_RESPONSE


def test_non_json_body_is_empty_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    relay = _relay(handler)

    assert _code(lambda: relay.transform("hello", "casual", "openai", SECRET)) == EMPTY_RESPONSE


def test_proxy_400_carries_relay_message() -> None:
    relay = _relay(_status(400, {"error": "Text too long. Maximum 10,000 characters."}))

    with pytest.raises(RephraserError) as exc_info:
        relay.transform("hello", "casual", "proxy")

    assert exc_info.value.code == INVALID_INPUT
    assert exc_info.value.message == "Text too long. Maximum 10,000 characters."


def test_proxy_429_is_rate_limited() -> None:
    relay = _relay(_status(429, {"error": "Rate limit exceeded."}))

    assert _code(lambda: relay.transform("hello", "casual", "proxy")) == RATE_LIMITED


@pytest.mark.parametrize("status", [200, 400, 401, 404, 429, 500, 503])
@pytest.mark.parametrize("style", list(Style))
def test_transform_only_returns_text_or_raises_rephraser_error(status: int, style: Style) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"choices": [{"message": {"content": "fine"}}]})

    relay = _relay(handler)
    try:
        result = relay.transform("some text", style, "openai", SECRET)
    except RephraserError:
        return
    assert result == "fine"


@pytest.mark.parametrize(
    ("status", "body", "expected", "message"),
    [
        (500, {"error": "Server configuration error."}, SERVER_MISCONFIGURED, "Server configuration error."),
        (500, {"error": "Internal server error"}, SERVER_MISCONFIGURED, "Internal server error"),
        (500, {"error": "Failed to rephrase text. Please try again."}, EMPTY_RESPONSE, None),
        (503, {"error": "AI service temporarily unavailable."}, PROVIDER_UNAVAILABLE, None),
        (502, {}, PROVIDER_UNAVAILABLE, None),
        (429, {"error": "Service is busy. Please try again in a moment."}, PROVIDER_BUSY, None),
    ],
)
def test_proxy_server_errors_keep_relay_meaning(status: int, body: dict, expected: str, message: object) -> None:
    relay = _relay(_status(status, body))

    with pytest.raises(RephraserError) as exc_info:
        relay.transform("hello", "casual", "proxy")

    assert exc_info.value.code == expected
    if message is not None:
        assert exc_info.value.message == message
