"""Style prompts and model provider endpoints.

Pure lookup tables plus the helpers that turn them into an HTTP request and
pull the rephrased text back out of a provider response.  Unknown styles or
providers are always rejected, never mapped to a default.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from errors import INVALID_PROVIDER, INVALID_STYLE, RephraserError
from models import Provider, Style

SHAPE_OPENAI_CHAT = "openai-chat"
SHAPE_ANTHROPIC_MESSAGES = "anthropic-messages"
SHAPE_GOOGLE_GENERATE = "google-generate"
SHAPE_PROXY = "proxy"

DEFAULT_PROXY_URL = "http://localhost:3000"
ANTHROPIC_VERSION = "2023-06-01"
TEMPERATURE = 0.7

SYSTEM_INSTRUCTION = (
    "You are a professional writing assistant that helps rephrase text in different "
    "styles. Always return only the rephrased text without any additional explanation "
    "or preamble."
)

_NO_PREAMBLE = (
    "Do not add any preamble or explanation, just return the rephrased text:\n\n{text}"
)

STYLE_PROMPTS = {
    Style.PROFESSIONAL: (
        "Rephrase the following text in a professional, formal tone suitable for "
        "business communication. Maintain the core message but improve clarity and "
        "professionalism. " + _NO_PREAMBLE
    ),
    Style.CASUAL: (
        "Rephrase the following text in a casual, friendly tone suitable for informal "
        "communication. Make it conversational and approachable. " + _NO_PREAMBLE
    ),
    Style.SARCASM: (
        "Rephrase the following text with subtle sarcasm while maintaining the "
        "surface-level message. Keep it witty but not offensive. " + _NO_PREAMBLE
    ),
}

# Names used by older config files.
_PROVIDER_ALIASES = {
    "claude": Provider.ANTHROPIC,
    "gemini": Provider.GOOGLE,
}


@dataclass(frozen=True)
class ProviderEndpoint:
    url: str
    request_shape: str
    model: str = ""


PROVIDER_ENDPOINTS = {
    Provider.PROXY: ProviderEndpoint(
        url=DEFAULT_PROXY_URL + "/api/rephrase",
        request_shape=SHAPE_PROXY,
    ),
    Provider.OPENAI: ProviderEndpoint(
        url="https://api.openai.com/v1/chat/completions",
        request_shape=SHAPE_OPENAI_CHAT,
        model="gpt-4o-mini",
    ),
    Provider.ANTHROPIC: ProviderEndpoint(
        url="https://api.anthropic.com/v1/messages",
        request_shape=SHAPE_ANTHROPIC_MESSAGES,
        model="claude-3-5-sonnet-latest",
    ),
    Provider.GOOGLE: ProviderEndpoint(
        url="https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-pro:generateContent",
        request_shape=SHAPE_GOOGLE_GENERATE,
        model="gemini-1.5-pro",
    ),
    Provider.PERPLEXITY: ProviderEndpoint(
        url="https://api.perplexity.ai/chat/completions",
        request_shape=SHAPE_OPENAI_CHAT,
        model="llama-3.1-sonar-small-128k-online",
    ),
}


def parse_style(value: Any) -> Style:
    if isinstance(value, Style):
        return value
    try:
        return Style(str(value).strip().lower())
    except ValueError:
        raise RephraserError(INVALID_STYLE) from None


def parse_provider(value: Any) -> Provider:
    if isinstance(value, Provider):
        return value
    name = str(value).strip().lower()
    if name in _PROVIDER_ALIASES:
        return _PROVIDER_ALIASES[name]
    try:
        return Provider(name)
    except ValueError:
        raise RephraserError(INVALID_PROVIDER, f"Unknown model provider: {value!r}") from None


def prompt_for(style: Any, text: str) -> str:
    return STYLE_PROMPTS[parse_style(style)].format(text=text)


def endpoint_for(provider: Any, proxy_url: Optional[str] = None) -> ProviderEndpoint:
    """Return the endpoint for ``provider``.

    ``proxy_url`` overrides the relay base URL for the proxy provider.
    """
    resolved = parse_provider(provider)
    endpoint = PROVIDER_ENDPOINTS[resolved]
    if resolved is Provider.PROXY and proxy_url:
        endpoint = ProviderEndpoint(
            url=proxy_url.rstrip("/") + "/api/rephrase",
            request_shape=SHAPE_PROXY,
        )
    return endpoint


def build_request(
    endpoint: ProviderEndpoint,
    *,
    text: str,
    style: Style,
    max_tokens: int,
    credential: str = "",
) -> tuple[str, dict[str, str], dict[str, Any]]:
    """Build ``(url, headers, json_body)`` for one rephrase call."""
    headers = {"Content-Type": "application/json"}
    shape = endpoint.request_shape

    if shape == SHAPE_PROXY:
        return endpoint.url, headers, {"text": text, "style": style.value}

    prompt = prompt_for(style, text)
    if shape == SHAPE_OPENAI_CHAT:
        headers["Authorization"] = f"Bearer {credential}"
        body: dict[str, Any] = {
            "model": endpoint.model,
            "messages": [
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": max_tokens,
        }
    elif shape == SHAPE_ANTHROPIC_MESSAGES:
        headers["x-api-key"] = credential
        headers["anthropic-version"] = ANTHROPIC_VERSION
        body = {
            "model": endpoint.model,
            "system": SYSTEM_INSTRUCTION,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": TEMPERATURE,
            "max_tokens": max_tokens,
        }
    elif shape == SHAPE_GOOGLE_GENERATE:
        headers["x-goog-api-key"] = credential
        body = {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": max_tokens,
            },
        }
    else:
        raise ValueError(f"unsupported request shape: {shape}")
    return endpoint.url, headers, body


def extract_content(endpoint: ProviderEndpoint, payload: Any) -> Optional[str]:
    """Pull the rephrased text out of a decoded response, or ``None``."""
    if not isinstance(payload, dict):
        return None
    shape = endpoint.request_shape
    try:
        if shape == SHAPE_PROXY:
            value = payload["rephrased"]
        elif shape == SHAPE_OPENAI_CHAT:
            value = payload["choices"][0]["message"]["content"]
        elif shape == SHAPE_ANTHROPIC_MESSAGES:
            value = "".join(
                block.get("text", "")
                for block in payload["content"]
                if block.get("type", "text") == "text"
            )
        elif shape == SHAPE_GOOGLE_GENERATE:
            value = payload["candidates"][0]["content"]["parts"][0]["text"]
        else:
            return None
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    return value if isinstance(value, str) else None
