"""Rephrase relay: validates a request, calls the provider, normalises errors.

Every failure leaves this module as a ``RephraserError`` with one of the codes
from ``errors``.  Provider response bodies and credentials never end up in an
error message.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

import httpx

from errors import (
    EMPTY_RESPONSE,
    EMPTY_TEXT,
    ERROR_MESSAGES,
    INVALID_INPUT,
    MISSING_API_KEY,
    PROVIDER_BUSY,
    PROVIDER_UNAVAILABLE,
    RATE_LIMITED,
    SERVER_MISCONFIGURED,
    TEXT_TOO_LONG,
    RephraserError,
)
from models import Provider, Style
from registry import (
    SHAPE_PROXY,
    ProviderEndpoint,
    build_request,
    endpoint_for,
    extract_content,
    parse_provider,
    parse_style,
)

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 10_000
MIN_MAX_TOKENS = 150
MAX_MAX_TOKENS = 2000
REQUEST_TIMEOUT_S = 30.0

# The relay answers with the user message of a known code; map it back.
_CODE_BY_MESSAGE = {message: code for code, message in ERROR_MESSAGES.items()}


def compute_max_tokens(text: str) -> int:
    """Token budget for a rephrase: 1.5x the input estimate, clamped to [150, 2000]."""
    estimated_tokens = math.ceil(len(text) / 4)
    budget = math.ceil(estimated_tokens * 1.5)
    return max(MIN_MAX_TOKENS, min(MAX_MAX_TOKENS, budget))


def validate_request(text: Any, style: Any, provider: Any) -> tuple[str, Style, Provider]:
    if not isinstance(text, str) or not text.strip():
        raise RephraserError(EMPTY_TEXT)
    if len(text) > MAX_TEXT_LENGTH:
        raise RephraserError(TEXT_TOO_LONG)
    return text, parse_style(style), parse_provider(provider)


class RephraseRelay:
    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout_s: float = REQUEST_TIMEOUT_S,
        proxy_url: Optional[str] = None,
    ) -> None:
        self._client = client or httpx.Client()
        self._timeout_s = timeout_s
        self._proxy_url = proxy_url

    def close(self) -> None:
        self._client.close()

    def transform(
        self,
        text: str,
        style: Any,
        provider: Any = Provider.PROXY,
        credential: str = "",
    ) -> str:
        """Rephrase ``text`` in ``style`` through ``provider``.

        Raises:
            RephraserError: for invalid input before any network call, and for
                every provider failure after it.
        """
        text, style, provider = validate_request(text, style, provider)
        endpoint = endpoint_for(provider, proxy_url=self._proxy_url)
        if endpoint.request_shape != SHAPE_PROXY and not credential.strip():
            raise RephraserError(MISSING_API_KEY)

        max_tokens = compute_max_tokens(text)
        url, headers, body = build_request(
            endpoint,
            text=text,
            style=style,
            max_tokens=max_tokens,
            credential=credential,
        )
        logger.info(
            "Rephrasing %d chars via %s (style=%s, max_tokens=%d)",
            len(text), provider.value, style.value, max_tokens,
        )

        try:
            response = self._client.post(url, headers=headers, json=body, timeout=self._timeout_s)
        except httpx.TimeoutException:
            logger.warning("Provider %s timed out after %.0fs", provider.value, self._timeout_s)
            raise RephraserError(PROVIDER_UNAVAILABLE, "Request timed out. Please try again.") from None
        except httpx.TransportError as exc:
            logger.warning("Cannot reach provider %s: %s", provider.value, type(exc).__name__)
            raise RephraserError(PROVIDER_UNAVAILABLE) from None

        if not response.is_success:
            raise self._status_error(endpoint, provider, response)

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Provider %s returned a non-JSON body", provider.value)
            raise RephraserError(EMPTY_RESPONSE) from None

        content = extract_content(endpoint, payload)
        rephrased = (content or "").strip()
        if not rephrased:
            logger.warning("Provider %s returned no content", provider.value)
            raise RephraserError(EMPTY_RESPONSE)
        return rephrased

    def _status_error(
        self,
        endpoint: ProviderEndpoint,
        provider: Provider,
        response: httpx.Response,
    ) -> RephraserError:
        status = response.status_code
        logger.warning("Provider %s answered HTTP %d", provider.value, status)
        logger.debug("Provider error body: %.200s", response.text)

        if endpoint.request_shape == SHAPE_PROXY:
            return _relay_status_error(status, _proxy_error_message(response))

        if status == 401:
            return RephraserError(SERVER_MISCONFIGURED)
        if status == 429:
            return RephraserError(PROVIDER_BUSY)
        if status >= 500:
            return RephraserError(PROVIDER_UNAVAILABLE)
        return RephraserError(EMPTY_RESPONSE)


def _proxy_error_message(response: httpx.Response) -> Optional[str]:
    try:
        message = response.json().get("error")
    except (ValueError, AttributeError):
        return None
    return message if isinstance(message, str) and message else None


def _relay_status_error(status: int, message: Optional[str]) -> RephraserError:
    """Map a relay error answer back to the code the relay started from."""
    code = _CODE_BY_MESSAGE.get(message or "")
    if status == 400:
        return RephraserError(INVALID_INPUT, message)
    if status == 429:
        return RephraserError(PROVIDER_BUSY if code == PROVIDER_BUSY else RATE_LIMITED)
    if status == 500:
        # Relay 500s are configuration faults unless the body says otherwise.
        if code == EMPTY_RESPONSE:
            return RephraserError(EMPTY_RESPONSE)
        return RephraserError(SERVER_MISCONFIGURED, message)
    if status >= 500:
        return RephraserError(PROVIDER_UNAVAILABLE)
    return RephraserError(EMPTY_RESPONSE)
