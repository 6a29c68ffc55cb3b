"""Shared error codes, user-facing messages and the relay HTTP mapping."""

from __future__ import annotations

from typing import Optional

EMPTY_TEXT = "EMPTY_TEXT"
TEXT_TOO_LONG = "TEXT_TOO_LONG"
INVALID_STYLE = "INVALID_STYLE"
INVALID_PROVIDER = "INVALID_PROVIDER"
INVALID_INPUT = "INVALID_INPUT"
MISSING_API_KEY = "MISSING_API_KEY"
CAPTURE_UNAVAILABLE = "CAPTURE_UNAVAILABLE"
EMPTY_CAPTURE = "EMPTY_CAPTURE"
RATE_LIMITED = "RATE_LIMITED"
PROVIDER_BUSY = "PROVIDER_BUSY"
PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
SERVER_MISCONFIGURED = "SERVER_MISCONFIGURED"
EMPTY_RESPONSE = "EMPTY_RESPONSE"
REPLACE_FAILED = "REPLACE_FAILED"
HOTKEY_UNAVAILABLE = "HOTKEY_UNAVAILABLE"

ERROR_MESSAGES = {
    EMPTY_TEXT: "Text is required.",
    TEXT_TOO_LONG: "Text too long. Maximum 10,000 characters.",
    INVALID_STYLE: "Invalid style. Must be: professional, casual, or sarcasm.",
    INVALID_PROVIDER: "Unknown model provider.",
    INVALID_INPUT: "The request was rejected as invalid.",
    MISSING_API_KEY: "API key is required for this provider. Please configure it in Settings.",
    CAPTURE_UNAVAILABLE: (
        "Cannot read the selection. Grant accessibility permissions "
        "in your system settings and try again."
    ),
    EMPTY_CAPTURE: "No text selected. Please select some text and try again.",
    RATE_LIMITED: "Rate limit exceeded. Please wait a moment and try again.",
    PROVIDER_BUSY: "Service is busy. Please try again in a moment.",
    PROVIDER_UNAVAILABLE: "AI service temporarily unavailable.",
    SERVER_MISCONFIGURED: "Server configuration error.",
    EMPTY_RESPONSE: "Failed to rephrase text. Please try again.",
    REPLACE_FAILED: "Could not paste into the original app, result kept in clipboard.",
    HOTKEY_UNAVAILABLE: "Failed to register keyboard shortcut. It may be in use by another app.",
}

INVALID_INPUT_CODES = frozenset(
    {EMPTY_TEXT, TEXT_TOO_LONG, INVALID_STYLE, INVALID_PROVIDER, INVALID_INPUT, MISSING_API_KEY}
)

HTTP_STATUS = {
    EMPTY_TEXT: 400,
    TEXT_TOO_LONG: 400,
    INVALID_STYLE: 400,
    INVALID_PROVIDER: 400,
    INVALID_INPUT: 400,
    MISSING_API_KEY: 400,
    RATE_LIMITED: 429,
    PROVIDER_BUSY: 429,
    PROVIDER_UNAVAILABLE: 503,
    SERVER_MISCONFIGURED: 500,
    EMPTY_RESPONSE: 500,
}


def is_invalid_input(code: str) -> bool:
    return code in INVALID_INPUT_CODES


class RephraserError(Exception):
    """Failure carrying one of the error codes above."""

    def __init__(self, code: str, message: Optional[str] = None) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS.get(self.code, 500)
