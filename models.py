"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    TRANSFORMING = "transforming"
    READY = "ready"
    REPLACING = "replacing"
    ERROR = "error"


class Style(str, Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    SARCASM = "sarcasm"


class Provider(str, Enum):
    PROXY = "proxy"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    PERPLEXITY = "perplexity"


@dataclass
class Session:
    style: Style = Style.PROFESSIONAL
    provider: Provider = Provider.PROXY
    original_text: str = ""
    transformed_text: str = ""
    status: SessionState = SessionState.IDLE
    in_flight: bool = False
    token: int = 0
    error_code: str = ""
    error_message: str = ""


@dataclass
class ReplaceResult:
    success: bool
    reason: str
    clipboard_has_text: bool
