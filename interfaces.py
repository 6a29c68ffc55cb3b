"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from typing import Protocol

from config import AppConfig
from models import ReplaceResult


class SelectionAdapter(Protocol):
    def capture_selected_text(self) -> str: ...

    def get_clipboard_text(self) -> str: ...

    def write_replacement(self, text: str) -> ReplaceResult: ...


class WindowController(Protocol):
    def show_window(self, at_cursor: bool) -> None: ...

    def hide_window(self) -> None: ...


class Rephraser(Protocol):
    def transform(self, text: str, style: object, provider: object, credential: str = "") -> str: ...


class ConfigStore(Protocol):
    def load(self) -> AppConfig: ...

    def save(self, config: AppConfig) -> None: ...
