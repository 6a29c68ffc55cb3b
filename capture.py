"""Selection capture and write-back through the system clipboard.

Capture simulates the platform Copy shortcut in the focused application and
reads what lands on the clipboard, so it must run before this app shows any
window of its own.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Optional

from errors import CAPTURE_UNAVAILABLE, REPLACE_FAILED, RephraserError
from models import ReplaceResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


def _shortcut_modifier() -> object:
    return Key.cmd if sys.platform == "darwin" else Key.ctrl


class ClipboardSelectionAdapter:
    def __init__(self, copy_delay_s: float = 0.2, paste_delay_s: float = 0.05) -> None:
        self._copy_delay_s = copy_delay_s
        self._paste_delay_s = paste_delay_s

    def capture_selected_text(self) -> str:
        """Return the focused app's selection, or "" when nothing is selected."""
        self._require_backends()
        try:
            old_clip: Optional[str] = pyperclip.paste()
        except Exception as exc:
            raise RephraserError(CAPTURE_UNAVAILABLE, f"clipboard unavailable: {exc}") from exc

        try:
            self._press_shortcut("c", release_held=True)
            time.sleep(self._copy_delay_s)
            copied = pyperclip.paste()
        except Exception as exc:
            raise RephraserError(CAPTURE_UNAVAILABLE, f"copy simulation failed: {exc}") from exc

        if not copied or copied == old_clip or not copied.strip():
            logger.info("Clipboard unchanged after copy, no selection captured")
            return ""

        if old_clip is not None:
            try:
                pyperclip.copy(old_clip)
            except Exception as exc:
                logger.warning("Could not restore previous clipboard: %s", exc)
        logger.info("Captured %d chars of selected text", len(copied))
        return copied.strip()

    def get_clipboard_text(self) -> str:
        if pyperclip is None:
            raise RephraserError(CAPTURE_UNAVAILABLE, "pyperclip is not installed")
        try:
            return (pyperclip.paste() or "").strip()
        except Exception as exc:
            raise RephraserError(CAPTURE_UNAVAILABLE, f"clipboard unavailable: {exc}") from exc

    def write_replacement(self, text: str) -> ReplaceResult:
        """Put ``text`` on the clipboard and paste it over the selection.

        If pasting fails the text stays on the clipboard for a manual paste.
        """
        if not text.strip():
            return ReplaceResult(success=False, reason="empty text", clipboard_has_text=False)
        if pyperclip is None:
            return ReplaceResult(
                success=False,
                reason=f"{REPLACE_FAILED}: clipboard dependency missing",
                clipboard_has_text=False,
            )

        try:
            pyperclip.copy(text)
        except Exception as exc:
            return ReplaceResult(
                success=False,
                reason=f"{REPLACE_FAILED}: {exc}",
                clipboard_has_text=False,
            )

        if Controller is None or Key is None:
            return ReplaceResult(
                success=False,
                reason=f"{REPLACE_FAILED}: keyboard dependency missing",
                clipboard_has_text=True,
            )
        try:
            time.sleep(self._paste_delay_s)
            self._press_shortcut("v")
        except Exception as exc:
            logger.warning("Paste simulation failed, result left on clipboard: %s", exc)
            return ReplaceResult(
                success=False,
                reason=f"{REPLACE_FAILED}: {exc}",
                clipboard_has_text=True,
            )
        return ReplaceResult(success=True, reason="ok", clipboard_has_text=True)

    def _require_backends(self) -> None:
        if pyperclip is None or Controller is None or Key is None:
            raise RephraserError(CAPTURE_UNAVAILABLE, "clipboard/keyboard dependency missing")

    def _press_shortcut(self, char: str, release_held: bool = False) -> None:
        modifier = _shortcut_modifier()
        keyboard = Controller()
        if release_held:
            # The hotkey's Shift/Alt may still be down; Ctrl+Shift+C is not Copy.
            for held in (Key.shift, Key.alt):
                keyboard.release(held)
        keyboard.press(modifier)
        keyboard.press(char)
        keyboard.release(char)
        keyboard.release(modifier)
