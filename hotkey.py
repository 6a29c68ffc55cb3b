"""Global hotkey registration based on pynput."""

from __future__ import annotations

import logging
import re
import sys
import threading
from typing import Callable, Iterable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

from errors import HOTKEY_UNAVAILABLE, RephraserError

logger = logging.getLogger(__name__)

DEFAULT_HOTKEY_CANDIDATES = (
    "CmdOrCtrl+Shift+R",
    "CommandOrControl+Shift+R",
    "Ctrl+Shift+R",
)

Dispatch = Callable[[Callable[[], None]], None]

_MODIFIERS = {
    "ctrl": "<ctrl>",
    "control": "<ctrl>",
    "shift": "<shift>",
    "alt": "<alt>",
    "option": "<alt>",
    "cmd": "<cmd>",
    "command": "<cmd>",
    "super": "<cmd>",
    "meta": "<cmd>",
}
_PLATFORM_MODIFIERS = {"cmdorctrl", "commandorcontrol"}
_NAMED_KEYS = {
    "space": "<space>",
    "enter": "<enter>",
    "return": "<enter>",
    "tab": "<tab>",
    "esc": "<esc>",
    "escape": "<esc>",
    "backspace": "<backspace>",
    "delete": "<delete>",
    "insert": "<insert>",
    "home": "<home>",
    "end": "<end>",
    "pageup": "<page_up>",
    "page_up": "<page_up>",
    "pagedown": "<page_down>",
    "page_down": "<page_down>",
    "up": "<up>",
    "down": "<down>",
    "left": "<left>",
    "right": "<right>",
}
_FUNCTION_KEY = re.compile(r"^f([1-9]|1[0-9]|20)$")
_MODIFIER_VALUES = set(_MODIFIERS.values())


def to_pynput_hotkey(binding: str) -> str:
    """Translate an accelerator like ``CmdOrCtrl+Shift+R`` to ``<ctrl>+<shift>+r``."""
    tokens = [t.strip() for t in binding.split("+")]
    if not tokens or any(not t for t in tokens):
        raise ValueError(f"Malformed hotkey: {binding!r}")

    parts: list[str] = []
    for token in tokens:
        low = token.lower()
        if low.startswith("<") and low.endswith(">"):
            part = low
        elif low in _PLATFORM_MODIFIERS:
            part = "<cmd>" if sys.platform == "darwin" else "<ctrl>"
        elif low in _MODIFIERS:
            part = _MODIFIERS[low]
        elif low in _NAMED_KEYS:
            part = _NAMED_KEYS[low]
        elif _FUNCTION_KEY.match(low):
            part = f"<{low}>"
        elif len(low) == 1:
            part = low
        else:
            raise ValueError(f"Unknown key {token!r} in hotkey {binding!r}")
        if part in parts:
            raise ValueError(f"Duplicate key {token!r} in hotkey {binding!r}")
        parts.append(part)

    if parts[-1] in _MODIFIER_VALUES:
        raise ValueError(f"Hotkey {binding!r} has no non-modifier key")
    return "+".join(parts)


def _spawn_thread(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


class GlobalHotkeyManager:
    def __init__(self, dispatch: Optional[Dispatch] = None) -> None:
        self._dispatch = dispatch or _spawn_thread
        self._listeners: dict[str, object] = {}
        self._busy = False
        self._lock = threading.Lock()

    @property
    def registered(self) -> list[str]:
        return list(self._listeners)

    def register(self, candidates: Iterable[str], on_activate: Callable[[], None]) -> str:
        """Register the first candidate binding that works and return it.

        Raises:
            RephraserError: ``HOTKEY_UNAVAILABLE`` when every candidate fails.
        """
        if keyboard is None:
            raise RephraserError(HOTKEY_UNAVAILABLE, "pynput is not installed")

        for binding in candidates:
            try:
                combo = to_pynput_hotkey(binding)
                keyboard.HotKey.parse(combo)
                listener = keyboard.GlobalHotKeys({combo: lambda: self._activate(on_activate)})
                listener.start()
            except Exception as exc:
                logger.warning("Failed to register hotkey %s, trying next: %s", binding, exc)
                continue
            self._listeners[binding] = listener
            logger.info("Hotkey registered: %s (%s)", binding, combo)
            return binding

        logger.error("Failed to register any hotkey format")
        raise RephraserError(HOTKEY_UNAVAILABLE)

    def unregister(self, binding: str) -> None:
        listener = self._listeners.pop(binding, None)
        if listener is None:
            return
        try:
            listener.stop()
        except Exception as exc:
            logger.warning("Failed to unregister hotkey %s: %s", binding, exc)

    def stop(self) -> None:
        for binding in list(self._listeners):
            self.unregister(binding)

    def _activate(self, on_activate: Callable[[], None]) -> None:
        with self._lock:
            if self._busy:
                logger.info("Already processing a request, skipping hotkey")
                return
            self._busy = True
        self._dispatch(lambda: self._run(on_activate))

    def _run(self, on_activate: Callable[[], None]) -> None:
        try:
            on_activate()
        except Exception:
            logger.exception("Hotkey handler failed")
        finally:
            with self._lock:
                self._busy = False
