"""State-machine based session orchestration.

One session runs at a time: capture the selection, show the popup, rephrase,
then replace the selection.  Every transform carries the session token that
was current when it was issued, and its result is applied only if that token
is still current, so a late response for an old style or a closed session is
dropped.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from config import AppConfig
from errors import (
    CAPTURE_UNAVAILABLE,
    EMPTY_CAPTURE,
    EMPTY_RESPONSE,
    EMPTY_TEXT,
    REPLACE_FAILED,
    RephraserError,
)
from interfaces import Rephraser, SelectionAdapter, WindowController
from models import Provider, ReplaceResult, Session, SessionState, Style
from registry import parse_provider, parse_style

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
ResultCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]
Dispatch = Callable[[Callable[[], None]], None]


def _spawn_thread(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


class SessionController:
    def __init__(
        self,
        adapter: SelectionAdapter,
        window: WindowController,
        rephraser: Rephraser,
        config: Optional[AppConfig] = None,
        dispatch: Optional[Dispatch] = None,
        on_state_change: Optional[StateCallback] = None,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._adapter = adapter
        self._window = window
        self._rephraser = rephraser
        self._config = config or AppConfig()
        self._dispatch = dispatch or _spawn_thread
        self._on_state_change = on_state_change
        self._on_result = on_result
        self._on_error = on_error

        self._lock = threading.RLock()
        self._style = parse_style(self._config.default_style)
        self._session = Session(style=self._style)

    @property
    def state(self) -> SessionState:
        return self._session.status

    @property
    def session(self) -> Session:
        """Snapshot of the live session."""
        with self._lock:
            return replace(self._session)

    @property
    def style(self) -> Style:
        return self._style

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle_hotkey(self) -> bool:
        """Capture the selection and start rephrasing it.

        Returns False when the trigger was dropped or the capture failed.
        """
        with self._lock:
            if self._session.status != SessionState.IDLE:
                logger.info("Session is %s, ignoring hotkey", self._session.status.value)
                return False
            self._reset_session()
            self._session.in_flight = True
            token = self._session.token
            self._transition(SessionState.CAPTURING)

        # The focused app must still own input focus here, so no window of
        # ours may be shown before this call returns.
        error: Optional[tuple[str, str]] = None
        text = ""
        try:
            text = self._adapter.capture_selected_text()
        except RephraserError as exc:
            error = (CAPTURE_UNAVAILABLE, exc.message)
        except Exception as exc:
            logger.exception("Selection capture failed")
            error = (CAPTURE_UNAVAILABLE, str(exc))

        with self._lock:
            if self._session.token != token or self._session.status != SessionState.CAPTURING:
                logger.info("Session closed during capture, dropping captured text")
                return False
            if error is not None:
                self._fail(*error)
                return False
            text = (text or "").strip()
            if not text:
                self._fail(EMPTY_CAPTURE)
                return False
            self._session.original_text = text
            self._window.show_window(at_cursor=True)
            self._start_transform()
            return True

    def submit_text(self, text: str) -> bool:
        """Rephrase typed or pasted text, skipping the capture step.

        From the error state this also dismisses the error, so a retry from
        the popup needs no separate acknowledge.
        """
        text = (text or "").strip()
        with self._lock:
            status = self._session.status
            if status not in (SessionState.IDLE, SessionState.READY, SessionState.ERROR):
                logger.info("Session is %s, ignoring manual text", status.value)
                return False
            if not text:
                self._emit_error(EMPTY_TEXT)
                return False
            if status in (SessionState.IDLE, SessionState.ERROR):
                self._reset_session()
            self._session.original_text = text
            self._start_transform()
            return True

    def paste_from_clipboard(self) -> bool:
        try:
            text = self._adapter.get_clipboard_text()
        except RephraserError as exc:
            self._emit_error(CAPTURE_UNAVAILABLE, exc.message)
            return False
        if not text.strip():
            self._emit_error(EMPTY_CAPTURE, "Clipboard is empty.")
            return False
        return self.submit_text(text)

    def set_style(self, style: object) -> None:
        """Switch style; a live session is re-rephrased with the new one."""
        new_style = parse_style(style)
        with self._lock:
            self._style = new_style
            self._session.style = new_style
            if (
                self._session.status in (SessionState.TRANSFORMING, SessionState.READY)
                and self._session.original_text
            ):
                self._start_transform()

    def confirm_replace(self) -> Optional[ReplaceResult]:
        """Write the result back over the selection and end the session."""
        with self._lock:
            if self._session.status != SessionState.READY:
                return None
            text = self._session.transformed_text
            self._transition(SessionState.REPLACING)
            # Focus has to go back to the original app before pasting.
            self._window.hide_window()
            result = self._run_replace(text)
            if not result.success:
                logger.info("Write-back failed: %s", result.reason)
                self._emit_error(REPLACE_FAILED)
            self._reset_session()
            self._transition(SessionState.IDLE)
            return result

    def close(self) -> None:
        with self._lock:
            if self._session.status == SessionState.IDLE:
                return
            self._window.hide_window()
            self._reset_session()
            self._transition(SessionState.IDLE)

    def acknowledge_error(self) -> None:
        with self._lock:
            if self._session.status != SessionState.ERROR:
                return
            self._window.hide_window()
            self._reset_session()
            self._transition(SessionState.IDLE)

    def replace_rephraser(self, rephraser: Rephraser) -> None:
        with self._lock:
            self._rephraser = rephraser

    def update_config(self, config: AppConfig) -> None:
        with self._lock:
            self._config = config
            if self._session.status == SessionState.IDLE:
                self._style = parse_style(config.default_style)
                self._session.style = self._style

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _start_transform(self) -> None:
        session = self._session
        session.token += 1
        session.transformed_text = ""
        session.in_flight = True
        self._transition(SessionState.TRANSFORMING)

        try:
            provider = parse_provider(self._config.model_provider)
        except RephraserError as exc:
            self._fail(exc.code, exc.message)
            return
        session.provider = provider

        token = session.token
        text = session.original_text
        style = session.style
        credential = self._config.api_key or ""
        logger.info("Transform #%d issued (style=%s, provider=%s)", token, style.value, provider.value)
        self._dispatch(lambda: self._run_transform(token, text, style, provider, credential))

    def _run_transform(
        self,
        token: int,
        text: str,
        style: Style,
        provider: Provider,
        credential: str,
    ) -> None:
        try:
            rephrased = self._rephraser.transform(text, style, provider, credential)
        except RephraserError as exc:
            self._apply_result(token, "", exc)
            return
        except Exception as exc:
            logger.exception("Rephraser raised an unexpected error")
            self._apply_result(token, "", RephraserError(EMPTY_RESPONSE, str(exc)))
            return
        self._apply_result(token, rephrased, None)

    def _apply_result(self, token: int, text: str, error: Optional[RephraserError]) -> None:
        with self._lock:
            session = self._session
            if token != session.token or session.status != SessionState.TRANSFORMING:
                logger.info("Discarding stale result #%d (current #%d)", token, session.token)
                return
            if error is not None:
                self._fail(error.code, error.message)
                return
            session.transformed_text = text
            session.in_flight = False
            self._transition(SessionState.READY)
            if self._on_result:
                self._on_result(text)

    def _run_replace(self, text: str) -> ReplaceResult:
        try:
            return self._adapter.write_replacement(text)
        except Exception as exc:  # pragma: no cover
            return ReplaceResult(success=False, reason=str(exc), clipboard_has_text=False)

    def _reset_session(self) -> None:
        # The token keeps counting so results from the old session never match.
        self._session = Session(
            style=self._style,
            status=self._session.status,
            token=self._session.token + 1,
        )

    def _fail(self, code: str, message: Optional[str] = None) -> None:
        error = RephraserError(code, message)
        self._session.error_code = error.code
        self._session.error_message = error.message
        self._session.in_flight = False
        self._transition(SessionState.ERROR)
        self._emit_error(error.code, error.message)

    def _emit_error(self, code: str, message: Optional[str] = None) -> None:
        if message is None:
            message = RephraserError(code).message
        logger.warning("Session error %s: %s", code, message)
        if self._on_error:
            self._on_error(code, message)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._session.status
        if from_state == to_state:
            return
        self._session.status = to_state
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
