"""Application entrypoint."""

from __future__ import annotations

import logging
import sys
import threading
from typing import Callable, Optional

from capture import ClipboardSelectionAdapter
from config import JsonConfigStore, proxy_url_from_env
from errors import HOTKEY_UNAVAILABLE, REPLACE_FAILED, RephraserError
from hotkey import DEFAULT_HOTKEY_CANDIDATES, GlobalHotkeyManager
from interfaces import ConfigStore
from logging_config import setup_logging
from models import Provider, SessionState, Style
from overlay import PopupWindow
from registry import parse_provider, parse_style
from relay import RephraseRelay
from session_controller import SessionController

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"      # grey
ICON_BUSY = "#2F80ED"      # blue
ICON_ERROR = "#FF8800"     # orange


def _in_background(fn: Callable[[], object]) -> None:
    threading.Thread(target=fn, daemon=True).start()


def _hotkey_candidates(configured: str) -> list[str]:
    candidates = [configured] if configured else []
    candidates.extend(c for c in DEFAULT_HOTKEY_CANDIDATES if c not in candidates)
    return candidates


class UIBridge(QObject):
    show_signal = Signal(bool)
    hide_signal = Signal()
    result_signal = Signal(str)
    error_signal = Signal(str, str)  # code, message
    state_signal = Signal(str, str)  # from_state, to_state


class QtWindowController:
    """Window side effects requested from worker threads, run on the Qt thread."""

    def __init__(self, bridge: UIBridge) -> None:
        self._bridge = bridge

    def show_window(self, at_cursor: bool) -> None:
        self._bridge.show_signal.emit(at_cursor)

    def hide_window(self) -> None:
        self._bridge.hide_signal.emit()


class App:
    def __init__(self, config_store: Optional[ConfigStore] = None) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = config_store or JsonConfigStore()
        self.config = self.config_store.load()

        self.ui = UIBridge()
        self.popup = PopupWindow(
            on_style=self._on_style_clicked,
            on_submit=lambda text: _in_background(lambda: self.controller.submit_text(text)),
            on_paste=lambda: _in_background(self.controller.paste_from_clipboard),
            on_replace=lambda: _in_background(self.controller.confirm_replace),
            on_close=self._on_close_clicked,
        )
        self.ui.show_signal.connect(self._on_show_ui)
        self.ui.hide_signal.connect(self.popup.hide)
        self.ui.result_signal.connect(self.popup.set_result)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)

        self.relay = RephraseRelay(proxy_url=proxy_url_from_env())

        self.controller = SessionController(
            adapter=ClipboardSelectionAdapter(),
            window=QtWindowController(self.ui),
            rephraser=self.relay,
            config=self.config,
            on_state_change=self._on_state_change,
            on_result=self.ui.result_signal.emit,
            on_error=self.ui.error_signal.emit,
        )
        self.popup.set_style(self.controller.style)
        self.hotkey = GlobalHotkeyManager()
        self.hotkey_binding = ""

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Rephraser — Ready")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        open_action = QAction("Open Rephraser", menu)
        open_action.triggered.connect(lambda: self.popup.show_at(at_cursor=False))
        menu.addAction(open_action)
        menu.addSeparator()

        provider_action = QAction("Set Provider", menu)
        provider_action.triggered.connect(self._set_provider)
        menu.addAction(provider_action)

        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        style_action = QAction("Set Default Style", menu)
        style_action.triggered.connect(self._set_default_style)
        menu.addAction(style_action)

        hotkey_action = QAction("Set Hotkey", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    # ------------------------------------------------------------------
    # Settings (each save replaces the whole config record)
    # ------------------------------------------------------------------

    def _save_config(self, **changes: object) -> None:
        config = self.config.with_changes(**changes)
        try:
            self.config_store.save(config)
        except OSError as exc:
            logger.error("Failed to save config: %s", exc)
            QMessageBox.warning(None, "Error", f"Could not save settings: {exc}")
            return
        self.config = config
        self.controller.update_config(config)

    def _set_provider(self) -> None:
        names = [p.value for p in Provider]
        current = names.index(self.config.model_provider) if self.config.model_provider in names else 0
        value, ok = QInputDialog.getItem(None, "Provider", "Model provider", names, current, False)
        if not ok:
            return
        provider = parse_provider(value)
        if provider is not Provider.PROXY and not self.config.api_key:
            QMessageBox.information(
                None, "API Key", "This provider needs your own API key. Set it from the tray menu."
            )
        self._save_config(model_provider=provider.value)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "Provider API Key")
        if not ok:
            return
        self._save_config(api_key=value.strip() or None)
        QMessageBox.information(None, "Saved", "API Key saved and applied.")

    def _set_default_style(self) -> None:
        names = [s.value for s in Style]
        current = names.index(self.config.default_style)
        value, ok = QInputDialog.getItem(None, "Style", "Default style", names, current, False)
        if not ok:
            return
        self._save_config(default_style=parse_style(value).value)

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Hotkey", "Accelerator format, e.g. CmdOrCtrl+Shift+R"
        )
        if not ok or not value:
            return
        self._save_config(hotkey=value.strip())
        self._register_hotkey()
        QMessageBox.information(None, "Saved", f"Hotkey saved: {self.hotkey_binding or 'none'}")

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_style_clicked(self, style: Style) -> None:
        self.popup.set_style(style)
        _in_background(lambda: self.controller.set_style(style))

    def _on_close_clicked(self) -> None:
        if self.controller.state == SessionState.ERROR:
            _in_background(self.controller.acknowledge_error)
        elif self.controller.state == SessionState.IDLE:
            self.popup.hide()
        else:
            _in_background(self.controller.close)

    def _on_show_ui(self, at_cursor: bool) -> None:
        self.popup.set_original(self.controller.session.original_text)
        self.popup.show_at(at_cursor)

    def _on_error_ui(self, code: str, message: str) -> None:
        if code == REPLACE_FAILED:
            self.tray.showMessage("Rephraser", message)
            return
        self.popup.show_error(message)
        if not self.popup.isVisible():
            self.popup.show_at(at_cursor=True)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        if to_state == SessionState.CAPTURING.value:
            self.tray.setIcon(_create_icon(ICON_BUSY))
            self.tray.setToolTip("Rephraser — Capturing...")
        elif to_state == SessionState.TRANSFORMING.value:
            self.tray.setIcon(_create_icon(ICON_BUSY))
            self.tray.setToolTip("Rephraser — Rephrasing...")
            self.popup.set_loading(True)
        elif to_state == SessionState.READY.value:
            self.popup.set_loading(False)
        elif to_state == SessionState.IDLE.value:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("Rephraser — Ready")
            self.popup.set_loading(False)
            self.popup.reset()
        elif to_state == SessionState.ERROR.value:
            self.tray.setIcon(_create_icon(ICON_ERROR))
            self.popup.set_loading(False)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _register_hotkey(self) -> None:
        if self.hotkey_binding:
            self.hotkey.unregister(self.hotkey_binding)
            self.hotkey_binding = ""
        try:
            self.hotkey_binding = self.hotkey.register(
                _hotkey_candidates(self.config.hotkey),
                self.controller.handle_hotkey,
            )
        except RephraserError as exc:
            logger.error("Hotkey disabled: %s", exc.message)
            self._on_error_ui(HOTKEY_UNAVAILABLE, exc.message)

    def run(self) -> int:
        self._register_hotkey()
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.close()
        self.relay.close()
        self.app.quit()


def main() -> int:
    config_store = JsonConfigStore()
    setup_logging(log_file=config_store.path.parent / "rephraser.log")
    app = App(config_store=config_store)
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
