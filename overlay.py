"""Floating popup window showing the original and rephrased text."""

from __future__ import annotations

from typing import Callable, Optional

try:
    from PySide6.QtCore import Qt
    from PySide6.QtGui import QCursor, QGuiApplication, QKeySequence
    from PySide6.QtWidgets import (
        QHBoxLayout,
        QLabel,
        QPlainTextEdit,
        QPushButton,
        QVBoxLayout,
        QWidget,
    )
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QCursor = None  # type: ignore
    QGuiApplication = None  # type: ignore
    QKeySequence = None  # type: ignore
    QHBoxLayout = object  # type: ignore
    QLabel = object  # type: ignore
    QPlainTextEdit = object  # type: ignore
    QPushButton = object  # type: ignore
    QVBoxLayout = object  # type: ignore
    QWidget = object  # type: ignore

from models import Style

WINDOW_WIDTH = 500
WINDOW_HEIGHT = 600
PADDING = 20

_TEXT_STYLE = "font-size: 14px; padding: 10px; border-radius: 8px; background: rgba(255,255,255,230);"
_ERROR_STYLE = "color: #C62828; font-size: 13px; padding: 8px;"


def popup_position(
    cursor: tuple[int, int],
    screen: tuple[int, int, int, int],
    size: tuple[int, int] = (WINDOW_WIDTH, WINDOW_HEIGHT),
    padding: int = PADDING,
) -> tuple[int, int]:
    """Top-left corner for a popup of ``size`` near ``cursor`` on ``screen``.

    The popup sits above the cursor, centred horizontally, and is kept inside
    the screen.  When there is no room above it moves below the cursor.
    ``screen`` is ``(x, y, width, height)``.
    """
    cx, cy = cursor
    sx, sy, sw, sh = screen
    width, height = size

    x = cx - width // 2
    y = cy - height - padding

    if x < sx + padding:
        x = sx + padding
    if x + width > sx + sw - padding:
        x = sx + sw - width - padding

    if y < sy + padding:
        y = cy + padding
    if y + height > sy + sh - padding:
        y = cy - height - padding
        if y < sy + padding:
            y = sy + padding
    return x, y


class PopupWindow(QWidget):
    def __init__(
        self,
        on_style: Callable[[Style], None],
        on_submit: Callable[[str], None],
        on_paste: Callable[[], None],
        on_replace: Callable[[], None],
        on_close: Callable[[], None],
    ) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool)
        self.setFixedSize(WINDOW_WIDTH, WINDOW_HEIGHT)
        self._on_close = on_close
        self._on_replace = on_replace

        self._style_buttons: dict[Style, QPushButton] = {}
        style_row = QHBoxLayout()
        for style in Style:
            button = QPushButton(style.value.capitalize())
            button.setCheckable(True)
            button.clicked.connect(lambda _checked=False, s=style: on_style(s))
            style_row.addWidget(button)
            self._style_buttons[style] = button

        self._input = QPlainTextEdit()
        self._input.setPlaceholderText("Type or paste your text here...")

        paste_button = QPushButton("Paste from Clipboard")
        paste_button.clicked.connect(on_paste)
        self._rephrase_button = QPushButton("Rephrase")
        self._rephrase_button.clicked.connect(lambda: on_submit(self._input.toPlainText()))
        input_row = QHBoxLayout()
        input_row.addWidget(paste_button)
        input_row.addWidget(self._rephrase_button)

        self._result = QLabel("")
        self._result.setWordWrap(True)
        self._result.setTextInteractionFlags(Qt.TextSelectableByMouse)
        self._result.setStyleSheet(_TEXT_STYLE)

        self._error = QLabel("")
        self._error.setWordWrap(True)
        self._error.setStyleSheet(_ERROR_STYLE)
        self._error.hide()

        self._replace_button = QPushButton("Replace")
        self._replace_button.setEnabled(False)
        self._replace_button.clicked.connect(on_replace)
        close_button = QPushButton("Close")
        close_button.clicked.connect(on_close)
        action_row = QHBoxLayout()
        action_row.addWidget(close_button)
        action_row.addWidget(self._replace_button)

        layout = QVBoxLayout()
        layout.addLayout(style_row)
        layout.addWidget(self._input)
        layout.addLayout(input_row)
        layout.addWidget(self._error)
        layout.addWidget(self._result, 1)
        layout.addLayout(action_row)
        self.setLayout(layout)

    def show_at(self, at_cursor: bool) -> None:
        if at_cursor:
            self._move_near_cursor()
        else:
            self._center_on_screen()
        self.show()
        self.raise_()
        self.activateWindow()

    def set_style(self, style: Style) -> None:
        for candidate, button in self._style_buttons.items():
            button.setChecked(candidate is style)

    def set_original(self, text: str) -> None:
        self._input.setPlainText(text)

    def set_loading(self, loading: bool) -> None:
        self._rephrase_button.setEnabled(not loading)
        self._rephrase_button.setText("Rephrasing..." if loading else "Rephrase")
        if loading:
            self._error.hide()
            self._result.setText("")
            self._replace_button.setEnabled(False)

    def set_result(self, text: str) -> None:
        self._error.hide()
        self._result.setText(text)
        self._replace_button.setEnabled(bool(text))

    def show_error(self, message: str) -> None:
        self._error.setText(message)
        self._error.show()

    def reset(self) -> None:
        self._input.setPlainText("")
        self._result.setText("")
        self._error.hide()
        self._replace_button.setEnabled(False)

    def keyPressEvent(self, event) -> None:  # noqa: ANN001, N802
        if event.key() == Qt.Key_Escape:
            self._on_close()
            return
        # Copy outside the input box accepts the result.
        if (
            event.matches(QKeySequence.StandardKey.Copy)
            and self._replace_button.isEnabled()
            and not self._input.hasFocus()
        ):
            self._on_replace()
            return
        super().keyPressEvent(event)

    def _move_near_cursor(self) -> None:
        pos = QCursor.pos()
        screen = QGuiApplication.screenAt(pos) or QGuiApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        x, y = popup_position(
            (pos.x(), pos.y()),
            (geom.x(), geom.y(), geom.width(), geom.height()),
            (self.width(), self.height()),
        )
        self.move(x, y)

    def _center_on_screen(self) -> None:
        screen: Optional[object] = QGuiApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.move(
            geom.x() + (geom.width() - self.width()) // 2,
            geom.y() + (geom.height() - self.height()) // 2,
        )
