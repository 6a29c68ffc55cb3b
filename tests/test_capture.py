from __future__ import annotations

from types import SimpleNamespace

import pytest

import capture
from capture import ClipboardSelectionAdapter
from errors import CAPTURE_UNAVAILABLE, REPLACE_FAILED, RephraserError


class FakeClipboard:
    def __init__(self, content: str = "") -> None:
        self.content = content
        self.copies: list[str] = []
        self.fail_paste = False

    def paste(self) -> str:
        if self.fail_paste:
            raise RuntimeError("clipboard locked")
        return self.content

    def copy(self, text: str) -> None:
        self.copies.append(text)
        self.content = text


FakeKey = SimpleNamespace(cmd="cmd", ctrl="ctrl", shift="shift", alt="alt")


def _controller_factory(clipboard: FakeClipboard, selection: str, fail: bool = False):  # noqa: ANN202
    pressed: list[object] = []
    released: list[object] = []

    class FakeController:
        def press(self, key: object) -> None:
            if fail:
                raise OSError("input injection blocked")
            pressed.append(key)
            if key == "c" and selection:
                clipboard.content = selection

        def release(self, key: object) -> None:
            released.append(key)

    FakeController.released = released
    return FakeController, pressed


@pytest.fixture
def clipboard(monkeypatch) -> FakeClipboard:  # noqa: ANN001
    board = FakeClipboard("previous clipboard")
    monkeypatch.setattr(capture, "pyperclip", board)
    monkeypatch.setattr(capture, "Key", FakeKey)
    return board


def test_capture_returns_selection_and_restores_clipboard(monkeypatch, clipboard) -> None:  # noqa: ANN001
    controller_cls, pressed = _controller_factory(clipboard, "  selected words ")
    monkeypatch.setattr(capture, "Controller", controller_cls)

    adapter = ClipboardSelectionAdapter(copy_delay_s=0)
    text = adapter.capture_selected_text()

    assert text == "selected words"
    assert "c" in pressed
    assert clipboard.content == "previous clipboard"


def test_capture_uses_platform_copy_modifier(monkeypatch, clipboard) -> None:  # noqa: ANN001
    controller_cls, pressed = _controller_factory(clipboard, "abc")
    monkeypatch.setattr(capture, "Controller", controller_cls)
    monkeypatch.setattr(capture.sys, "platform", "darwin")

    ClipboardSelectionAdapter(copy_delay_s=0).capture_selected_text()

    assert pressed[0] == "cmd"


def test_capture_returns_empty_when_clipboard_unchanged(monkeypatch, clipboard) -> None:  # noqa: ANN001
    controller_cls, _ = _controller_factory(clipboard, "")
    monkeypatch.setattr(capture, "Controller", controller_cls)

    assert ClipboardSelectionAdapter(copy_delay_s=0).capture_selected_text() == ""


def test_capture_raises_when_dependencies_missing(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(capture, "pyperclip", None)
    monkeypatch.setattr(capture, "Controller", None)
    monkeypatch.setattr(capture, "Key", None)

    with pytest.raises(RephraserError) as exc_info:
        ClipboardSelectionAdapter().capture_selected_text()
    assert exc_info.value.code == CAPTURE_UNAVAILABLE


def test_capture_raises_when_clipboard_unreadable(monkeypatch, clipboard) -> None:  # noqa: ANN001
    controller_cls, _ = _controller_factory(clipboard, "abc")
    monkeypatch.setattr(capture, "Controller", controller_cls)
    clipboard.fail_paste = True

    with pytest.raises(RephraserError) as exc_info:
        ClipboardSelectionAdapter(copy_delay_s=0).capture_selected_text()
    assert exc_info.value.code == CAPTURE_UNAVAILABLE


def test_capture_raises_when_copy_cannot_be_simulated(monkeypatch, clipboard) -> None:  # noqa: ANN001
    controller_cls, _ = _controller_factory(clipboard, "abc", fail=True)
    monkeypatch.setattr(capture, "Controller", controller_cls)

    with pytest.raises(RephraserError) as exc_info:
        ClipboardSelectionAdapter(copy_delay_s=0).capture_selected_text()
    assert exc_info.value.code == CAPTURE_UNAVAILABLE


def test_write_replacement_copies_and_pastes(monkeypatch, clipboard) -> None:  # noqa: ANN001
    controller_cls, pressed = _controller_factory(clipboard, "")
    monkeypatch.setattr(capture, "Controller", controller_cls)

    result = ClipboardSelectionAdapter(paste_delay_s=0).write_replacement("new text")

    assert result.success is True
    assert result.clipboard_has_text is True
    assert clipboard.content == "new text"
    assert "v" in pressed


def test_write_replacement_keeps_clipboard_when_paste_fails(monkeypatch, clipboard) -> None:  # noqa: ANN001
    controller_cls, _ = _controller_factory(clipboard, "", fail=True)
    monkeypatch.setattr(capture, "Controller", controller_cls)

    result = ClipboardSelectionAdapter(paste_delay_s=0).write_replacement("new text")

    assert result.success is False
    assert result.reason.startswith(REPLACE_FAILED)
    assert result.clipboard_has_text is True
    assert clipboard.content == "new text"


def test_write_replacement_without_keyboard_leaves_text_on_clipboard(monkeypatch, clipboard) -> None:  # noqa: ANN001
    monkeypatch.setattr(capture, "Controller", None)

    result = ClipboardSelectionAdapter().write_replacement("new text")

    assert result.success is False
    assert result.clipboard_has_text is True
    assert clipboard.content == "new text"


def test_write_replacement_fails_when_clipboard_missing(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(capture, "pyperclip", None)

    result = ClipboardSelectionAdapter().write_replacement("hello")

    assert result.success is False
    assert result.clipboard_has_text is False


def test_write_replacement_rejects_empty_text() -> None:
    result = ClipboardSelectionAdapter().write_replacement("   ")

    assert result.success is False


def test_get_clipboard_text_strips(clipboard) -> None:  # noqa: ANN001
    clipboard.content = "  pasted  "

    assert ClipboardSelectionAdapter().get_clipboard_text() == "pasted"


def test_capture_releases_hotkey_modifiers_before_copy(monkeypatch, clipboard) -> None:  # noqa: ANN001
    controller_cls, pressed = _controller_factory(clipboard, "abc")
    monkeypatch.setattr(capture, "Controller", controller_cls)
    monkeypatch.setattr(capture.sys, "platform", "linux")

    ClipboardSelectionAdapter(copy_delay_s=0).capture_selected_text()

    assert controller_cls.released[:2] == ["shift", "alt"]
    assert pressed == ["ctrl", "c"]


def test_paste_does_not_touch_other_modifiers(monkeypatch, clipboard) -> None:  # noqa: ANN001
    controller_cls, pressed = _controller_factory(clipboard, "")
    monkeypatch.setattr(capture, "Controller", controller_cls)
    monkeypatch.setattr(capture.sys, "platform", "linux")

    ClipboardSelectionAdapter(paste_delay_s=0).write_replacement("new text")

    assert pressed == ["ctrl", "v"]
    assert controller_cls.released == ["v", "ctrl"]
