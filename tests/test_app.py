"""Tests for the screen state machine."""

import pytest
from rich.text import Text

from epub_downloader.tui.app import App
from epub_downloader.tui.messages import (
    ErrorMessage,
    KeyMessage,
    NavigateMessage,
    QuitMessage,
    ResizeMessage,
    Screen,
    SuccessMessage,
    show_success,
)
from epub_downloader.tui.models.base import ScreenModel


class RecordingScreen(ScreenModel):
    def __init__(self, name: str):
        super().__init__()
        self.name = name
        self.received: list = []
        self.inits = 0
        self.counter = 0

    def init(self):
        self.inits += 1
        return [show_success(f"{self.name} ready")]

    def handle(self, msg):
        self.received.append(msg)
        if isinstance(msg, KeyMessage) and msg.key == "runes":
            self.counter += 1
        return []

    def view(self):
        return Text(f"{self.name}:{self.counter}")


def make_app() -> tuple[App, RecordingScreen, RecordingScreen]:
    auth, home = RecordingScreen("auth"), RecordingScreen("home")
    return App({Screen.AUTH: auth, Screen.HOME: home}), auth, home


def test_starts_on_auth() -> None:
    app, auth, _ = make_app()

    assert app.active_screen is Screen.AUTH
    assert app.running is True
    assert len(app.init()) == 1
    assert auth.inits == 1


def test_view_waits_for_first_resize() -> None:
    app, _, _ = make_app()
    assert app.view().plain == "Initializing..."

    app.update(ResizeMessage(120, 40))

    assert app.ready is True
    assert app.view().plain == "auth:0"


def test_resize_is_broadcast_to_every_screen() -> None:
    app, auth, home = make_app()

    app.update(ResizeMessage(120, 40))

    assert (app.width, app.height) == (120, 40)
    assert (auth.width, auth.height) == (120, 40)
    assert (home.width, home.height) == (120, 40)


def test_navigate_switches_and_initializes_target() -> None:
    app, _, home = make_app()

    effects = app.update(NavigateMessage(Screen.HOME))

    assert app.active_screen is Screen.HOME
    assert home.inits == 1
    assert len(effects) == 1


def test_navigate_to_unregistered_screen_is_ignored() -> None:
    app, auth, _ = make_app()

    effects = app.update(NavigateMessage(Screen.LIBRARY))

    assert effects == []
    assert app.active_screen is Screen.AUTH
    assert app.running is True
    assert auth.received == []


def test_error_and_success_go_to_active_screen_only() -> None:
    app, auth, home = make_app()
    app.update(NavigateMessage(Screen.HOME))
    error = ErrorMessage(RuntimeError("boom"))

    app.update(error)
    app.update(SuccessMessage("done"))

    assert home.received == [error, SuccessMessage("done")]
    assert auth.received == []


def test_ctrl_c_quits_from_any_screen() -> None:
    app, _, home = make_app()
    app.update(NavigateMessage(Screen.HOME))

    assert app.update(KeyMessage("ctrl+c")) == []
    assert app.running is False
    assert home.received == []


def test_quit_message_stops_loop() -> None:
    app, _, _ = make_app()
    app.update(QuitMessage())
    assert app.running is False


def test_screen_state_survives_navigation() -> None:
    app, auth, _ = make_app()
    app.update(ResizeMessage(80, 24))
    app.update(KeyMessage("runes", "a"))
    app.update(KeyMessage("runes", "b"))

    app.update(NavigateMessage(Screen.HOME))
    app.update(KeyMessage("runes", "c"))
    app.update(NavigateMessage(Screen.AUTH))

    assert app.active is auth
    assert app.view().plain == "auth:2"
    assert auth.inits == 1


def test_initial_screen_must_be_registered() -> None:
    with pytest.raises(ValueError):
        App({Screen.HOME: RecordingScreen("home")})
