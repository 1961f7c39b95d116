"""
The screen state machine driven by the UI event loop.

``App.update`` is called with one message at a time and never awaits, so
screen state is only ever touched from the loop. Work that has to wait on
I/O is returned as effects for the runtime to schedule.
"""

from typing import Optional

from rich.console import RenderableType
from rich.text import Text

from epub_downloader.utils.structured_logger import StructuredLogger

from .keys import DEFAULT_KEY_MAP, KeyMap
from .messages import (
    Effect,
    ErrorMessage,
    KeyMessage,
    Message,
    NavigateMessage,
    QuitMessage,
    ResizeMessage,
    Screen,
    SuccessMessage,
)
from .models.base import ScreenModel


class App:
    """Holds the registered screens and the pointer to the active one."""

    def __init__(
        self,
        screens: dict[Screen, ScreenModel],
        initial: Screen = Screen.AUTH,
        logger: Optional[StructuredLogger] = None,
        keys: Optional[KeyMap] = None,
    ):
        if initial not in screens:
            raise ValueError(f"initial screen {initial.value!r} is not registered")
        self.screens = screens
        self.keys = keys or DEFAULT_KEY_MAP
        self.logger = logger or StructuredLogger.disabled()
        self._active = initial
        self._running = True
        self._width = 0
        self._height = 0
        self._ready = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def ready(self) -> bool:
        """True once the terminal size is known."""
        return self._ready

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def active_screen(self) -> Screen:
        return self._active

    @property
    def active(self) -> ScreenModel:
        return self.screens[self._active]

    def init(self) -> list[Effect]:
        return self.active.init()

    def quit(self) -> None:
        self._running = False

    def update(self, msg: Message) -> list[Effect]:
        if isinstance(msg, ResizeMessage):
            self._width = msg.width
            self._height = msg.height
            self._ready = True
            effects: list[Effect] = []
            for screen in self.screens.values():
                effects.extend(screen.update(msg))
            return effects

        if isinstance(msg, NavigateMessage):
            return self._navigate(msg.screen)

        if isinstance(msg, QuitMessage):
            self.quit()
            return []

        if isinstance(msg, KeyMessage) and self.keys.force_quit.matches(msg):
            self.quit()
            return []

        if isinstance(msg, ErrorMessage):
            self.logger.log_error("ui_error", msg.err, screen=self._active.value)
        elif isinstance(msg, SuccessMessage):
            self.logger.info(
                "ui_success", message=msg.message, screen=self._active.value
            )

        return self.active.update(msg)

    def _navigate(self, target: Screen) -> list[Effect]:
        screen = self.screens.get(target)
        if screen is None:
            self.logger.debug("navigate_ignored", target=target.value)
            return []
        self.logger.debug("navigate", source=self._active.value, target=target.value)
        self._active = target
        return screen.init()

    def view(self) -> RenderableType:
        if not self._ready:
            return Text("Initializing...")
        return self.active.view()
