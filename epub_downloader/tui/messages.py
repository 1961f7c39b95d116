"""
Messages exchanged with the UI event loop, and the effects that produce them.

An effect is a zero-argument callable returning an awaitable. The runtime
runs it as a task and feeds the message it returns, if any, back into the
loop.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from epub_downloader.exceptions import AppError
from epub_downloader.models.profile import UserProfile


class Screen(Enum):
    """Navigable screens. Exactly one is active at a time."""

    AUTH = "auth"
    HOME = "home"
    SEARCH = "search"
    DETAIL = "detail"
    DOWNLOAD = "download"
    LIBRARY = "library"
    HISTORY = "history"


@dataclass(frozen=True)
class KeyMessage:
    """A key press. Printable input arrives as ``key="runes"`` with ``text`` set."""

    key: str
    text: str = ""


@dataclass(frozen=True)
class ResizeMessage:
    width: int
    height: int


@dataclass(frozen=True)
class NavigateMessage:
    screen: Screen


@dataclass(frozen=True)
class ErrorMessage:
    err: BaseException


@dataclass(frozen=True)
class SuccessMessage:
    message: str


@dataclass(frozen=True)
class QuitMessage:
    pass


@dataclass(frozen=True)
class SessionValidatedMessage:
    """The stored or imported cookies belong to a live, subscribed session."""

    profile: UserProfile


Message = Union[
    KeyMessage,
    ResizeMessage,
    NavigateMessage,
    ErrorMessage,
    SuccessMessage,
    QuitMessage,
    SessionValidatedMessage,
]

Effect = Callable[[], Awaitable[Optional[Message]]]


def _returning(msg: Message) -> Effect:
    async def effect() -> Message:
        return msg

    return effect


def navigate(screen: Screen) -> Effect:
    return _returning(NavigateMessage(screen))


def show_error(err: BaseException) -> Effect:
    return _returning(ErrorMessage(err))


def show_success(message: str) -> Effect:
    return _returning(SuccessMessage(message))


def quit_app() -> Effect:
    return _returning(QuitMessage())


def attempt(action: Callable[[], Awaitable[Optional[Message]]]) -> Effect:
    """Wraps an async action so that a classified failure becomes an ErrorMessage."""

    async def effect() -> Optional[Message]:
        try:
            return await action()
        except AppError as e:
            return ErrorMessage(e)

    return effect
