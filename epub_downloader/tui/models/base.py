"""
Shared pieces of the screen models: the base class and the session context.
"""

from dataclasses import dataclass
from typing import Optional

from rich.align import Align
from rich.console import RenderableType

from epub_downloader.api.client import APIClient
from epub_downloader.models.profile import UserProfile
from epub_downloader.storage.cookie_store import CookieStore

from ..keys import DEFAULT_KEY_MAP, KeyMap
from ..messages import Effect, Message, ResizeMessage


@dataclass
class SessionContext:
    """
    State shared by the screens: the API client, the cookie file, and the
    profile of the last successful validation.

    Only mutated from screen update handlers and the effects they issue, all
    of which run on the UI loop.
    """

    client: APIClient
    cookie_store: CookieStore
    profile: Optional[UserProfile] = None
    validation_timeout: float = 60.0


class ScreenModel:
    """
    Base class for a screen.

    A screen owns its view state for the life of the process. ``update`` must
    not raise: fallible work is issued as effects that report failures as
    ErrorMessages.
    """

    def __init__(self, keys: Optional[KeyMap] = None):
        self.keys = keys or DEFAULT_KEY_MAP
        self.width = 0
        self.height = 0

    def init(self) -> list[Effect]:
        """Effects to run each time the screen becomes active."""
        return []

    def update(self, msg: Message) -> list[Effect]:
        if isinstance(msg, ResizeMessage):
            self.width = msg.width
            self.height = msg.height
            return []
        return self.handle(msg)

    def handle(self, msg: Message) -> list[Effect]:
        return []

    def view(self) -> RenderableType:
        raise NotImplementedError

    def _place(self, content: RenderableType) -> RenderableType:
        """Centers ``content`` in the terminal."""
        return Align.center(content, vertical="middle", height=self.height or None)
