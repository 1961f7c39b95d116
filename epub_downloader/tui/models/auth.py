"""
Authentication screen: paste browser cookies, validate them, and save them.
"""

from typing import Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.text import Text

from epub_downloader.exceptions import AppError, ErrorCode, make, user_message
from epub_downloader.models.cookie import SessionCookie
from epub_downloader.storage.cookie_store import parse_cookies

from ..keys import KeyMap
from ..messages import (
    Effect,
    ErrorMessage,
    KeyMessage,
    Message,
    Screen,
    SessionValidatedMessage,
    SuccessMessage,
    attempt,
    navigate,
    quit_app,
    show_error,
    show_success,
)
from .base import ScreenModel, SessionContext

PLACEHOLDER = '[{"name": "BrowserCookie", "value": "..."}, ...]'

INSTRUCTIONS = """To use this application you need O'Reilly Learning cookies.

How to get the cookies:
  1. Log in to learning.oreilly.com
  2. Open DevTools (F12) > Application > Cookies
  3. Copy all cookies in JSON format
  4. Paste them below"""

INPUT_HEIGHT = 8


class AuthModel(ScreenModel):
    """Collects cookie JSON and turns it into a validated session."""

    def __init__(self, session: SessionContext, keys: Optional[KeyMap] = None):
        super().__init__(keys)
        self.session = session
        self.buffer = ""
        self.validating = False
        self.error: Optional[BaseException] = None
        self.success = ""
        self._restore_attempted = False

    def init(self) -> list[Effect]:
        # Resume a saved session once per process, the first time Auth is shown
        if self._restore_attempted or self.session.profile is not None:
            return []
        self._restore_attempted = True
        if not self.session.cookie_store.exists():
            return []
        self.validating = True
        return [attempt(self._restore_session)]

    async def _restore_session(self) -> Message:
        cookies = self.session.cookie_store.load()
        return await self._validate(cookies, save=False)

    async def _validate(self, cookies: list[SessionCookie], save: bool) -> Message:
        self.session.client.set_cookies(cookies)
        profile = await self.session.client.validate_session(
            timeout=self.session.validation_timeout
        )
        if save:
            self.session.cookie_store.save(cookies)
        return SessionValidatedMessage(profile)

    def _submit(self) -> list[Effect]:
        if self.validating:
            return []
        text = self.buffer.strip()
        if not text:
            return [
                show_error(
                    make(
                        ErrorCode.INVALID_INPUT,
                        "no cookies entered",
                        "Paste your cookies JSON before validating.",
                    )
                )
            ]
        try:
            cookies = parse_cookies(text)
        except AppError as e:
            return [show_error(e)]

        self.validating = True
        self.error = None
        self.success = ""
        return [attempt(lambda: self._validate(cookies, save=True))]

    def handle(self, msg: Message) -> list[Effect]:
        if isinstance(msg, KeyMessage):
            return self._handle_key(msg)

        if isinstance(msg, SessionValidatedMessage):
            self.validating = False
            self.error = None
            self.buffer = ""
            self.session.profile = msg.profile
            return [
                navigate(Screen.HOME),
                show_success(f"Signed in as {msg.profile.display_name}"),
            ]

        if isinstance(msg, ErrorMessage):
            self.validating = False
            self.error = msg.err
            self.success = ""
        elif isinstance(msg, SuccessMessage):
            self.success = msg.message
        return []

    def _handle_key(self, msg: KeyMessage) -> list[Effect]:
        if self.keys.save.matches(msg):
            return self._submit()
        if self.keys.exit.matches(msg):
            return [quit_app()]
        if self.validating:
            return []

        if self.keys.clear.matches(msg):
            self.buffer = ""
        elif self.keys.delete.matches(msg):
            self.buffer = self.buffer[:-1]
        elif self.keys.enter.matches(msg):
            self.buffer += "\n"
        elif msg.key == "runes":
            self.buffer += msg.text
        return []

    def _input_view(self) -> RenderableType:
        if not self.buffer:
            content = Text(PLACEHOLDER, style="text.dim")
        else:
            lines = self.buffer.split("\n")[-INPUT_HEIGHT:]
            content = Text("\n".join(lines), style="text", overflow="fold")
        width = min(80, self.width - 10) if self.width else 80
        return Panel(
            content,
            border_style="border",
            width=max(width, 20),
            height=INPUT_HEIGHT + 2,
        )

    def view(self) -> RenderableType:
        if self.width == 0:
            return Text("")

        parts: list[RenderableType] = [
            Text("O'Reilly Authentication", style="title"),
            Text("Enter your session cookies", style="subtitle"),
            Text(""),
            Text(INSTRUCTIONS, style="text.dim"),
            Text(""),
            self._input_view(),
        ]
        if self.validating:
            parts.append(Text("⏳ Validating session...", style="info"))
        if self.error is not None:
            parts.append(Text(f"❌ {user_message(self.error)}", style="error"))
        elif self.success:
            parts.append(Text(f"✓ {self.success}", style="success"))
        parts.append(Text(""))
        parts.append(
            Text(
                self.keys.short_help(self.keys.save, self.keys.clear, self.keys.exit),
                style="help",
            )
        )
        return self._place(Group(*parts))
