"""
Main menu shown once a session is validated.
"""

from typing import Callable, Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.text import Text

from epub_downloader.exceptions import ErrorCode, error_code, user_message

from ..keys import KeyMap
from ..messages import (
    Effect,
    ErrorMessage,
    KeyMessage,
    Message,
    NavigateMessage,
    Screen,
    SessionValidatedMessage,
    SuccessMessage,
    attempt,
    navigate,
    quit_app,
    show_error,
)
from .base import ScreenModel, SessionContext


class HomeModel(ScreenModel):
    """Menu of session actions."""

    def __init__(self, session: SessionContext, keys: Optional[KeyMap] = None):
        super().__init__(keys)
        self.session = session
        self.cursor = 0
        self.error: Optional[BaseException] = None
        self.success = ""
        self.choices: list[tuple[str, Callable[[], list[Effect]]]] = [
            ("🔄 Validate session", self._revalidate),
            ("🚪 Log out", self._logout),
            ("❌ Exit", lambda: [quit_app()]),
        ]

    def _revalidate(self) -> list[Effect]:
        self.error = None
        self.success = ""

        async def validate() -> Message:
            profile = await self.session.client.validate_session(
                timeout=self.session.validation_timeout
            )
            return SessionValidatedMessage(profile)

        return [attempt(validate)]

    def _logout(self) -> list[Effect]:
        self.session.profile = None
        self.session.client.set_cookies([])
        self.error = None
        self.success = ""

        async def forget() -> Message:
            self.session.cookie_store.delete()
            return NavigateMessage(Screen.AUTH)

        return [attempt(forget)]

    def handle(self, msg: Message) -> list[Effect]:
        if isinstance(msg, KeyMessage):
            if self.keys.up.matches(msg):
                self.cursor = max(0, self.cursor - 1)
            elif self.keys.down.matches(msg):
                self.cursor = min(len(self.choices) - 1, self.cursor + 1)
            elif self.keys.enter.matches(msg):
                _, action = self.choices[self.cursor]
                return action()
            elif self.keys.quit.matches(msg):
                return [quit_app()]
            return []

        if isinstance(msg, SessionValidatedMessage):
            self.session.profile = msg.profile
            self.error = None
            self.success = "Session is valid."
        elif isinstance(msg, ErrorMessage):
            self.error = msg.err
            self.success = ""
            if error_code(msg.err) == ErrorCode.SESSION_EXPIRED.value:
                # Hand the error to Auth so the user sees why they are back there
                self.session.profile = None
                return [navigate(Screen.AUTH), show_error(msg.err)]
        elif isinstance(msg, SuccessMessage):
            self.success = msg.message
            self.error = None
        return []

    def _profile_view(self) -> Text:
        profile = self.session.profile
        if profile is None:
            return Text("Not signed in", style="text.dim")
        text = Text("Signed in as ", style="text")
        text.append(profile.display_name, style="info")
        sub = profile.subscription
        details = sub.type or "subscription"
        if sub.expires_at is not None:
            details += f", expires {sub.expires_at:%Y-%m-%d}"
        text.append(f" ({details})", style="text.dim")
        return text

    def view(self) -> RenderableType:
        if self.width == 0:
            return Text("")

        menu = Text()
        for i, (label, _) in enumerate(self.choices):
            if i:
                menu.append("\n")
            if i == self.cursor:
                menu.append("▶ ")
                menu.append(label, style="list.item.active")
            else:
                menu.append("  ")
                menu.append(label, style="list.item")

        parts: list[RenderableType] = [
            Text("O'Reilly EPUB Downloader", style="title"),
            Text("Terminal User Interface", style="subtitle"),
            Text(""),
            self._profile_view(),
            Text(""),
            menu,
        ]
        if self.error is not None:
            parts.append(Text(f"\n❌ {user_message(self.error)}", style="error"))
        elif self.success:
            parts.append(Text(f"\n✓ {self.success}", style="success"))
        parts.append(
            Text(
                "\n"
                + self.keys.short_help(
                    self.keys.up, self.keys.down, self.keys.enter, self.keys.quit
                ),
                style="help",
            )
        )
        return self._place(Panel(Group(*parts), border_style="border", expand=False))
