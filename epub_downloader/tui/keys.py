"""
Key bindings shared by the screens, with the help text shown in their footers.
"""

from dataclasses import dataclass

from .messages import KeyMessage


@dataclass(frozen=True)
class KeyBinding:
    keys: tuple[str, ...]
    help_key: str
    help_desc: str

    def matches(self, msg: KeyMessage) -> bool:
        return msg.key in self.keys

    def help(self) -> str:
        return f"{self.help_key}: {self.help_desc}"


@dataclass(frozen=True)
class KeyMap:
    """All of the application's key bindings."""

    up: KeyBinding = KeyBinding(("up", "k"), "↑/k", "up")
    down: KeyBinding = KeyBinding(("down", "j"), "↓/j", "down")
    enter: KeyBinding = KeyBinding(("enter",), "enter", "select")
    exit: KeyBinding = KeyBinding(("esc",), "esc", "quit")
    quit: KeyBinding = KeyBinding(("ctrl+c", "q"), "q", "quit")
    force_quit: KeyBinding = KeyBinding(("ctrl+c",), "ctrl+c", "quit")
    save: KeyBinding = KeyBinding(("ctrl+s",), "ctrl+s", "validate and save")
    clear: KeyBinding = KeyBinding(("ctrl+u",), "ctrl+u", "clear")
    delete: KeyBinding = KeyBinding(("backspace",), "backspace", "delete")

    @staticmethod
    def short_help(*bindings: KeyBinding) -> str:
        return " • ".join(b.help() for b in bindings)


DEFAULT_KEY_MAP = KeyMap()
