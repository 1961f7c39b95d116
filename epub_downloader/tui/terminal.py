"""
Keyboard input for the interface on POSIX terminals.

Stdin is switched to raw mode and read from a background thread; decoded
keys are posted to the program's queue. Window size changes arrive through
SIGWINCH on the loop.
"""

import asyncio
import codecs
import logging
import os
import select
import signal
import sys
import termios
import threading
from typing import Callable, Optional

from .messages import KeyMessage, Message, ResizeMessage

log = logging.getLogger(__name__)

READ_SIZE = 1024
POLL_INTERVAL = 0.1

CONTROL_KEYS = {
    "\x03": "ctrl+c",
    "\x13": "ctrl+s",
    "\x15": "ctrl+u",
    "\r": "enter",
    "\n": "enter",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\t": "tab",
}

# Final byte of CSI / SS3 sequences
ESCAPE_KEYS = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

TILDE_KEYS = {
    "1": "home",
    "3": "delete",
    "4": "end",
    "5": "pgup",
    "6": "pgdown",
}


def _parse_escape(text: str, i: int) -> tuple[Optional[str], int]:
    """
    Parses the escape sequence starting at ``text[i] == "\\x1b"``.

    Returns the key name (None for unrecognized sequences) and the index just
    past the sequence.
    """
    if i + 1 >= len(text):
        return "esc", i + 1

    kind = text[i + 1]
    if kind == "O" and i + 2 < len(text):
        return ESCAPE_KEYS.get(text[i + 2]), i + 3
    if kind != "[":
        return "esc", i + 1

    j = i + 2
    while j < len(text) and not ("\x40" <= text[j] <= "\x7e"):
        j += 1
    if j >= len(text):
        return None, len(text)
    params, final = text[i + 2 : j], text[j]
    if final == "~":
        return TILDE_KEYS.get(params.split(";")[0]), j + 1
    return ESCAPE_KEYS.get(final), j + 1


def decode_keys(text: str) -> list[KeyMessage]:
    """
    Splits decoded terminal input into key messages.

    Consecutive printable characters are delivered as one ``runes`` message,
    so pasted text costs one update rather than one per character.
    """
    keys: list[KeyMessage] = []
    runes: list[str] = []

    def flush() -> None:
        if runes:
            keys.append(KeyMessage("runes", "".join(runes)))
            runes.clear()

    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\x1b":
            flush()
            name, i = _parse_escape(text, i)
            if name is not None:
                keys.append(KeyMessage(name))
            continue
        if ch in CONTROL_KEYS:
            flush()
            keys.append(KeyMessage(CONTROL_KEYS[ch]))
        elif ord(ch) < 0x20:
            flush()
            keys.append(KeyMessage(f"ctrl+{chr(ord(ch) + 0x60)}"))
        elif ch.isprintable():
            runes.append(ch)
        i += 1
    flush()
    return keys


def _is_incomplete_escape(tail: str) -> bool:
    if tail in ("\x1b", "\x1bO"):
        return True
    if not tail.startswith("\x1b["):
        return False
    return not any("\x40" <= ch <= "\x7e" for ch in tail[2:])


def split_incomplete_escape(text: str) -> tuple[str, str]:
    """
    Splits ``text`` into the part that can be decoded now and a trailing
    escape sequence whose remaining bytes have not been read yet.
    """
    start = text.rfind("\x1b")
    if start == -1 or not _is_incomplete_escape(text[start:]):
        return text, ""
    return text[:start], text[start:]


class KeyDecoder:
    """
    Decodes terminal input delivered in arbitrary chunks.

    An escape sequence cut off at the end of a chunk is held back and
    completed by the next one. ``flush`` releases it when no more input is
    coming, so a lone Esc press still arrives as ``esc``.
    """

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    def feed(self, text: str) -> list[KeyMessage]:
        text, self._pending = split_incomplete_escape(self._pending + text)
        return decode_keys(text)

    def flush(self) -> list[KeyMessage]:
        text, self._pending = self._pending, ""
        return decode_keys(text)


class TerminalInput:
    """Raw-mode stdin reader. Use ``start``/``stop`` around a running program."""

    def __init__(self, fd: Optional[int] = None):
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._post: Optional[Callable[[Message], None]] = None
        self._saved_attrs: Optional[list] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _enter_raw_mode(self) -> None:
        self._saved_attrs = termios.tcgetattr(self.fd)
        attrs = termios.tcgetattr(self.fd)
        attrs[0] &= ~(
            termios.BRKINT
            | termios.ICRNL
            | termios.INPCK
            | termios.ISTRIP
            | termios.IXON
        )
        attrs[3] &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)
        attrs[6][termios.VMIN] = 1
        attrs[6][termios.VTIME] = 0
        termios.tcsetattr(self.fd, termios.TCSAFLUSH, attrs)

    def _restore_mode(self) -> None:
        if self._saved_attrs is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None

    def start(self, post: Callable[[Message], None]) -> None:
        """Begins delivering messages to ``post``. Must be called on the loop."""
        self._post = post
        self._loop = asyncio.get_running_loop()
        self._enter_raw_mode()
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._read_loop, name="terminal-input", daemon=True
        )
        self._thread.start()
        self._loop.add_signal_handler(signal.SIGWINCH, self._on_resize)

    def stop(self) -> None:
        self._stop.set()
        if self._loop is not None:
            self._loop.remove_signal_handler(signal.SIGWINCH)
            self._loop = None
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        self._restore_mode()

    def _on_resize(self) -> None:
        size = os.get_terminal_size(self.fd)
        if self._post is not None:
            self._post(ResizeMessage(size.columns, size.lines))

    def _deliver(self, msgs: list[KeyMessage]) -> None:
        for msg in msgs:
            if self._post is not None:
                self._post(msg)

    def _read_loop(self) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        keys = KeyDecoder()
        while not self._stop.is_set():
            ready, _, _ = select.select([self.fd], [], [], POLL_INTERVAL)
            if not ready:
                if keys.pending:
                    self._deliver(keys.flush())
                continue
            try:
                data = os.read(self.fd, READ_SIZE)
            except OSError as e:
                log.debug(f"Terminal read failed: {e}")
                break
            if not data:
                break
            self._deliver(keys.feed(decoder.decode(data)))
