"""Tests for decoding raw terminal input into key messages."""

import pytest

from epub_downloader.tui.messages import KeyMessage
from epub_downloader.tui.terminal import (
    KeyDecoder,
    decode_keys,
    split_incomplete_escape,
)


def keys(text: str) -> list[str]:
    return [msg.key for msg in decode_keys(text)]


@pytest.mark.parametrize(
    ("raw", "key"),
    [
        ("\x03", "ctrl+c"),
        ("\x13", "ctrl+s"),
        ("\x15", "ctrl+u"),
        ("\r", "enter"),
        ("\n", "enter"),
        ("\x7f", "backspace"),
        ("\t", "tab"),
        ("\x1b", "esc"),
        ("\x1b[A", "up"),
        ("\x1b[B", "down"),
        ("\x1b[C", "right"),
        ("\x1b[D", "left"),
        ("\x1bOA", "up"),
        ("\x1b[3~", "delete"),
        ("\x01", "ctrl+a"),
    ],
)
def test_special_keys(raw: str, key: str) -> None:
    assert decode_keys(raw) == [KeyMessage(key)]


def test_printable_runs_are_coalesced() -> None:
    assert decode_keys('[{"name": "é"}]') == [KeyMessage("runes", '[{"name": "é"}]')]


def test_paste_with_newlines_splits_into_runes_and_enters() -> None:
    msgs = decode_keys('[\n  {"a": 1}\r\n]')

    assert [m.key for m in msgs] == [
        "runes",
        "enter",
        "runes",
        "enter",
        "enter",
        "runes",
    ]
    assert msgs[2].text == '  {"a": 1}'


def test_mixed_sequence() -> None:
    assert keys("ab\x1b[Bq\x03") == ["runes", "down", "runes", "ctrl+c"]


def test_unknown_escape_sequences_are_dropped() -> None:
    assert keys("\x1b[200~x") == ["runes"]
    assert keys("\x1b[99Z") == []


def test_truncated_sequence_is_dropped() -> None:
    assert keys("\x1b[1;5") == []


@pytest.mark.parametrize(
    ("text", "ready", "held"),
    [
        ("ab", "ab", ""),
        ("ab\x1b", "ab", "\x1b"),
        ("\x1b[", "", "\x1b["),
        ("q\x1b[1;5", "q", "\x1b[1;5"),
        ("\x1bO", "", "\x1bO"),
        ("\x1b[A", "\x1b[A", ""),
        ("\x1bx", "\x1bx", ""),
    ],
)
def test_split_incomplete_escape(text: str, ready: str, held: str) -> None:
    assert split_incomplete_escape(text) == (ready, held)


@pytest.mark.parametrize(
    "chunks",
    [
        ["\x1b", "[A"],
        ["\x1b[", "A"],
        ["\x1bO", "A"],
        ["\x1b[1;", "5A"],
    ],
)
def test_sequence_split_across_reads_is_reassembled(chunks: list[str]) -> None:
    decoder = KeyDecoder()
    msgs = []
    for chunk in chunks:
        msgs.extend(decoder.feed(chunk))

    assert [m.key for m in msgs] == ["up"]
    assert not decoder.pending


def test_held_escape_is_not_decoded_early() -> None:
    decoder = KeyDecoder()

    assert decoder.feed("a\x1b") == [KeyMessage("runes", "a")]
    assert decoder.pending


def test_flush_releases_lone_escape() -> None:
    decoder = KeyDecoder()
    decoder.feed("\x1b")

    assert decoder.flush() == [KeyMessage("esc")]
    assert not decoder.pending
    assert decoder.flush() == []
