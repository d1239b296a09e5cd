"""Translate Textual key events into the bytes a remote shell expects."""

from __future__ import annotations

# xterm-style sequences for keys Textual names rather than types
KEY_SEQUENCES: dict[str, str] = {
    "enter": "\r",
    "tab": "\t",
    "shift+tab": "\x1b[Z",
    "backspace": "\x7f",
    "escape": "\x1b",
    "up": "\x1b[A",
    "down": "\x1b[B",
    "right": "\x1b[C",
    "left": "\x1b[D",
    "home": "\x1b[H",
    "end": "\x1b[F",
    "insert": "\x1b[2~",
    "delete": "\x1b[3~",
    "pageup": "\x1b[5~",
    "pagedown": "\x1b[6~",
    "f1": "\x1bOP",
    "f2": "\x1bOQ",
    "f3": "\x1bOR",
    "f4": "\x1bOS",
    "f5": "\x1b[15~",
    "f6": "\x1b[17~",
    "f7": "\x1b[18~",
    "f8": "\x1b[19~",
    "f9": "\x1b[20~",
    # f10 leaves the shell screen
    "f11": "\x1b[23~",
    "f12": "\x1b[24~",
}


def key_to_input(key: str, character: str | None) -> str | None:
    """Return the input for a key press, or None when it has no terminal meaning."""
    sequence = KEY_SEQUENCES.get(key)
    if sequence is not None:
        return sequence
    if key.startswith("ctrl+") and len(key) == 6 and "a" <= key[5] <= "z":
        return chr(ord(key[5]) - ord("a") + 1)
    if character:
        return character
    return None
