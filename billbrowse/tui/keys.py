"""Translate Textual key events into router `KeyEvent`s."""

from typing import Optional

from billbrowse.core.router import KeyEvent, KeyKind

_NAMED_KEYS = {
    "up": KeyKind.UP,
    "down": KeyKind.DOWN,
    "left": KeyKind.LEFT,
    "right": KeyKind.RIGHT,
    "enter": KeyKind.CONFIRM,
    "escape": KeyKind.ESCAPE,
    "tab": KeyKind.TAB,
    "backspace": KeyKind.BACKSPACE,
}


def classify_key(key: str, character: Optional[str] = None) -> Optional[KeyEvent]:
    """
    Classify a Textual key.

    Args:
        key: Textual key name (e.g. "up", "enter", "q", "ctrl+c")
        character: Printable character for the key, if any

    Returns:
        KeyEvent, or None for keys the browser does not handle
    """
    kind = _NAMED_KEYS.get(key)
    if kind is not None:
        return KeyEvent(kind=kind)
    if character and len(character) == 1 and character.isprintable():
        return KeyEvent.character(character)
    return None


__all__ = ["classify_key"]
