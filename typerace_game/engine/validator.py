from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

BACKSPACE = "Backspace"
ENTER = "Enter"

# Characters the player may type with a plain ASCII key.
CHAR_EQUIVALENTS: Dict[str, Tuple[str, ...]] = {
    "—": ("-",),  # em dash
    "–": ("-",),  # en dash
    "’": ("'",),
    "“": ('"',),
    "”": ('"',),
}


def chars_match(typed: str, expected: str) -> bool:
    if typed == expected:
        return True
    return typed in CHAR_EQUIVALENTS.get(expected, ())


class TextCursorValidator:
    """
    Strict-gate keystroke validator for a single target string.

    Correct characters advance the cursor; a wrong character is rejected and
    counted, leaving the cursor in place until the player types the expected
    character. Backspace steps the cursor back by one.
    """

    def __init__(self, target: str) -> None:
        self.target = target
        self.cursor = 0
        self.error = False
        self.error_count = 0
        self.total_keypresses = 0
        self.completed = False
        self._progress_listeners: List[Callable[[int], None]] = []
        self._completed_listeners: List[Callable[[], None]] = []

    @property
    def typed(self) -> str:
        return self.target[: self.cursor]

    @property
    def correct_chars(self) -> int:
        return self.cursor

    @property
    def progress(self) -> float:
        if not self.target:
            return 100.0
        return self.cursor / len(self.target) * 100.0

    def on_progress(self, callback: Callable[[int], None]) -> None:
        self._progress_listeners.append(callback)

    def on_completed(self, callback: Callable[[], None]) -> None:
        self._completed_listeners.append(callback)

    def process(self, key: str) -> Optional[bool]:
        """
        Applies one key. Returns True when a character was accepted, False
        when it was rejected, and None when the key was ignored (including
        backspace, which neither accepts nor rejects).
        """
        if self.completed:
            return None

        if key == BACKSPACE:
            if self.cursor > 0:
                self.cursor -= 1
                self.error = False
                self._emit_progress()
            return None

        char = self._normalise_key(key)
        if char is None:
            return None

        self.total_keypresses += 1
        expected = self.target[self.cursor]
        if not chars_match(char, expected):
            self.error = True
            self.error_count += 1
            return False

        self.cursor += 1
        self.error = False
        self._emit_progress()
        if self.cursor == len(self.target):
            self.completed = True
            for callback in self._completed_listeners:
                callback()
        return True

    def _normalise_key(self, key: str) -> Optional[str]:
        if key == ENTER:
            # Only meaningful when the prompt itself contains a line break.
            if self.target[self.cursor] == "\n":
                return "\n"
            return None
        if len(key) != 1 or not (key.isprintable() or key == "\n"):
            return None
        return key

    def _emit_progress(self) -> None:
        for callback in self._progress_listeners:
            callback(self.cursor)
