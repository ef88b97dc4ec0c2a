from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CHARS_PER_WORD = 5
MS_PER_MINUTE = 60000.0


def compute_wpm(correct_chars: int, elapsed_ms: Optional[float]) -> float:
    """
    Words per minute using the 5-characters-per-word convention.

    `elapsed_ms` is measured from the first accepted keystroke; None means
    nothing has been typed yet, and both None and 0 yield 0.
    """
    if elapsed_ms is None or elapsed_ms <= 0:
        return 0.0
    return (correct_chars / CHARS_PER_WORD) / (elapsed_ms / MS_PER_MINUTE)


def compute_accuracy(total_keypresses: int, error_count: int) -> float:
    """Accuracy over all attempted keypresses; 100 before any input."""
    if total_keypresses <= 0:
        return 100.0
    accuracy = 100.0 * (total_keypresses - error_count) / max(1, total_keypresses)
    return max(0.0, min(100.0, accuracy))


def round_wpm(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class TypingClock:
    """Tracks the first accepted keystroke so WPM ignores pre-typing idle time."""

    def __init__(self) -> None:
        self.first_keystroke_ms: Optional[float] = None
        self.stopped_ms: Optional[float] = None

    @property
    def started(self) -> bool:
        return self.first_keystroke_ms is not None

    def mark_keystroke(self, now_ms: float) -> None:
        if self.first_keystroke_ms is None:
            self.first_keystroke_ms = now_ms

    def stop(self, now_ms: float) -> None:
        if self.stopped_ms is None:
            self.stopped_ms = now_ms

    def elapsed(self, now_ms: float) -> Optional[float]:
        if self.first_keystroke_ms is None:
            return None
        end = self.stopped_ms if self.stopped_ms is not None else now_ms
        return max(0.0, end - self.first_keystroke_ms)
