from __future__ import annotations

import random
import string
from typing import List, Optional

from typerace_game.engine.data_models import Phase
from typerace_game.engine.race_loop import RaceController
from typerace_game.engine.validator import chars_match


class AutoTypist:
    """
    Stands in for the human at the keyboard in headless races.

    Types at a steady `wpm`, occasionally hitting a wrong key first when
    `error_rate` > 0. Pass an instance as `before_tick` to
    `RaceController.run_until_finished`.
    """

    def __init__(self, wpm: float, error_rate: float = 0.0, seed: Optional[int] = None) -> None:
        if wpm <= 0:
            raise ValueError("AutoTypist needs a positive WPM.")
        self.wpm = wpm
        self.error_rate = max(0.0, min(1.0, error_rate))
        self.interval_ms = 60000.0 / (wpm * 5.0)
        self.keys_sent: List[str] = []
        self._rng = random.Random(seed)
        self._next_due: Optional[float] = None

    def __call__(self, controller: RaceController, now_ms: float) -> None:
        validator = controller.validator
        if validator is None or controller.phase is not Phase.ACTIVE:
            return
        if self._next_due is None:
            self._next_due = now_ms
            return

        while self._next_due <= now_ms and not validator.completed:
            expected = validator.target[validator.cursor]
            key = expected
            if self._rng.random() < self.error_rate:
                key = self._wrong_key(expected)
            if key == "\n":
                key = "Enter"
            self.keys_sent.append(key)
            controller.submit_keystroke(key)
            self._next_due += self.interval_ms

    def _wrong_key(self, expected: str) -> str:
        pool = [c for c in string.ascii_lowercase if not chars_match(c, expected)]
        return self._rng.choice(pool)
