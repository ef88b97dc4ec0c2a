import pytest

from typerace_game.engine import compute_accuracy, compute_wpm
from typerace_game.engine.metrics import TypingClock, round_wpm


def test_wpm_uses_five_char_words():
    assert compute_wpm(50, 30000) == pytest.approx(20.0)
    assert compute_wpm(300, 60000) == pytest.approx(60.0)


def test_wpm_is_zero_before_typing():
    assert compute_wpm(0, None) == 0.0
    assert compute_wpm(10, 0) == 0.0
    assert compute_wpm(10, -5) == 0.0


def test_accuracy_defaults_to_perfect():
    assert compute_accuracy(0, 0) == 100.0


def test_accuracy_counts_errors_over_all_keypresses():
    assert compute_accuracy(10, 2) == pytest.approx(80.0)
    assert compute_accuracy(4, 9) == 0.0


def test_round_wpm_rounds_half_up():
    assert round_wpm(20.5) == 21
    assert round_wpm(19.49) == 19


def test_typing_clock_starts_on_first_keystroke():
    clock = TypingClock()
    assert clock.elapsed(5000) is None
    assert not clock.started

    clock.mark_keystroke(1000)
    clock.mark_keystroke(2000)
    assert clock.started
    assert clock.elapsed(4000) == 3000

    clock.stop(5000)
    assert clock.elapsed(9000) == 4000
