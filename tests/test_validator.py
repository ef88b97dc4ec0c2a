from typerace_game.engine import TextCursorValidator
from typerace_game.engine.validator import BACKSPACE, ENTER


def _type(validator: TextCursorValidator, keys):
    return [validator.process(key) for key in keys]


def test_typing_whole_target_completes_once():
    validator = TextCursorValidator("hello")
    completions = []
    validator.on_completed(lambda: completions.append(True))

    results = _type(validator, "hello")

    assert results == [True] * 5
    assert validator.cursor == len("hello")
    assert validator.completed
    assert completions == [True]
    assert validator.process("x") is None
    assert completions == [True]


def test_wrong_key_is_rejected_and_cursor_holds():
    validator = TextCursorValidator("abc")
    _type(validator, "ab")

    assert validator.process("x") is False
    assert validator.cursor == 2
    assert validator.error
    assert validator.error_count == 1


def test_backspace_then_correct_key_matches_clean_run():
    validator = TextCursorValidator("abc")
    _type(validator, "ab")
    validator.process("x")
    assert validator.process(BACKSPACE) is None
    validator.process("b")

    clean = TextCursorValidator("abc")
    _type(clean, "ab")

    assert validator.cursor == clean.cursor == 2
    assert validator.typed == "ab"
    assert not validator.error


def test_backspace_at_start_is_noop():
    validator = TextCursorValidator("abc")
    assert validator.process(BACKSPACE) is None
    assert validator.cursor == 0
    assert validator.total_keypresses == 0


def test_dashes_accept_plain_hyphen():
    validator = TextCursorValidator("a—b–c")
    assert _type(validator, "a-b-c") == [True] * 5
    assert validator.completed


def test_enter_only_counts_on_line_break():
    validator = TextCursorValidator("a\nb")
    assert validator.process(ENTER) is None
    assert validator.total_keypresses == 0

    validator.process("a")
    assert validator.process(ENTER) is True
    assert validator.cursor == 2


def test_modifier_keys_are_ignored():
    validator = TextCursorValidator("ab")
    assert validator.process("Shift") is None
    assert validator.process("") is None
    assert validator.total_keypresses == 0
    assert validator.cursor == 0


def test_progress_listener_reports_cursor():
    validator = TextCursorValidator("abcd")
    seen = []
    validator.on_progress(seen.append)

    _type(validator, "ab")
    validator.process(BACKSPACE)

    assert seen == [1, 2, 1]
    assert validator.progress == 25.0
