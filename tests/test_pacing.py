import random

import pytest

from typerace_game.engine import Difficulty, Faction, PacingProfile, PacingSimulator, ParticipantSpec, advance_progress
from typerace_game.engine.data_models import ParticipantState, RNGContainer
from typerace_game.engine.pacing import draw_target_wpm, resolve_profile, wpm_range


def test_advance_progress_converts_wpm_to_percent():
    profile = PacingProfile(target_wpm=60)
    # 60 WPM = 5 chars/s, so a 100 ms tick covers 0.5 of 50 chars = 1%.
    assert advance_progress(profile, 100, 0.0, 50) == pytest.approx(1.0)
    assert advance_progress(profile, 100, 10.0, 50, jitter=1.1) == pytest.approx(11.1)


def test_advance_progress_clamps_at_100():
    profile = PacingProfile(target_wpm=600)
    assert advance_progress(profile, 1000, 99.5, 10) == 100.0


def test_simulator_rejects_non_positive_tick():
    with pytest.raises(ValueError):
        PacingSimulator(10, 0)


def test_simulated_progress_is_monotonic_and_pins_at_100():
    sim = PacingSimulator(text_length=40, tick_ms=100)
    spec = ParticipantSpec(participant_id="npc-1", name="CrystalWing")
    state = ParticipantState(spec=spec, pacing=PacingProfile(target_wpm=90), lane=1)
    rng = RNGContainer(main_seed=1, jitter_seed=2)

    history = []
    crossed = False
    for tick in range(1, 200):
        state, crossed, jitter = sim.step(state, rng, elapsed_ms=tick * 100.0)
        history.append(state.progress)
        assert 0.85 <= jitter <= 1.15
        if crossed:
            break

    assert crossed
    assert history == sorted(history)
    assert state.progress == 100.0
    assert state.finish_time_ms == tick * 100.0

    again, crossed_again, jitter = sim.step(state, rng, elapsed_ms=99999.0)
    assert again is state
    assert not crossed_again
    assert jitter is None


def test_fixed_tier_never_rolls():
    assert wpm_range(Faction.ORDER) == (88, 88)
    assert draw_target_wpm(random.Random(3), "d100") == 88


def test_difficulty_scales_faction_range():
    assert wpm_range("d4") == (75, 90)
    assert wpm_range("d4", Difficulty.NOVICE) == (45, 54)
    drawn = draw_target_wpm(random.Random(7), "d4", Difficulty.NOVICE)
    assert 45 <= drawn <= 54


def test_unknown_faction_uses_fallback_range():
    assert wpm_range("d7") == (55, 75)


def test_invalid_profile_falls_back_to_default():
    spec = ParticipantSpec(participant_id="npc-x", name="Ghost", pacing=PacingProfile(target_wpm=0))
    profile, fell_back = resolve_profile(spec, RNGContainer(1, 2))
    assert fell_back
    assert profile.target_wpm == 60.0
    assert (profile.jitter_min, profile.jitter_max) == (0.85, 1.15)


def test_explicit_profile_wins_over_faction():
    spec = ParticipantSpec(
        participant_id="npc-y",
        name="TeacherGuru",
        faction="d12",
        pacing=PacingProfile(target_wpm=45),
    )
    profile, fell_back = resolve_profile(spec, RNGContainer(1, 2))
    assert not fell_back
    assert profile.target_wpm == 45
