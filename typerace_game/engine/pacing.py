from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, ROUND_HALF_UP
import random
from typing import Dict, Optional, Tuple

import numpy as np

from typerace_game.config import BALANCE_CONFIG

from .data_models import (
    Difficulty,
    Faction,
    NpcLevel,
    PacingProfile,
    ParticipantSpec,
    ParticipantState,
    RNGContainer,
)

# --- Defaults; configs/race_balance.json may override any of these ---

DEFAULT_JITTER = (0.85, 1.15)
DEFAULT_TARGET_WPM = 60.0

DEFAULT_FACTION_WPM: Dict[Faction, Tuple[int, int]] = {
    Faction.FIRE: (75, 90),
    Faction.WATER: (65, 80),
    Faction.AIR: (70, 85),
    Faction.EARTH: (55, 70),
    Faction.ETHER: (85, 100),
    Faction.CHAOS: (40, 110),
    Faction.COIN: (60, 85),
    Faction.ORDER: (88, 88),
}
DEFAULT_FALLBACK_WPM = (55, 75)

DEFAULT_DIFFICULTY_MULTIPLIER = {
    Difficulty.NOVICE: 0.6,
    Difficulty.ADEPT: 1.0,
    Difficulty.MASTER: 1.4,
}

DEFAULT_NPC_LEVEL_WPM = {
    NpcLevel.EASY: (25, 35),
    NpcLevel.NORMAL: (40, 50),
    NpcLevel.HARD: (60, 70),
    NpcLevel.INSANE: (90, 110),
}


def _pacing_config() -> Dict:
    if not isinstance(BALANCE_CONFIG, dict):
        return {}
    config = BALANCE_CONFIG.get("pacing")
    if not isinstance(config, dict):
        return {}
    return config


_PACING_CONFIG = _pacing_config()


def _as_range(value, fallback: Tuple[int, int]) -> Tuple[int, int]:
    try:
        low, high = int(value[0]), int(value[1])
    except (TypeError, ValueError, IndexError, KeyError):
        return fallback
    if low > high:
        return fallback
    return low, high


def _config_range_table(config_key: str, default_table: Dict, key_of) -> Dict:
    entries = _PACING_CONFIG.get(config_key, {})
    if not isinstance(entries, dict):
        entries = {}
    return {
        tier: _as_range(entries.get(key_of(tier)), fallback)
        for tier, fallback in default_table.items()
    }


FACTION_WPM = _config_range_table("faction_wpm", DEFAULT_FACTION_WPM, lambda f: f.value)
NPC_LEVEL_WPM = _config_range_table("npc_difficulty_wpm", DEFAULT_NPC_LEVEL_WPM, lambda lvl: lvl.value)
FALLBACK_WPM = _as_range(_PACING_CONFIG.get("fallback_wpm"), DEFAULT_FALLBACK_WPM)
DIFFICULTY_MULTIPLIER = {
    difficulty: float(_PACING_CONFIG.get("difficulty_multiplier", {}).get(difficulty.value, fallback))
    for difficulty, fallback in DEFAULT_DIFFICULTY_MULTIPLIER.items()
}
JITTER = (
    float(_PACING_CONFIG.get("jitter", {}).get("min", DEFAULT_JITTER[0])),
    float(_PACING_CONFIG.get("jitter", {}).get("max", DEFAULT_JITTER[1])),
)
TARGET_WPM_FALLBACK = float(_PACING_CONFIG.get("default_wpm", DEFAULT_TARGET_WPM))


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def default_profile() -> PacingProfile:
    """Profile used when a participant arrives without a usable one."""
    return PacingProfile(target_wpm=TARGET_WPM_FALLBACK, jitter_min=JITTER[0], jitter_max=JITTER[1])


def wpm_range(faction=None, difficulty: Optional[Difficulty] = None) -> Tuple[int, int]:
    """Closed WPM range for a faction, scaled by practice difficulty."""
    resolved = Faction.from_value(faction)
    low, high = FACTION_WPM.get(resolved, FALLBACK_WPM) if resolved else FALLBACK_WPM
    if difficulty is None:
        return low, high
    multiplier = DIFFICULTY_MULTIPLIER[difficulty]
    return _round_half_up(low * multiplier), _round_half_up(high * multiplier)


def draw_target_wpm(rng: random.Random, faction=None, difficulty: Optional[Difficulty] = None) -> int:
    """Rolls a target speed once per session; a fixed tier never rolls."""
    low, high = wpm_range(faction, difficulty)
    if low == high:
        return low
    return rng.randint(low, high)


def draw_npc_level_wpm(rng: random.Random, level: NpcLevel) -> int:
    low, high = NPC_LEVEL_WPM[level]
    return rng.randint(low, high)


def resolve_profile(
    spec: ParticipantSpec,
    rng: RNGContainer,
    difficulty: Optional[Difficulty] = None,
) -> Tuple[PacingProfile, bool]:
    """
    Picks the pacing profile a participant races with.

    Explicit valid profiles win, then a faction draw; anything else gets the
    default profile. Returns the profile and whether a fallback was used.
    """
    if isinstance(spec.pacing, PacingProfile) and spec.pacing.is_valid():
        return spec.pacing, False
    if Faction.from_value(spec.faction) is not None:
        target = draw_target_wpm(rng.main_rng, spec.faction, difficulty)
        return PacingProfile(target_wpm=float(target), jitter_min=JITTER[0], jitter_max=JITTER[1]), False
    return default_profile(), True


def advance_progress(
    profile: PacingProfile,
    tick_ms: float,
    prior_progress: float,
    text_length: int,
    jitter: float = 1.0,
) -> float:
    """
    Pure pacing step: target speed -> expected characters this tick ->
    jittered percentage of the prompt, added to prior progress.
    """
    if text_length <= 0:
        return 100.0
    expected_chars = profile.chars_per_second * (tick_ms / 1000.0)
    increment = (expected_chars * jitter / text_length) * 100.0
    return float(np.clip(prior_progress + max(0.0, increment), 0.0, 100.0))


class PacingSimulator:
    """Advances simulated participants one tick at a time."""

    def __init__(self, text_length: int, tick_ms: float) -> None:
        if tick_ms <= 0:
            raise ValueError("Pacing tick duration must be positive.")
        self.text_length = text_length
        self.tick_ms = tick_ms

    def roll_jitter(self, profile: PacingProfile, rng: Optional[RNGContainer]) -> float:
        if profile.jitter_min == profile.jitter_max:
            return profile.jitter_min
        if rng is None or rng.jitter_rng is None:
            return random.uniform(profile.jitter_min, profile.jitter_max)
        return float(rng.jitter_rng.uniform(profile.jitter_min, profile.jitter_max))

    def step(
        self,
        state: ParticipantState,
        rng: Optional[RNGContainer],
        elapsed_ms: float,
    ) -> Tuple[ParticipantState, bool, Optional[float]]:
        """
        Returns the replacement record, whether it crossed 100 this tick and
        the jitter factor rolled. Finished or withdrawn participants come back
        unchanged with no roll.
        """
        if state.is_finished or state.withdrawn:
            return state, False, None

        jitter = self.roll_jitter(state.pacing, rng)
        progress = advance_progress(state.pacing, self.tick_ms, state.progress, self.text_length, jitter)
        wpm = state.pacing.target_wpm * jitter

        if progress >= 100.0:
            return replace(state, progress=100.0, wpm=state.pacing.target_wpm, finish_time_ms=elapsed_ms), True, jitter
        return replace(state, progress=progress, wpm=wpm), False, jitter
