from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import random
from typing import Optional

import numpy as np


class Phase(Enum):
    """Race session lifecycle. Only forward transitions are legal."""

    PENDING = 0
    COUNTDOWN = 1
    ACTIVE = 2
    FINISHED = 3

    @classmethod
    def from_string(cls, value: str) -> "Phase":
        try:
            return cls[value.upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown phase '{value}'") from exc

    @property
    def label(self) -> str:
        return self.name.lower()

    def can_advance_to(self, other: "Phase") -> bool:
        return other.value == self.value + 1


class Faction(Enum):
    """Elemental factions; each maps to a pacing tier."""

    FIRE = "d4"
    WATER = "d20"
    AIR = "d8"
    EARTH = "d6"
    ETHER = "d12"
    CHAOS = "d10"
    COIN = "d2"
    ORDER = "d100"

    @classmethod
    def from_value(cls, value) -> Optional["Faction"]:
        if value is None:
            return None
        if isinstance(value, Faction):
            return value
        key = str(value).strip()
        for faction in cls:
            if key.lower() in (faction.value, faction.name.lower()):
                return faction
        return None


class Difficulty(Enum):
    """Practice race difficulty; scales faction pacing ranges."""

    NOVICE = "novice"
    ADEPT = "adept"
    MASTER = "master"

    @classmethod
    def from_str(cls, value: str) -> "Difficulty":
        try:
            return cls(value.lower())
        except ValueError as exc:
            raise ValueError(f"Unknown difficulty: {value}") from exc


class NpcLevel(Enum):
    """Fill-in NPC tiers used when a networked lobby has empty lanes."""

    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"
    INSANE = "insane"

    @classmethod
    def from_str(cls, value: str) -> "NpcLevel":
        try:
            return cls(value.lower())
        except ValueError as exc:
            raise ValueError(f"Unknown NPC level: {value}") from exc


@dataclass(frozen=True)
class PacingProfile:
    """Target typing speed (WPM) plus multiplicative jitter bounds."""

    target_wpm: float
    jitter_min: float = 0.85
    jitter_max: float = 1.15

    @property
    def chars_per_second(self) -> float:
        return self.target_wpm * 5.0 / 60.0

    def is_valid(self) -> bool:
        return (
            self.target_wpm > 0
            and 0 < self.jitter_min <= self.jitter_max
        )


@dataclass(frozen=True)
class ParticipantSpec:
    participant_id: str
    name: str
    is_human: bool = False
    pacing: Optional[PacingProfile] = None
    faction: Optional[str] = None
    remote: bool = False


@dataclass(frozen=True)
class ParticipantState:
    """Immutable per-tick racer record; the controller swaps whole records."""

    spec: ParticipantSpec
    pacing: PacingProfile
    lane: int
    progress: float = 0.0
    wpm: float = 0.0
    accuracy: float = 100.0
    finish_time_ms: Optional[float] = None
    position: Optional[int] = None
    reward: Optional[int] = None
    withdrawn: bool = False

    @property
    def participant_id(self) -> str:
        return self.spec.participant_id

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def is_human(self) -> bool:
        return self.spec.is_human

    @property
    def is_simulated(self) -> bool:
        return not self.spec.is_human and not self.spec.remote

    @property
    def is_finished(self) -> bool:
        return self.finish_time_ms is not None


@dataclass(frozen=True)
class FinishEvent:
    participant_id: str
    position: int
    finish_time_ms: float
    reward: int


@dataclass(frozen=True)
class KeystrokeResult:
    accepted: bool
    completed: bool


@dataclass
class RNGContainer:
    """Seeded RNGs per participant: target-speed draw and per-tick jitter."""

    main_seed: int
    jitter_seed: int

    main_rng: Optional[random.Random] = field(init=False, default=None)
    jitter_rng: Optional[np.random.Generator] = field(init=False, default=None)

    def __post_init__(self) -> None:
        self.main_rng = random.Random(self.main_seed)
        self.jitter_rng = np.random.default_rng(self.jitter_seed)
