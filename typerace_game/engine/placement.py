from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_FLOOR
from typing import Dict, List, Mapping, Optional

from typerace_game.config import BALANCE_CONFIG

DEFAULT_BASE_REWARD = 8
DEFAULT_POSITION_MULTIPLIERS = {1: 1.0, 2: 0.5, 3: 0.33}
DEFAULT_MULTIPLIER = 0.25
DEFAULT_CAMPAIGN_BONUS = (25, 10)


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class RewardPolicy:
    """Position-weighted experience formula."""

    base: int = DEFAULT_BASE_REWARD
    position_multipliers: Mapping[int, float] = field(
        default_factory=lambda: dict(DEFAULT_POSITION_MULTIPLIERS)
    )
    default_multiplier: float = DEFAULT_MULTIPLIER
    campaign_bonus_flat: int = DEFAULT_CAMPAIGN_BONUS[0]
    campaign_bonus_per_race: int = DEFAULT_CAMPAIGN_BONUS[1]
    campaign_race_number: Optional[int] = None

    @classmethod
    def from_config(cls, campaign_race_number: Optional[int] = None) -> "RewardPolicy":
        cfg = BALANCE_CONFIG.get("rewards", {}) if isinstance(BALANCE_CONFIG, dict) else {}
        if not isinstance(cfg, dict):
            cfg = {}
        multipliers = dict(DEFAULT_POSITION_MULTIPLIERS)
        for key, value in (cfg.get("position_multipliers") or {}).items():
            try:
                multipliers[int(key)] = float(value)
            except (TypeError, ValueError):
                continue
        bonus = cfg.get("campaign_bonus") or {}
        return cls(
            base=int(cfg.get("base", DEFAULT_BASE_REWARD)),
            position_multipliers=multipliers,
            default_multiplier=float(cfg.get("default_multiplier", DEFAULT_MULTIPLIER)),
            campaign_bonus_flat=int(bonus.get("flat", DEFAULT_CAMPAIGN_BONUS[0])),
            campaign_bonus_per_race=int(bonus.get("per_race", DEFAULT_CAMPAIGN_BONUS[1])),
            campaign_race_number=campaign_race_number,
        )

    def multiplier_for(self, position: int) -> float:
        return self.position_multipliers.get(position, self.default_multiplier)

    @property
    def bonus(self) -> int:
        if self.campaign_race_number is None:
            return 0
        return self.campaign_bonus_flat + self.campaign_bonus_per_race * self.campaign_race_number

    def reward(self, characters_typed: int, position: int) -> int:
        """base + bonus + max(1, floor(characters * multiplier))"""
        scaled = _to_decimal(characters_typed) * _to_decimal(self.multiplier_for(position))
        character_reward = int(scaled.to_integral_value(rounding=ROUND_FLOOR))
        return self.base + self.bonus + max(1, character_reward)


@dataclass(frozen=True)
class Placement:
    participant_id: str
    position: int
    finish_time_ms: float
    reward: int


class PlacementResolver:
    """
    Assigns finishing positions in invocation order.

    Participants that cross the line in the same tick are ranked by the
    order the resolver is called for them, so positions never collide.
    """

    def __init__(self, policy: Optional[RewardPolicy] = None) -> None:
        self.policy = policy or RewardPolicy()
        self.finished_order: List[str] = []
        self._placements: Dict[str, Placement] = {}

    def resolve(self, participant_id: str, characters_typed: int, finish_time_ms: float) -> Placement:
        existing = self._placements.get(participant_id)
        if existing is not None:
            return existing

        position = len(self.finished_order) + 1
        placement = Placement(
            participant_id=participant_id,
            position=position,
            finish_time_ms=finish_time_ms,
            reward=self.policy.reward(characters_typed, position),
        )
        self.finished_order.append(participant_id)
        self._placements[participant_id] = placement
        return placement

    def placement_for(self, participant_id: str) -> Optional[Placement]:
        return self._placements.get(participant_id)

    @property
    def finished_count(self) -> int:
        return len(self.finished_order)
