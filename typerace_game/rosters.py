"""
Roster builders for the race modes the game ships with.

Each builder returns ParticipantSpecs only; pacing draws happen inside the
RaceController so the session seed reproduces them.
"""

from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence

from typerace_game.config import BALANCE_CONFIG, get_config
from typerace_game.engine.data_models import Faction, NpcLevel, PacingProfile, ParticipantSpec
from typerace_game.engine.pacing import draw_npc_level_wpm

PLAYER_ID = "player"

DEFAULT_PRACTICE_POOL = [
    {"name": "CrystalWing", "faction": "d6"},
    {"name": "ThunderBeak", "faction": "d8"},
    {"name": "ShadowFeather", "faction": "d12"},
    {"name": "PrismTail", "faction": "d20"},
    {"name": "VoidRunner", "faction": "d10"},
    {"name": "SolarFlare", "faction": "d4"},
    {"name": "FrostWing", "faction": "d2"},
    {"name": "NeonRush", "faction": "d100"},
]
DEFAULT_PLACEMENT_OPPONENT = {"name": "TeacherGuru", "faction": "d12", "wpm": 45}
DEFAULT_NPC_NAMES = {
    NpcLevel.EASY: ["Rookie Rider", "Beginner Birdy", "Newbie Nester", "Hatchling Hunter"],
    NpcLevel.NORMAL: ["Average Avian", "Middling Mover", "Common Cluck", "Standard Strider"],
    NpcLevel.HARD: ["Expert Egger", "Swift Sprinter", "Rapid Runner", "Fast Flapper"],
    NpcLevel.INSANE: ["Champion Clucker", "Legendary Layer", "Insane Igniter", "Feather Flash"],
}
DEFAULT_PROMPT = "The quick brown fox jumps over the lazy dog."

PRACTICE_OPPONENTS = 7
CAMPAIGN_OPPONENTS = 3


def _practice_pool() -> List[Dict[str, str]]:
    pool = get_config("rosters.practice_pool")
    if isinstance(pool, list) and pool:
        return [entry for entry in pool if isinstance(entry, dict) and entry.get("name")]
    return list(DEFAULT_PRACTICE_POOL)


def _npc_names(level: NpcLevel) -> List[str]:
    names = get_config(f"rosters.npc_names.{level.value}")
    if isinstance(names, list) and names:
        return [str(name) for name in names]
    return list(DEFAULT_NPC_NAMES[level])


def human_spec(name: str = "You", faction: Optional[str] = None, participant_id: str = PLAYER_ID) -> ParticipantSpec:
    return ParticipantSpec(participant_id=participant_id, name=name, is_human=True, faction=faction)


def practice_roster(player_name: str = "You", player_faction: Optional[str] = "d4") -> List[ParticipantSpec]:
    """
    Player plus seven faction NPCs. A player without a faction is taking the
    placement test instead and faces a single fixed-speed opponent.
    """
    specs = [human_spec(player_name, player_faction)]
    if not player_faction:
        return specs + [placement_opponent()]

    for lane, entry in enumerate(_practice_pool()[:PRACTICE_OPPONENTS], start=1):
        specs.append(
            ParticipantSpec(
                participant_id=f"npc-{lane}",
                name=entry["name"],
                faction=entry.get("faction"),
            )
        )
    return specs


def placement_opponent() -> ParticipantSpec:
    cfg = get_config("rosters.placement_opponent", DEFAULT_PLACEMENT_OPPONENT)
    if not isinstance(cfg, dict):
        cfg = DEFAULT_PLACEMENT_OPPONENT
    return ParticipantSpec(
        participant_id="npc-placement",
        name=str(cfg.get("name", DEFAULT_PLACEMENT_OPPONENT["name"])),
        faction=cfg.get("faction"),
        pacing=PacingProfile(target_wpm=float(cfg.get("wpm", DEFAULT_PLACEMENT_OPPONENT["wpm"]))),
    )


def campaign_roster(
    opponent_names: Sequence[str],
    opponent_factions: Sequence[str],
    player_name: str = "You",
    player_faction: Optional[str] = None,
) -> List[ParticipantSpec]:
    """Player plus up to three story opponents in a four-lane race."""
    specs = [human_spec(player_name, player_faction)]
    count = min(CAMPAIGN_OPPONENTS, len(opponent_names))
    for i in range(count):
        faction = opponent_factions[i] if i < len(opponent_factions) else None
        specs.append(
            ParticipantSpec(
                participant_id=f"npc-{101 + i}",
                name=opponent_names[i],
                faction=faction,
            )
        )
    return specs


def fill_with_npcs(
    specs: Sequence[ParticipantSpec],
    level: NpcLevel,
    max_participants: int,
    rng: Optional[random.Random] = None,
) -> List[ParticipantSpec]:
    """Tops a networked lobby up to `max_participants` with tiered NPCs."""
    rng = rng or random.Random()
    filled = list(specs)
    names = _npc_names(level)
    slot = 0
    while len(filled) < max_participants:
        name = names[slot % len(names)]
        if slot >= len(names):
            name = f"{name} {slot // len(names) + 1}"
        filled.append(
            ParticipantSpec(
                participant_id=f"npc-{level.value}-{slot + 1}",
                name=name,
                pacing=PacingProfile(target_wpm=float(draw_npc_level_wpm(rng, level))),
            )
        )
        slot += 1
    return filled


def pick_prompt(rng: Optional[random.Random] = None) -> str:
    prompts = BALANCE_CONFIG.get("prompts") if isinstance(BALANCE_CONFIG, dict) else None
    if not isinstance(prompts, list):
        prompts = []
    prompts = [p for p in prompts if isinstance(p, str) and p.strip()]
    if not prompts:
        return DEFAULT_PROMPT
    return (rng or random).choice(prompts)


def faction_label(faction: Optional[str]) -> str:
    resolved = Faction.from_value(faction)
    if resolved is None:
        return "none"
    return resolved.name.title()
