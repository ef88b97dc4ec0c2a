import random

from typerace_game.engine import NpcLevel
from typerace_game.rosters import (
    PLAYER_ID,
    campaign_roster,
    faction_label,
    fill_with_npcs,
    human_spec,
    pick_prompt,
    practice_roster,
)
from typerace_game.config import get_config


def test_practice_roster_has_player_and_seven_npcs():
    specs = practice_roster("Ada", "d20")
    assert len(specs) == 8
    assert specs[0].participant_id == PLAYER_ID
    assert specs[0].is_human
    assert [s.participant_id for s in specs[1:]] == [f"npc-{i}" for i in range(1, 8)]
    assert all(s.faction for s in specs[1:])


def test_player_without_faction_gets_placement_race():
    specs = practice_roster("Ada", None)
    assert len(specs) == 2
    opponent = specs[1]
    assert opponent.name == "TeacherGuru"
    assert opponent.pacing.target_wpm == 45


def test_campaign_roster_caps_at_three_opponents():
    specs = campaign_roster(["Steve", "Auto", "Matikah", "Extra"], ["d6"])
    assert [s.participant_id for s in specs] == [PLAYER_ID, "npc-101", "npc-102", "npc-103"]
    assert [s.faction for s in specs[1:]] == ["d6", None, None]


def test_fill_with_npcs_tops_up_lobby():
    filled = fill_with_npcs([human_spec()], NpcLevel.HARD, 6, random.Random(1))
    assert len(filled) == 6
    npcs = filled[1:]
    assert len({s.participant_id for s in npcs}) == 5
    assert all(60 <= s.pacing.target_wpm <= 70 for s in npcs)
    assert npcs[-1].name.endswith(" 2")


def test_faction_label():
    assert faction_label("d4") == "Fire"
    assert faction_label("ether") == "Ether"
    assert faction_label(None) == "none"


def test_pick_prompt_uses_configured_prompts():
    prompt = pick_prompt(random.Random(2))
    assert prompt in get_config("prompts")
