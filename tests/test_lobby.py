from typerace_game.engine import ManualClock, NpcLevel, Phase
from typerace_game.lobby import RaceLobby


def _lobby(**kwargs) -> RaceLobby:
    kwargs.setdefault("countdown_ms", 0)
    return RaceLobby("room-1", "abc", clock=ManualClock(), seed=5, **kwargs)


def _types(events):
    return [event["type"] for event in events]


def test_start_waits_for_enough_humans():
    lobby = _lobby()
    assert lobby.handle({"type": "join", "participant_id": "u1", "name": "Ada"})
    assert not lobby.handle({"type": "start"})

    assert lobby.handle({"type": "join", "participant_id": "u2", "name": "Bo"})
    assert lobby.handle({"type": "start"})
    assert lobby.controller.phase is Phase.ACTIVE
    assert _types(lobby.drain()) == ["roster", "roster", "countdown"]
    assert lobby.drain() == []


def test_progress_events_finish_race():
    lobby = _lobby()
    lobby.join("u1", "Ada")
    lobby.join("u2", "Bo")
    lobby.start()
    lobby.drain()

    assert lobby.handle({"type": "progress", "participant_id": "u1", "progress": 100, "wpm": 70})
    assert lobby.handle({"type": "progress", "participant_id": "u2", "progress": 100})

    events = lobby.drain()
    assert _types(events) == ["participant_finished", "participant_finished", "race_over"]
    assert [e["position"] for e in events[:2]] == [1, 2]
    results = events[-1]["results"]
    assert [r["participant_id"] for r in results] == ["u1", "u2"]


def test_leaving_player_ends_race_for_the_rest():
    lobby = _lobby()
    lobby.join("u1")
    lobby.join("u2")
    lobby.start()
    lobby.handle({"type": "progress", "participant_id": "u1", "progress": 100})
    lobby.drain()

    assert lobby.handle({"type": "leave", "participant_id": "u2"})

    assert lobby.controller.phase is Phase.FINISHED
    assert _types(lobby.drain()) == ["roster", "race_over"]


def test_empty_lanes_fill_with_npcs():
    lobby = _lobby(npc_level=NpcLevel.EASY, max_participants=4)
    lobby.join("u1")
    lobby.join("u2")
    assert lobby.start()

    participants = lobby.controller.participants
    assert len(participants) == 4
    npcs = [p for p in participants if p.is_simulated]
    assert len(npcs) == 2
    assert all(25 <= p.pacing.target_wpm <= 35 for p in npcs)


def test_unknown_and_invalid_events_are_ignored():
    lobby = _lobby()
    assert not lobby.handle({"type": "dance"})
    assert not lobby.handle({"type": "join"})
    assert not lobby.handle({"type": "progress", "participant_id": "nobody", "progress": 50})


def test_close_tears_down_controller():
    lobby = _lobby()
    lobby.close()
    assert lobby.controller.torn_down
    assert not lobby.join("u1")
