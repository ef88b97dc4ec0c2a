from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

from typerace_game.engine.data_models import FinishEvent, NpcLevel, ParticipantSpec, Phase
from typerace_game.engine.race_loop import MAX_PARTICIPANTS, MIN_PARTICIPANTS_NETWORKED, RaceController
from typerace_game.rosters import fill_with_npcs


class RaceLobby:
    """
    Bridges a networked room to a RaceController.

    Inbound messages are plain dicts from whatever transport the host uses;
    outbound lifecycle events accumulate in `outbox` until drained.
    """

    def __init__(
        self,
        room_id: str,
        target_text: str,
        npc_level: Optional[NpcLevel] = None,
        min_humans: int = MIN_PARTICIPANTS_NETWORKED,
        max_participants: int = MAX_PARTICIPANTS,
        seed: Optional[int] = None,
        verbose: bool = False,
        **controller_options: Any,
    ) -> None:
        self.room_id = room_id
        self.npc_level = npc_level
        self.min_humans = min_humans
        self.max_participants = max_participants
        self.verbose = verbose
        self.outbox: List[Dict[str, Any]] = []
        self._rng = random.Random(seed)
        self._announced_over = False
        self.controller = RaceController(
            target_text,
            min_participants=min_humans,
            max_participants=max_participants,
            rng_seed=seed if seed is not None else 42,
            verbose=verbose,
            **controller_options,
        )
        self.controller.on_participant_finished(self._on_finished)

    # --- inbound ---

    def handle(self, msg: Dict[str, Any]) -> bool:
        """Dispatches one inbound event. Unknown or out-of-phase events return False."""
        kind = msg.get("type")
        if kind == "join":
            return self.join(msg.get("participant_id"), msg.get("name"))
        if kind == "leave":
            return self.leave(msg.get("participant_id"))
        if kind == "progress":
            merged = self.controller.apply_remote_progress(
                str(msg.get("participant_id")),
                msg.get("progress", 0.0),
                wpm=msg.get("wpm"),
                accuracy=msg.get("accuracy"),
            )
            self._announce_if_over()
            return merged
        if kind == "start":
            return self.start()
        self._log(f"Ignoring unknown event type {kind!r}.")
        return False

    def join(self, participant_id, name=None) -> bool:
        if not participant_id:
            return False
        spec = ParticipantSpec(
            participant_id=str(participant_id),
            name=str(name or participant_id),
            is_human=True,
            remote=True,
        )
        if not self.controller.add_participant(spec):
            return False
        self._emit_roster()
        return True

    def leave(self, participant_id) -> bool:
        if participant_id is None:
            return False
        left = self.controller.withdraw(str(participant_id))
        if left:
            self._emit_roster()
            self._announce_if_over()
        return left

    def start(self) -> bool:
        if self.controller.phase is not Phase.PENDING:
            return False
        humans = [s for s in self.controller.participants if s.is_human and not s.withdrawn]
        if len(humans) < self.min_humans:
            self._log(f"Need {self.min_humans} racers to start; have {len(humans)}.")
            return False

        if self.npc_level is not None:
            current = [s.spec for s in self.controller.participants]
            for spec in fill_with_npcs(current, self.npc_level, self.max_participants, self._rng)[len(current):]:
                self.controller.add_participant(spec)
            self._emit_roster()

        if not self.controller.begin_countdown():
            return False
        self.outbox.append(
            {
                "type": "countdown",
                "room_id": self.room_id,
                "seconds": self.controller.countdown_ms / 1000.0,
            }
        )
        return True

    # --- outbound ---

    def poll(self):
        """Runs one controller tick and queues a race_over event when it ends."""
        snapshot = self.controller.tick()
        self._announce_if_over()
        return snapshot

    def drain(self) -> List[Dict[str, Any]]:
        events, self.outbox = self.outbox, []
        return events

    def close(self) -> None:
        self.controller.teardown()

    def _on_finished(self, event: FinishEvent) -> None:
        self.outbox.append(
            {
                "type": "participant_finished",
                "room_id": self.room_id,
                "participant_id": event.participant_id,
                "position": event.position,
                "finish_time_ms": event.finish_time_ms,
                "reward": event.reward,
            }
        )

    def _announce_if_over(self) -> None:
        if self._announced_over or self.controller.phase is not Phase.FINISHED:
            return
        self._announced_over = True
        self.outbox.append(
            {
                "type": "race_over",
                "room_id": self.room_id,
                "elapsed_ms": self.controller.elapsed_ms(),
                "results": [
                    {
                        "participant_id": s.participant_id,
                        "name": s.name,
                        "position": s.position,
                        "reward": s.reward,
                        "finish_time_ms": s.finish_time_ms,
                    }
                    for s in self.controller.results()
                ],
            }
        )

    def _emit_roster(self) -> None:
        self.outbox.append(
            {
                "type": "roster",
                "room_id": self.room_id,
                "participants": [
                    {"participant_id": s.participant_id, "name": s.name, "lane": s.lane, "withdrawn": s.withdrawn}
                    for s in self.controller.participants
                ],
            }
        )

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[RaceLobby] {message}")
