from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from typerace_game.config import get_config

from .data_models import (
    Difficulty,
    FinishEvent,
    KeystrokeResult,
    PacingProfile,
    ParticipantSpec,
    ParticipantState,
    Phase,
    RNGContainer,
)
from .metrics import TypingClock, compute_accuracy, compute_wpm
from .pacing import PacingSimulator, resolve_profile
from .placement import PlacementResolver, RewardPolicy
from .scheduler import TickScheduler, monotonic_ms
from .telemetry import TelemetryCollector, TelemetryFrame, TelemetryRacerFrame
from .validator import TextCursorValidator

COUNTDOWN_MS = float(get_config("lifecycle.countdown_seconds", 3)) * 1000.0
GRACE_PERIOD_MS = float(get_config("lifecycle.grace_period_ms", 5000))
CLOCK_TICK_MS = float(get_config("lifecycle.clock_tick_ms", 100))
PACING_TICK_MS = float(get_config("lifecycle.pacing_tick_ms", 100))
MAX_PARTICIPANTS = int(get_config("lifecycle.max_participants", 8))
MIN_PARTICIPANTS_SINGLE = int(get_config("lifecycle.min_participants.single_player", 1))
MIN_PARTICIPANTS_NETWORKED = int(get_config("lifecycle.min_participants.networked", 2))

SpecLike = Union[ParticipantSpec, Mapping[str, object]]
FinishCallback = Callable[[FinishEvent], None]


@dataclass(frozen=True)
class TickSnapshot:
    phase: Phase
    elapsed_ms: float
    participants: Tuple[ParticipantState, ...]

    def participant(self, participant_id: str) -> Optional[ParticipantState]:
        for state in self.participants:
            if state.participant_id == participant_id:
                return state
        return None


def _as_flag(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    return value == 1


def _coerce_spec(raw: SpecLike, lane: int) -> Optional[ParticipantSpec]:
    """Accepts ParticipantSpec or a loose mapping from a lobby payload."""
    if isinstance(raw, ParticipantSpec):
        return raw
    if not isinstance(raw, Mapping):
        return None

    participant_id = raw.get("participant_id") or raw.get("id") or f"racer-{lane}"
    name = raw.get("name") or raw.get("username") or str(participant_id)
    pacing = raw.get("pacing")
    if isinstance(pacing, Mapping):
        try:
            pacing = PacingProfile(
                target_wpm=float(pacing["target_wpm"]),
                jitter_min=float(pacing.get("jitter_min", 0.85)),
                jitter_max=float(pacing.get("jitter_max", 1.15)),
            )
        except (KeyError, TypeError, ValueError):
            pacing = None
    elif raw.get("wpm") is not None:
        try:
            pacing = PacingProfile(target_wpm=float(raw["wpm"]))
        except (TypeError, ValueError):
            pacing = None
    if not isinstance(pacing, PacingProfile):
        pacing = None

    return ParticipantSpec(
        participant_id=str(participant_id),
        name=str(name),
        is_human=_as_flag(raw.get("is_human", False)),
        pacing=pacing,
        faction=raw.get("faction"),
        remote=_as_flag(raw.get("remote", False)),
    )


class RaceController:
    """
    Owns one race session: phase machine, participant records, timers.

    Every mutation goes through this object. Participant records are frozen
    and replaced whole, so a snapshot never shows a half-applied tick. After
    `teardown()` every entry point is a no-op.
    """

    def __init__(
        self,
        target_text: str,
        participants: Iterable[SpecLike] = (),
        *,
        clock: Optional[Callable[[], float]] = None,
        countdown_ms: float = COUNTDOWN_MS,
        grace_period_ms: float = GRACE_PERIOD_MS,
        clock_tick_ms: float = CLOCK_TICK_MS,
        pacing_tick_ms: float = PACING_TICK_MS,
        min_participants: int = MIN_PARTICIPANTS_SINGLE,
        max_participants: int = MAX_PARTICIPANTS,
        difficulty: Optional[Difficulty] = None,
        reward_policy: Optional[RewardPolicy] = None,
        telemetry: Optional[TelemetryCollector] = None,
        rng_seed: int = 42,
        verbose: bool = False,
    ) -> None:
        if not isinstance(target_text, str) or not target_text:
            raise ValueError("Race target text must be a non-empty string.")

        self.target_text = target_text
        self.countdown_ms = max(0.0, countdown_ms)
        self.grace_period_ms = max(0.0, grace_period_ms)
        self.clock_tick_ms = clock_tick_ms
        self.pacing_tick_ms = pacing_tick_ms
        self.min_participants = max(1, min_participants)
        self.max_participants = max_participants
        self.difficulty = difficulty
        self.telemetry = telemetry
        self.verbose = verbose

        self._clock = clock or monotonic_ms
        self._rng_seed = rng_seed
        self._phase = Phase.PENDING
        self._torn_down = False
        self._countdown_started_ms: Optional[float] = None
        self._start_ms: Optional[float] = None
        self._final_elapsed_ms: Optional[float] = None
        self._grace_deadline_ms: Optional[float] = None
        self.tick_index = 0

        self._states: List[ParticipantState] = []
        self._index: Dict[str, int] = {}
        self._rngs: Dict[str, RNGContainer] = {}
        self._human_id: Optional[str] = None
        self._validator: Optional[TextCursorValidator] = None
        self._typing_clock = TypingClock()

        self.pacing = PacingSimulator(len(target_text), pacing_tick_ms)
        self.resolver = PlacementResolver(reward_policy or RewardPolicy.from_config())
        self.scheduler = TickScheduler()
        self._finish_listeners: List[FinishCallback] = []
        self._done: Optional[asyncio.Event] = None

        for raw in participants:
            self.add_participant(raw)

    # --- read side ---

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    @property
    def participants(self) -> Sequence[ParticipantState]:
        return tuple(self._states)

    @property
    def human(self) -> Optional[ParticipantState]:
        if self._human_id is None:
            return None
        return self._states[self._index[self._human_id]]

    @property
    def validator(self) -> Optional[TextCursorValidator]:
        return self._validator

    @property
    def finished_order(self) -> List[str]:
        return list(self.resolver.finished_order)

    @property
    def start_ms(self) -> Optional[float]:
        return self._start_ms

    def elapsed_ms(self, now_ms: Optional[float] = None) -> float:
        if self._final_elapsed_ms is not None:
            return self._final_elapsed_ms
        if self._start_ms is None:
            return 0.0
        now = self._clock() if now_ms is None else now_ms
        return max(0.0, now - self._start_ms)

    def countdown_remaining_ms(self) -> Optional[float]:
        if self._phase is not Phase.COUNTDOWN or self._countdown_started_ms is None:
            return None
        return max(0.0, self._countdown_started_ms + self.countdown_ms - self._clock())

    def snapshot(self) -> TickSnapshot:
        return TickSnapshot(phase=self._phase, elapsed_ms=self.elapsed_ms(), participants=tuple(self._states))

    def results(self) -> List[ParticipantState]:
        """Finishers by position, then everyone else in lane order."""
        finished = sorted((s for s in self._states if s.position is not None), key=lambda s: s.position)
        others = [s for s in self._states if s.position is None]
        return finished + others

    # --- roster ---

    def add_participant(self, raw: SpecLike) -> bool:
        """Adds an entrant while pending. Bad or surplus entrants are skipped, never raised."""
        if self._torn_down or self._phase is not Phase.PENDING:
            return False
        if len(self._states) >= self.max_participants:
            self._log(f"Roster full ({self.max_participants}); entrant skipped.")
            return False

        lane = len(self._states)
        spec = _coerce_spec(raw, lane)
        if spec is None:
            self._log(f"Unreadable participant spec in lane {lane}; entrant skipped.")
            return False
        if spec.participant_id in self._index:
            return False
        if spec.is_human and not spec.remote and self._human_id is not None:
            self._log(f"Second local human '{spec.name}' skipped; only one keyboard per session.")
            return False

        rng = RNGContainer(
            main_seed=self._rng_seed + lane * 11 + 1,
            jitter_seed=self._rng_seed + lane * 11 + 2,
        )
        profile, fell_back = resolve_profile(spec, rng, self.difficulty)
        if fell_back and not spec.is_human and not spec.remote:
            self._log(f"No usable pacing for '{spec.name}'; using default {profile.target_wpm:.0f} WPM.")

        self._rngs[spec.participant_id] = rng
        self._index[spec.participant_id] = lane
        self._states.append(ParticipantState(spec=spec, pacing=profile, lane=lane))

        if spec.is_human and not spec.remote:
            self._human_id = spec.participant_id
            self._validator = TextCursorValidator(self.target_text)
        return True

    def withdraw(self, participant_id: str) -> bool:
        """Marks a participant as gone; they stop blocking the all-finished check."""
        if self._torn_down or self._phase is Phase.FINISHED:
            return False
        idx = self._index.get(participant_id)
        if idx is None:
            return False
        state = self._states[idx]
        if state.withdrawn or state.is_finished:
            return False
        self._states[idx] = replace(state, withdrawn=True)
        self._log(f"{state.name} withdrew.")
        if self._phase is Phase.ACTIVE:
            self._check_race_over(self._clock())
        return True

    def on_participant_finished(self, callback: FinishCallback) -> None:
        self._finish_listeners.append(callback)

    # --- lifecycle ---

    def begin_countdown(self) -> bool:
        if self._torn_down or self._phase is not Phase.PENDING:
            return False
        present = sum(1 for s in self._states if not s.withdrawn)
        if present < self.min_participants:
            return False
        now = self._clock()
        self._set_phase(Phase.COUNTDOWN)
        self._countdown_started_ms = now
        self._log(f"Countdown started ({self.countdown_ms / 1000:.0f}s, {present} racers).")
        self._advance_phase(now)
        return True

    def _advance_phase(self, now_ms: float) -> None:
        if self._phase is not Phase.COUNTDOWN or self._countdown_started_ms is None:
            return
        zero_point = self._countdown_started_ms + self.countdown_ms
        if now_ms >= zero_point:
            # The scheduled zero instant, not the tick that noticed it, is time zero.
            self._start_ms = zero_point
            self._set_phase(Phase.ACTIVE)
            self._log("Race is live.")

    def _set_phase(self, phase: Phase) -> None:
        if not self._phase.can_advance_to(phase):
            return
        self._phase = phase

    def _finish_race(self, now_ms: float) -> None:
        if self._phase is not Phase.ACTIVE:
            return
        self._final_elapsed_ms = self.elapsed_ms(now_ms)
        self._set_phase(Phase.FINISHED)
        self.scheduler.cancel_all()
        if self._done is not None:
            self._done.set()
        order = ", ".join(f"{s.position}. {s.name}" for s in self.results() if s.position is not None)
        self._log(f"Race over at {self._final_elapsed_ms / 1000:.2f}s. {order}")

    def _check_race_over(self, now_ms: float) -> None:
        if self._phase is not Phase.ACTIVE:
            return
        racing = [s for s in self._states if not s.withdrawn]
        if racing and all(s.is_finished for s in racing):
            self._finish_race(now_ms)
            return
        if self._grace_deadline_ms is not None and now_ms >= self._grace_deadline_ms:
            self._finish_race(now_ms)

    def teardown(self) -> None:
        """Cancels timers and freezes the session. Safe to call repeatedly."""
        if self._torn_down:
            return
        if self._phase is Phase.ACTIVE and self._final_elapsed_ms is None:
            self._final_elapsed_ms = self.elapsed_ms()
        self._torn_down = True
        self.scheduler.cancel_all()
        if self._done is not None:
            self._done.set()
        self._log("Session torn down.")

    # --- ticks ---

    def tick(self) -> TickSnapshot:
        """One full update: pacing for simulated racers, then clock and metrics."""
        if self._torn_down:
            return self.snapshot()
        now = self._clock()
        self._advance_phase(now)
        if self._phase is Phase.ACTIVE:
            self._pacing_step(now)
            self._clock_step(now)
        return self.snapshot()

    def clock_tick(self) -> TickSnapshot:
        if self._torn_down:
            return self.snapshot()
        now = self._clock()
        self._advance_phase(now)
        if self._phase is Phase.ACTIVE:
            self._clock_step(now)
        return self.snapshot()

    def pacing_tick(self) -> TickSnapshot:
        if self._torn_down:
            return self.snapshot()
        now = self._clock()
        self._advance_phase(now)
        if self._phase is Phase.ACTIVE:
            self._pacing_step(now)
            self._check_race_over(now)
        return self.snapshot()

    def _clock_step(self, now_ms: float) -> None:
        human = self.human
        if human is not None and not human.is_finished and self._validator is not None:
            self._replace(self._human_metrics(human, now_ms))
        self._check_race_over(now_ms)

    def _pacing_step(self, now_ms: float) -> None:
        elapsed = self.elapsed_ms(now_ms)
        previous = {s.participant_id: s.progress for s in self._states} if self.telemetry is not None else {}
        jitters: Dict[str, float] = {}

        # Lane order doubles as the tie-break for same-tick finishers.
        for idx in range(len(self._states)):
            if self._torn_down:
                break
            state = self._states[idx]
            if not state.is_simulated:
                continue
            updated, crossed, jitter = self.pacing.step(state, self._rngs.get(state.participant_id), elapsed)
            if jitter is None:
                continue
            jitters[state.participant_id] = jitter
            if crossed:
                self._finish_participant(updated, len(self.target_text), elapsed, now_ms)
            else:
                self._states[idx] = updated

        if self.telemetry is not None:
            self._record_frame(elapsed, previous, jitters)

    # --- input ---

    def submit_keystroke(self, key: str) -> KeystrokeResult:
        if self._torn_down or self._validator is None:
            return KeystrokeResult(accepted=False, completed=False)
        now = self._clock()
        self._advance_phase(now)
        human = self.human
        if self._phase is not Phase.ACTIVE or human is None or human.withdrawn:
            return KeystrokeResult(accepted=False, completed=human is not None and human.is_finished)
        if human.is_finished:
            return KeystrokeResult(accepted=False, completed=True)

        accepted = self._validator.process(key)
        if accepted:
            self._typing_clock.mark_keystroke(now)

        if self._validator.completed:
            self._typing_clock.stop(now)
            finished = self._human_metrics(human, now)
            finished = replace(finished, finish_time_ms=self.elapsed_ms(now))
            self._finish_participant(finished, self._validator.correct_chars, finished.finish_time_ms, now)
            self._check_race_over(now)
            return KeystrokeResult(accepted=True, completed=True)

        self._replace(self._human_metrics(human, now))
        return KeystrokeResult(accepted=bool(accepted), completed=False)

    def _human_metrics(self, human: ParticipantState, now_ms: float) -> ParticipantState:
        validator = self._validator
        progress = max(human.progress, validator.progress)
        return replace(
            human,
            progress=min(100.0, progress),
            wpm=compute_wpm(validator.correct_chars, self._typing_clock.elapsed(now_ms)),
            accuracy=compute_accuracy(validator.total_keypresses, validator.error_count),
        )

    def apply_remote_progress(
        self,
        participant_id: str,
        progress: float,
        wpm: Optional[float] = None,
        accuracy: Optional[float] = None,
    ) -> bool:
        """Merges a networked peer's reported progress as if simulated locally."""
        if self._torn_down:
            return False
        now = self._clock()
        self._advance_phase(now)
        if self._phase is not Phase.ACTIVE:
            return False
        idx = self._index.get(participant_id)
        if idx is None:
            return False
        state = self._states[idx]
        if not state.spec.remote or state.is_finished or state.withdrawn:
            return False

        try:
            reported = float(progress)
        except (TypeError, ValueError):
            return False
        merged = min(100.0, max(state.progress, reported))
        updated = replace(
            state,
            progress=merged,
            wpm=float(wpm) if wpm is not None else state.wpm,
            accuracy=float(accuracy) if accuracy is not None else state.accuracy,
        )
        if merged >= 100.0:
            elapsed = self.elapsed_ms(now)
            self._finish_participant(replace(updated, finish_time_ms=elapsed), len(self.target_text), elapsed, now)
            self._check_race_over(now)
        else:
            self._replace(updated)
        return True

    # --- completion ---

    def _finish_participant(
        self,
        state: ParticipantState,
        characters_typed: int,
        finish_time_ms: float,
        now_ms: float,
    ) -> None:
        placement = self.resolver.resolve(state.participant_id, characters_typed, finish_time_ms)
        final = replace(
            state,
            progress=100.0,
            finish_time_ms=placement.finish_time_ms,
            position=placement.position,
            reward=placement.reward,
        )
        self._replace(final)
        if (final.is_human or final.spec.remote) and self._grace_deadline_ms is None:
            self._grace_deadline_ms = now_ms + self.grace_period_ms
        self._log(
            f"{final.name} finished #{placement.position} in {placement.finish_time_ms / 1000:.2f}s "
            f"(+{placement.reward} XP)."
        )
        event = FinishEvent(
            participant_id=final.participant_id,
            position=placement.position,
            finish_time_ms=placement.finish_time_ms,
            reward=placement.reward,
        )
        for callback in list(self._finish_listeners):
            try:
                callback(event)
            except Exception as listener_err:
                print(f"[RaceController] Finish listener failed for {final.participant_id}: {listener_err}")

    def _replace(self, state: ParticipantState) -> None:
        self._states[self._index[state.participant_id]] = state

    # --- drivers ---

    def start_timers(self) -> bool:
        """Schedules the clock and pacing timers on the running event loop."""
        if self._torn_down or self._phase is Phase.FINISHED:
            return False
        self.scheduler.schedule("clock", self.clock_tick_ms, self.clock_tick)
        self.scheduler.schedule("pacing", self.pacing_tick_ms, self.pacing_tick)
        return True

    async def run(self) -> TickSnapshot:
        """Runs the session on asyncio timers until it finishes or is torn down."""
        self._done = asyncio.Event()
        if self._phase is Phase.PENDING and not self.begin_countdown():
            return self.snapshot()
        if not self.start_timers():
            return self.snapshot()
        try:
            await self._done.wait()
        finally:
            self.scheduler.cancel_all()
        return self.snapshot()

    def run_until_finished(
        self,
        on_tick: Optional[Callable[[TickSnapshot], None]] = None,
        max_time_ms: float = 600000.0,
        before_tick: Optional[Callable[["RaceController", float], None]] = None,
    ) -> List[TickSnapshot]:
        """
        Headless fixed-step loop. Requires a clock with `advance(ms)`; each
        step advances it by one pacing tick and runs `tick()`.
        """
        advance = getattr(self._clock, "advance", None)
        if advance is None:
            raise ValueError("run_until_finished needs a manual clock with advance().")
        if self._phase is Phase.PENDING:
            self.begin_countdown()

        snapshots: List[TickSnapshot] = []
        max_ticks = int((max_time_ms + self.countdown_ms) / self.pacing_tick_ms) if self.pacing_tick_ms > 0 else 0
        for _ in range(max_ticks):
            if self._torn_down or self._phase in (Phase.PENDING, Phase.FINISHED):
                break
            now = advance(self.pacing_tick_ms)
            if before_tick is not None:
                before_tick(self, now)
            snapshot = self.tick()
            snapshots.append(snapshot)
            if on_tick:
                on_tick(snapshot)
        return snapshots

    # --- telemetry / output ---

    def _record_frame(self, elapsed_ms: float, previous: Dict[str, float], jitters: Dict[str, float]) -> None:
        racers = [
            TelemetryRacerFrame(
                participant_id=state.participant_id,
                name=state.name,
                lane=state.lane,
                progress=state.progress,
                progress_delta=state.progress - previous.get(state.participant_id, state.progress),
                wpm=state.wpm,
                accuracy=state.accuracy,
                jitter=jitters.get(state.participant_id),
                is_finished=state.is_finished,
                position=state.position,
            )
            for state in self._states
        ]
        self.telemetry.record_frame(
            TelemetryFrame(tick=self.tick_index, elapsed_ms=elapsed_ms, phase=self._phase.label, racers=racers)
        )
        self.tick_index += 1

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[RaceController] {message}")


def start_session(
    target_text: str,
    participant_specs: Iterable[SpecLike],
    *,
    auto_countdown: bool = True,
    **options,
) -> RaceController:
    """
    Creates a race session and, when the roster is already large enough,
    moves it straight into the countdown.
    """
    specs = list(participant_specs)
    if not specs:
        raise ValueError("A race session needs at least one participant.")
    controller = RaceController(target_text, specs, **options)
    if auto_countdown:
        controller.begin_countdown()
    return controller
