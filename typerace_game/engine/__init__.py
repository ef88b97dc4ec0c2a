"""
Typed-text race engine.

The package is split into data models, the keystroke validator, metrics,
the pacing simulator, placement/reward resolution and the lifecycle
controller that composes them on a tick schedule.
"""

from .data_models import (  # noqa: F401
    Difficulty,
    Faction,
    FinishEvent,
    KeystrokeResult,
    NpcLevel,
    PacingProfile,
    ParticipantSpec,
    ParticipantState,
    Phase,
)
from .metrics import compute_accuracy, compute_wpm  # noqa: F401
from .pacing import PacingSimulator, advance_progress  # noqa: F401
from .placement import PlacementResolver, RewardPolicy  # noqa: F401
from .scheduler import ManualClock, TickScheduler  # noqa: F401
from .telemetry import TelemetryCollector, TelemetryFrame, TelemetryRacerFrame  # noqa: F401
from .validator import TextCursorValidator  # noqa: F401
from .race_loop import RaceController, TickSnapshot, start_session  # noqa: F401

__all__ = [
    "Difficulty",
    "Faction",
    "FinishEvent",
    "KeystrokeResult",
    "NpcLevel",
    "PacingProfile",
    "ParticipantSpec",
    "ParticipantState",
    "Phase",
    "compute_accuracy",
    "compute_wpm",
    "PacingSimulator",
    "advance_progress",
    "PlacementResolver",
    "RewardPolicy",
    "ManualClock",
    "TickScheduler",
    "TelemetryCollector",
    "TelemetryFrame",
    "TelemetryRacerFrame",
    "TextCursorValidator",
    "RaceController",
    "TickSnapshot",
    "start_session",
]
