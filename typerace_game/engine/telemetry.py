from __future__ import annotations

from dataclasses import asdict, dataclass, field
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence


@dataclass
class TelemetryRacerFrame:
    participant_id: str
    name: str
    lane: int
    progress: float
    progress_delta: float
    wpm: float
    accuracy: float
    jitter: Optional[float]
    is_finished: bool
    position: Optional[int] = None


@dataclass
class TelemetryFrame:
    tick: int
    elapsed_ms: float
    phase: str
    racers: List[TelemetryRacerFrame] = field(default_factory=list)


class TelemetryCollector:
    def __init__(self) -> None:
        self.frames: List[TelemetryFrame] = []

    def record_frame(self, frame: TelemetryFrame) -> None:
        self.frames.append(frame)

    def export(self) -> Sequence[TelemetryFrame]:
        return tuple(self.frames)

    def clear(self) -> None:
        self.frames.clear()

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [asdict(frame) for frame in self.frames]

    def dump(self, output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as fh:
            json.dump(self.to_dicts(), fh, indent=2)
