"""Process-step recording for callers that display extraction progress."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, List, Protocol

STEP_STATUSES = ("pending", "in_progress", "completed", "failed")


@dataclass(frozen=True)
class ProcessStep:
    step: str
    status: str
    message: str
    timestamp: int

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class StepRecorder(Protocol):
    def record(self, step: str, status: str, message: str) -> None:
        ...


def _millis() -> int:
    return int(time.time() * 1000)


@dataclass
class ProcessLog:
    """Append-only list of steps for a single request."""

    clock: Callable[[], int] = _millis
    steps: List[ProcessStep] = field(default_factory=list)

    def record(self, step: str, status: str, message: str) -> None:
        if status not in STEP_STATUSES:
            raise ValueError(f"Unknown step status: {status}")
        self.steps.append(ProcessStep(step, status, message, self.clock()))

    def to_list(self) -> List[Dict[str, object]]:
        return [item.to_dict() for item in self.steps]


class NullRecorder:
    """Recorder that discards every step."""

    def record(self, step: str, status: str, message: str) -> None:
        return None


__all__ = ["NullRecorder", "ProcessLog", "ProcessStep", "STEP_STATUSES", "StepRecorder"]
