"""Detection result dataclasses and callback-based result emitter."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable


class DetectionState(str, Enum):
    """Tri-state classification of a frame.

    low: no face or unusable frame; mixed: conflicting expression evidence;
    clear: usable and non-conflicting.
    """

    CLEAR = "clear"
    MIXED = "mixed"
    LOW = "low"


@dataclass(frozen=True)
class Expression:
    """A named facial expression scored for one frame."""

    key: str  # stable id, e.g. "brow_furrow"
    name: str  # display label, e.g. "Brow Furrow"
    strength: float  # 0-100
    evidence: str = ""


@dataclass(frozen=True)
class Emotion:
    """A coarse emotion guess derived from expressions."""

    name: str
    confidence: float  # 0-100


NEUTRAL = "Neutral"


@dataclass(frozen=True)
class DetectionResult:
    """The single externally visible output of one pipeline run."""

    expressions: tuple[Expression, ...] = ()
    emotions: tuple[Emotion, ...] = (Emotion(NEUTRAL, 50),)
    state: DetectionState = DetectionState.LOW
    state_reason: str = ""
    timestamp: float = field(default_factory=time.time)
    quality_score: float = 0.0

    @property
    def top_expression(self) -> Expression | None:
        return self.expressions[0] if self.expressions else None

    @property
    def top_emotion(self) -> Emotion:
        return self.emotions[0] if self.emotions else Emotion(NEUTRAL, 50)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["state"] = self.state.value
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class StateChangeEvent:
    """Emitted when the locked detection state flips."""

    timestamp: float
    previous: DetectionState | None
    current: DetectionState
    reason: str

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "previous": self.previous.value if self.previous else None,
            "current": self.current.value,
            "reason": self.reason,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class ResultEmitter:
    """Simple callback registry fanning results out to consumers.

    Consumers (announcer, timeline) read results but never mutate
    them. A failing consumer is reported and skipped so the frame loop keeps
    running.
    """

    def __init__(self) -> None:
        self._result_callbacks: list[Callable[[DetectionResult], None]] = []
        self._state_callbacks: list[Callable[[StateChangeEvent], None]] = []
        self._last_state: DetectionState | None = None

    def on_result(self, callback: Callable[[DetectionResult], None]) -> None:
        """Register a callback for every DetectionResult."""
        self._result_callbacks.append(callback)

    def on_state_change(self, callback: Callable[[StateChangeEvent], None]) -> None:
        """Register a callback for locked state changes."""
        self._state_callbacks.append(callback)

    def reset(self) -> None:
        """Forget the last seen state (call when a session restarts)."""
        self._last_state = None

    def emit(self, result: DetectionResult) -> None:
        """Deliver a result, plus a StateChangeEvent if its state is new."""
        for cb in self._result_callbacks:
            _safe_call(cb, result)

        if result.state != self._last_state:
            event = StateChangeEvent(
                timestamp=result.timestamp,
                previous=self._last_state,
                current=result.state,
                reason=result.state_reason,
            )
            self._last_state = result.state
            for cb in self._state_callbacks:
                _safe_call(cb, event)


def _safe_call(cb: Callable, payload: object) -> None:
    try:
        cb(payload)
    except Exception as e:
        print(f"[EVENT] Callback {getattr(cb, '__name__', cb)!r} failed: {type(e).__name__}: {e}")
