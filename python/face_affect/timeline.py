"""In-memory session history: a bounded timeline plus aggregate statistics."""

from __future__ import annotations

import json
import time
import uuid
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from typing import Callable

from . import config
from .events import NEUTRAL, DetectionResult, DetectionState, Emotion, Expression, ResultEmitter


@dataclass(frozen=True)
class TimelineEntry:
    id: str
    timestamp: float
    top_expression: Expression
    top_emotion: Emotion
    state: DetectionState


@dataclass(frozen=True)
class SessionSummary:
    duration: float  # seconds
    total_frames: int
    expression_counts: dict[str, int] = field(default_factory=dict)
    clear_percentage: int = 0
    mixed_percentage: int = 0
    low_visibility_percentage: int = 0
    average_confidence: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class SessionTimeline:
    """Aggregates every result of a session; keeps only notable entries.

    A frame is notable when it shows any expression or is not clear.
    """

    def __init__(
        self,
        max_entries: int = config.TIMELINE_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self.entries: deque[TimelineEntry] = deque(maxlen=max_entries)
        self.start_time: float | None = None
        self._state_counts: Counter[DetectionState] = Counter()
        self._expression_counts: Counter[str] = Counter()
        self._total_confidence = 0.0
        self.frame_count = 0

    @property
    def active(self) -> bool:
        return self.start_time is not None

    def attach(self, emitter: ResultEmitter) -> None:
        emitter.on_result(self.add)

    def start(self) -> None:
        self._clear()
        self.start_time = self._clock()

    def end(self) -> None:
        self._clear()
        self.start_time = None

    def _clear(self) -> None:
        self.entries.clear()
        self._state_counts.clear()
        self._expression_counts.clear()
        self._total_confidence = 0.0
        self.frame_count = 0

    def add(self, result: DetectionResult) -> TimelineEntry | None:
        """Record one result; returns the timeline entry if one was added."""
        if not self.active:
            return None

        self.frame_count += 1
        self._state_counts[result.state] += 1
        if result.emotions:
            self._total_confidence += result.emotions[0].confidence
        for e in result.expressions:
            self._expression_counts[e.name] += 1

        if not result.expressions and result.state == DetectionState.CLEAR:
            return None

        entry = TimelineEntry(
            id=f"{result.timestamp:.3f}-{uuid.uuid4().hex[:9]}",
            timestamp=result.timestamp,
            top_expression=result.top_expression or Expression("neutral", NEUTRAL, 50),
            top_emotion=result.top_emotion,
            state=result.state,
        )
        self.entries.append(entry)
        return entry

    def summary(self) -> SessionSummary | None:
        """Aggregate statistics, or None before the first frame."""
        if not self.active or self.frame_count == 0:
            return None

        total = self.frame_count
        return SessionSummary(
            duration=self._clock() - self.start_time,
            total_frames=total,
            expression_counts=dict(self._expression_counts.most_common()),
            clear_percentage=round(self._state_counts[DetectionState.CLEAR] / total * 100),
            mixed_percentage=round(self._state_counts[DetectionState.MIXED] / total * 100),
            low_visibility_percentage=round(self._state_counts[DetectionState.LOW] / total * 100),
            average_confidence=round(self._total_confidence / total),
        )
