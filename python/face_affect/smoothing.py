"""Temporal smoothing and state stability locking for detection results.

One SmoothingSession per viewing session. Each frame, raw expression
strengths and emotion confidences are folded into exponential moving
averages, and the reported DetectionState only flips after the same new raw
state has been seen for `stability_frames` consecutive frames.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable

from .errors import SessionNotActiveError
from .events import NEUTRAL, DetectionResult, DetectionState, Emotion, Expression
from .tuning import DEFAULT_TUNING, SmoothingTuning, Tuning


@dataclass
class Track:
    """Smoothed value of one expression or emotion."""

    value: float
    frames_stable: int = 0
    name: str = ""
    evidence: str = ""


class EmaTracker:
    """EMA map for one signal family (expressions or emotions).

    Names missing from a frame decay by (1 - alpha) and are dropped below
    decay_floor; new names are seeded at raw * alpha once raw exceeds
    seed_min.
    """

    def __init__(
        self,
        alpha: float,
        decay_floor: float,
        seed_min: float,
        stable_delta: float,
    ) -> None:
        self._alpha = alpha
        self._decay_floor = decay_floor
        self._seed_min = seed_min
        self._stable_delta = stable_delta
        self.tracks: dict[str, Track] = {}

    def clear(self) -> None:
        self.tracks.clear()

    def update(self, raw: dict[str, tuple[float, str, str]]) -> None:
        """Fold one frame in. raw maps key -> (value, display name, evidence)."""
        alpha = self._alpha

        for key in list(self.tracks):
            if key in raw:
                continue
            decayed = self.tracks[key].value * (1 - alpha)
            if decayed < self._decay_floor:
                del self.tracks[key]
            else:
                self.tracks[key].value = decayed
                self.tracks[key].frames_stable = 0

        for key, (value, name, evidence) in raw.items():
            track = self.tracks.get(key)
            if track is not None:
                smoothed = track.value * (1 - alpha) + value * alpha
                if abs(smoothed - track.value) > self._stable_delta:
                    track.frames_stable = 0
                else:
                    track.frames_stable += 1
                track.value = smoothed
                track.name = name
                track.evidence = evidence or track.evidence
            elif value > self._seed_min:
                self.tracks[key] = Track(value=value * alpha, name=name, evidence=evidence)

    def visible(self, floor: float) -> list[tuple[str, Track]]:
        """Tracks above the display floor, strongest first."""
        items = [(k, t) for k, t in self.tracks.items() if t.value > floor]
        items.sort(key=lambda item: item[1].value, reverse=True)
        return items


class StateLock:
    """Hysteresis over the tri-state classification.

    The locked state changes only after the same differing raw state has
    been observed `stability_frames` times in a row. A frame that agrees
    with the locked state, or proposes a different candidate, restarts the
    count. The first frame after reset() is adopted as-is.
    """

    def __init__(self, stability_frames: int) -> None:
        self._stability_frames = stability_frames
        self.state: DetectionState | None = None
        self.candidate: DetectionState | None = None
        self.candidate_frames = 0
        self.frames_since_change = 0

    def reset(self) -> None:
        self.state = None
        self.candidate = None
        self.candidate_frames = 0
        self.frames_since_change = 0

    def update(self, raw_state: DetectionState) -> DetectionState:
        if self.state is None:
            self.state = raw_state
            return self.state

        self.frames_since_change += 1
        if raw_state == self.state:
            self.candidate = None
            self.candidate_frames = 0
            return self.state

        if raw_state != self.candidate:
            self.candidate = raw_state
            self.candidate_frames = 0
        self.candidate_frames += 1

        if self.candidate_frames >= self._stability_frames:
            self.state = raw_state
            self.candidate = None
            self.candidate_frames = 0
            self.frames_since_change = 0
        return self.state


class SmoothingSession:
    """Per-session smoothing state; the only mutable state in the pipeline.

    Call begin() when a session starts and end() when it stops. update() is
    only valid in between.
    """

    def __init__(self, tuning: Tuning = DEFAULT_TUNING) -> None:
        self._tuning: SmoothingTuning = tuning.smoothing
        t = self._tuning
        self.expressions = EmaTracker(t.alpha, t.expression_decay_floor, t.expression_seed_min, t.stable_delta)
        self.emotions = EmaTracker(t.alpha, t.emotion_decay_floor, t.emotion_seed_min, t.stable_delta)
        self.lock = StateLock(t.stability_frames)
        self.active = False
        self._reason = ""

    def begin(self) -> None:
        """Start a fresh session, discarding anything tracked before."""
        self._clear()
        self.active = True

    def end(self) -> None:
        """Discard all session state."""
        self._clear()
        self.active = False

    def _clear(self) -> None:
        self.expressions.clear()
        self.emotions.clear()
        self.lock.reset()
        self._reason = ""

    @property
    def state(self) -> DetectionState | None:
        """Currently locked state (None before the first frame)."""
        return self.lock.state

    def update(
        self,
        raw_expressions: Iterable[Expression],
        raw_emotions: Iterable[Emotion],
        raw_state: DetectionState,
        state_reason: str,
        quality_score: float,
        timestamp: float | None = None,
    ) -> DetectionResult:
        """Fold one frame's raw signals in and build the smoothed result."""
        if not self.active:
            raise SessionNotActiveError("update() called outside begin()/end()")

        t = self._tuning
        self.expressions.update({e.key: (e.strength, e.name, e.evidence) for e in raw_expressions})
        self.emotions.update({e.name: (e.confidence, e.name, "") for e in raw_emotions})

        previous = self.lock.state
        locked = self.lock.update(raw_state)
        # The reason follows the locked state, not every raw flicker
        if locked == raw_state or previous is None:
            self._reason = state_reason

        expressions = tuple(
            Expression(key=key, name=track.name, strength=round(min(100.0, track.value)), evidence=track.evidence)
            for key, track in self.expressions.visible(t.display_floor)
        )
        emotions = tuple(
            Emotion(name=track.name, confidence=round(min(100.0, track.value)))
            for _key, track in self.emotions.visible(t.display_floor)
        )
        if not emotions:
            emotions = (Emotion(NEUTRAL, round(t.neutral_confidence)),)

        return DetectionResult(
            expressions=expressions,
            emotions=emotions,
            state=locked,
            state_reason=self._reason,
            timestamp=time.time() if timestamp is None else timestamp,
            quality_score=max(0.0, min(100.0, quality_score)),
        )
