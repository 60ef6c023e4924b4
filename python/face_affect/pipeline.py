"""Pipeline orchestrator: one FaceFrame in, one DetectionResult out.

Per frame:
    landmarks/blendshapes → scoring input (blendshapes preferred, geometry fallback)
    → expressions → conflict check + quality check → combined raw state
    → emotions (from raw expressions) → session smoothing → DetectionResult

The pipeline owns one SmoothingSession and must be driven from a single
thread, once per accepted frame.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from .conflict_rules import ConflictResult, detect_conflict
from .emotion_rules import map_emotions
from .events import DetectionResult, DetectionState
from .expression_rules import BlendshapeInput, GeometricInput, ScoringInput, score_expressions
from .features import Point, extract_features, has_required_landmarks
from .quality import NO_FACE_REASON, QualityResult, assess_quality
from .smoothing import SmoothingSession
from .tuning import DEFAULT_TUNING, Tuning


@dataclass(frozen=True)
class FaceFrame:
    """What the landmark/blendshape detector produces for one video frame.

    landmarks is empty when no face was found. blendshapes maps category
    name to a 0-1 score and is None when the detector did not supply them.
    """

    landmarks: Sequence[Point] = ()
    blendshapes: Mapping[str, float] | None = None
    frame_width: int = 0
    frame_height: int = 0
    pixels: np.ndarray | None = None
    timestamp: float | None = None

    @property
    def has_face(self) -> bool:
        return bool(self.landmarks)


def select_scoring_input(frame: FaceFrame) -> ScoringInput | None:
    """Pick the scoring path for a frame, or None if neither is possible."""
    if frame.blendshapes:
        return BlendshapeInput(scores=dict(frame.blendshapes))
    if has_required_landmarks(frame.landmarks):
        return GeometricInput(features=extract_features(frame.landmarks))
    return None


def combine_state(
    quality: QualityResult,
    conflict: ConflictResult,
) -> tuple[DetectionState, str]:
    """Quality decides visibility; a conflict turns a clear frame mixed."""
    if quality.state == DetectionState.CLEAR and conflict.is_conflicting:
        return DetectionState.MIXED, conflict.reason
    return quality.state, quality.reason


class AffectPipeline:
    """Runs the per-frame scoring pipeline over an explicit session."""

    def __init__(
        self,
        tuning: Tuning = DEFAULT_TUNING,
        session: SmoothingSession | None = None,
    ) -> None:
        self.tuning = tuning
        self.session = session or SmoothingSession(tuning)

    def begin_session(self) -> None:
        self.session.begin()

    def end_session(self) -> None:
        self.session.end()

    @property
    def active(self) -> bool:
        return self.session.active

    def process(self, frame: FaceFrame) -> DetectionResult:
        """Analyze one frame and return the smoothed result."""
        timestamp = frame.timestamp if frame.timestamp is not None else time.time()

        if not frame.has_face:
            return self.session.update([], [], DetectionState.LOW, NO_FACE_REASON, 0, timestamp)

        scoring_input = select_scoring_input(frame)
        if scoring_input is None:
            # Neither blendshapes nor a usable mesh: nothing to score
            return self.session.update(
                [], [], DetectionState.LOW, "Low visibility: incomplete face landmarks", 0, timestamp,
            )

        expressions = score_expressions(scoring_input, self.tuning)
        conflict = detect_conflict(expressions, self.tuning)
        quality = assess_quality(
            frame.landmarks,
            frame.frame_width,
            frame.frame_height,
            frame.pixels,
            self.tuning,
        )
        state, reason = combine_state(quality, conflict)
        emotions = map_emotions(expressions, self.tuning)

        return self.session.update(expressions, emotions, state, reason, quality.score, timestamp)
