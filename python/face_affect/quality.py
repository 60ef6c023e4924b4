"""Frame quality assessment: face size, framing, head rotation, lighting.

Starts from a perfect score of 100 and subtracts a fixed penalty for every
problem found. The resulting score decides the visibility state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .events import DetectionState
from .features import CHIN, FOREHEAD, LEFT_CHEEK, NOSE_TIP, RIGHT_CHEEK, Point
from .tuning import DEFAULT_TUNING, QualityTuning, Tuning

NO_FACE_REASON = "No face detected"
_FRAMING_INDICES = (LEFT_CHEEK, RIGHT_CHEEK, NOSE_TIP, FOREHEAD, CHIN)


@dataclass(frozen=True)
class QualityResult:
    score: int  # 0-100
    state: DetectionState
    reason: str
    issues: tuple[str, ...] = ()


def mean_brightness(pixels: np.ndarray) -> float:
    """Average luma (0-255) of an RGB/RGBA or greyscale pixel array."""
    arr = np.asarray(pixels)
    if arr.size == 0:
        return 0.0
    if arr.ndim == 3:
        arr = arr[..., :3].mean(axis=-1)
    return float(arr.mean())


def depth_variance(landmarks: Sequence[Point], sample_size: int) -> float:
    """Variance of landmark z over the first sample_size points."""
    depths = np.array([lm.z for lm in landmarks[:sample_size]], dtype=float)
    if depths.size == 0:
        return 0.0
    return float(depths.var())


def _framing_penalties(landmarks: Sequence[Point], t: QualityTuning) -> tuple[int, list[str]]:
    penalty = 0
    issues: list[str] = []

    left, right = landmarks[LEFT_CHEEK], landmarks[RIGHT_CHEEK]
    face_width = abs(right.x - left.x)

    if face_width < t.too_far_width:
        penalty += t.too_far_penalty
        issues.append("face too far")
    elif face_width < t.small_width:
        penalty += t.small_penalty
        issues.append("face small")

    center_x = (left.x + right.x) / 2
    if not t.center_min <= center_x <= t.center_max:
        penalty += t.off_center_penalty
        issues.append("face off-center")

    center_y = (landmarks[CHIN].y + landmarks[FOREHEAD].y) / 2
    if not t.center_min <= center_y <= t.center_max:
        penalty += t.vertical_penalty
        issues.append("face too high/low")

    # Nose tip position inside the cheek-to-cheek box approximates yaw
    if face_width > 0:
        nose_relative = (landmarks[NOSE_TIP].x - min(left.x, right.x)) / face_width
    else:
        nose_relative = 0.0
    if not t.nose_min <= nose_relative <= t.nose_max:
        penalty += t.rotation_penalty
        issues.append("head turned too much")

    return penalty, issues


def assess_quality(
    landmarks: Sequence[Point] | None,
    frame_width: int = 0,
    frame_height: int = 0,
    pixels: np.ndarray | None = None,
    tuning: Tuning = DEFAULT_TUNING,
) -> QualityResult:
    """Score how usable a frame is for expression reading.

    Landmarks are normalized to the frame, so frame_width/frame_height are
    informational only. Brightness penalties apply only when pixels are given.
    """
    t = tuning.quality
    if not landmarks:
        return QualityResult(score=0, state=DetectionState.LOW, reason=NO_FACE_REASON)
    if len(landmarks) <= max(_FRAMING_INDICES):
        return QualityResult(
            score=0,
            state=DetectionState.LOW,
            reason="Low visibility: incomplete face landmarks",
            issues=("incomplete face landmarks",),
        )

    score = 100
    penalty, issues = _framing_penalties(landmarks, t)
    score -= penalty

    # Poor lighting tends to produce inconsistent depth estimates
    if depth_variance(landmarks, t.depth_sample_size) > t.depth_variance_max:
        score -= t.depth_penalty
        issues.append("lighting may be uneven")

    if pixels is not None:
        brightness = mean_brightness(pixels)
        if brightness < t.very_dark_luma:
            score -= t.very_dark_penalty
            issues.append("very dark")
        elif brightness < t.dim_luma:
            score -= t.dim_penalty
            issues.append("dim lighting")
        elif brightness > t.overexposed_luma:
            score -= t.overexposed_penalty
            issues.append("very bright/overexposed")

    score = max(0, score)

    if score >= t.good_score:
        state, reason = DetectionState.CLEAR, "Good visibility"
    elif score >= t.acceptable_score:
        state = DetectionState.CLEAR
        reason = f"Minor issues: {', '.join(issues)}" if issues else "Acceptable visibility"
    else:
        state = DetectionState.LOW
        reason = f"Low visibility: {', '.join(issues)}"

    return QualityResult(score=score, state=state, reason=reason, issues=tuple(issues))
