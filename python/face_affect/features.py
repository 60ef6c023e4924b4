"""Geometric facial features derived from MediaPipe Face Mesh landmarks.

Used only when the detector supplies no blendshape scores. Every feature is a
ratio or an angle, so results do not depend on how far the face is from the
camera.

MediaPipe Face Mesh landmark indices used:
    33/133: left eye outer/inner, 159/145: left eye upper/lower lid
    263/362: right eye outer/inner, 386/374: right eye upper/lower lid
    107/336: left/right inner brow
    61/291: mouth corners, 13/14: inner lips, 0/17: outer lips
    1: nose tip, 4: nose bottom, 6/168: nose bridge
    234/454: left/right cheek, 10: forehead, 152: chin
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol, Sequence


class Point(Protocol):
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class FaceLandmark:
    """Single face landmark with normalized x, y (0-1) and relative depth z."""

    x: float
    y: float
    z: float = 0.0


# Landmark index constants
LEFT_EYE_OUTER, LEFT_EYE_INNER, LEFT_EYE_TOP, LEFT_EYE_BOTTOM = 33, 133, 159, 145
RIGHT_EYE_OUTER, RIGHT_EYE_INNER, RIGHT_EYE_TOP, RIGHT_EYE_BOTTOM = 263, 362, 386, 374
LEFT_BROW_INNER, RIGHT_BROW_INNER = 107, 336
MOUTH_LEFT, MOUTH_RIGHT, MOUTH_TOP, MOUTH_BOTTOM = 61, 291, 13, 14
UPPER_LIP_TOP, LOWER_LIP_BOTTOM = 0, 17
NOSE_TIP, NOSE_BOTTOM, NOSE_BRIDGE, NOSE_BRIDGE_TOP = 1, 4, 6, 168
LEFT_CHEEK, RIGHT_CHEEK = 234, 454
FOREHEAD, CHIN = 10, 152

REQUIRED_INDICES = (
    LEFT_EYE_OUTER, LEFT_EYE_INNER, LEFT_EYE_TOP, LEFT_EYE_BOTTOM,
    RIGHT_EYE_OUTER, RIGHT_EYE_INNER, RIGHT_EYE_TOP, RIGHT_EYE_BOTTOM,
    LEFT_BROW_INNER, RIGHT_BROW_INNER,
    MOUTH_LEFT, MOUTH_RIGHT, MOUTH_TOP, MOUTH_BOTTOM, UPPER_LIP_TOP, LOWER_LIP_BOTTOM,
    NOSE_TIP, NOSE_BOTTOM, NOSE_BRIDGE, NOSE_BRIDGE_TOP,
    LEFT_CHEEK, RIGHT_CHEEK, FOREHEAD, CHIN,
)


@dataclass(frozen=True)
class FaceFeatures:
    eye_aspect_ratio_left: float
    eye_aspect_ratio_right: float
    mouth_aspect_ratio: float
    mouth_corner_angle: float  # degrees, 180 = flat mouth
    lip_compression_ratio: float
    brow_to_eye_distance: float
    brow_inner_distance: float
    nose_wrinkle_proxy: float
    symmetry_score: float  # 1.0 = symmetric mouth
    head_tilt: float  # degrees, positive = right cheek lower
    mouth_width: float
    jaw_openness: float


# --- Landmark helpers ---

def _distance(a: Point, b: Point) -> float:
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2)


def _ratio(num: float, den: float, default: float = 0.0) -> float:
    return num / den if den > 0 else default


def _angle(a: Point, center: Point, b: Point) -> float:
    """Angle at center between a and b, in degrees (law of cosines)."""
    ca = _distance(center, a)
    cb = _distance(center, b)
    ab = _distance(a, b)
    if ca * cb == 0:
        return 180.0
    cos_angle = (ca * ca + cb * cb - ab * ab) / (2 * ca * cb)
    return math.degrees(math.acos(max(-1.0, min(1.0, cos_angle))))


def has_required_landmarks(landmarks: Sequence[Point] | None) -> bool:
    """True when every index the extractor reads is present."""
    return bool(landmarks) and len(landmarks) > max(REQUIRED_INDICES)


def extract_features(landmarks: Sequence[Point]) -> FaceFeatures:
    """Compute geometric features from a full face-mesh landmark list.

    Callers must check has_required_landmarks() first.
    """
    lm = landmarks

    eye_aspect_ratio_left = _ratio(
        _distance(lm[LEFT_EYE_TOP], lm[LEFT_EYE_BOTTOM]),
        _distance(lm[LEFT_EYE_OUTER], lm[LEFT_EYE_INNER]),
    )
    eye_aspect_ratio_right = _ratio(
        _distance(lm[RIGHT_EYE_TOP], lm[RIGHT_EYE_BOTTOM]),
        _distance(lm[RIGHT_EYE_OUTER], lm[RIGHT_EYE_INNER]),
    )

    mouth_height = _distance(lm[MOUTH_TOP], lm[MOUTH_BOTTOM])
    mouth_width = _distance(lm[MOUTH_LEFT], lm[MOUTH_RIGHT])
    mouth_aspect_ratio = _ratio(mouth_height, mouth_width)

    mouth_center = FaceLandmark(
        x=(lm[MOUTH_TOP].x + lm[MOUTH_BOTTOM].x) / 2,
        y=(lm[MOUTH_TOP].y + lm[MOUTH_BOTTOM].y) / 2,
    )
    mouth_corner_angle = _angle(lm[MOUTH_LEFT], mouth_center, lm[MOUTH_RIGHT])

    lip_thickness = (
        _distance(lm[UPPER_LIP_TOP], lm[MOUTH_TOP])
        + _distance(lm[MOUTH_BOTTOM], lm[LOWER_LIP_BOTTOM])
    )
    lip_compression_ratio = _ratio(lip_thickness, mouth_height)

    brow_to_eye_distance = (
        _distance(lm[LEFT_BROW_INNER], lm[LEFT_EYE_TOP])
        + _distance(lm[RIGHT_BROW_INNER], lm[RIGHT_EYE_TOP])
    ) / 2
    brow_inner_distance = _distance(lm[LEFT_BROW_INNER], lm[RIGHT_BROW_INNER])

    nose_wrinkle_proxy = _ratio(
        _distance(lm[NOSE_BRIDGE_TOP], lm[NOSE_BRIDGE]),
        _distance(lm[NOSE_TIP], lm[NOSE_BOTTOM]),
    )

    # Smirk proxy: how evenly the two corners sit relative to the mouth center
    left_half = abs(lm[MOUTH_LEFT].y - mouth_center.y)
    right_half = abs(lm[MOUTH_RIGHT].y - mouth_center.y)
    symmetry_score = _ratio(min(left_half, right_half), max(left_half, right_half), default=1.0)

    head_tilt = math.degrees(math.atan2(
        lm[RIGHT_CHEEK].y - lm[LEFT_CHEEK].y,
        lm[RIGHT_CHEEK].x - lm[LEFT_CHEEK].x,
    ))

    jaw_openness = _ratio(mouth_height, _distance(lm[FOREHEAD], lm[CHIN]))

    return FaceFeatures(
        eye_aspect_ratio_left=eye_aspect_ratio_left,
        eye_aspect_ratio_right=eye_aspect_ratio_right,
        mouth_aspect_ratio=mouth_aspect_ratio,
        mouth_corner_angle=mouth_corner_angle,
        lip_compression_ratio=lip_compression_ratio,
        brow_to_eye_distance=brow_to_eye_distance,
        brow_inner_distance=brow_inner_distance,
        nose_wrinkle_proxy=nose_wrinkle_proxy,
        symmetry_score=symmetry_score,
        head_tilt=head_tilt,
        mouth_width=mouth_width,
        jaw_openness=jaw_openness,
    )
