"""Shared test helpers: synthetic face meshes and blendshape vectors."""

from __future__ import annotations

from face_affect.events import Emotion, Expression
from face_affect.features import FaceLandmark

MESH_SIZE = 478


def _lm(x: float, y: float, z: float = 0.0) -> FaceLandmark:
    """Shorthand to create a landmark."""
    return FaceLandmark(x=x, y=y, z=z)


def make_face(
    overrides: dict[int, FaceLandmark] | None = None,
    dx: float = 0.0,
    dy: float = 0.0,
    scale: float = 1.0,
) -> list[FaceLandmark]:
    """Create a full face mesh with optional overrides by index.

    Default face: neutral, centered, cheeks spanning 60% of the frame width
    (x 0.2-0.8), forehead at y=0.2, chin at y=0.8, flat depth.
    dx/dy shift and scale shrinks the face around its center.
    """
    defaults = {
        # Eyes
        33: _lm(0.35, 0.42), 133: _lm(0.45, 0.42), 159: _lm(0.40, 0.41), 145: _lm(0.40, 0.43),
        263: _lm(0.65, 0.42), 362: _lm(0.55, 0.42), 386: _lm(0.60, 0.41), 374: _lm(0.60, 0.43),
        # Inner brows
        107: _lm(0.42, 0.38), 336: _lm(0.58, 0.38),
        # Mouth
        61: _lm(0.42, 0.65), 291: _lm(0.58, 0.65), 13: _lm(0.50, 0.64), 14: _lm(0.50, 0.66),
        0: _lm(0.50, 0.62), 17: _lm(0.50, 0.68),
        # Nose
        1: _lm(0.50, 0.52), 4: _lm(0.50, 0.54), 6: _lm(0.50, 0.44), 168: _lm(0.50, 0.40),
        # Outline
        234: _lm(0.20, 0.50), 454: _lm(0.80, 0.50), 10: _lm(0.50, 0.20), 152: _lm(0.50, 0.80),
    }
    if overrides:
        defaults.update(overrides)

    landmarks = [_lm(0.5, 0.5)] * MESH_SIZE
    for idx, lm in defaults.items():
        landmarks[idx] = lm

    return [
        _lm(0.5 + (p.x - 0.5) * scale + dx, 0.5 + (p.y - 0.5) * scale + dy, p.z)
        for p in landmarks
    ]


def blendshapes(**scores: float) -> dict[str, float]:
    """A full MediaPipe blendshape vector, zero except for the given scores."""
    names = (
        "browDownLeft", "browDownRight", "browInnerUp", "browOuterUpLeft", "browOuterUpRight",
        "eyeSquintLeft", "eyeSquintRight", "eyeWideLeft", "eyeWideRight", "jawOpen",
        "mouthDimpleLeft", "mouthDimpleRight", "mouthFrownLeft", "mouthFrownRight",
        "mouthPressLeft", "mouthPressRight", "mouthPucker", "mouthSmileLeft", "mouthSmileRight",
        "mouthStretchLeft", "mouthStretchRight", "noseSneerLeft", "noseSneerRight",
    )
    vector = {name: 0.0 for name in names}
    vector.update(scores)
    return vector


def expr(key: str, strength: float, name: str | None = None) -> Expression:
    return Expression(key=key, name=name or key.replace("_", " ").title(), strength=strength)


def emo(name: str, confidence: float) -> Emotion:
    return Emotion(name=name, confidence=confidence)
