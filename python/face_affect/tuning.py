"""Versioned threshold and weight tables for the scoring pipeline.

Every magic number the pipeline uses lives here, grouped per component.
A Tuning is immutable; build a variant with ``Tuning.from_dict`` or
``dataclasses.replace`` instead of editing code.

Override file format (JSON, every section optional)::

    {
        "version": 1,
        "smoothing": {"alpha": 0.2, "stability_frames": 6},
        "quality": {"good_score": 75}
    }
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import TuningError

TUNING_VERSION = 1


@dataclass(frozen=True)
class BlendshapeRule:
    """One expression scored as a combination of blendshape categories.

    The activation is the mean (or max) of ``signals``; it must exceed
    ``threshold`` (0-1) to be emitted, and ``activation * scale`` is the
    strength before clamping to 100.
    """

    key: str
    name: str
    signals: tuple[str, ...]
    threshold: float
    scale: float
    evidence: str  # formatted with {pct}
    reduce: str = "mean"  # "mean" | "max"


DEFAULT_BLENDSHAPE_RULES: tuple[BlendshapeRule, ...] = (
    BlendshapeRule("smile", "Smile", ("mouthSmileLeft", "mouthSmileRight"), 0.10, 150,
                   "Mouth corners lifted ({pct}%)"),
    BlendshapeRule("frown", "Frown", ("mouthFrownLeft", "mouthFrownRight"), 0.10, 150,
                   "Mouth corners down ({pct}%)"),
    BlendshapeRule("mouth_open", "Mouth Open", ("jawOpen",), 0.15, 120,
                   "Jaw dropped ({pct}%)"),
    BlendshapeRule("lip_press", "Lip Press", ("mouthPressLeft", "mouthPressRight"), 0.15, 130,
                   "Lips pressed together ({pct}%)"),
    BlendshapeRule("lip_stretch", "Lip Stretch", ("mouthStretchLeft", "mouthStretchRight"), 0.15, 140,
                   "Lips stretched tightly ({pct}%)"),
    BlendshapeRule("inner_brow_raise", "Inner Brow Raise", ("browInnerUp",), 0.12, 150,
                   "Inner eyebrows raised ({pct}%), often signals sadness or concern"),
    BlendshapeRule("mouth_tension", "Mouth Tension", ("mouthDimpleLeft", "mouthDimpleRight"), 0.15, 140,
                   "Mouth corners pulled inward ({pct}%), may indicate suppressed emotion"),
    BlendshapeRule("lip_purse", "Lip Purse", ("mouthPucker",), 0.20, 130,
                   "Lips puckered ({pct}%)"),
    BlendshapeRule("brow_raise", "Eyebrows Raised", ("browOuterUpLeft", "browOuterUpRight", "browInnerUp"),
                   0.15, 150, "Brows elevated ({pct}%)"),
    BlendshapeRule("brow_furrow", "Brow Furrow", ("browDownLeft", "browDownRight"), 0.15, 150,
                   "Brows drawn together ({pct}%)", reduce="max"),
    BlendshapeRule("squint", "Squint", ("eyeSquintLeft", "eyeSquintRight"), 0.20, 130,
                   "Eyes narrowed ({pct}%)"),
    BlendshapeRule("wide_eyes", "Wide Eyes", ("eyeWideLeft", "eyeWideRight"), 0.15, 150,
                   "Eyes widened ({pct}%)"),
    BlendshapeRule("nose_wrinkle", "Nose Wrinkle", ("noseSneerLeft", "noseSneerRight"), 0.15, 150,
                   "Nose scrunched ({pct}%)", reduce="max"),
)


@dataclass(frozen=True)
class GeometricTuning:
    """Neutral-face baselines and scales for the landmark-only fallback."""

    baseline_mouth_corner_angle: float = 160.0
    smile_angle_margin: float = 5.0
    smile_angle_scale: float = 5.0
    smirk_symmetry_threshold: float = 0.85
    smirk_symmetry_scale: float = 200.0
    baseline_jaw_openness: float = 0.05
    jaw_open_factor: float = 2.0
    jaw_open_full: float = 0.2
    baseline_brow_to_eye: float = 0.04
    brow_raise_factor: float = 1.2
    brow_raise_scale: float = 200.0
    head_tilt_threshold: float = 5.0
    head_tilt_scale: float = 3.0


@dataclass(frozen=True)
class ScorerTuning:
    blendshape_rules: tuple[BlendshapeRule, ...] = DEFAULT_BLENDSHAPE_RULES
    smirk_min_difference: float = 0.15
    smirk_min_side: float = 0.20
    smirk_scale: float = 200.0
    droop_threshold: float = 0.35
    droop_min_squint: float = 0.15
    droop_openness_weight: float = 0.4
    droop_squint_weight: float = 0.6
    droop_scale: float = 120.0
    geometric: GeometricTuning = field(default_factory=GeometricTuning)


@dataclass(frozen=True)
class ConflictTuning:
    min_strength: float = 40.0


@dataclass(frozen=True)
class EmotionTuning:
    happy_weights: Mapping[str, float] = field(
        default_factory=lambda: {"smile": 0.7, "squint": 0.3}
    )
    surprised_weights: Mapping[str, float] = field(
        default_factory=lambda: {"brow_raise": 0.35, "wide_eyes": 0.35, "mouth_open": 0.30}
    )
    sad_weights: Mapping[str, float] = field(
        default_factory=lambda: {
            "inner_brow_raise": 0.25,
            "drooping_eyelids": 0.20,
            "frown": 0.20,
            "lip_press": 0.10,
            "lip_stretch": 0.10,
            "mouth_tension": 0.10,
            "brow_furrow": 0.05,
        }
    )
    sad_indicators: tuple[str, ...] = (
        "inner_brow_raise",
        "drooping_eyelids",
        "frown",
        "lip_press",
        "lip_stretch",
        "mouth_tension",
        "brow_furrow",
    )
    indicator_min_strength: float = 10.0
    suppress_min_indicators: int = 2
    suppress_smile_ceiling: float = 60.0
    suppress_step: float = 0.25
    suppress_floor: float = 0.1
    weak_smile_min_indicators: int = 1
    weak_smile_ceiling: float = 35.0
    weak_smile_factor: float = 0.4
    sad_boost_min_indicators: int = 3
    sad_boost_factor: float = 1.3
    min_confidence: float = 25.0
    max_emotions: int = 3
    neutral_confidence: float = 60.0


@dataclass(frozen=True)
class QualityTuning:
    too_far_width: float = 0.15
    too_far_penalty: int = 30
    small_width: float = 0.25
    small_penalty: int = 15
    center_min: float = 0.2
    center_max: float = 0.8
    off_center_penalty: int = 20
    vertical_penalty: int = 15
    nose_min: float = 0.3
    nose_max: float = 0.7
    rotation_penalty: int = 25
    depth_sample_size: int = 50
    depth_variance_max: float = 0.01
    depth_penalty: int = 10
    very_dark_luma: float = 50.0
    very_dark_penalty: int = 25
    dim_luma: float = 80.0
    dim_penalty: int = 10
    overexposed_luma: float = 220.0
    overexposed_penalty: int = 15
    good_score: int = 70
    acceptable_score: int = 40


@dataclass(frozen=True)
class SmoothingTuning:
    alpha: float = 0.15                 # lower = smoother, less flicker
    stability_frames: int = 8           # consecutive frames before the state flips
    stable_delta: float = 8.0           # change above this resets frames_stable
    expression_decay_floor: float = 5.0
    emotion_decay_floor: float = 10.0
    expression_seed_min: float = 15.0
    emotion_seed_min: float = 20.0
    display_floor: float = 20.0
    neutral_confidence: float = 50.0


_SECTIONS = {
    "scorer": ScorerTuning,
    "conflict": ConflictTuning,
    "emotion": EmotionTuning,
    "quality": QualityTuning,
    "smoothing": SmoothingTuning,
}


@dataclass(frozen=True)
class Tuning:
    """All pipeline thresholds and weights, tagged with a format version."""

    version: int = TUNING_VERSION
    scorer: ScorerTuning = field(default_factory=ScorerTuning)
    conflict: ConflictTuning = field(default_factory=ConflictTuning)
    emotion: EmotionTuning = field(default_factory=EmotionTuning)
    quality: QualityTuning = field(default_factory=QualityTuning)
    smoothing: SmoothingTuning = field(default_factory=SmoothingTuning)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise TuningError if any value is outside its usable range."""
        if self.version != TUNING_VERSION:
            raise TuningError(f"Unsupported tuning version {self.version!r} (expected {TUNING_VERSION})")

        s = self.smoothing
        if not 0.0 < s.alpha <= 1.0:
            raise TuningError(f"smoothing.alpha must be in (0, 1], got {s.alpha}")
        if s.stability_frames < 1:
            raise TuningError(f"smoothing.stability_frames must be >= 1, got {s.stability_frames}")

        for rule in self.scorer.blendshape_rules:
            if not 0.0 <= rule.threshold <= 1.0:
                raise TuningError(f"blendshape rule {rule.key!r}: threshold must be in [0, 1]")
            if rule.reduce not in ("mean", "max"):
                raise TuningError(f"blendshape rule {rule.key!r}: unknown reduce {rule.reduce!r}")
            if not rule.signals:
                raise TuningError(f"blendshape rule {rule.key!r}: no signals")

        q = self.quality
        penalties = (
            q.too_far_penalty, q.small_penalty, q.off_center_penalty, q.vertical_penalty,
            q.rotation_penalty, q.depth_penalty, q.very_dark_penalty, q.dim_penalty,
            q.overexposed_penalty,
        )
        if any(p < 0 for p in penalties):
            raise TuningError("quality penalties must be non-negative")
        if not q.acceptable_score <= q.good_score:
            raise TuningError("quality.acceptable_score must not exceed quality.good_score")

        if self.emotion.max_emotions < 1:
            raise TuningError("emotion.max_emotions must be >= 1")

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["scorer"]["blendshape_rules"] = [
            dataclasses.asdict(rule) for rule in self.scorer.blendshape_rules
        ]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Tuning:
        """Build a Tuning from defaults overlaid with a (partial) mapping."""
        version = data.get("version", TUNING_VERSION)
        unknown = set(data) - set(_SECTIONS) - {"version"}
        if unknown:
            raise TuningError(f"Unknown tuning sections: {sorted(unknown)}")

        sections: dict[str, Any] = {}
        for name, section_cls in _SECTIONS.items():
            overrides = dict(data.get(name) or {})
            if name == "scorer":
                overrides = _scorer_overrides(overrides)
            sections[name] = _build(section_cls, overrides, name)

        return cls(version=version, **sections)


def _build(section_cls: type, overrides: Mapping[str, Any], name: str) -> Any:
    known = {f.name for f in dataclasses.fields(section_cls)}
    unknown = set(overrides) - known
    if unknown:
        raise TuningError(f"Unknown keys in tuning section {name!r}: {sorted(unknown)}")
    # JSON has no tuples
    values = {k: tuple(v) if isinstance(v, list) else v for k, v in overrides.items()}
    try:
        return section_cls(**values)
    except TypeError as exc:
        raise TuningError(f"Invalid tuning section {name!r}: {exc}") from exc


def _scorer_overrides(overrides: dict[str, Any]) -> dict[str, Any]:
    if "blendshape_rules" in overrides:
        overrides["blendshape_rules"] = tuple(
            _build(BlendshapeRule, raw, "scorer.blendshape_rules")
            for raw in overrides["blendshape_rules"]
        )
    if "geometric" in overrides:
        overrides["geometric"] = _build(GeometricTuning, overrides["geometric"], "scorer.geometric")
    return overrides


def load_tuning(path: str) -> Tuning:
    """Read a JSON override file; an empty path yields the defaults."""
    if not path:
        return Tuning()
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise TuningError(f"Tuning file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise TuningError(f"Tuning file {path} must contain a JSON object")
    return Tuning.from_dict(data)


DEFAULT_TUNING = Tuning()
