"""Expression scoring from blendshapes (preferred) or geometric features.

The input is a tagged variant: a BlendshapeInput when the detector supplied
category scores, otherwise a GeometricInput built from FaceFeatures.
score_expressions() dispatches once per frame; each path is a pure function
of the current frame.

Only expressions that cross their activation threshold are returned, sorted
by strength (0-100, descending).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Union

from .events import Expression
from .features import FaceFeatures
from .tuning import DEFAULT_TUNING, BlendshapeRule, GeometricTuning, ScorerTuning, Tuning


@dataclass(frozen=True)
class BlendshapeInput:
    """Blendshape category name -> activation (0-1)."""

    scores: Mapping[str, float]


@dataclass(frozen=True)
class GeometricInput:
    """Landmark-derived features, used when no blendshapes are available."""

    features: FaceFeatures


ScoringInput = Union[BlendshapeInput, GeometricInput]


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _pct(value: float) -> int:
    return round(value * 100)


def _activation(scores: Mapping[str, float], rule: BlendshapeRule) -> float:
    values = [scores.get(name, 0.0) or 0.0 for name in rule.signals]
    if rule.reduce == "max":
        return max(values)
    return sum(values) / len(values)


# --- Blendshape path ---

def _score_rule(scores: Mapping[str, float], rule: BlendshapeRule) -> Expression | None:
    activation = _activation(scores, rule)
    if activation <= rule.threshold:
        return None
    return Expression(
        key=rule.key,
        name=rule.name,
        strength=_clamp(activation * rule.scale),
        evidence=rule.evidence.format(pct=_pct(activation)),
    )


def _score_smirk(scores: Mapping[str, float], tuning: ScorerTuning) -> Expression | None:
    """Asymmetrical smile: one mouth corner clearly higher than the other."""
    left = scores.get("mouthSmileLeft", 0.0)
    right = scores.get("mouthSmileRight", 0.0)
    diff = abs(left - right)
    if diff <= tuning.smirk_min_difference or max(left, right) <= tuning.smirk_min_side:
        return None
    side = "left" if left > right else "right"
    return Expression(
        key="smirk",
        name="Smirk",
        strength=_clamp(diff * tuning.smirk_scale),
        evidence=f"Asymmetrical smile, {side} corner higher ({_pct(diff)}% difference)",
    )


def _score_drooping_eyelids(scores: Mapping[str, float], tuning: ScorerTuning) -> Expression | None:
    """Heavy lids: little eye widening combined with some squint."""
    wide = (scores.get("eyeWideLeft", 0.0) + scores.get("eyeWideRight", 0.0)) / 2
    squint = (scores.get("eyeSquintLeft", 0.0) + scores.get("eyeSquintRight", 0.0)) / 2
    droop = (1 - wide) * tuning.droop_openness_weight + squint * tuning.droop_squint_weight
    if droop <= tuning.droop_threshold or squint <= tuning.droop_min_squint:
        return None
    return Expression(
        key="drooping_eyelids",
        name="Drooping Eyelids",
        strength=_clamp(droop * tuning.droop_scale),
        evidence=f"Eyelids lowered/heavy ({_pct(droop)}%), may indicate sadness or fatigue",
    )


def score_blendshapes(scores: Mapping[str, float], tuning: ScorerTuning) -> list[Expression]:
    results = [_score_rule(scores, rule) for rule in tuning.blendshape_rules]
    results.append(_score_smirk(scores, tuning))
    results.append(_score_drooping_eyelids(scores, tuning))
    return [r for r in results if r is not None]


# --- Geometric fallback path ---

def score_geometry(features: FaceFeatures, tuning: GeometricTuning) -> list[Expression]:
    results = []

    angle_drop = tuning.baseline_mouth_corner_angle - features.mouth_corner_angle
    if angle_drop > tuning.smile_angle_margin:
        results.append(Expression(
            key="smile",
            name="Smile",
            strength=_clamp(angle_drop * tuning.smile_angle_scale),
            evidence=f"Mouth corners lifted ({angle_drop:.0f} degrees above neutral)",
        ))

    if features.symmetry_score < tuning.smirk_symmetry_threshold:
        results.append(Expression(
            key="smirk",
            name="Smirk",
            strength=_clamp((1 - features.symmetry_score) * tuning.smirk_symmetry_scale),
            evidence=f"Asymmetrical mouth position ({_pct(features.symmetry_score)}% symmetric)",
        ))

    if features.jaw_openness > tuning.baseline_jaw_openness * tuning.jaw_open_factor:
        results.append(Expression(
            key="mouth_open",
            name="Mouth Open",
            strength=_clamp(features.jaw_openness / tuning.jaw_open_full * 100),
            evidence=f"Jaw dropped ({_pct(features.jaw_openness)}% of face height)",
        ))

    baseline = tuning.baseline_brow_to_eye
    if features.brow_to_eye_distance > baseline * tuning.brow_raise_factor:
        rise = (features.brow_to_eye_distance - baseline) / baseline
        results.append(Expression(
            key="brow_raise",
            name="Eyebrows Raised",
            strength=_clamp(rise * tuning.brow_raise_scale),
            evidence=f"Brows elevated ({_pct(rise)}% above neutral)",
        ))

    if abs(features.head_tilt) > tuning.head_tilt_threshold:
        direction = "right" if features.head_tilt > 0 else "left"
        results.append(Expression(
            key="head_tilt",
            name="Head Tilt",
            strength=_clamp(abs(features.head_tilt) * tuning.head_tilt_scale),
            evidence=f"Head tilted {direction} ({abs(features.head_tilt):.0f} degrees)",
        ))

    return results


def score_expressions(
    scoring_input: ScoringInput,
    tuning: Tuning = DEFAULT_TUNING,
) -> list[Expression]:
    """Score one frame's expressions, strongest first."""
    if isinstance(scoring_input, BlendshapeInput):
        results = score_blendshapes(scoring_input.scores, tuning.scorer)
    elif isinstance(scoring_input, GeometricInput):
        results = score_geometry(scoring_input.features, tuning.scorer.geometric)
    else:
        raise TypeError(f"Unsupported scoring input: {type(scoring_input).__name__}")

    return sorted(results, key=lambda e: e.strength, reverse=True)
