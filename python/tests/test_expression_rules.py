"""Tests for expression scoring (blendshape and geometric paths)."""

import random

import pytest

from face_affect.expression_rules import (
    BlendshapeInput,
    GeometricInput,
    score_expressions,
)
from face_affect.features import extract_features
from helpers import _lm, blendshapes, make_face


def _keys(expressions):
    return [e.key for e in expressions]


def _by_key(expressions):
    return {e.key: e for e in expressions}


class TestBlendshapePath:
    def test_neutral_vector_scores_nothing(self):
        assert score_expressions(BlendshapeInput(blendshapes())) == []

    def test_smile_only(self):
        scores = blendshapes(
            mouthSmileLeft=0.6, mouthSmileRight=0.6,
            eyeSquintLeft=0.1, eyeSquintRight=0.1,
        )
        result = score_expressions(BlendshapeInput(scores))
        assert _keys(result) == ["smile"]
        assert result[0].name == "Smile"
        assert result[0].strength == pytest.approx(90)
        assert "60%" in result[0].evidence

    def test_below_threshold_is_omitted_not_zero(self):
        result = score_expressions(BlendshapeInput(blendshapes(jawOpen=0.15)))
        assert result == []

    def test_strength_is_clamped(self):
        result = score_expressions(BlendshapeInput(blendshapes(mouthSmileLeft=1.0, mouthSmileRight=1.0)))
        assert _by_key(result)["smile"].strength == 100

    def test_smirk_names_higher_side(self):
        result = _by_key(score_expressions(BlendshapeInput(
            blendshapes(mouthSmileLeft=0.5, mouthSmileRight=0.1)
        )))
        assert "smirk" in result
        assert result["smirk"].strength == pytest.approx(80)
        assert "left corner higher" in result["smirk"].evidence

    def test_no_smirk_when_both_sides_weak(self):
        result = _by_key(score_expressions(BlendshapeInput(
            blendshapes(mouthSmileLeft=0.18, mouthSmileRight=0.0)
        )))
        assert "smirk" not in result

    def test_brow_raise_averages_three_signals(self):
        result = _by_key(score_expressions(BlendshapeInput(
            blendshapes(browOuterUpLeft=0.6, browOuterUpRight=0.6, browInnerUp=0.0)
        )))
        assert result["brow_raise"].strength == pytest.approx(60)
        assert "inner_brow_raise" not in result

    def test_brow_furrow_uses_either_side(self):
        result = _by_key(score_expressions(BlendshapeInput(blendshapes(browDownRight=0.5))))
        assert result["brow_furrow"].strength == pytest.approx(75)

    def test_drooping_eyelids_needs_squint(self):
        result = _by_key(score_expressions(BlendshapeInput(
            blendshapes(eyeSquintLeft=0.3, eyeSquintRight=0.3)
        )))
        # 0.4 * (1 - 0) + 0.6 * 0.3 = 0.58
        assert result["drooping_eyelids"].strength == pytest.approx(0.58 * 120)
        assert "squint" in result

    def test_sadness_signals(self):
        result = _by_key(score_expressions(BlendshapeInput(blendshapes(
            browInnerUp=0.5, mouthFrownLeft=0.4, mouthFrownRight=0.4,
            mouthDimpleLeft=0.3, mouthDimpleRight=0.3,
            mouthStretchLeft=0.2, mouthStretchRight=0.2,
        ))))
        assert {"inner_brow_raise", "frown", "mouth_tension", "lip_stretch"} <= set(result)
        assert result["mouth_tension"].name == "Mouth Tension"

    def test_missing_categories_default_to_zero(self):
        result = score_expressions(BlendshapeInput({"jawOpen": 0.5}))
        assert _keys(result) == ["mouth_open"]

    def test_sorted_by_strength(self):
        result = score_expressions(BlendshapeInput(blendshapes(
            jawOpen=0.3, eyeWideLeft=0.5, eyeWideRight=0.5, noseSneerLeft=0.2,
        )))
        strengths = [e.strength for e in result]
        assert strengths == sorted(strengths, reverse=True)

    def test_strengths_in_range_for_random_vectors(self):
        rng = random.Random(1234)
        names = list(blendshapes())
        for _ in range(300):
            vector = {name: rng.random() for name in names}
            for e in score_expressions(BlendshapeInput(vector)):
                assert 0 <= e.strength <= 100
                assert e.evidence


class TestGeometricPath:
    def test_neutral_face_scores_nothing(self):
        assert score_expressions(GeometricInput(extract_features(make_face()))) == []

    def test_smile_from_corner_angle(self):
        features = extract_features(make_face({61: _lm(0.42, 0.62), 291: _lm(0.58, 0.62)}))
        result = _by_key(score_expressions(GeometricInput(features)))
        assert "smile" in result
        assert result["smile"].strength == 100
        assert "smirk" not in result

    def test_smirk_from_asymmetry(self):
        features = extract_features(make_face({61: _lm(0.42, 0.63), 291: _lm(0.58, 0.61)}))
        result = _by_key(score_expressions(GeometricInput(features)))
        assert result["smirk"].strength == pytest.approx(100)

    def test_mouth_open_from_jaw(self):
        features = extract_features(make_face({13: _lm(0.5, 0.62), 14: _lm(0.5, 0.72)}))
        result = _by_key(score_expressions(GeometricInput(features)))
        assert result["mouth_open"].strength == pytest.approx((0.10 / 0.6) / 0.2 * 100)

    def test_brow_raise_from_brow_distance(self):
        features = extract_features(make_face({107: _lm(0.42, 0.34), 336: _lm(0.58, 0.34)}))
        result = _by_key(score_expressions(GeometricInput(features)))
        assert "brow_raise" in result
        assert 0 < result["brow_raise"].strength <= 100

    def test_head_tilt_direction(self):
        features = extract_features(make_face({234: _lm(0.2, 0.45), 454: _lm(0.8, 0.55)}))
        result = _by_key(score_expressions(GeometricInput(features)))
        assert "Head tilted right" in result["head_tilt"].evidence

    def test_unsupported_input_raises(self):
        with pytest.raises(TypeError):
            score_expressions({"mouthSmileLeft": 0.5})
