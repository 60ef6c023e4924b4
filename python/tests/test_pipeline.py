"""End-to-end tests for AffectPipeline."""

import random

import pytest

from face_affect.conflict_rules import ConflictResult
from face_affect.errors import SessionNotActiveError
from face_affect.events import DetectionState
from face_affect.expression_rules import BlendshapeInput, GeometricInput
from face_affect.features import FaceLandmark
from face_affect.pipeline import AffectPipeline, FaceFrame, combine_state, select_scoring_input
from face_affect.quality import QualityResult
from face_affect.tuning import SmoothingTuning, Tuning
from helpers import _lm, blendshapes, make_face

SMILE = blendshapes(
    mouthSmileLeft=0.6, mouthSmileRight=0.6,
    eyeSquintLeft=0.1, eyeSquintRight=0.1,
)


def _pipeline(**smoothing) -> AffectPipeline:
    pipeline = AffectPipeline(Tuning(smoothing=SmoothingTuning(**smoothing)))
    pipeline.begin_session()
    return pipeline


def _run(pipeline, frame, frames=1):
    result = None
    for _ in range(frames):
        result = pipeline.process(frame)
    return result


class TestSelectScoringInput:
    def test_blendshapes_preferred(self):
        frame = FaceFrame(landmarks=make_face(), blendshapes=SMILE)
        assert isinstance(select_scoring_input(frame), BlendshapeInput)

    def test_geometry_fallback(self):
        assert isinstance(select_scoring_input(FaceFrame(landmarks=make_face())), GeometricInput)

    def test_nothing_usable(self):
        assert select_scoring_input(FaceFrame(landmarks=[FaceLandmark(0.5, 0.5)] * 68)) is None


class TestCombineState:
    def test_conflict_turns_clear_mixed(self):
        quality = QualityResult(100, DetectionState.CLEAR, "Good visibility")
        state, reason = combine_state(quality, ConflictResult(True, "conflict"))
        assert state == DetectionState.MIXED
        assert reason == "conflict"

    def test_low_quality_wins_over_conflict(self):
        quality = QualityResult(10, DetectionState.LOW, "Low visibility: face too far")
        state, reason = combine_state(quality, ConflictResult(True, "conflict"))
        assert state == DetectionState.LOW
        assert reason.startswith("Low visibility")


class TestAffectPipeline:
    def test_requires_session(self):
        with pytest.raises(SessionNotActiveError):
            AffectPipeline().process(FaceFrame())

    def test_no_face(self):
        result = _pipeline().process(FaceFrame(timestamp=12.0))
        assert result.state == DetectionState.LOW
        assert result.state_reason == "No face detected"
        assert result.quality_score == 0
        assert result.expressions == ()
        assert [(e.name, e.confidence) for e in result.emotions] == [("Neutral", 50)]
        assert result.timestamp == 12.0

    def test_steady_smile(self):
        frame = FaceFrame(landmarks=make_face(), blendshapes=SMILE, frame_width=640, frame_height=480)
        result = _run(_pipeline(), frame, frames=80)
        assert result.state == DetectionState.CLEAR
        assert result.state_reason == "Good visibility"
        assert result.quality_score == 100
        assert [e.key for e in result.expressions] == ["smile"]
        assert result.top_expression.strength == 90
        assert result.top_emotion.name == "Happy"
        assert result.top_emotion.confidence == 63

    def test_first_frame_is_not_yet_visible(self):
        frame = FaceFrame(landmarks=make_face(), blendshapes=SMILE)
        result = _pipeline().process(frame)
        assert result.state == DetectionState.CLEAR
        assert result.expressions == ()

    def test_conflict_marks_frame_mixed(self):
        mixed = FaceFrame(
            landmarks=make_face(),
            blendshapes=blendshapes(mouthSmileLeft=0.6, mouthSmileRight=0.6,
                                    mouthFrownLeft=0.5, mouthFrownRight=0.5),
        )
        result = _pipeline().process(mixed)
        assert result.state == DetectionState.MIXED
        assert result.state_reason.startswith("Mixed mouth signals")

    def test_mixed_state_is_held_until_stable(self):
        pipeline = _pipeline(stability_frames=8)
        mixed = FaceFrame(
            landmarks=make_face(),
            blendshapes=blendshapes(mouthSmileLeft=0.6, mouthSmileRight=0.6,
                                    mouthFrownLeft=0.5, mouthFrownRight=0.5),
        )
        clear = FaceFrame(landmarks=make_face(), blendshapes=SMILE)
        pipeline.process(mixed)
        states = [pipeline.process(clear).state for _ in range(8)]
        assert states[:7] == [DetectionState.MIXED] * 7
        assert states[7] == DetectionState.CLEAR

    def test_poor_framing_is_low(self):
        face = make_face({1: _lm(0.75, 0.52)}, dx=0.4, dy=0.4, scale=0.2)
        result = _pipeline().process(FaceFrame(landmarks=face, blendshapes=SMILE))
        assert result.state == DetectionState.LOW
        assert result.state_reason.startswith("Low visibility: ")
        assert result.quality_score == 10

    def test_geometric_fallback(self):
        face = make_face({61: _lm(0.42, 0.62), 291: _lm(0.58, 0.62)})
        result = _run(_pipeline(), FaceFrame(landmarks=face), frames=40)
        assert result.top_expression.key == "smile"
        assert result.state == DetectionState.CLEAR

    def test_incomplete_mesh_without_blendshapes(self):
        frame = FaceFrame(landmarks=[FaceLandmark(0.5, 0.5)] * 68)
        result = _pipeline().process(frame)
        assert result.state == DetectionState.LOW
        assert result.state_reason == "Low visibility: incomplete face landmarks"
        assert result.quality_score == 0

    def test_incomplete_mesh_with_blendshapes_is_low(self):
        frame = FaceFrame(landmarks=[FaceLandmark(0.5, 0.5)] * 68, blendshapes=SMILE)
        result = _pipeline().process(frame)
        assert result.state == DetectionState.LOW
        assert result.quality_score == 0

    def test_end_then_begin_starts_fresh(self):
        pipeline = _pipeline()
        _run(pipeline, FaceFrame(landmarks=make_face(), blendshapes=SMILE), frames=30)
        pipeline.end_session()
        assert not pipeline.active
        pipeline.begin_session()
        result = pipeline.process(FaceFrame())
        assert result.state == DetectionState.LOW
        assert result.expressions == ()

    def test_random_frames_stay_in_range(self):
        rng = random.Random(7)
        names = list(blendshapes())
        pipeline = _pipeline()
        for _ in range(200):
            if rng.random() < 0.1:
                frame = FaceFrame()
            else:
                frame = FaceFrame(
                    landmarks=make_face(dx=rng.uniform(-0.3, 0.3), scale=rng.uniform(0.2, 1.0)),
                    blendshapes={n: rng.random() for n in names},
                )
            result = pipeline.process(frame)
            assert result.state in DetectionState
            assert 0 <= result.quality_score <= 100
            assert 1 <= len(result.emotions)
            for e in result.expressions:
                assert 0 <= e.strength <= 100
            for e in result.emotions:
                assert 0 <= e.confidence <= 100
