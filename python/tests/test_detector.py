"""Tests for the capture → detector hand-off (no camera, no model)."""

import queue
import threading
from unittest.mock import MagicMock

import numpy as np

from face_affect.capture import WebcamCapture
from face_affect.detector import AffectDetector
from face_affect.events import DetectionState, ResultEmitter
from face_affect.pipeline import AffectPipeline, FaceFrame
from helpers import blendshapes, make_face


def _detector(face_frame):
    face_detector = MagicMock()
    face_detector.detect.return_value = face_frame
    pipeline = AffectPipeline()
    emitter = ResultEmitter()
    detector = AffectDetector(queue.Queue(), pipeline, emitter, face_detector=face_detector)
    return detector, pipeline, emitter, face_detector


class TestWebcamCaptureOffer:
    def test_throttles_to_min_interval(self):
        capture = WebcamCapture(frame_queue=queue.Queue(maxsize=2), min_interval=0.1)
        assert capture.offer("f1", 10.0)
        assert not capture.offer("f2", 10.05)
        assert capture.offer("f3", 10.2)

    def test_drops_oldest_when_full(self):
        q = queue.Queue(maxsize=2)
        capture = WebcamCapture(frame_queue=q, min_interval=0.0)
        for i in range(4):
            capture.offer(f"f{i}", float(i))
        assert [q.get_nowait()[0] for _ in range(q.qsize())] == ["f2", "f3"]

    def test_queues_capture_time(self):
        q = queue.Queue(maxsize=2)
        WebcamCapture(frame_queue=q, min_interval=0.0).offer("frame", 42.0)
        assert q.get_nowait() == ("frame", 42.0)


class TestAffectDetector:
    def test_ignores_frames_outside_session(self):
        detector, _, _, face_detector = _detector(FaceFrame())
        assert detector.process_frame(np.zeros((4, 4, 3)), 1.0) is None
        face_detector.detect.assert_not_called()

    def test_process_frame_emits_result(self):
        frame = FaceFrame(landmarks=make_face(), blendshapes=blendshapes(mouthSmileLeft=0.6, mouthSmileRight=0.6))
        detector, pipeline, emitter, face_detector = _detector(frame)
        callback = MagicMock()
        emitter.on_result(callback)
        pipeline.begin_session()

        pixels = np.zeros((4, 4, 3))
        result = detector.process_frame(pixels, 1.0)

        face_detector.detect.assert_called_once_with(pixels, timestamp=1.0)
        callback.assert_called_once_with(result)
        assert detector.latest is result
        assert result.state == DetectionState.CLEAR

    def test_no_face_emits_low(self):
        detector, pipeline, emitter, _ = _detector(FaceFrame(timestamp=2.0))
        on_change = MagicMock()
        emitter.on_state_change(on_change)
        pipeline.begin_session()

        result = detector.process_frame(np.zeros((4, 4, 3)), 2.0)

        assert result.state == DetectionState.LOW
        assert on_change.call_args[0][0].current == DetectionState.LOW

    def test_stop_closes_face_detector(self):
        detector, _, _, face_detector = _detector(FaceFrame())
        detector.stop()
        face_detector.close.assert_called_once()

    def test_failed_detection_degrades_to_low(self, capsys):
        detector, pipeline, emitter, face_detector = _detector(FaceFrame())
        face_detector.detect.side_effect = [RuntimeError("bad frame"), FaceFrame(timestamp=2.0)]
        callback = MagicMock()
        emitter.on_result(callback)
        pipeline.begin_session()

        first = detector.process_frame(np.zeros((48, 64, 3)), 1.0)
        second = detector.process_frame(np.zeros((48, 64, 3)), 2.0)

        assert first.state == DetectionState.LOW
        assert first.state_reason == "No face detected"
        assert first.timestamp == 1.0
        assert second.timestamp == 2.0
        assert callback.call_count == 2
        assert "[DETECTOR] Face detection failed: RuntimeError: bad frame" in capsys.readouterr().out

    def test_processing_thread_survives_bad_frame(self):
        detector, pipeline, emitter, face_detector = _detector(FaceFrame())
        face_detector.detect.side_effect = [
            RuntimeError("bad frame"), FaceFrame(timestamp=1.0), FaceFrame(timestamp=2.0),
        ]
        done = threading.Event()
        results = []

        def collect(result):
            results.append(result)
            if len(results) == 3:
                done.set()

        emitter.on_result(collect)
        pipeline.begin_session()
        for i in range(3):
            detector._capture_queue.put((np.zeros((4, 4, 3)), float(i)))

        detector.start()
        try:
            assert done.wait(timeout=5.0)
        finally:
            detector.stop()

        assert [r.timestamp for r in results] == [0.0, 1.0, 2.0]
