"""Detector — runs MediaPipe face landmarks + the affect pipeline in a processing thread."""

from __future__ import annotations

import queue
import threading
import time

from .events import DetectionResult, ResultEmitter
from .face_detector import FaceLandmarkDetector
from .pipeline import AffectPipeline, FaceFrame


class AffectDetector:
    """Processor: reads frames from the capture queue, emits DetectionResults.

    Runs in a daemon thread. This thread is the only caller of the pipeline,
    so the session's smoothing state is never touched concurrently.
    """

    def __init__(
        self,
        capture_queue: queue.Queue,
        pipeline: AffectPipeline,
        emitter: ResultEmitter,
        face_detector: FaceLandmarkDetector | None = None,
    ) -> None:
        self._capture_queue = capture_queue
        self._pipeline = pipeline
        self._emitter = emitter
        self._face_detector = face_detector or FaceLandmarkDetector()
        self._running = False
        self._thread: threading.Thread | None = None
        self.latest: DetectionResult | None = None

    def start(self) -> None:
        """Start the detector thread (daemon)."""
        self._running = True
        self._thread = threading.Thread(target=self._process_loop, daemon=True)
        self._thread.start()

    def _process_loop(self) -> None:
        print("[DETECTOR] Loading MediaPipe FaceLandmarker model...")
        self._face_detector._ensure_landmarker()
        print("[DETECTOR] FaceLandmarker loaded. Processing frames...")

        frame_count = 0
        while self._running:
            try:
                frame, captured_at = self._capture_queue.get(timeout=1.0)
            except queue.Empty:
                continue

            start = time.time()
            try:
                result = self.process_frame(frame, captured_at)
            except Exception as e:
                print(f"[DETECTOR] Frame dropped: {type(e).__name__}: {e}")
                continue
            total_ms = (time.time() - start) * 1000
            frame_count += 1

            if frame_count == 1:
                print(f"[DETECTOR] First frame processed in {total_ms:.0f}ms")
            if result is not None and frame_count % 150 == 0:
                print(f"[DETECTOR] {frame_count} frames, quality {result.quality_score:.0f}, {total_ms:.0f}ms/frame")

    def process_frame(self, frame, captured_at: float) -> DetectionResult | None:
        """Detect, score, smooth and emit one frame; None outside a session."""
        if not self._pipeline.active:
            return None
        face_frame = self._detect(frame, captured_at)
        result = self._pipeline.process(face_frame)
        self.latest = result
        self._emitter.emit(result)
        return result

    def _detect(self, frame, captured_at: float) -> FaceFrame:
        """Run face detection; a failing frame is treated as showing no face."""
        try:
            return self._face_detector.detect(frame, timestamp=captured_at)
        except Exception as e:
            print(f"[DETECTOR] Face detection failed: {type(e).__name__}: {e}")
            height, width = frame.shape[:2]
            return FaceFrame(frame_width=width, frame_height=height, timestamp=captured_at)

    def stop(self) -> None:
        """Signal the detector thread to stop."""
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
        self._face_detector.close()
