"""Live app — wires capture, detector, pipeline and result consumers together."""

from __future__ import annotations

import queue
import time

from . import config
from .announcer import Announcer
from .capture import WebcamCapture
from .detector import AffectDetector
from .events import ResultEmitter, StateChangeEvent
from .pipeline import AffectPipeline
from .timeline import SessionTimeline
from .tuning import DEFAULT_TUNING, Tuning


class LiveReader:
    """Creates and manages all live components.

    Architecture:
        Capture Thread (daemon, ~15 fps) → Queue → Detector Thread (daemon)
        → AffectPipeline → ResultEmitter → Announcer / SessionTimeline

    The main thread only opens the camera (macOS requirement) and waits.
    """

    def __init__(
        self,
        camera_index: int = config.CAMERA_INDEX,
        tuning: Tuning = DEFAULT_TUNING,
    ) -> None:
        self._capture_queue: queue.Queue = queue.Queue(maxsize=config.CAPTURE_QUEUE_SIZE)

        # Event system
        self._emitter = ResultEmitter()
        self._emitter.on_state_change(self._log_state_change)

        # Components
        self._pipeline = AffectPipeline(tuning=tuning)
        self._capture = WebcamCapture(camera_index=camera_index, frame_queue=self._capture_queue)
        self._detector = AffectDetector(
            capture_queue=self._capture_queue,
            pipeline=self._pipeline,
            emitter=self._emitter,
        )
        self.announcer = Announcer()
        self.announcer.attach(self._emitter)
        self.timeline = SessionTimeline()
        self.timeline.attach(self._emitter)

    @property
    def emitter(self) -> ResultEmitter:
        """Access the result emitter to register additional consumers."""
        return self._emitter

    def begin_session(self) -> None:
        self._pipeline.begin_session()
        self._emitter.reset()
        self.announcer.reset()
        self.timeline.start()
        print("[APP] Session started")

    def end_session(self) -> None:
        summary = self.timeline.summary()
        if summary is not None:
            print(f"[APP] Session summary: {summary.to_json()}")
        self._pipeline.end_session()
        self.timeline.end()
        print("[APP] Session ended")

    def run(self) -> None:
        """Start the live session. Blocks until Ctrl+C."""
        if not self._capture.open_camera():
            print("ERROR: Could not open camera. Check permissions in System Settings > Privacy > Camera.")
            return

        self.begin_session()
        self._capture.start()
        self._detector.start()
        print("[APP] Running. Press Ctrl+C to stop.")

        try:
            while True:
                time.sleep(0.5)
        except KeyboardInterrupt:
            print("\n[APP] Interrupted by user")
        finally:
            self.stop()

    def stop(self) -> None:
        """Gracefully stop all components."""
        self._capture.stop()
        self._detector.stop()
        if self._pipeline.active:
            self.end_session()
        print("[APP] Stopped.")

    @staticmethod
    def _log_state_change(event: StateChangeEvent) -> None:
        """Default handler: print state changes as JSON to stdout."""
        print(f"[EVENT] State → {event.current.value.upper()} ({event.reason})")
        print(f"        {event.to_json()}")
