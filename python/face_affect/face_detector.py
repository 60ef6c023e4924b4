"""Face detector — wraps MediaPipe FaceLandmarker to produce FaceFrames."""

from __future__ import annotations

import cv2
import numpy as np

from . import config
from .features import FaceLandmark
from .pipeline import FaceFrame


class FaceLandmarkDetector:
    """Extracts face-mesh landmarks and blendshape scores via MediaPipe.

    Uses the MediaPipe Tasks API (FaceLandmarker) in VIDEO running mode with
    a single face and blendshape output enabled. Frames with no face yield a
    FaceFrame with empty landmarks.
    """

    def __init__(self, model_path: str = config.FACE_MODEL_PATH) -> None:
        self._model_path = model_path
        self._landmarker = None  # lazy init
        self._frame_ts = 0  # monotonic timestamp for VIDEO mode
        self._mp = None

    def _ensure_landmarker(self) -> None:
        """Lazy-initialize MediaPipe FaceLandmarker."""
        if self._landmarker is not None:
            return

        import mediapipe as mp

        options = mp.tasks.vision.FaceLandmarkerOptions(
            base_options=mp.tasks.BaseOptions(model_asset_path=self._model_path),
            running_mode=mp.tasks.vision.RunningMode.VIDEO,
            num_faces=1,
            output_face_blendshapes=True,
            min_face_detection_confidence=config.FACE_MIN_DETECTION_CONFIDENCE,
            min_face_presence_confidence=config.FACE_MIN_PRESENCE_CONFIDENCE,
            min_tracking_confidence=config.FACE_MIN_TRACKING_CONFIDENCE,
        )
        self._landmarker = mp.tasks.vision.FaceLandmarker.create_from_options(options)
        self._mp = mp

    def detect(self, frame: np.ndarray, timestamp: float | None = None) -> FaceFrame:
        """Run face landmark detection on a BGR frame."""
        self._ensure_landmarker()

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)

        self._frame_ts += int(config.MIN_FRAME_INTERVAL * 1000)  # monotonically increasing ms
        result = self._landmarker.detect_for_video(image, self._frame_ts)

        height, width = frame.shape[:2]
        return to_face_frame(result, width, height, rgb, timestamp)

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None


def to_face_frame(
    result: object,
    width: int,
    height: int,
    pixels: np.ndarray | None = None,
    timestamp: float | None = None,
) -> FaceFrame:
    """Convert a FaceLandmarkerResult into the pipeline's FaceFrame."""
    face_landmarks = getattr(result, "face_landmarks", None)
    if not face_landmarks:
        return FaceFrame(frame_width=width, frame_height=height, pixels=pixels, timestamp=timestamp)

    landmarks = tuple(
        FaceLandmark(x=lm.x, y=lm.y, z=lm.z)
        for lm in face_landmarks[0]
    )

    blendshapes = None
    face_blendshapes = getattr(result, "face_blendshapes", None)
    if face_blendshapes:
        blendshapes = {c.category_name: float(c.score) for c in face_blendshapes[0]}

    return FaceFrame(
        landmarks=landmarks,
        blendshapes=blendshapes,
        frame_width=width,
        frame_height=height,
        pixels=pixels,
        timestamp=timestamp,
    )
