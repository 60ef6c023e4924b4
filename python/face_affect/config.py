"""Configuration constants for the face affect pipeline.

Scoring thresholds and weights live in tuning.py; this module only holds the
runtime settings of the live app.
"""

import os

# Webcam capture
CAMERA_INDEX = int(os.environ.get("FACE_AFFECT_CAMERA", "0"))
FRAME_WIDTH = 640
FRAME_HEIGHT = 480
TARGET_FPS = 15                # frames handed to the pipeline per second
MIN_FRAME_INTERVAL = 1.0 / TARGET_FPS

# Queue sizes (small = drop stale frames, always process latest)
CAPTURE_QUEUE_SIZE = 2

# MediaPipe FaceLandmarker (Tasks API, face_landmarker.task model)
FACE_MODEL_PATH = os.environ.get(
    "FACE_AFFECT_MODEL",
    os.path.join(
        os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
        "models",
        "face_landmarker.task",
    ),
)
FACE_MIN_DETECTION_CONFIDENCE = 0.5
FACE_MIN_PRESENCE_CONFIDENCE = 0.5
FACE_MIN_TRACKING_CONFIDENCE = 0.5

# Optional JSON file overriding the default tuning table
TUNING_PATH = os.environ.get("FACE_AFFECT_TUNING", "")

# Announcements
ANNOUNCE_MIN_INTERVAL = 2.0        # seconds between any two announcements
ANNOUNCE_STATE_INTERVAL = 3.0      # seconds between mixed/low state announcements
ANNOUNCE_EMOTION_INTERVAL = 30.0   # seconds between emotion announcements; 0 = on shift only
ANNOUNCE_VERBOSITY = "normal"      # minimal | normal | detailed
ANNOUNCE_MODE = "conversation"     # conversation | sports
ANNOUNCE_EXPRESSIONS_FIRST = True  # lead with expressions, emotion label second

# Session timeline
TIMELINE_MAX_ENTRIES = 120         # ~60 seconds at 2 entries/sec
