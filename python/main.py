"""
Webcam face affect reader
Usage: python main.py [--camera 0] [--tuning tuning.json]
"""

import argparse

from dotenv import load_dotenv

# Load .env before any other imports that might need env vars
load_dotenv()

from face_affect import config
from face_affect.app import LiveReader
from face_affect.tuning import load_tuning


def main() -> None:
    parser = argparse.ArgumentParser(description="Real-time facial expression and emotion reader")
    parser.add_argument("--camera", type=int, default=config.CAMERA_INDEX, help="Camera index")
    parser.add_argument("--tuning", default=config.TUNING_PATH, help="JSON file overriding thresholds")
    args = parser.parse_args()

    reader = LiveReader(camera_index=args.camera, tuning=load_tuning(args.tuning))
    reader.run()


if __name__ == "__main__":
    main()
