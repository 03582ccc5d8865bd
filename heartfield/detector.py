import os
import logging
import urllib.request

import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from heartfield.config import Config

logger = logging.getLogger(__name__)


def ensure_model(path: str = Config.MODEL_PATH, url: str = Config.MODEL_URL) -> str:
    """Download the hand landmarker model if it is not on disk yet."""
    if os.path.exists(path):
        return path
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    logger.info(f"Downloading hand landmarker model to {path}...")
    urllib.request.urlretrieve(url, path)
    logger.info("Download complete")
    return path


class HandDetector:
    """
    MediaPipe Tasks hand landmarker for a single hand.
    ``detect`` returns the 21 landmarks of the first hand, or None.
    """
    def __init__(self, model_path: str = Config.MODEL_PATH,
                 confidence: float = Config.MEDIAPIPE_CONFIDENCE,
                 max_hands: int = Config.MAX_HANDS):
        base_options = python.BaseOptions(model_asset_path=model_path)
        options = vision.HandLandmarkerOptions(
            base_options=base_options,
            num_hands=max_hands,
            min_hand_detection_confidence=confidence,
            min_hand_presence_confidence=confidence,
            min_tracking_confidence=confidence
        )
        self.landmarker = vision.HandLandmarker.create_from_options(options)

    def detect(self, rgb_frame):
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)
        results = self.landmarker.detect(mp_image)
        return results.hand_landmarks[0] if results.hand_landmarks else None

    def close(self):
        self.landmarker.close()
