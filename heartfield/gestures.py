import logging
from enum import Enum
from typing import Optional

import numpy as np

from heartfield.config import Config

logger = logging.getLogger(__name__)

# MediaPipe hand landmark indices
WRIST = 0
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_TIP = 12
RING_MCP = 13
RING_TIP = 16
PINKY_MCP = 17
PINKY_TIP = 20

FINGERTIPS = (THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP)
PALM_JOINTS = (WRIST, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)
NUM_LANDMARKS = 21


class GestureLabel(Enum):
    OPEN = "open"
    FIST = "fist"
    UNKNOWN = "unknown"


def as_points(landmarks) -> Optional[np.ndarray]:
    """Convert a landmark set into a (21, 3) float array.

    Accepts MediaPipe landmark objects (``.x``, ``.y``, ``.z``) or any
    array-like of rows. A missing z is read as 0. Returns None when fewer
    than 21 landmarks are present.
    """
    if landmarks is None or len(landmarks) < NUM_LANDMARKS:
        return None
    first = landmarks[0]
    if hasattr(first, "x"):
        pts = np.array([(lm.x, lm.y, getattr(lm, "z", 0.0) or 0.0) for lm in landmarks],
                       dtype=np.float64)
    else:
        pts = np.asarray(landmarks, dtype=np.float64)
        if pts.ndim != 2:
            return None
        if pts.shape[1] == 2:
            pts = np.hstack([pts, np.zeros((len(pts), 1))])
    return pts[:NUM_LANDMARKS, :3]


def palm_center(points: np.ndarray) -> np.ndarray:
    # Mean of the wrist and the four MCP knuckles.
    return points[list(PALM_JOINTS)].mean(axis=0)


def hand_size(points: np.ndarray) -> float:
    return float(np.linalg.norm(points[WRIST] - points[MIDDLE_MCP]))


def extended_fingers(points: np.ndarray, size: float,
                     threshold: float = Config.EXTENSION_THRESHOLD) -> int:
    """Count fingertips whose palm distance, in hand-size units, exceeds threshold."""
    center = palm_center(points)
    dists = np.linalg.norm(points[list(FINGERTIPS)] - center, axis=1) / size
    return int(np.count_nonzero(dists > threshold))


def classify(landmarks,
             threshold: float = Config.EXTENSION_THRESHOLD,
             epsilon: float = Config.HAND_SIZE_EPSILON) -> GestureLabel:
    """Instantaneous open / fist label for one frame of hand landmarks.

    Degenerate detections (tiny hand) and the ambiguous 2-3 finger band both
    return ``GestureLabel.UNKNOWN``; neither is an error.
    """
    points = as_points(landmarks)
    if points is None or not np.isfinite(points).all():
        return GestureLabel.UNKNOWN

    size = hand_size(points)
    if not np.isfinite(size) or size < epsilon:
        return GestureLabel.UNKNOWN

    count = extended_fingers(points, size, threshold)
    if count >= Config.OPEN_MIN_EXTENDED:
        return GestureLabel.OPEN
    if count <= Config.FIST_MAX_EXTENDED:
        return GestureLabel.FIST
    return GestureLabel.UNKNOWN


class GestureDebouncer:
    """
    Confirms an open/fist state only after N consecutive agreeing frames.
    Suppresses flicker when the hand sits near the classification boundary.
    """
    def __init__(self, frames: int = Config.DEBOUNCE_FRAMES, classifier=classify):
        if frames < 1:
            raise ValueError("Debounce needs at least one frame")
        self.frames = frames
        self.classifier = classifier

        # Confirmed state: None until the first transition.
        self.confirmed: Optional[GestureLabel] = None
        self.pending: Optional[GestureLabel] = None
        self.pending_count = 0

    def update(self, landmarks) -> Optional[GestureLabel]:
        """Classify one frame; return the new confirmed state only when it changes."""
        return self.update_label(self.classifier(landmarks))

    def update_label(self, label: GestureLabel) -> Optional[GestureLabel]:
        if label is GestureLabel.UNKNOWN or label == self.confirmed:
            self._clear_pending()
            return None

        if label != self.pending:
            self.pending = label
            self.pending_count = 1
        else:
            self.pending_count += 1

        if self.pending_count >= self.frames:
            self.confirmed = label
            self._clear_pending()
            logger.debug(f"Gesture confirmed: {label.value}")
            return label
        return None

    def current_state(self) -> Optional[GestureLabel]:
        return self.confirmed

    def reset(self):
        """Forget confirmed and pending state. Safe to call at any time."""
        self.confirmed = None
        self._clear_pending()

    def _clear_pending(self):
        self.pending = None
        self.pending_count = 0
