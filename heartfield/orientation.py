import math
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from heartfield.config import Config
from heartfield.gestures import as_points, palm_center

logger = logging.getLogger(__name__)


@dataclass
class RotationState:
    """Target angles written by input sources, current angles eased by the engine."""
    target_yaw: float = 0.0
    target_pitch: float = 0.0
    yaw: float = 0.0
    pitch: float = 0.0


class OrientationController:
    """
    Maps normalized [-1, 1] input to target yaw / pitch.
    Only writes targets; the animation engine owns the easing.
    """
    def __init__(self, rotation: Optional[RotationState] = None,
                 sensitivity: float = Config.ROTATION_SENSITIVITY,
                 pitch_limit: float = Config.PITCH_LIMIT):
        self.rotation = rotation if rotation is not None else RotationState()
        self.sensitivity = sensitivity
        self.pitch_limit = pitch_limit

    def set_target_from_input(self, norm_x: float, norm_y: float):
        # Horizontal hand motion spins the cloud the opposite way (mirrored webcam).
        self.rotation.target_yaw = -norm_x * math.pi * self.sensitivity
        pitch = norm_y * math.pi * 0.5 * self.sensitivity
        self.rotation.target_pitch = max(-self.pitch_limit, min(self.pitch_limit, pitch))


def palm_to_normalized(landmarks) -> Optional[Tuple[float, float]]:
    """Palm center in image space [0, 1] mapped to [-1, 1]. None for an incomplete hand."""
    points = as_points(landmarks)
    if points is None:
        return None
    center = palm_center(points)
    return (center[0] - 0.5) * 2, (center[1] - 0.5) * 2


class DragInput:
    """Pointer / touch drag as an alternate rotation source.

    Each move converts the pixel delta since the previous move into
    normalized input (delta / window size x gain) and forwards it to the
    same controller the hand tracker drives.
    """
    def __init__(self, controller: OrientationController, width: int, height: int,
                 gain: float = Config.DRAG_GAIN):
        self.controller = controller
        self.width = width
        self.height = height
        self.gain = gain
        self.dragging = False
        self.last_x = 0
        self.last_y = 0

    def press(self, x: int, y: int):
        self.dragging = True
        self.last_x, self.last_y = x, y
        logger.debug(f"Drag started at ({x}, {y})")

    def move(self, x: int, y: int) -> bool:
        if not self.dragging:
            return False
        norm_x = (x - self.last_x) / self.width * self.gain
        norm_y = (y - self.last_y) / self.height * self.gain
        self.controller.set_target_from_input(norm_x, norm_y)
        self.last_x, self.last_y = x, y
        return True

    def release(self):
        if self.dragging:
            logger.debug("Drag released")
        self.dragging = False
