import math
import logging

import cv2
import numpy as np

from heartfield.config import Config
from heartfield.engine import Mode

logger = logging.getLogger(__name__)


class PointCloudRenderer:
    """
    Software point-sprite renderer on top of OpenCV.
    Rotates the cloud as one group, projects through a pinhole camera on the
    +Z axis, splats points additively and adds a blurred glow pass.
    """
    def __init__(self, width: int = 960, height: int = 720,
                 camera_distance: float = Config.CAMERA_DISTANCE,
                 fov: float = Config.CAMERA_FOV):
        self.width = width
        self.height = height
        self.camera_distance = camera_distance
        self.focal = (height / 2) / math.tan(math.radians(fov) / 2)
        self.background = np.array(Config.UI_BG, dtype=np.float32) / 255.0
        self.image = np.zeros((height, width, 3), dtype=np.uint8)

    def project(self, points: np.ndarray, rotation: np.ndarray):
        """Rotate and project (N, 3) points. Returns pixel x, pixel y, depth, visible mask."""
        world = points @ rotation.T
        depth = self.camera_distance - world[:, 2]
        visible = depth > 0.1
        safe = np.where(visible, depth, 1.0)
        px = self.width / 2 + world[:, 0] * self.focal / safe
        py = self.height / 2 - world[:, 1] * self.focal / safe
        visible &= (px >= 0) & (px < self.width) & (py >= 0) & (py < self.height)
        return px, py, depth, visible

    def twinkle(self, state) -> np.ndarray:
        # Stars breathe out of phase with each other; the heart stays steady.
        if state.mode is not Mode.STARFIELD:
            return np.ones(state.count, dtype=np.float32)
        size_pulse = 0.7 + 0.3 * np.sin(state.time * 2.0 + state.phases)
        alpha_pulse = 0.7 + 0.3 * np.sin(state.time * 1.5 + state.phases)
        return size_pulse * alpha_pulse

    def render(self, state, rotation: np.ndarray) -> np.ndarray:
        px, py, depth, visible = self.project(state.positions, rotation)
        if not np.any(visible):
            self.image[:] = (self.background * 255).astype(np.uint8)
            return self.image

        ix = px[visible].astype(np.int32)
        iy = py[visible].astype(np.int32)
        weight = (state.sizes[visible] * self.twinkle(state)[visible]
                  * (self.camera_distance / depth[visible]) * Config.POINT_GAIN)
        bgr = state.colors[visible][:, ::-1]

        flat = iy * self.width + ix
        acc = np.empty((self.height, self.width, 3), dtype=np.float32)
        for c in range(3):
            acc[..., c] = np.bincount(flat, weights=bgr[:, c] * weight,
                                      minlength=self.width * self.height).reshape(self.height, self.width)

        glow = cv2.GaussianBlur(acc, (Config.GLOW_KERNEL, Config.GLOW_KERNEL), 0)
        acc += glow * Config.GLOW_STRENGTH * Config.GLOW_KERNEL

        # Soft saturation keeps dense regions from clipping to flat white.
        lit = 1.0 - np.exp(-acc)
        out = self.background + lit * (1.0 - self.background)
        self.image = (np.clip(out, 0.0, 1.0) * 255).astype(np.uint8)
        return self.image
