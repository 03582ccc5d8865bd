import cv2
import time
import logging
from typing import Optional, Tuple
import numpy as np
from heartfield.config import Config

logger = logging.getLogger(__name__)


class HUD:
    """Heads-up overlay: timed notification pill, mode label, FPS and camera preview."""

    def __init__(self, duration: float = Config.NOTIFY_SECONDS, clock=time.monotonic):
        self.duration = duration
        self.clock = clock
        self.message = ""
        self.color = Config.UI_TEXT
        self.shown_at: Optional[float] = None

    def notify(self, message: str, color: Tuple[int, int, int] = Config.UI_TEXT):
        self.message = message
        self.color = color
        self.shown_at = self.clock()
        logger.info(message)

    def active_message(self) -> Optional[str]:
        if self.shown_at is None or self.clock() - self.shown_at > self.duration:
            return None
        return self.message

    def render(self, img: np.ndarray, mode_label: str, fps: float = 0,
               preview: Optional[np.ndarray] = None) -> None:
        """Draw the overlay in place.

        Args:
            img: Rendered particle frame (BGR)
            mode_label: Current particle mode name
            fps: Frames per second to display
            preview: Optional camera frame shown as a corner thumbnail
        """
        if img is None or img.size == 0:
            return
        try:
            h, w = img.shape[:2]

            if preview is not None:
                pw, ph = w // 4, h // 4
                thumb = cv2.resize(preview, (pw, ph))
                img[h - ph - 10:h - 10, w - pw - 10:w - 10] = thumb
                cv2.rectangle(img, (w - pw - 10, h - ph - 10), (w - 10, h - 10), (90, 90, 90), 1)

            cv2.putText(img, mode_label.upper(), (15, h - 20), Config.FONT, 0.5, Config.UI_TEXT, 1, cv2.LINE_AA)
            cv2.putText(img, f"FPS: {int(fps)}", (w - 90, 25), Config.FONT, 0.45, (120, 120, 120), 1)

            message = self.active_message()
            if message:
                self._render_island(img, message, self.color)
        except Exception as e:
            logger.error(f"HUD rendering error: {e}")

    @staticmethod
    def _render_island(img, text, color):
        # Rounded pill centered at the top of the frame.
        h, w = img.shape[:2]
        iw, ih = 420, 44
        ix = (w - iw) // 2
        iy = 15

        overlay = img.copy()
        cv2.rectangle(overlay, (ix + ih // 2, iy), (ix + iw - ih // 2, iy + ih), (15, 15, 15), -1)
        cv2.circle(overlay, (ix + ih // 2, iy + ih // 2), ih // 2, (15, 15, 15), -1)
        cv2.circle(overlay, (ix + iw - ih // 2, iy + ih // 2), ih // 2, (15, 15, 15), -1)
        cv2.addWeighted(overlay, 0.8, img, 0.2, 0, img)

        cv2.circle(img, (ix + 30, iy + ih // 2), 6, color, -1)
        cv2.putText(img, text[:40], (ix + 50, iy + 28), Config.FONT, 0.55, Config.UI_TEXT, 1, cv2.LINE_AA)
