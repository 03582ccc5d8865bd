import logging
from typing import Callable, List, Optional

from heartfield.gestures import GestureDebouncer, GestureLabel
from heartfield.orientation import palm_to_normalized

logger = logging.getLogger(__name__)


class HandTracker:
    """
    Turns per-frame hand landmarks into two event streams:
    confirmed gesture changes and normalized palm position.

    The detector is any object with ``detect(frame)`` returning 21 landmarks
    or None. Callbacks run synchronously on the caller's thread.
    """
    def __init__(self, detector=None, debouncer: Optional[GestureDebouncer] = None):
        self.detector = detector
        self.debouncer = debouncer if debouncer is not None else GestureDebouncer()
        self.state_callbacks: List[Callable[[GestureLabel], None]] = []
        self.position_callbacks: List[Callable[[float, float], None]] = []
        self.running = True
        self.frames_seen = 0
        self.frames_with_hand = 0

    def on_state_change(self, callback: Callable[[GestureLabel], None]):
        """Register a callback for confirmed open / fist transitions."""
        self.state_callbacks.append(callback)

    def on_position(self, callback: Callable[[float, float], None]):
        """Register a callback receiving palm position in [-1, 1]."""
        self.position_callbacks.append(callback)

    def process_frame(self, frame) -> Optional[GestureLabel]:
        """Detect a hand in an RGB frame and feed it through the pipeline."""
        if not self.running or self.detector is None:
            return None
        return self.process_landmarks(self.detector.detect(frame))

    def process_landmarks(self, landmarks) -> Optional[GestureLabel]:
        """Feed one frame of landmarks (or None) and publish any events.

        Returns the newly confirmed state when this frame completed a transition.
        """
        if not self.running:
            return None
        self.frames_seen += 1

        # No hand: nothing to confirm and nowhere to point.
        if landmarks is None:
            return None
        self.frames_with_hand += 1

        change = self.debouncer.update(landmarks)
        if change is not None:
            logger.info(f"Hand state changed to {change.value}")
            for callback in self.state_callbacks:
                callback(change)

        position = palm_to_normalized(landmarks)
        if position is not None:
            for callback in self.position_callbacks:
                callback(*position)
        return change

    def stop(self):
        """Stop publishing. Idempotent."""
        if not self.running:
            return
        self.running = False
        self.debouncer.reset()
        logger.info("Hand tracking stopped")
