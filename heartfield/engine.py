import math
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from heartfield.config import Config
from heartfield.geometry import GeometryGenerator
from heartfield.gestures import GestureLabel
from heartfield.orientation import OrientationController, RotationState

logger = logging.getLogger(__name__)


class Mode(Enum):
    HEART = "heart"
    STARFIELD = "space"

    @classmethod
    def _missing_(cls, value):
        # Accept member names too ("starfield", "HEART").
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


# Confirmed gesture -> particle mode
GESTURE_MODES = {
    GestureLabel.FIST: Mode.HEART,
    GestureLabel.OPEN: Mode.STARFIELD,
}


@dataclass(frozen=True)
class TargetSet:
    """Immutable pair of target clouds; swapped as a whole on regeneration."""
    heart: np.ndarray
    starfield: np.ndarray


@dataclass
class ParticleState:
    """Everything one animated particle cloud owns. Mutated only inside tick()."""
    positions: np.ndarray
    colors: np.ndarray
    sizes: np.ndarray
    phases: np.ndarray
    targets: TargetSet
    mode: Mode = Mode.STARFIELD
    rotation: RotationState = field(default_factory=RotationState)
    time: float = 0.0
    heartbeat: float = 1.0
    frame: int = 0

    @property
    def count(self) -> int:
        return len(self.positions)


def rotation_matrix(yaw: float, pitch: float) -> np.ndarray:
    """Group rotation: pitch about X applied after yaw about Y."""
    cy, sy = math.cos(yaw), math.sin(yaw)
    cp, sp = math.cos(pitch), math.sin(pitch)
    ry = np.array([[cy, 0.0, sy],
                   [0.0, 1.0, 0.0],
                   [-sy, 0.0, cy]])
    rx = np.array([[1.0, 0.0, 0.0],
                   [0.0, cp, -sp],
                   [0.0, sp, cp]])
    return rx @ ry


class AnimationEngine:
    """
    Eases a live particle cloud toward the heart or starfield target.
    One tick: advance clock, pulse the heart, ease every particle, ease the
    group rotation, hand the buffer to the renderer.
    """
    def __init__(self, count: int = Config.PARTICLE_COUNT,
                 radius: float = Config.SPACE_RADIUS,
                 renderer=None,
                 rng: Optional[np.random.Generator] = None,
                 easing: float = Config.EASING,
                 rotation_easing: float = Config.ROTATION_EASING,
                 time_step: float = Config.TIME_STEP):
        if count < 1:
            raise ValueError("Need at least one particle")
        if not 0 < easing <= 1 or not 0 < rotation_easing <= 1:
            raise ValueError("Easing factors must be in (0, 1]")

        self.count = count
        self.radius = radius
        self.renderer = renderer
        self.rng = rng
        self.easing = easing
        self.rotation_easing = rotation_easing
        self.time_step = time_step

        targets = self._build_targets()
        self.state = ParticleState(
            positions=targets.starfield.copy(),
            colors=GeometryGenerator.generate_colors(count, rng),
            sizes=GeometryGenerator.generate_sizes(count, rng),
            phases=(rng or np.random.default_rng()).uniform(0, 2 * math.pi, count).astype(np.float32),
            targets=targets,
        )
        self.orientation = OrientationController(self.state.rotation)

        # Reused every tick so the hot loop never allocates.
        self._scratch = np.empty_like(self.state.positions)
        self._running = True

        logger.info(f"Particle engine initialized with {count} particles")

    def _build_targets(self) -> TargetSet:
        heart = GeometryGenerator.generate_heart(self.count, self.rng)
        starfield = GeometryGenerator.generate_starfield(self.count, self.radius, self.rng)
        heart.flags.writeable = False
        starfield.flags.writeable = False
        return TargetSet(heart=heart, starfield=starfield)

    # --- Mode ---

    def set_mode(self, mode) -> bool:
        """Select the target cloud. Invalid modes are logged and ignored."""
        try:
            mode = Mode(mode)
        except ValueError:
            logger.warning(f"Invalid mode requested: {mode!r}, keeping {self.state.mode.value}")
            return False
        if mode is not self.state.mode:
            logger.info(f"Particle mode switched to {mode.name.lower()}")
        # Live positions and the pulse clock are left alone; the next tick retargets.
        self.state.mode = mode
        return True

    def get_mode(self) -> Mode:
        return self.state.mode

    def handle_gesture(self, label: Optional[GestureLabel]):
        """Subscriber for confirmed gesture changes: fist -> heart, open -> starfield."""
        mode = GESTURE_MODES.get(label)
        if mode is not None:
            self.set_mode(mode)

    # --- Rotation ---

    def set_target_rotation(self, norm_x: float, norm_y: float):
        self.orientation.set_target_from_input(norm_x, norm_y)

    def rotation_matrix(self) -> np.ndarray:
        rot = self.state.rotation
        return rotation_matrix(rot.yaw, rot.pitch)

    # --- Targets ---

    def regenerate_targets(self):
        """Rebuild both target clouds and swap them in as one reference."""
        self.state.targets = self._build_targets()
        logger.info("Particle targets regenerated")

    # --- Lifecycle ---

    def start(self):
        if not self._running:
            self._running = True
            logger.info("Animation started")

    def stop(self):
        if self._running:
            self._running = False
            logger.info("Animation stopped")

    def is_running(self) -> bool:
        return self._running

    def tick(self) -> bool:
        """Advance one frame. Returns False (and does nothing) while stopped."""
        if not self._running:
            return False

        state = self.state
        targets = state.targets   # Single read: a regeneration lands on the next frame.
        mode = state.mode
        live = state.positions
        scratch = self._scratch

        state.time += self.time_step
        state.frame += 1

        if mode is Mode.HEART:
            state.heartbeat = 1 + Config.HEARTBEAT_AMPLITUDE * math.sin(state.time * Config.HEARTBEAT_SPEED)
            np.multiply(targets.heart, state.heartbeat, out=scratch)
        else:
            state.heartbeat = 1.0
            np.copyto(scratch, targets.starfield)

        # live += (target - live) * easing, in place.
        scratch -= live
        scratch *= self.easing
        live += scratch

        rot = state.rotation
        rot.yaw += (rot.target_yaw - rot.yaw) * self.rotation_easing
        rot.pitch += (rot.target_pitch - rot.pitch) * self.rotation_easing

        if self.renderer is not None:
            self.renderer.render(state, self.rotation_matrix())
        return True
