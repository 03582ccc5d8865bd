import math
import cv2


class Config:
    """Central configuration for HeartField.

    Values are tuned for a laptop webcam and ~50k particles.
    Components read these as defaults; pass keyword overrides for tests.
    """

    # --- Camera Settings ---
    WIDTH = 640
    HEIGHT = 480
    FPS = 30

    # --- Hand Detection ---
    MODEL_PATH = "assets/hand_landmarker.task"
    MODEL_URL = ("https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
                 "hand_landmarker/float16/1/hand_landmarker.task")
    MEDIAPIPE_CONFIDENCE = 0.5    # Detection / presence / tracking confidence
    MAX_HANDS = 1                 # Only the first hand drives the scene

    # --- Gesture Classification ---
    HAND_SIZE_EPSILON = 0.01      # Wrist->middle MCP distance below this is degenerate
    EXTENSION_THRESHOLD = 1.3     # Tip-to-palm distance / hand size for an extended finger
    OPEN_MIN_EXTENDED = 4         # >= this many extended fingers -> open
    FIST_MAX_EXTENDED = 1         # <= this many extended fingers -> fist
    DEBOUNCE_FRAMES = 5           # Consecutive agreeing frames before a state flips

    # --- Particles ---
    PARTICLE_COUNT = 50000
    SPACE_RADIUS = 15.0
    OUTER_TIER_RATIO = 0.6        # First 60% of particles use the outer glow palette

    # --- Heart Shape ---
    HEART_SIZE = 3.0
    HEART_SCALE_X = 1.3           # Width
    HEART_SCALE_Y = 1.1           # Height
    HEART_SCALE_Z = 0.9           # Depth (closer to 1 = puffier)
    HEART_SURFACE_RATIO = 0.7     # Surface shell share, remainder is interior fill
    CENTER_VOID_RADIUS = 0.15     # |x| and |z| below this (unit scale) is the center streak
    CENTER_VOID_KEEP = 0.08       # Probability a center-streak candidate survives

    # --- Animation ---
    TIME_STEP = 0.016             # Seconds added to the clock per tick
    EASING = 0.025                # Fraction of remaining distance covered per tick
    HEARTBEAT_AMPLITUDE = 0.05
    HEARTBEAT_SPEED = 1.2

    # --- Rotation ---
    ROTATION_SENSITIVITY = 1.5
    ROTATION_EASING = 0.08
    PITCH_LIMIT = math.pi * 0.4   # Never tilt past vertical
    DRAG_GAIN = 20.0              # Pointer delta / window size multiplier

    # --- Rendering ---
    CAMERA_DISTANCE = 10.0
    CAMERA_FOV = 60.0             # Vertical field of view (degrees)
    GLOW_KERNEL = 9               # Gaussian kernel for the additive glow pass
    GLOW_STRENGTH = 0.6
    POINT_GAIN = 40.0             # Brightness per unit particle size

    # --- UI Theme (BGR format) ---
    UI_BG = (16, 0, 8)            # Deep violet background
    UI_ACCENT = (180, 105, 255)   # Pink for heart mode
    UI_INFO = (255, 200, 120)     # Light blue for starfield mode
    UI_WARN = (0, 100, 255)
    UI_TEXT = (240, 240, 240)
    FONT = cv2.FONT_HERSHEY_SIMPLEX
    NOTIFY_SECONDS = 2.0
    WINDOW_NAME = "HeartField"

    @classmethod
    def validate(cls):
        """Validate all configuration parameters."""
        assert 0 < cls.WIDTH <= 1920, "Width must be between 0 and 1920"
        assert 0 < cls.HEIGHT <= 1080, "Height must be between 0 and 1080"
        assert 0 < cls.FPS <= 120, "FPS must be between 0 and 120"
        assert 0 < cls.MEDIAPIPE_CONFIDENCE <= 1.0, "Confidence must be 0-1.0"
        assert cls.DEBOUNCE_FRAMES >= 1, "Debounce needs at least one frame"
        assert cls.FIST_MAX_EXTENDED < cls.OPEN_MIN_EXTENDED, "Fist and open bands overlap"
        assert cls.PARTICLE_COUNT >= 1, "Need at least one particle"
        assert cls.SPACE_RADIUS > 0, "Starfield radius must be positive"
        assert 0 <= cls.HEART_SURFACE_RATIO <= 1, "Surface ratio should be 0-1"
        assert 0 < cls.CENTER_VOID_KEEP <= 1, "Void keep probability must be in (0, 1]"
        assert 0 < cls.EASING <= 1, "Easing should be 0-1"
        assert 0 < cls.ROTATION_EASING <= 1, "Rotation easing should be 0-1"
        assert 0 < cls.PITCH_LIMIT < math.pi / 2, "Pitch limit must stay below vertical"
