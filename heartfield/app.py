import cv2
import time
import logging

from heartfield.camera import ThreadedCamera
from heartfield.config import Config
from heartfield.engine import AnimationEngine, Mode
from heartfield.gestures import GestureLabel
from heartfield.orientation import DragInput
from heartfield.renderer import PointCloudRenderer
from heartfield.tracker import HandTracker
from heartfield.ui import HUD

logger = logging.getLogger(__name__)

GESTURE_MESSAGES = {
    GestureLabel.FIST: ("Fist -> gathering the heart", Config.UI_ACCENT),
    GestureLabel.OPEN: ("Open hand -> scattering into stars", Config.UI_INFO),
}


def start_tracking(tracker: HandTracker):
    """Bring up camera + landmarker. Returns the camera, or None when tracking is unavailable."""
    try:
        from heartfield.detector import HandDetector, ensure_model
        model_path = ensure_model()
        tracker.detector = HandDetector(model_path=model_path)
    except Exception as e:
        logger.error(f"Failed to initialize MediaPipe HandLandmarker: {e}")
        return None

    try:
        cam = ThreadedCamera(width=Config.WIDTH, height=Config.HEIGHT, fps=Config.FPS)
        cam.start()
        time.sleep(0.5)  # Let the first frames arrive
    except Exception as e:
        logger.error(f"Failed to initialize camera: {e}")
        return None
    return cam


def main():
    """
    HeartField - make a fist to gather a 3D heart, open your hand to scatter stars.
    Palm position rotates the scene.
    """
    try:
        Config.validate()
    except AssertionError as e:
        logger.error(f"Configuration validation failed: {e}")
        return

    renderer = PointCloudRenderer()
    engine = AnimationEngine(renderer=renderer)
    hud = HUD()
    tracker = HandTracker()

    # Debouncer and palm position publish, the engine subscribes.
    tracker.on_state_change(engine.handle_gesture)
    tracker.on_state_change(lambda state: hud.notify(*GESTURE_MESSAGES[state]))
    tracker.on_position(engine.set_target_rotation)

    cam = start_tracking(tracker)
    if cam is None:
        hud.notify("No hand tracking: [M] toggles mode, drag rotates", Config.UI_WARN)
    else:
        hud.notify("Ready! Try a fist and an open hand", Config.UI_TEXT)

    drag = DragInput(engine.orientation, renderer.width, renderer.height)

    def on_mouse(event, x, y, flags, param):
        if event == cv2.EVENT_LBUTTONDOWN:
            drag.press(x, y)
        elif event == cv2.EVENT_MOUSEMOVE:
            drag.move(x, y)
        elif event == cv2.EVENT_LBUTTONUP:
            drag.release()

    cv2.namedWindow(Config.WINDOW_NAME)
    cv2.setMouseCallback(Config.WINDOW_NAME, on_mouse)

    show_video = False
    last_frame = None
    p_time = 0
    fps = 0

    logger.info("=" * 50)
    logger.info("  HEARTFIELD: GESTURE PARTICLES")
    logger.info("=" * 50)
    logger.info("Press [V] to toggle camera preview")
    logger.info("Press [M] to toggle mode, [R] to regenerate shapes")
    logger.info("Press [Q] to quit")
    logger.info("-" * 50)

    try:
        while True:
            if cam is not None and not cam.is_running():
                logger.warning("Camera lost, switching to keyboard and mouse control")
                hud.notify("Camera lost: [M] toggles mode, drag rotates", Config.UI_WARN)
                cam.release()
                cam = None
                last_frame = None

            if cam is not None:
                # Only frames not seen before reach the tracker.
                success, raw_frame = cam.read()
                if success:
                    # Mirror so moving right feels like moving right.
                    last_frame = cv2.flip(raw_frame, 1)
                    tracker.process_frame(cv2.cvtColor(last_frame, cv2.COLOR_BGR2RGB))
            preview = last_frame if show_video else None

            # Render ticks run whether or not a new camera frame arrived.
            engine.tick()
            disp = renderer.image.copy()

            c_time = time.time()
            fps = 1 / (c_time - p_time) if p_time != 0 else 0
            p_time = c_time

            hud.render(disp, engine.get_mode().name, fps=fps, preview=preview)
            cv2.imshow(Config.WINDOW_NAME, disp)

            key = cv2.waitKey(1) & 0xFF
            if key in (ord('q'), 27):
                logger.info("Quit command received")
                break
            if key == ord('v'):
                show_video = not show_video
                logger.info(f"Camera preview {'enabled' if show_video else 'disabled'}")
            if key == ord('m'):
                heart = engine.get_mode() is not Mode.HEART
                engine.set_mode(Mode.HEART if heart else Mode.STARFIELD)
                hud.notify("3D heart mode" if heart else "3D starfield mode",
                           Config.UI_ACCENT if heart else Config.UI_INFO)
            if key == ord('r'):
                engine.regenerate_targets()
                hud.notify("Shapes regenerated", Config.UI_TEXT)

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error(f"Unexpected error in main loop: {e}", exc_info=True)
    finally:
        logger.info("Shutting down HeartField...")
        tracker.stop()
        engine.stop()
        if cam is not None:
            try:
                cam.release()
            except Exception as e:
                logger.error(f"Error releasing camera: {e}")
        if tracker.detector is not None:
            tracker.detector.close()
        cv2.destroyAllWindows()
        logger.info(f"Rendered {engine.state.frame} frames, saw a hand in "
                    f"{tracker.frames_with_hand}/{tracker.frames_seen} camera frames")
        logger.info("Goodbye!")


def run():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        main()
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
