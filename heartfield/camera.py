import cv2
import threading
import logging

logger = logging.getLogger(__name__)


class ThreadedCamera:
    """Webcam reader on a background thread; ``read`` returns the latest frame."""

    def __init__(self, src=0, width=640, height=480, fps=30):
        self.src = src
        self.width = width
        self.height = height
        self.fps = fps

        self.cap = None
        self.frame = None
        self.success = False
        self.frame_id = 0      # Bumped for every captured frame
        self.last_read_id = 0  # frame_id handed out by the last read
        self.stopped = True
        self.lock = threading.Lock()
        self.thread = None

    def _open(self):
        self.cap = cv2.VideoCapture(self.src)
        if not self.cap.isOpened():
            logger.error(f"Failed to open camera {self.src}")
            return False
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)
        self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        return True

    def start(self):
        """Open the device and start reading. Raises RuntimeError if it cannot open."""
        if not self.stopped:
            return self
        if (self.cap is None or not self.cap.isOpened()) and not self._open():
            raise RuntimeError(f"Failed to initialize camera {self.src}")

        self.stopped = False
        self.thread = threading.Thread(target=self._update_loop, daemon=True)
        self.thread.start()
        logger.info(f"Camera started: {self.width}x{self.height}@{self.fps}fps")
        return self

    def _update_loop(self):
        while not self.stopped:
            success, frame = self.cap.read()
            if not success:
                logger.warning("Camera stopped delivering frames")
                with self.lock:
                    self.success = False
                self.stopped = True
                break
            self._store(frame)

    def _store(self, frame):
        with self.lock:
            self.success = True
            self.frame = frame
            self.frame_id += 1

    def read(self):
        """Return (True, frame) for a frame not handed out before, else (False, None)."""
        with self.lock:
            if self.frame is None or not self.success or self.frame_id == self.last_read_id:
                return False, None
            self.last_read_id = self.frame_id
            return True, self.frame.copy()

    def is_running(self):
        return not self.stopped and self.cap is not None and self.cap.isOpened()

    def release(self):
        """Stop the reader and free the device. Safe to call more than once."""
        if self.cap is None:
            return
        self.stopped = True
        if self.thread is not None:
            self.thread.join(timeout=2.0)
            self.thread = None
        self.cap.release()
        self.cap = None
        logger.info("Camera released")
