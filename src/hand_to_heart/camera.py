"""
Camera Module - Webcam Stream Handler
======================================
Handles webcam capture and still snapshots for gesture verification.
Frames are read on a background thread so the UI always has the latest one.
"""

import base64
import sys
import threading
import time
from typing import Optional

import cv2
import numpy as np


UNAVAILABLE_MESSAGE = "Camera access denied or unavailable."


class CameraUnavailableError(RuntimeError):
    """Raised when a still is requested but the camera cannot provide one."""


def encode_frame(frame: np.ndarray, quality: int = 80) -> str:
    """
    Encode a BGR frame as a JPEG data URI.

    Args:
        frame: Image as numpy array
        quality: JPEG quality (0-100)

    Returns:
        'data:image/jpeg;base64,...' string
    """
    ok, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    if not ok:
        raise ValueError("Failed to encode frame as JPEG")
    return "data:image/jpeg;base64," + base64.b64encode(buffer.tobytes()).decode("ascii")


class Camera:
    """
    Webcam stream handler with threading support for smooth frame capture.

    The camera has a persistent unavailable state: once opening fails, or the
    device stops delivering frames, `error` is set and capture is refused.

    Attributes:
        camera_id: Index of the camera device (default 0, the front camera on laptops)
        width: Frame width in pixels
        height: Frame height in pixels
        fps: Target frames per second
        jpeg_quality: Quality used by capture_frame
    """

    # Seconds without a frame before the device is considered lost
    READ_TIMEOUT = 3.0

    def __init__(
        self,
        camera_id: int = 0,
        width: int = 640,
        height: int = 480,
        fps: int = 30,
        jpeg_quality: int = 80
    ):
        self.camera_id = camera_id
        self.width = width
        self.height = height
        self.fps = fps
        self.jpeg_quality = jpeg_quality

        self.cap: Optional[cv2.VideoCapture] = None
        self.error: Optional[str] = None

        # Threading components for non-blocking capture
        self._frame: Optional[np.ndarray] = None
        self._frame_lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._last_frame_time = 0.0

    @property
    def is_ready(self) -> bool:
        """True once the device is open and has delivered a frame."""
        with self._frame_lock:
            return self.error is None and self._frame is not None

    @property
    def is_available(self) -> bool:
        return self.error is None and self.cap is not None

    def start(self) -> bool:
        """
        Open the camera and start the reader thread.

        Returns:
            True if camera started successfully, False otherwise
        """
        backend = cv2.CAP_DSHOW if sys.platform == "win32" else cv2.CAP_ANY
        cap = cv2.VideoCapture(self.camera_id, backend)

        if not cap.isOpened():
            cap.release()
            self.error = UNAVAILABLE_MESSAGE
            print(f"[ERROR] Failed to open camera {self.camera_id}")
            return False

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        # Actual resolution may differ from the preferred one
        self.width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or self.width
        self.height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or self.height

        self.cap = cap
        self.error = None
        print(f"[INFO] Camera started: {self.width}x{self.height} @ {self.fps}fps")

        self._running = True
        self._last_frame_time = time.time()
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()

        return True

    def _capture_loop(self):
        """Keep the most recent raw frame; flag the device lost if it goes quiet."""
        while self._running:
            ret, frame = self.cap.read()

            if ret:
                with self._frame_lock:
                    self._frame = frame
                self._last_frame_time = time.time()
            elif time.time() - self._last_frame_time > self.READ_TIMEOUT:
                self.error = UNAVAILABLE_MESSAGE
                print(f"[ERROR] Camera {self.camera_id} stopped delivering frames")
                self._running = False
            else:
                time.sleep(0.001)

    def get_frame(self) -> Optional[np.ndarray]:
        """Latest raw frame (copy), or None."""
        with self._frame_lock:
            if self._frame is None:
                return None
            return self._frame.copy()

    def get_display_frame(self) -> Optional[np.ndarray]:
        """Latest frame mirrored for on-screen preview."""
        frame = self.get_frame()
        return cv2.flip(frame, 1) if frame is not None else None

    def capture_frame(self) -> str:
        """
        Snapshot the current frame at native resolution.

        Returns:
            JPEG data URI

        Raises:
            CameraUnavailableError: If the camera is unavailable or not ready
        """
        if self.error is not None:
            raise CameraUnavailableError(self.error)

        frame = self.get_frame()
        if frame is None:
            raise CameraUnavailableError("Camera is not ready yet.")

        return encode_frame(frame, self.jpeg_quality)

    def stop(self):
        """Stop the camera capture and release resources."""
        self._running = False

        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

        if self.cap is not None:
            self.cap.release()
            self.cap = None
            print("[INFO] Camera stopped")

        with self._frame_lock:
            self._frame = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
