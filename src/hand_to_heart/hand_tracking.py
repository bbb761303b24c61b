"""
Hand Tracking Module - MediaPipe Hand Guide
===========================================
Draws hand landmarks over the practice preview so the learner can see
whether both hands are inside the frame before asking for verification.

Uses the MediaPipe Tasks API in VIDEO mode. The guide is purely visual:
verification never depends on it.
"""

import time
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np


MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)
DEFAULT_MODEL_PATH = Path.home() / ".cache" / "hand_to_heart" / "hand_landmarker.task"

# Landmark indices follow https://mediapipe.dev/images/mobile/hand_landmarks.png
FINGERTIPS = (4, 8, 12, 16, 20)

HAND_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1), (1, 2), (2, 3), (3, 4),          # thumb
    (0, 5), (5, 6), (6, 7), (7, 8),          # index
    (0, 9), (9, 10), (10, 11), (11, 12),     # middle
    (0, 13), (13, 14), (14, 15), (15, 16),   # ring
    (0, 17), (17, 18), (18, 19), (19, 20),   # pinky
    (5, 9), (9, 13), (13, 17),               # palm
)


@dataclass
class HandOutline:
    """
    Pixel-space landmarks of one detected hand.

    Attributes:
        points: 21 (x, y) pixel positions, indexed like MediaPipe landmarks
        handedness: 'Left' or 'Right'
        bbox: Padded bounding box (x, y, w, h)
    """
    points: List[Tuple[int, int]]
    handedness: str
    bbox: Tuple[int, int, int, int]


def outline_from_landmarks(
    landmarks: Sequence,
    width: int,
    height: int,
    handedness: str = "Right",
    padding: int = 20
) -> HandOutline:
    """
    Convert normalized landmarks (objects with .x and .y) to a pixel outline.
    Points are clamped to the frame.
    """
    points = []
    for lm in landmarks:
        px = max(0, min(int(lm.x * width), width - 1))
        py = max(0, min(int(lm.y * height), height - 1))
        points.append((px, py))

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    x0 = max(0, min(xs) - padding)
    y0 = max(0, min(ys) - padding)
    x1 = min(width, max(xs) + padding)
    y1 = min(height, max(ys) + padding)

    return HandOutline(points=points, handedness=handedness, bbox=(x0, y0, x1 - x0, y1 - y0))


def _download_model(model_path: Path) -> None:
    """Download the hand landmarker model if not present."""
    print("[INFO] Downloading hand landmarker model...")
    model_path.parent.mkdir(parents=True, exist_ok=True)
    urllib.request.urlretrieve(MODEL_URL, model_path)
    print(f"[INFO] Model downloaded to {model_path}")


class HandGuide:
    """
    MediaPipe Hand Landmarker wrapper for the practice preview.

    Several signs need both hands, so two hands are tracked by default.
    """

    def __init__(
        self,
        max_hands: int = 2,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_path: Optional[Path] = None
    ):
        from mediapipe.tasks import python
        from mediapipe.tasks.python import vision

        self._model_path = Path(model_path) if model_path else DEFAULT_MODEL_PATH
        if not self._model_path.exists():
            _download_model(self._model_path)

        base_options = python.BaseOptions(model_asset_path=str(self._model_path))
        options = vision.HandLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.VIDEO,
            num_hands=max_hands,
            min_hand_detection_confidence=min_detection_confidence,
            min_hand_presence_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence
        )
        self.detector = vision.HandLandmarker.create_from_options(options)

        # VIDEO mode needs monotonically increasing timestamps
        self._start_time = time.time()
        self._last_timestamp_ms = -1

    def detect(self, frame: np.ndarray) -> List[HandOutline]:
        """
        Detect hands in a BGR frame.

        Returns:
            One HandOutline per detected hand
        """
        import mediapipe as mp

        height, width = frame.shape[:2]
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)

        timestamp_ms = int((time.time() - self._start_time) * 1000)
        timestamp_ms = max(timestamp_ms, self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        results = self.detector.detect_for_video(mp_image, timestamp_ms)

        outlines = []
        for idx, hand_landmarks in enumerate(results.hand_landmarks or []):
            handedness = "Right"
            if results.handedness and idx < len(results.handedness) and results.handedness[idx]:
                handedness = results.handedness[idx][0].category_name
            outlines.append(outline_from_landmarks(hand_landmarks, width, height, handedness))

        return outlines

    def release(self):
        """Release resources."""
        if self.detector:
            self.detector.close()
            self.detector = None


def draw_hand_outlines(
    frame: np.ndarray,
    outlines: Sequence[HandOutline],
    line_color: Tuple[int, int, int] = (230, 230, 230),
    joint_color: Tuple[int, int, int] = (120, 170, 200),
    tip_color: Tuple[int, int, int] = (60, 90, 180),
    thickness: int = 2
) -> np.ndarray:
    """Draw hand skeletons in place and return the frame."""
    for outline in outlines:
        points = outline.points
        for start, end in HAND_CONNECTIONS:
            if start < len(points) and end < len(points):
                cv2.line(frame, points[start], points[end], line_color, thickness)

        for idx, point in enumerate(points):
            tip = idx in FINGERTIPS
            radius = 6 if tip else 4
            cv2.circle(frame, point, radius, tip_color if tip else joint_color, -1)
            cv2.circle(frame, point, radius, (0, 0, 0), 1)

    return frame


def create_hand_guide(enabled: bool = True) -> Optional[HandGuide]:
    """
    Build a HandGuide, or None if disabled or MediaPipe cannot start.
    """
    if not enabled:
        return None

    try:
        return HandGuide()
    except Exception as e:
        print(f"[WARNING] Hand guide unavailable: {e}")
        return None
