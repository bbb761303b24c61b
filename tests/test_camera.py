"""
Camera Tests
============
Device handling is exercised with a patched cv2.VideoCapture.
"""

import base64
import time
import unittest
from unittest import mock

import cv2
import numpy as np

from hand_to_heart.camera import (
    UNAVAILABLE_MESSAGE, Camera, CameraUnavailableError, encode_frame
)


def fake_capture(opened=True, frame=None):
    cap = mock.Mock()
    cap.isOpened.return_value = opened
    cap.get.return_value = 0
    if frame is None:
        cap.read.return_value = (False, None)
    else:
        cap.read.return_value = (True, frame)
    return cap


class TestEncodeFrame(unittest.TestCase):

    def test_jpeg_data_uri(self):
        frame = np.full((48, 64, 3), 200, dtype=np.uint8)

        uri = encode_frame(frame, quality=80)

        header, payload = uri.split(",", 1)
        self.assertEqual(header, "data:image/jpeg;base64")
        decoded = cv2.imdecode(np.frombuffer(base64.b64decode(payload), np.uint8), cv2.IMREAD_COLOR)
        self.assertEqual(decoded.shape, (48, 64, 3))


class TestCamera(unittest.TestCase):

    @mock.patch("hand_to_heart.camera.cv2.VideoCapture")
    def test_open_failure_is_persistent(self, video_capture):
        cap = fake_capture(opened=False)
        video_capture.return_value = cap
        camera = Camera()

        self.assertFalse(camera.start())

        cap.release.assert_called_once()
        self.assertEqual(camera.error, UNAVAILABLE_MESSAGE)
        self.assertFalse(camera.is_available)
        self.assertFalse(camera.is_ready)
        with self.assertRaises(CameraUnavailableError) as ctx:
            camera.capture_frame()
        self.assertEqual(str(ctx.exception), UNAVAILABLE_MESSAGE)

    def test_not_ready_before_first_frame(self):
        camera = Camera()
        self.assertIsNone(camera.get_frame())
        self.assertIsNone(camera.get_display_frame())
        with self.assertRaises(CameraUnavailableError):
            camera.capture_frame()

    @mock.patch("hand_to_heart.camera.cv2.VideoCapture")
    def test_capture_at_native_resolution(self, video_capture):
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        frame[:, :32] = 255
        cap = fake_capture(frame=frame)
        video_capture.return_value = cap

        with Camera(width=64, height=48) as camera:
            deadline = time.time() + 2.0
            while not camera.is_ready and time.time() < deadline:
                time.sleep(0.01)

            self.assertTrue(camera.is_ready)
            uri = camera.capture_frame()
            display = camera.get_display_frame()

        self.assertTrue(uri.startswith("data:image/jpeg;base64,"))
        # Preview is mirrored, the captured frame is not
        self.assertEqual(int(display[0, -1, 0]), 255)
        self.assertEqual(int(display[0, 0, 0]), 0)
        cap.release.assert_called_once()
        self.assertIsNone(camera.get_frame())

    @mock.patch("hand_to_heart.camera.cv2.VideoCapture")
    def test_device_lost(self, video_capture):
        video_capture.return_value = fake_capture(frame=None)
        camera = Camera()
        camera.READ_TIMEOUT = 0.05

        self.assertTrue(camera.start())
        deadline = time.time() + 2.0
        while camera.error is None and time.time() < deadline:
            time.sleep(0.01)
        camera.stop()

        self.assertEqual(camera.error, UNAVAILABLE_MESSAGE)


if __name__ == "__main__":
    unittest.main()
