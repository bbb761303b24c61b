"""
Test doubles shared by the test suites.
"""

from types import SimpleNamespace

import cv2
import numpy as np

from hand_to_heart.composition import CompositionResult
from hand_to_heart.image_generator import StylePresets
from hand_to_heart.recognition import RecognitionOutcome


class FakeModels:
    """Stands in for `genai.Client().models`; replays queued responses."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeGenaiClient:
    def __init__(self, *responses):
        self.models = FakeModels(responses)


def text_response(text):
    return SimpleNamespace(text=text, candidates=[])


def image_response(data, mime_type="image/png"):
    parts = [
        SimpleNamespace(text="Here is your panel.", inline_data=None),
        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type)),
    ]
    return SimpleNamespace(text=None, candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def png_bytes(width=8, height=6):
    image = np.full((height, width, 3), 128, dtype=np.uint8)
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


class ManualClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class StubRecognizer:
    """Returns a fixed outcome, or raises a fixed error."""

    def __init__(self, outcome=None, error=None):
        self.outcome = outcome or RecognitionOutcome(matched=True, feedback="good")
        self.error = error
        self.calls = []

    def verify(self, image, sign):
        self.calls.append((image, sign))
        if self.error is not None:
            raise self.error
        return self.outcome


class StubComposer:
    def __init__(self, result=None, error=None):
        self.result = result or CompositionResult(story="A quiet poem.", illustration=None)
        self.error = error
        self.calls = []
        self.style = StylePresets.DEFAULT

    def set_style(self, style):
        self.style = style

    def compose(self, signs):
        self.calls.append(tuple(signs))
        if self.error is not None:
            raise self.error
        return self.result


class DeferredRunner:
    """Holds submitted work until the test completes it, like a call in flight."""

    def __init__(self):
        self.jobs = []

    def submit(self, work, on_done, on_error):
        self.jobs.append((work, on_done, on_error))

    def complete(self, index=0):
        work, on_done, on_error = self.jobs.pop(index)
        try:
            result = work()
        except Exception as e:
            on_error(e)
            return
        on_done(result)


class FakeCamera:
    def __init__(self, error=None):
        self.error = error
        self.started = 0
        self.stopped = 0
        self.frame = np.zeros((48, 64, 3), dtype=np.uint8)

    def start(self):
        self.started += 1
        return self.error is None

    def stop(self):
        self.stopped += 1

    def get_display_frame(self):
        return None if self.error else self.frame.copy()

    def capture_frame(self):
        from hand_to_heart.camera import CameraUnavailableError

        if self.error:
            raise CameraUnavailableError(self.error)
        return "data:image/jpeg;base64,ZmFrZQ=="
