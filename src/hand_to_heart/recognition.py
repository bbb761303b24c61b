"""
Recognition Module - Gesture Verification
=========================================
Sends a still frame and the target sign's instruction to a Gemini vision
model and reads back a structured {match, feedback} verdict.

Call failures and malformed answers never escape `verify`: they become a
non-match with a generic retry message. A missing API key does escape,
since nothing can be verified without one.
"""

import base64
import json
import re
import time
from dataclasses import dataclass
from typing import Any, Optional

from google.genai import types

from .config import AppConfig, create_genai_client
from .signs import SignDefinition


GENERIC_FEEDBACK = "Could not verify gesture. Please try again."

_DATA_URI_PREFIX = re.compile(r"^data:image/(png|jpeg|jpg);base64,")

RECOGNITION_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "match": types.Schema(
            type=types.Type.BOOLEAN,
            description="True if the gesture looks correct based on the instruction.",
        ),
        "feedback": types.Schema(
            type=types.Type.STRING,
            description="A brief, encouraging sentence about what they did right or wrong.",
        ),
    },
    required=["match", "feedback"],
)


@dataclass(frozen=True)
class RecognitionOutcome:
    """Verdict for one verification attempt."""
    matched: bool
    feedback: str


def strip_data_uri(image: str) -> str:
    """Remove a 'data:image/...;base64,' header if present."""
    return _DATA_URI_PREFIX.sub("", image, count=1)


def build_recognition_prompt(sign: SignDefinition) -> str:
    return f"""
You are a strict but helpful Chinese Sign Language teacher.
The user is trying to perform the sign for "{sign.name}" ({sign.chinese_name}).
Instruction: "{sign.instruction}".

Analyze the image. Does the hand gesture roughly match the description of the sign?
Ignore background clutter. Focus on the hands.

Return JSON.
"""


def parse_outcome(text: Optional[str]) -> RecognitionOutcome:
    """
    Validate the model's JSON answer.

    Raises:
        ValueError: If the answer is empty or does not follow the schema
    """
    if not text:
        raise ValueError("No response text from vision model")

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    match = data.get("match")
    feedback = data.get("feedback")
    if not isinstance(match, bool):
        raise ValueError("Response is missing a boolean 'match'")
    if not isinstance(feedback, str):
        raise ValueError("Response is missing a string 'feedback'")

    return RecognitionOutcome(matched=match, feedback=feedback.strip())


class RecognitionClient:
    """
    Verifies gestures with a vision-capable Gemini model.

    Usage:
        client = RecognitionClient(config)
        outcome = client.verify(camera.capture_frame(), get_sign('hello'))
    """

    def __init__(self, config: AppConfig, client: Any = None):
        """
        Args:
            config: Application config (model name, API key)
            client: Gemini client; created from config on first use if omitted
        """
        self.config = config
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = create_genai_client(self.config)
        return self._client

    def verify(self, image: str, sign: SignDefinition) -> RecognitionOutcome:
        """
        Judge whether the captured frame shows the target sign.

        Args:
            image: JPEG as base64, with or without a data URI header
            sign: The sign being practiced

        Returns:
            RecognitionOutcome; a non-match with GENERIC_FEEDBACK on any failure

        Raises:
            MissingCredentialError: If no API key is configured
        """
        client = self._get_client()
        start_time = time.time()

        try:
            image_bytes = base64.b64decode(strip_data_uri(image), validate=True)

            response = client.models.generate_content(
                model=self.config.vision_model,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type="image/jpeg"),
                    build_recognition_prompt(sign),
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=RECOGNITION_SCHEMA,
                ),
            )
            outcome = parse_outcome(response.text)

        except Exception as e:
            print(f"[ERROR] Gesture verification failed: {e}")
            return RecognitionOutcome(matched=False, feedback=GENERIC_FEEDBACK)

        print(
            f"[INFO] Verified '{sign.id}': match={outcome.matched} "
            f"({time.time() - start_time:.1f}s)"
        )
        return outcome


class MockRecognitionClient(RecognitionClient):
    """
    Offline verifier for demos without API access.
    Accepts every attempt after a short pause.
    """

    def __init__(self, delay: float = 1.0):
        self.config = AppConfig(use_mock=True)
        self._client = None
        self.delay = delay

    def verify(self, image: str, sign: SignDefinition) -> RecognitionOutcome:
        time.sleep(self.delay)
        return RecognitionOutcome(
            matched=True,
            feedback=f"Your hands found the shape of {sign.name.lower()}.",
        )
