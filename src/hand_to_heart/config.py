"""
Config Module - Application Settings
====================================
Collects model names, credentials and device settings from the environment.
A single AppConfig is built at startup and handed to every component.
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional


class MissingCredentialError(RuntimeError):
    """Raised when a model call is attempted without an API key."""


# Environment variables checked for the Gemini key, in order
API_KEY_VARS = ("API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY")

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class AppConfig:
    """
    Settings shared by the camera, model clients and UI.

    Attributes:
        api_key: Gemini API key (None until provided)
        vision_model: Model used to verify gestures
        text_model: Model used to write the poem
        image_model: Model used to paint the illustration
        image_backend: 'gemini', 'huggingface', 'fal' or 'mock'
        illustration_style: Style preset name for the illustration
        hf_token: Hugging Face token for the huggingface/fal backends
        hf_model: Hugging Face text-to-image model
        camera_id: Camera device index
        frame_width: Preferred capture width
        frame_height: Preferred capture height
        jpeg_quality: Still capture JPEG quality (0-100)
        success_delay: Seconds to celebrate a match before returning to selection
        hand_guide: Draw MediaPipe hand landmarks on the practice feed
        font_path: TrueType font with CJK glyphs for native sign names
        use_mock: Run without any network calls
    """
    api_key: Optional[str] = None
    vision_model: str = "gemini-2.5-flash"
    text_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-2.5-flash-image"
    image_backend: str = "gemini"
    illustration_style: str = "gorogoa"
    hf_token: Optional[str] = None
    hf_model: str = "black-forest-labs/FLUX.1-schnell"
    camera_id: int = 0
    frame_width: int = 640
    frame_height: int = 480
    jpeg_quality: int = 80
    success_delay: float = 2.0
    hand_guide: bool = True
    font_path: Optional[str] = None
    use_mock: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "AppConfig":
        """
        Build a config from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)
            **overrides: Field values that take precedence over the environment
        """
        env = os.environ if env is None else env

        api_key = next((env[name] for name in API_KEY_VARS if env.get(name)), None)
        hf_token = env.get("HF_TOKEN") or env.get("HF_API_KEY") or None

        config = cls(
            api_key=api_key,
            vision_model=env.get("HTH_VISION_MODEL", cls.vision_model),
            text_model=env.get("HTH_TEXT_MODEL", cls.text_model),
            image_model=env.get("HTH_IMAGE_MODEL", cls.image_model),
            image_backend=env.get("HTH_IMAGE_BACKEND", cls.image_backend).lower(),
            illustration_style=env.get("HTH_STYLE", cls.illustration_style),
            hf_token=hf_token,
            hf_model=env.get("HTH_HF_MODEL", cls.hf_model),
            camera_id=int(env.get("HTH_CAMERA", cls.camera_id)),
            hand_guide=_env_flag(env.get("HTH_HAND_GUIDE"), cls.hand_guide),
            font_path=env.get("HTH_FONT") or None,
        )
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(config, **overrides)

    def require_api_key(self) -> str:
        """Return the API key or raise MissingCredentialError."""
        if not self.api_key:
            raise MissingCredentialError(
                "API key is missing. Set API_KEY (or GEMINI_API_KEY) in your "
                "environment or .env file."
            )
        return self.api_key


def create_genai_client(config: AppConfig):
    """
    Create the shared Gemini client.

    Raises:
        MissingCredentialError: If no API key is configured
    """
    api_key = config.require_api_key()

    from google import genai

    return genai.Client(api_key=api_key)
