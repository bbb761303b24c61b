"""
Image Generator Module - Illustration Generation
================================================
Paints the closing illustration from a text prompt.
Supports multiple backends: Gemini image models (default), Hugging Face
Inference API with or without the fal.ai provider, and an offline mock.

Every backend returns a data URI so the result can be shown or stored
without touching the filesystem.
"""

import base64
import io
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional

import cv2
import numpy as np
from PIL import Image

from .config import AppConfig, create_genai_client


class GeneratorBackend(Enum):
    """Available image generation backends."""
    GEMINI = auto()                  # Gemini image model (recommended)
    HUGGINGFACE_FAL = auto()         # Hugging Face with fal.ai provider
    HUGGINGFACE_INFERENCE = auto()   # Hugging Face Inference API
    MOCK = auto()                    # Offline placeholder panel


BACKEND_NAMES = {
    'gemini': GeneratorBackend.GEMINI,
    'fal': GeneratorBackend.HUGGINGFACE_FAL,
    'huggingface': GeneratorBackend.HUGGINGFACE_INFERENCE,
    'mock': GeneratorBackend.MOCK,
}


@dataclass
class GenerationResult:
    """Result of image generation."""
    success: bool
    data_uri: Optional[str]
    error: Optional[str]
    generation_time: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class StylePresets:
    """Visual briefs for the illustration. Each lists its key visual elements."""

    PRESETS = {
        'gorogoa': {
            'title': 'Gorogoa',
            'opening': 'A surreal, hand-drawn illustration in the specific artistic style of the video game "Gorogoa".',
            'elements': [
                'Flat, illustrative perspective.',
                'Intricate, decorative borders or framing like a window or a card.',
                'Muted, vintage color palette (sepia, soft blues, terracotta, sage green).',
            ],
            'closing': 'The image should look like a panel from a puzzle game. High detail, ink and watercolor texture.',
        },
        'woodcut': {
            'title': 'Woodcut',
            'opening': 'A quiet, surreal woodcut print illustration.',
            'elements': [
                'Bold carved lines with visible wood grain.',
                'Ornamental frame of interlocking leaves and clouds.',
                'Muted palette of indigo, ochre and faded red on cream paper.',
            ],
            'closing': 'The image should look like a page from an old illustrated fable.',
        },
        'watercolor': {
            'title': 'Watercolor',
            'opening': 'A dreamy, surreal watercolor illustration.',
            'elements': [
                'Soft washes bleeding into each other.',
                'A delicate painted border like a paper window.',
                'Muted palette of sage, dusty rose and pale gold.',
            ],
            'closing': 'Gentle light, fine ink outlines, calm and contemplative.',
        },
    }

    DEFAULT = 'gorogoa'

    @classmethod
    def get_preset(cls, name: str) -> dict:
        """Get a style preset by name."""
        return cls.PRESETS.get(name, cls.PRESETS[cls.DEFAULT])

    @classmethod
    def get_all_names(cls) -> List[str]:
        """Get all preset names."""
        return list(cls.PRESETS.keys())


def build_illustration_prompt(sign_names: str, story: str, style: str = StylePresets.DEFAULT) -> str:
    """Compose the image prompt from a style preset, the sign names and the story."""
    preset = StylePresets.get_preset(style)
    elements = "\n".join(f"- {element}" for element in preset['elements'])
    return f"""
{preset['opening']}

Key Visual Elements:
{elements}
- Surreal imagery combining these concepts: {sign_names}.
- Specific Scene Description: {story}

{preset['closing']}
"""


def encode_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    """Wrap raw image bytes as a data URI."""
    return f"data:{mime_type};base64," + base64.b64encode(data).decode("ascii")


def pil_to_data_uri(image: Image.Image, format: str = "PNG") -> str:
    buffer = io.BytesIO()
    image.save(buffer, format=format)
    return encode_data_uri(buffer.getvalue(), f"image/{format.lower()}")


def decode_data_uri(data_uri: str) -> np.ndarray:
    """
    Decode an image data URI into a BGR numpy array.

    Raises:
        ValueError: If the string is not a base64 image data URI
    """
    header, sep, payload = data_uri.partition(",")
    if not sep or not header.startswith("data:image/") or not header.endswith(";base64"):
        raise ValueError("Not a base64 image data URI")

    image = Image.open(io.BytesIO(base64.b64decode(payload))).convert("RGB")
    return cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)


class ImageGenerator:
    """
    Text-to-image generator used for the closing illustration.

    Failures are reported through GenerationResult and never raised, so a
    missing picture never costs the user their poem.
    """

    def __init__(
        self,
        backend: GeneratorBackend = GeneratorBackend.GEMINI,
        client: Any = None,
        config: Optional[AppConfig] = None,
        model_id: Optional[str] = None,
        style: str = StylePresets.DEFAULT
    ):
        """
        Initialize the image generator.

        Args:
            backend: Which backend to use for generation
            client: Gemini client (GEMINI) or huggingface_hub InferenceClient
            config: Application config, used to build a client when none is given
            model_id: Model identifier for the backend
            style: Style preset name
        """
        self.backend = backend
        self.config = config or AppConfig()
        self.style = style
        self._client = client

        if model_id is None:
            if backend == GeneratorBackend.GEMINI:
                model_id = self.config.image_model
            else:
                model_id = self.config.hf_model
        self.model_id = model_id

    def set_style(self, style: str):
        self.style = style if style in StylePresets.PRESETS else StylePresets.DEFAULT

    def share_client(self, client: Any):
        """Reuse the session's Gemini client if this generator has none yet."""
        if self.backend == GeneratorBackend.GEMINI and self._client is None:
            self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client

        if self.backend == GeneratorBackend.GEMINI:
            self._client = create_genai_client(self.config)
        else:
            from huggingface_hub import InferenceClient

            if not self.config.hf_token:
                raise ValueError("HF_TOKEN environment variable not set")
            if self.backend == GeneratorBackend.HUGGINGFACE_FAL:
                self._client = InferenceClient(provider="fal-ai", api_key=self.config.hf_token)
                print("[INFO] Using Hugging Face with fal.ai provider")
            else:
                self._client = InferenceClient(api_key=self.config.hf_token)
                print("[INFO] Using Hugging Face Inference API")
        return self._client

    def generate(self, prompt: str) -> GenerationResult:
        """
        Generate an illustration.

        Args:
            prompt: Full text prompt

        Returns:
            GenerationResult with a data URI on success
        """
        start_time = time.time()

        try:
            if self.backend == GeneratorBackend.GEMINI:
                data_uri = self._generate_gemini(prompt)
            elif self.backend in (GeneratorBackend.HUGGINGFACE_FAL, GeneratorBackend.HUGGINGFACE_INFERENCE):
                data_uri = self._generate_hf(prompt)
            else:
                raise ValueError(f"Unsupported backend: {self.backend}")

        except Exception as e:
            print(f"[ERROR] Image generation failed: {e}")
            return GenerationResult(
                success=False,
                data_uri=None,
                error=str(e),
                generation_time=time.time() - start_time,
            )

        generation_time = time.time() - start_time
        if data_uri is None:
            print("[WARNING] Image model returned no image")
            return GenerationResult(
                success=False,
                data_uri=None,
                error="No image in response",
                generation_time=generation_time,
            )

        return GenerationResult(
            success=True,
            data_uri=data_uri,
            error=None,
            generation_time=generation_time,
            metadata={
                'style': self.style,
                'backend': self.backend.name,
                'model': self.model_id,
            }
        )

    def _generate_gemini(self, prompt: str) -> Optional[str]:
        """Return the first inline image of a Gemini response, or None."""
        client = self._get_client()
        response = client.models.generate_content(
            model=self.model_id,
            contents=prompt,
        )

        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is None or not inline.data:
                continue
            mime_type = inline.mime_type or "image/png"
            if isinstance(inline.data, str):
                # Already base64 text
                return f"data:{mime_type};base64,{inline.data}"
            return encode_data_uri(inline.data, mime_type)

        return None

    def _generate_hf(self, prompt: str) -> str:
        """Generate using Hugging Face text_to_image."""
        client = self._get_client()
        image = client.text_to_image(prompt, model=self.model_id)
        return pil_to_data_uri(image)


class MockImageGenerator(ImageGenerator):
    """
    Mock image generator for running without API access.
    Paints a sepia panel with a decorative double frame.
    """

    SIZE = 512

    def __init__(self, style: str = StylePresets.DEFAULT, delay: float = 1.5):
        self.backend = GeneratorBackend.MOCK
        self.config = AppConfig(use_mock=True)
        self.model_id = "mock"
        self.style = style
        self.delay = delay
        self._client = None

    def generate(self, prompt: str) -> GenerationResult:
        start_time = time.time()
        time.sleep(self.delay)

        size = self.SIZE
        # Vertical gradient from parchment to terracotta (BGR)
        top = np.array([200, 225, 240], dtype=np.float32)
        bottom = np.array([90, 120, 170], dtype=np.float32)
        ramp = np.linspace(0.0, 1.0, size, dtype=np.float32)[:, None, None]
        panel = (top * (1 - ramp) + bottom * ramp).repeat(size, axis=1).astype(np.uint8)

        frame = (60, 77, 92)
        cv2.rectangle(panel, (12, 12), (size - 13, size - 13), frame, 4)
        cv2.rectangle(panel, (24, 24), (size - 25, size - 25), frame, 1)
        cv2.circle(panel, (size // 2, size // 2 - 40), 70, (120, 150, 110), -1)
        cv2.ellipse(panel, (size // 2, size - 120), (150, 40), 0, 0, 360, (70, 90, 120), -1)

        ok, buffer = cv2.imencode(".png", panel)
        if not ok:
            return GenerationResult(False, None, "Failed to encode mock panel", time.time() - start_time)

        return GenerationResult(
            success=True,
            data_uri=encode_data_uri(buffer.tobytes(), "image/png"),
            error=None,
            generation_time=time.time() - start_time,
            metadata={
                'style': self.style,
                'backend': 'mock',
                'note': 'This is a mock result. Set API_KEY for real generation.'
            }
        )


def create_generator(config: AppConfig, client: Any = None) -> ImageGenerator:
    """
    Factory function to create an image generator.

    Args:
        config: Application config; `image_backend` selects the backend
        client: Shared Gemini client for the GEMINI backend

    Returns:
        ImageGenerator instance
    """
    if config.use_mock:
        return MockImageGenerator(style=config.illustration_style)

    backend = BACKEND_NAMES.get(config.image_backend)
    if backend is None:
        print(f"[WARNING] Unknown image backend '{config.image_backend}', using gemini")
        backend = GeneratorBackend.GEMINI

    if backend == GeneratorBackend.MOCK:
        return MockImageGenerator(style=config.illustration_style)

    return ImageGenerator(
        backend=backend,
        client=client if backend == GeneratorBackend.GEMINI else None,
        config=config,
        style=config.illustration_style,
    )
