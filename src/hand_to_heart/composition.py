"""
Composition Module - Poem and Illustration
==========================================
Weaves the collected signs into a short poem with a text model, then asks
the image generator to paint it.

Pipeline:
    collected signs -> poem (text model) -> illustration (image model) -> result

Both steps degrade softly: a failed poem becomes a fallback line, a failed
illustration is simply absent. Only a missing API key or an empty sign list
is raised to the caller.
"""

import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .config import AppConfig, create_genai_client
from .image_generator import (
    ImageGenerator, MockImageGenerator, build_illustration_prompt, create_generator
)
from .signs import SignDefinition, format_sign_names


EMPTY_STORY_FALLBACK = "A silent language spoken by the heart."
ERROR_STORY_FALLBACK = "The hands speak what the voice cannot."


@dataclass(frozen=True)
class CompositionResult:
    """
    Final artwork of a session.

    Attributes:
        story: The poem or micro-story (never empty)
        illustration: Image as a data URI, or None if generation failed
    """
    story: str
    illustration: Optional[str] = None

    @property
    def has_illustration(self) -> bool:
        return bool(self.illustration)


def build_story_prompt(sign_names: str) -> str:
    return f"""
We are creating an interactive art piece called "Hand-to-Heart".
The user has performed these Chinese Sign Language gestures: {sign_names}.

Write a short, surreal, and emotional poem or micro-story (max 50 words) that weaves these concepts together.
The theme is "The Language of Emotion". The tone should be mysterious, gentle, and philosophical, like the game 'Gorogoa'.
"""


class CompositionClient:
    """
    Generates the poem and illustration for a finished session.

    Usage:
        composer = CompositionClient(config)
        result = composer.compose([get_sign('hello'), get_sign('love')])
        print(result.story)
    """

    def __init__(
        self,
        config: AppConfig,
        client: Any = None,
        image_generator: Optional[ImageGenerator] = None
    ):
        """
        Args:
            config: Application config
            client: Gemini client; created from config on first use if omitted
            image_generator: Illustration backend; built from config if omitted
        """
        self.config = config
        self._client = client
        self.image_generator = image_generator or create_generator(config, client)

    def _get_client(self):
        if self._client is None:
            self._client = create_genai_client(self.config)
            self.image_generator.share_client(self._client)
        return self._client

    def set_style(self, style: str):
        self.image_generator.set_style(style)

    @property
    def style(self) -> str:
        return self.image_generator.style

    def compose(self, signs: Sequence[SignDefinition]) -> CompositionResult:
        """
        Write the poem, then paint it.

        Args:
            signs: Collected signs, in the order they were learned

        Raises:
            ValueError: If no signs were collected
            MissingCredentialError: If no API key is configured
        """
        if not signs:
            raise ValueError("At least one collected sign is required")

        client = self._get_client()
        sign_names = format_sign_names(signs)
        start_time = time.time()

        story = self._write_story(client, sign_names)

        prompt = build_illustration_prompt(sign_names, story, self.image_generator.style)
        generation = self.image_generator.generate(prompt)

        print(
            f"[INFO] Composition finished in {time.time() - start_time:.1f}s "
            f"(illustration: {'yes' if generation.success else 'no'})"
        )
        return CompositionResult(
            story=story,
            illustration=generation.data_uri if generation.success else None,
        )

    def _write_story(self, client, sign_names: str) -> str:
        """Step 1: the poem. Falls back to a fixed line on any failure."""
        try:
            response = client.models.generate_content(
                model=self.config.text_model,
                contents=build_story_prompt(sign_names),
            )
            story = (response.text or "").strip()
        except Exception as e:
            print(f"[ERROR] Story generation failed: {e}")
            return ERROR_STORY_FALLBACK

        return story or EMPTY_STORY_FALLBACK


class MockCompositionClient(CompositionClient):
    """Offline composer: a templated poem and the mock illustration."""

    def __init__(self, config: Optional[AppConfig] = None):
        config = config or AppConfig(use_mock=True)
        super().__init__(
            config,
            client=None,
            image_generator=MockImageGenerator(style=config.illustration_style),
        )

    def _get_client(self):
        return None

    def _write_story(self, client, sign_names: str) -> str:
        return (
            f"{sign_names}: folded into a paper window, "
            "each gesture opens onto the next, and the heart reads what the hands have written."
        )
