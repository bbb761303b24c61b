"""
Signs Module - Chinese Sign Language Catalog
============================================
The fixed set of gestures a user can learn, each with a display name,
its Chinese name and a short performance instruction.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple


@dataclass(frozen=True)
class SignDefinition:
    """
    A learnable sign.

    Attributes:
        id: Unique key
        name: English display name
        chinese_name: Name in Chinese script
        description: What the sign expresses
        instruction: How to perform it
    """
    id: str
    name: str
    chinese_name: str
    description: str
    instruction: str

    @property
    def label(self) -> str:
        """Display name followed by the native name, e.g. 'Hello (你好)'."""
        return f"{self.name} ({self.chinese_name})"


CSL_SIGNS: Tuple[SignDefinition, ...] = (
    SignDefinition(
        id='hello',
        name='Hello',
        chinese_name='你好',
        description='A friendly greeting.',
        instruction='Raise your index finger and point towards the other person politely, or wave your hand gently.',
    ),
    SignDefinition(
        id='thank_you',
        name='Thank You',
        chinese_name='谢谢',
        description='Expressing gratitude.',
        instruction='Extend your thumb and bend it twice, representing a nod of thanks.',
    ),
    SignDefinition(
        id='love',
        name='Love',
        chinese_name='爱',
        description='Deep affection.',
        instruction='Cross your hands over your chest, holding your shoulders, as if hugging someone deeply.',
    ),
    SignDefinition(
        id='home',
        name='Home',
        chinese_name='家',
        description='A place of belonging.',
        instruction='Form a roof shape with both hands, fingertips touching, representing the shelter of a house.',
    ),
    SignDefinition(
        id='friend',
        name='Friend',
        chinese_name='朋友',
        description='Companionship.',
        instruction='Hook your two index fingers together, symbolizing a close bond.',
    ),
    SignDefinition(
        id='happy',
        name='Happy',
        chinese_name='快乐',
        description='Joy and delight.',
        instruction='Place palms on your chest and move them in circular motions, showing inner joy bubbling up.',
    ),
    SignDefinition(
        id='sad',
        name='Sad',
        chinese_name='难过',
        description='Sorrow.',
        instruction='Place your hand on your chest and slide it down slowly while making a sad facial expression.',
    ),
    SignDefinition(
        id='dream',
        name='Dream',
        chinese_name='梦想',
        description='Aspiration.',
        instruction='Point your index finger to your temple, then spiral it upwards towards the sky.',
    ),
    SignDefinition(
        id='flower',
        name='Flower',
        chinese_name='花',
        description='Nature and beauty.',
        instruction='Pinch your fingers together pointing up, then open them slowly like a blooming flower.',
    ),
    SignDefinition(
        id='peace',
        name='Peace',
        chinese_name='和平',
        description='Harmony.',
        instruction='Clasp your hands together, then slowly spread them apart horizontally, smoothing the air.',
    ),
)

_SIGNS_BY_ID: Dict[str, SignDefinition] = {sign.id: sign for sign in CSL_SIGNS}


def get_sign(sign_id: str) -> Optional[SignDefinition]:
    """Look up a sign by id."""
    return _SIGNS_BY_ID.get(sign_id)


def format_sign_names(signs: Sequence[SignDefinition]) -> str:
    """Join signs as 'Hello (你好), Love (爱)' for prompts."""
    return ", ".join(sign.label for sign in signs)
