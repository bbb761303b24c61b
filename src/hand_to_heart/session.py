"""
Session Module - Phase State Machine
====================================
Owns the user's journey: intro, choosing a sign, practicing it in front of
the camera, weaving the story and showing the result.

    INTRO -> SELECTION <-> PRACTICE
                 |
                 v
            COMPOSITION -> RESULT -> INTRO

All methods are called from the UI loop. Model calls go through a runner
whose completions come back on the same loop. Each call is tagged with the
session generation it was issued under; leaving practice or restarting bumps
the generation so late answers are dropped instead of applied.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from functools import partial
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .composition import CompositionClient, CompositionResult
from .recognition import RecognitionClient, RecognitionOutcome
from .scheduler import ScheduledCall, Scheduler
from .signs import CSL_SIGNS, SignDefinition


SUCCESS_DELAY = 2.0

MSG_ALREADY_COLLECTED = "You have already collected this sign."
MSG_VERIFYING = "Consulting the spirits..."
MSG_VISION_FAILED = "Something went wrong with the vision. Please try again."
MSG_WEAVE_FAILED = "Failed to weave the story."


class Phase(Enum):
    """Screens of the journey."""
    INTRO = auto()
    SELECTION = auto()
    PRACTICE = auto()
    COMPOSITION = auto()
    RESULT = auto()


@dataclass
class Session:
    """
    Mutable state of one journey.

    Attributes:
        phase: Current screen
        collected: Signs performed successfully, unique by id, in order
        active_sign: Sign being practiced (only set in PRACTICE)
        status: Message shown to the user
        busy: True while a model call is in flight
        result: Final artwork (only set in RESULT)
    """
    phase: Phase = Phase.INTRO
    collected: List[SignDefinition] = field(default_factory=list)
    active_sign: Optional[SignDefinition] = None
    status: str = ""
    busy: bool = False
    result: Optional[CompositionResult] = None

    def has_collected(self, sign_id: str) -> bool:
        return any(sign.id == sign_id for sign in self.collected)


# Per-phase views: each screen gets exactly what it renders

@dataclass(frozen=True)
class IntroView:
    title: str = "Hand to Heart"


@dataclass(frozen=True)
class SelectionView:
    signs: Tuple[SignDefinition, ...]
    collected_ids: Tuple[str, ...]
    status: str
    can_finish: bool


@dataclass(frozen=True)
class PracticeView:
    sign: SignDefinition
    status: str
    busy: bool
    celebrating: bool


@dataclass(frozen=True)
class CompositionView:
    signs: Tuple[SignDefinition, ...]


@dataclass(frozen=True)
class ResultView:
    result: CompositionResult
    signs: Tuple[SignDefinition, ...]


SessionView = Union[IntroView, SelectionView, PracticeView, CompositionView, ResultView]


class SessionController:
    """
    Drives the session through its phases.

    Every action returns True if it was applied and False if it is not
    allowed right now (wrong phase, call in flight, nothing collected...).

    Usage:
        controller = SessionController(recognizer, composer, scheduler, runner)
        controller.start()
        controller.choose('hello')
        controller.verify(camera.capture_frame())
    """

    def __init__(
        self,
        recognizer: RecognitionClient,
        composer: CompositionClient,
        scheduler: Scheduler,
        runner,
        catalog: Sequence[SignDefinition] = CSL_SIGNS,
        success_delay: float = SUCCESS_DELAY
    ):
        """
        Args:
            recognizer: Gesture verifier
            composer: Poem and illustration generator
            scheduler: Loop scheduler for the post-success pause
            runner: ThreadRunner (app) or ImmediateRunner (tests)
            catalog: Learnable signs
            success_delay: Seconds between a match and returning to selection
        """
        self.recognizer = recognizer
        self.composer = composer
        self.scheduler = scheduler
        self.runner = runner
        self.catalog: Tuple[SignDefinition, ...] = tuple(catalog)
        self.success_delay = success_delay

        self._signs_by_id: Dict[str, SignDefinition] = {s.id: s for s in self.catalog}
        self.session = Session()
        self._generation = 0
        self._pending_success: Optional[ScheduledCall] = None

    # ------------------------------------------------------------------
    # Queries

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def celebrating(self) -> bool:
        """True while the post-success pause is running."""
        return self._pending_success is not None and self._pending_success.active

    def can_verify(self) -> bool:
        return (
            self.session.phase == Phase.PRACTICE
            and not self.session.busy
            and not self.celebrating
        )

    def can_finish(self) -> bool:
        return (
            self.session.phase == Phase.SELECTION
            and not self.session.busy
            and bool(self.session.collected)
        )

    def view(self) -> SessionView:
        """Build the view for the current phase."""
        s = self.session
        if s.phase == Phase.SELECTION:
            return SelectionView(
                signs=self.catalog,
                collected_ids=tuple(sign.id for sign in s.collected),
                status=s.status,
                can_finish=self.can_finish(),
            )
        if s.phase == Phase.PRACTICE:
            return PracticeView(
                sign=s.active_sign,
                status=s.status,
                busy=s.busy,
                celebrating=self.celebrating,
            )
        if s.phase == Phase.COMPOSITION:
            return CompositionView(signs=tuple(s.collected))
        if s.phase == Phase.RESULT:
            return ResultView(result=s.result, signs=tuple(s.collected))
        return IntroView()

    # ------------------------------------------------------------------
    # Transitions

    def start(self) -> bool:
        """INTRO -> SELECTION with an empty collection."""
        if self.session.phase != Phase.INTRO:
            return False

        self._generation += 1
        self.session.collected.clear()
        self.session.status = ""
        self.session.phase = Phase.SELECTION
        return True

    def choose(self, sign: Union[str, SignDefinition]) -> bool:
        """
        SELECTION -> PRACTICE for the given sign (or sign id).

        Raises:
            KeyError: If the sign id is not in the catalog
        """
        if self.session.phase != Phase.SELECTION:
            return False

        sign_id = sign if isinstance(sign, str) else sign.id
        definition = self._signs_by_id[sign_id]

        if self.session.has_collected(sign_id):
            self.session.status = MSG_ALREADY_COLLECTED
            return False

        self.session.active_sign = definition
        self.session.status = ""
        self.session.phase = Phase.PRACTICE
        return True

    def verify(self, image: str) -> bool:
        """
        Ask the recognizer whether `image` shows the active sign.

        Args:
            image: JPEG data URI from the camera
        """
        if not self.can_verify():
            return False

        sign = self.session.active_sign
        generation = self._generation
        self.session.busy = True
        self.session.status = MSG_VERIFYING

        self.runner.submit(
            partial(self.recognizer.verify, image, sign),
            on_done=partial(self._on_verified, generation, sign),
            on_error=partial(self._on_verify_error, generation),
        )
        return True

    def back(self) -> bool:
        """PRACTICE -> SELECTION without collecting."""
        if self.session.phase != Phase.PRACTICE or self.celebrating:
            return False

        self._generation += 1
        self.session.active_sign = None
        self.session.status = ""
        self.session.phase = Phase.SELECTION
        return True

    def finish(self) -> bool:
        """SELECTION -> COMPOSITION; the result arrives through the runner."""
        if not self.can_finish():
            return False

        signs = tuple(self.session.collected)
        generation = self._generation
        self.session.busy = True
        self.session.status = ""
        self.session.phase = Phase.COMPOSITION

        self.runner.submit(
            partial(self.composer.compose, signs),
            on_done=partial(self._on_composed, generation),
            on_error=partial(self._on_compose_error, generation),
        )
        return True

    def restart(self) -> bool:
        """RESULT -> INTRO, forgetting everything."""
        if self.session.phase != Phase.RESULT:
            return False

        self._generation += 1
        self._cancel_pending()
        self.session.collected.clear()
        self.session.active_sign = None
        self.session.result = None
        self.session.status = ""
        self.session.phase = Phase.INTRO
        return True

    def shutdown(self):
        """Cancel the pending success transition, if any."""
        self._generation += 1
        self._cancel_pending()

    # ------------------------------------------------------------------
    # Completions (run on the UI loop)

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            print("[INFO] Discarding result from an abandoned request")
            return True
        return False

    def _on_verified(self, generation: int, sign: SignDefinition, outcome: RecognitionOutcome):
        self.session.busy = False
        if self._is_stale(generation):
            return

        if outcome.matched:
            self.session.status = f"Success! {outcome.feedback}"
            self._pending_success = self.scheduler.call_later(
                self.success_delay, self._collect, generation, sign
            )
        else:
            self.session.status = f"Not quite. {outcome.feedback} Try again."

    def _on_verify_error(self, generation: int, error: Exception):
        self.session.busy = False
        print(f"[ERROR] Verification call failed: {error}")
        if self._is_stale(generation):
            return
        self.session.status = MSG_VISION_FAILED

    def _collect(self, generation: int, sign: SignDefinition):
        self._pending_success = None
        if self._is_stale(generation):
            return

        if not self.session.has_collected(sign.id):
            self.session.collected.append(sign)
        self.session.active_sign = None
        self.session.status = ""
        self.session.phase = Phase.SELECTION

    def _on_composed(self, generation: int, result: CompositionResult):
        self.session.busy = False
        if self._is_stale(generation):
            return

        self.session.result = result
        self.session.phase = Phase.RESULT

    def _on_compose_error(self, generation: int, error: Exception):
        self.session.busy = False
        print(f"[ERROR] Composition failed: {error}")
        if self._is_stale(generation):
            return

        self.session.status = MSG_WEAVE_FAILED
        self.session.phase = Phase.SELECTION

    def _cancel_pending(self):
        if self._pending_success is not None:
            self._pending_success.cancel()
            self._pending_success = None
