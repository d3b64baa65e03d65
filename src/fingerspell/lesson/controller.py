"""
Lesson controller.

Owns the current LessonState and the confirmation cooldown, applies the
pure transitions from ``lesson.state`` and announces them on the event
bus. The cooldown is a deadline check against an injectable clock:
frames keep flowing while it runs, only confirmations are refused.
"""

import time
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.errors import ConfigError
from ..core.events import EventBus, Events
from ..utils.config import setting
from . import state as transitions
from .state import LessonPhase, LessonState

logger = logging.getLogger(__name__)


@dataclass
class LessonConfig:
    """Lesson controller configuration."""
    # Seconds after a confirmation during which further confirmations are refused
    cooldown_seconds: float = 1.0

    def __post_init__(self):
        if self.cooldown_seconds < 0:
            raise ConfigError("cooldown_seconds must be non-negative")

    @classmethod
    def from_dict(cls, config: dict) -> "LessonConfig":
        """Create config from dictionary."""
        return cls(cooldown_seconds=setting(config, "cooldown_seconds", 1.0))


class LessonController:
    """
    Drives a single learner's lesson.

    Example:
        >>> lesson = LessonController(bus=bus)
        >>> lesson.submit_name("Ada")
        >>> lesson.current_letter
        'A'
        >>> if lesson.can_confirm():
        ...     lesson.confirm()
    """

    def __init__(self, config: Optional[LessonConfig] = None,
                 bus: Optional[EventBus] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config or LessonConfig()
        self._bus = bus or EventBus()
        self._clock = clock
        self._state = LessonState()
        self._cooldown_until = 0.0

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def state(self) -> LessonState:
        return self._state

    @property
    def phase(self) -> LessonPhase:
        return self._state.phase

    @property
    def current_letter(self) -> Optional[str]:
        return self._state.current_letter

    def in_cooldown(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return now < self._cooldown_until

    def cooldown_remaining(self, now: Optional[float] = None) -> float:
        """Seconds left in the cooldown window (0 if not cooling down)."""
        now = self._clock() if now is None else now
        return max(0.0, self._cooldown_until - now)

    def can_confirm(self, now: Optional[float] = None) -> bool:
        return self._state.phase == LessonPhase.IN_PROGRESS and not self.in_cooldown(now)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def submit_name(self, name: str) -> LessonState:
        self._state = transitions.submit_name(self._state, name)
        self._cooldown_until = 0.0
        logger.info("Lesson started: %s", self._state.target_name)
        self._bus.emit(Events.LESSON_STARTED, name=self._state.target_name, state=self._state)
        return self._state

    def confirm(self, now: Optional[float] = None) -> LessonState:
        """Advance on a confirmed match and arm the cooldown.

        Returns the new state. A confirmation attempted during cooldown
        is refused and the state is returned unchanged.
        """
        now = self._clock() if now is None else now
        if self.in_cooldown(now):
            logger.debug("Confirmation suppressed, %.2fs cooldown left",
                         self.cooldown_remaining(now))
            return self._state
        return self._advance(transitions.confirm_match, Events.LETTER_CONFIRMED, now)

    def skip(self, now: Optional[float] = None) -> LessonState:
        """Move past the current letter without a match."""
        now = self._clock() if now is None else now
        return self._advance(transitions.skip_letter, Events.LETTER_SKIPPED, now)

    def reset(self) -> LessonState:
        previous = self._state
        self._state = transitions.reset(previous)
        self._cooldown_until = 0.0
        if previous.phase != LessonPhase.IDLE:
            logger.info("Lesson reset (was %s at %d/%d)", previous.phase.value,
                        previous.letters_done, len(previous.target_name))
        self._bus.emit(Events.LESSON_RESET, previous=previous, state=self._state)
        return self._state

    def _advance(self, transition, event_name: str, now: float) -> LessonState:
        previous = self._state
        self._state = transition(previous)
        self._cooldown_until = now + self.config.cooldown_seconds

        letter = previous.current_letter
        logger.info("Letter %s %s (%d/%d)", letter,
                    "confirmed" if event_name == Events.LETTER_CONFIRMED else "skipped",
                    previous.current_index + 1, len(previous.target_name))
        self._bus.emit(event_name, letter=letter, index=previous.current_index,
                       state=self._state)

        if self._state.phase == LessonPhase.COMPLETED:
            logger.info("Lesson completed: %s", self._state.target_name)
            self._bus.emit(Events.LESSON_COMPLETED, name=self._state.target_name,
                           state=self._state)
        return self._state
