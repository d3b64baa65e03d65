"""
Lesson state machine.

Pure transition functions over an immutable LessonState:

    IDLE --submit_name--> IN_PROGRESS --confirm_match (last)--> COMPLETED
                           |  ^
                           +--+ confirm_match / skip_letter (index += 1)
    any --reset--> IDLE

Invariant: 0 <= current_index < len(target_name) while IN_PROGRESS.
"""

import unicodedata
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from ..core.errors import InvalidName, LessonStateError


class LessonPhase(Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class LetterStatus(Enum):
    DONE = "done"
    CURRENT = "current"
    PENDING = "pending"


@dataclass(frozen=True)
class LessonState:
    target_name: str = ""
    current_index: int = 0
    phase: LessonPhase = LessonPhase.IDLE

    def __post_init__(self):
        if self.phase == LessonPhase.IN_PROGRESS and not 0 <= self.current_index < len(self.target_name):
            raise LessonStateError(
                f"Index {self.current_index} out of range for {self.target_name!r}")

    @property
    def current_letter(self) -> Optional[str]:
        """Letter being practiced, or None outside IN_PROGRESS."""
        if self.phase != LessonPhase.IN_PROGRESS:
            return None
        return self.target_name[self.current_index]

    @property
    def is_last_letter(self) -> bool:
        return self.current_index == len(self.target_name) - 1

    @property
    def letters_done(self) -> int:
        if self.phase == LessonPhase.COMPLETED:
            return len(self.target_name)
        if self.phase == LessonPhase.IN_PROGRESS:
            return self.current_index
        return 0

    @property
    def progress(self) -> float:
        """Fraction of letters completed (0.0 - 1.0)."""
        if not self.target_name:
            return 0.0
        return self.letters_done / len(self.target_name)

    def letter_statuses(self) -> List[Tuple[str, LetterStatus]]:
        """Per-letter progress for the presentation layer's progress strip."""
        statuses = []
        for i, letter in enumerate(self.target_name):
            if i < self.letters_done:
                status = LetterStatus.DONE
            elif self.phase == LessonPhase.IN_PROGRESS and i == self.current_index:
                status = LetterStatus.CURRENT
            else:
                status = LetterStatus.PENDING
            statuses.append((letter, status))
        return statuses

    def to_dict(self) -> dict:
        return {
            "target_name": self.target_name,
            "current_index": self.current_index,
            "current_letter": self.current_letter,
            "phase": self.phase.value,
            "progress": round(self.progress, 3),
        }


def normalize_name(name: str) -> str:
    """Uppercase A-Z letters of ``name``; accents folded, everything else dropped.

    >>> normalize_name("José-Luis 2")
    'JOSELUIS'
    """
    decomposed = unicodedata.normalize("NFKD", name or "")
    return "".join(c for c in decomposed.upper() if "A" <= c <= "Z")


def submit_name(state: LessonState, name: str) -> LessonState:
    """Start a lesson for ``name``. Only valid from IDLE."""
    if state.phase != LessonPhase.IDLE:
        raise LessonStateError(f"Cannot submit a name while {state.phase.value}; reset first")
    letters = normalize_name(name)
    if not letters:
        raise InvalidName(f"Name {name!r} has no letters to spell")
    return LessonState(target_name=letters, current_index=0, phase=LessonPhase.IN_PROGRESS)


def confirm_match(state: LessonState) -> LessonState:
    """Advance past the current letter. Only valid IN_PROGRESS."""
    if state.phase != LessonPhase.IN_PROGRESS:
        raise LessonStateError(f"Cannot confirm a match while {state.phase.value}")
    if state.is_last_letter:
        return replace(state, phase=LessonPhase.COMPLETED)
    return replace(state, current_index=state.current_index + 1)


def skip_letter(state: LessonState) -> LessonState:
    """Move on without a confirmed match; same transition as confirm_match."""
    if state.phase != LessonPhase.IN_PROGRESS:
        raise LessonStateError(f"Cannot skip a letter while {state.phase.value}")
    return confirm_match(state)


def reset(state: LessonState = None) -> LessonState:
    """Return to IDLE from any phase."""
    return LessonState()
