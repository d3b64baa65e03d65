"""Lesson state machine and controller."""
from .state import (
    LessonPhase,
    LessonState,
    LetterStatus,
    normalize_name,
    submit_name,
    confirm_match,
    skip_letter,
    reset,
)
from .controller import LessonController, LessonConfig

__all__ = [
    "LessonPhase",
    "LessonState",
    "LetterStatus",
    "normalize_name",
    "submit_name",
    "confirm_match",
    "skip_letter",
    "reset",
    "LessonController",
    "LessonConfig",
]
