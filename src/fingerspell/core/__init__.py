"""Shared types, errors and the event bus."""
from .errors import (
    FingerspellError,
    IncompleteLandmarks,
    AmbiguousClassification,
    PatternTableError,
    LessonStateError,
    InvalidName,
    ConfigError,
)
from .events import EventBus, Events
from .types import (
    FINGERS,
    FingerState,
    FingerStates,
    FrameStatus,
    GestureAnalysis,
    HandOrientation,
    StabilityResult,
)

__all__ = [
    "FingerspellError",
    "IncompleteLandmarks",
    "AmbiguousClassification",
    "PatternTableError",
    "LessonStateError",
    "InvalidName",
    "ConfigError",
    "EventBus",
    "Events",
    "FINGERS",
    "FingerState",
    "FingerStates",
    "FrameStatus",
    "GestureAnalysis",
    "HandOrientation",
    "StabilityResult",
]
