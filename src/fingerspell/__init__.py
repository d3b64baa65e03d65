"""
Fingerspell - ASL Name Spelling Trainer
========================================

Classifies a live stream of 21-point hand landmarks against the 26 static
fingerspelling handshapes and walks a learner through the letters of
their name, advancing only on stable, sustained matches.

Modules:
    - core: Shared types, errors, event bus and the per-frame engine
    - detection: Landmark containers and finger-state extraction
    - recognition: Pattern table, letter classifier, stability, evaluator
    - lesson: Lesson state machine and controller
    - utils: Configuration, logging, timing
"""

from .core.engine import FingerspellEngine, EngineConfig
from .core.types import GestureAnalysis, FrameStatus, HandOrientation
from .lesson.state import LessonPhase, LessonState

__version__ = "1.0.0"
__author__ = "Fingerspell Team"

__all__ = [
    "FingerspellEngine",
    "EngineConfig",
    "GestureAnalysis",
    "FrameStatus",
    "HandOrientation",
    "LessonPhase",
    "LessonState",
]
