"""
Shared fixtures for the fingerspelling test suite.
"""

import sys
import logging
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fingerspell.core.events import EventBus
from fingerspell.core.types import FingerStates, HandOrientation
from fingerspell.detection.landmarks import HandLandmarks
from fingerspell.detection.synthetic import synthetic_hand
from fingerspell.recognition.patterns import get_patterns
from fingerspell.utils.config import Config


class FakeClock:
    """Injectable monotonic clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


def make_hand(signature, orientation=HandOrientation.UP, **kwargs) -> HandLandmarks:
    """Synthetic HandLandmarks for thumb -> pinky extension flags."""
    return HandLandmarks.from_points(synthetic_hand(signature, orientation, **kwargs))


def make_states(signature) -> FingerStates:
    return FingerStates.from_signature(signature)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def patterns():
    return get_patterns()


@pytest.fixture(autouse=True)
def reset_config():
    """Keep the Config singleton from leaking between tests."""
    Config.reset()
    yield
    Config.reset()


@pytest.fixture(autouse=True)
def restore_logging():
    """Drop handlers added by setup_logging() and restore the root level."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
