"""Hand landmark containers and finger-state extraction."""
from .landmarks import HandLandmarks, Landmark, LandmarkIndex, parse_landmarks
from .finger_state import FingerStateExtractor, ExtractorConfig
from .synthetic import synthetic_hand, hand_for_letter

__all__ = [
    "HandLandmarks",
    "Landmark",
    "LandmarkIndex",
    "parse_landmarks",
    "FingerStateExtractor",
    "ExtractorConfig",
    "synthetic_hand",
    "hand_for_letter",
]
