"""
Finger-state extraction from 21 hand landmarks.

Reduces a landmark set to five extended/closed flags plus a joint angle
per finger and a coarse hand orientation. Extraction is pure: the same
landmarks always produce the same FingerStates.

Rules:
    - Index..pinky: extended when the tip is farther from the wrist than
      the PIP joint by ``extension_ratio``.
    - Thumb: extended when the tip sits farther out across the palm axis
      than the thumb MCP by ``thumb_ratio``. The thumb swings sideways
      rather than curling toward the wrist, so distance-from-wrist does
      not separate its states.
    - Orientation: dominant axis of the wrist -> middle fingertip vector.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..core.errors import ConfigError
from ..core.types import FINGERS, FingerState, FingerStates, HandOrientation
from ..utils.config import setting
from .landmarks import FINGER_JOINTS, HandLandmarks, LandmarkIndex

logger = logging.getLogger(__name__)


@dataclass
class ExtractorConfig:
    """Finger-state extractor configuration."""
    # Tip-to-wrist must exceed PIP-to-wrist by this factor
    extension_ratio: float = 1.1
    # Thumb tip lateral offset must exceed thumb MCP offset by this factor
    thumb_ratio: float = 1.2

    def __post_init__(self):
        if self.extension_ratio <= 0 or self.thumb_ratio <= 0:
            raise ConfigError("Extractor ratios must be positive")

    @classmethod
    def from_dict(cls, config: dict) -> "ExtractorConfig":
        """Create config from dictionary."""
        return cls(
            extension_ratio=setting(config, "extension_ratio", 1.1),
            thumb_ratio=setting(config, "thumb_ratio", 1.2),
        )


class FingerStateExtractor:
    """Derives FingerStates and HandOrientation from HandLandmarks.

    Example:
        >>> extractor = FingerStateExtractor()
        >>> states, orientation = extractor.analyze(hand)
        >>> states.signature
        (False, True, False, False, False)
    """

    def __init__(self, config: ExtractorConfig = None):
        self.config = config or ExtractorConfig()

    def analyze(self, hand: HandLandmarks) -> Tuple[FingerStates, HandOrientation]:
        """Extract finger states and orientation in one pass."""
        return self.extract(hand), self.orientation(hand)

    def extract(self, hand: HandLandmarks) -> FingerStates:
        """Determine extension and joint angle for every finger."""
        states = {}
        wrist = hand.point(LandmarkIndex.WRIST)

        for finger in FINGERS:
            base, mid, distal, tip = (hand.point(i) for i in FINGER_JOINTS[finger])
            if finger == "thumb":
                # Thumb bends visibly at the IP joint
                angle = self._angle_between_3d(mid, distal, tip)
                extended = self._is_thumb_extended(hand)
            else:
                angle = self._angle_between_3d(base, mid, distal)
                tip_dist = self._distance(tip, wrist)
                mid_dist = self._distance(mid, wrist)
                extended = tip_dist > mid_dist * self.config.extension_ratio

            states[finger] = FingerState(extended=bool(extended), angle=angle)

        result = FingerStates(**states)
        logger.debug("Finger states: %s", result.signature)
        return result

    def orientation(self, hand: HandLandmarks) -> HandOrientation:
        """Classify the wrist -> middle fingertip direction.

        Image y grows downward, so a negative dy points up.
        """
        wrist = hand.get(LandmarkIndex.WRIST)
        tip = hand.get(LandmarkIndex.MIDDLE_TIP)
        dx = tip.x - wrist.x
        dy = tip.y - wrist.y

        if abs(dx) > abs(dy):
            return HandOrientation.RIGHT if dx > 0 else HandOrientation.LEFT
        return HandOrientation.DOWN if dy > 0 else HandOrientation.UP

    def _is_thumb_extended(self, hand: HandLandmarks) -> bool:
        wrist = hand.point(LandmarkIndex.WRIST)[:2]
        axis = hand.point(LandmarkIndex.MIDDLE_MCP)[:2] - wrist
        norm = np.linalg.norm(axis)
        if norm < 1e-8:
            # Degenerate palm: assume an upright hand
            axis = np.array([0.0, -1.0])
        else:
            axis = axis / norm

        tip_offset = self._lateral(hand.point(LandmarkIndex.THUMB_TIP)[:2] - wrist, axis)
        mcp_offset = self._lateral(hand.point(LandmarkIndex.THUMB_MCP)[:2] - wrist, axis)
        return tip_offset > mcp_offset * self.config.thumb_ratio

    # =========================================================================
    # Math Helpers
    # =========================================================================

    @staticmethod
    def _lateral(vec: np.ndarray, axis: np.ndarray) -> float:
        """Distance of a 2D vector from the palm axis line."""
        return float(abs(vec[0] * axis[1] - vec[1] * axis[0]))

    @staticmethod
    def _distance(p1: np.ndarray, p2: np.ndarray) -> float:
        """Euclidean distance between two 3D points."""
        return float(np.linalg.norm(p1 - p2))

    @staticmethod
    def _angle_between_3d(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
        """Angle at point b formed by points a-b-c, in degrees."""
        ba = a - b
        bc = c - b
        dot = np.dot(ba, bc)
        norm_ba = np.linalg.norm(ba)
        norm_bc = np.linalg.norm(bc)
        cos_angle = dot / (norm_ba * norm_bc + 1e-8)
        cos_angle = np.clip(cos_angle, -1.0, 1.0)
        return float(np.degrees(np.arccos(cos_angle)))
