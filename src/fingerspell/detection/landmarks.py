"""
Hand Landmark Containers
=========================

Immutable 21-point hand landmark set in MediaPipe index order, as handed
over by the landmark provider for a single frame.
"""

import math
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, NamedTuple, Optional, Tuple

import numpy as np

from ..core.errors import IncompleteLandmarks

logger = logging.getLogger(__name__)

NUM_LANDMARKS = 21


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


# Joint chains per finger: (base, middle joint, distal joint, tip)
FINGER_JOINTS = {
    "thumb":  (LandmarkIndex.THUMB_CMC, LandmarkIndex.THUMB_MCP,
               LandmarkIndex.THUMB_IP, LandmarkIndex.THUMB_TIP),
    "index":  (LandmarkIndex.INDEX_MCP, LandmarkIndex.INDEX_PIP,
               LandmarkIndex.INDEX_DIP, LandmarkIndex.INDEX_TIP),
    "middle": (LandmarkIndex.MIDDLE_MCP, LandmarkIndex.MIDDLE_PIP,
               LandmarkIndex.MIDDLE_DIP, LandmarkIndex.MIDDLE_TIP),
    "ring":   (LandmarkIndex.RING_MCP, LandmarkIndex.RING_PIP,
               LandmarkIndex.RING_DIP, LandmarkIndex.RING_TIP),
    "pinky":  (LandmarkIndex.PINKY_MCP, LandmarkIndex.PINKY_PIP,
               LandmarkIndex.PINKY_DIP, LandmarkIndex.PINKY_TIP),
}

# Wrist + five fingertips, used for frame-to-frame motion
KEY_POINTS = (
    LandmarkIndex.WRIST,
    LandmarkIndex.THUMB_TIP,
    LandmarkIndex.INDEX_TIP,
    LandmarkIndex.MIDDLE_TIP,
    LandmarkIndex.RING_TIP,
    LandmarkIndex.PINKY_TIP,
)


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float  # Depth relative to wrist


def _coerce_point(point, index: int) -> Landmark:
    if point is None:
        raise IncompleteLandmarks(f"Landmark {index} is missing")

    # MediaPipe NormalizedLandmark and similar objects expose x/y/z attributes
    if all(hasattr(point, axis) for axis in ("x", "y", "z")) and not isinstance(point, tuple):
        coords = (point.x, point.y, point.z)
    else:
        try:
            coords = tuple(point)
        except TypeError:
            raise IncompleteLandmarks(f"Landmark {index} is not a point: {point!r}") from None

    if len(coords) != 3:
        raise IncompleteLandmarks(
            f"Landmark {index} has {len(coords)} coordinates, expected 3")
    try:
        x, y, z = (float(c) for c in coords)
    except (TypeError, ValueError):
        raise IncompleteLandmarks(f"Landmark {index} has non-numeric coordinates") from None
    if not all(math.isfinite(c) for c in (x, y, z)):
        raise IncompleteLandmarks(f"Landmark {index} has non-finite coordinates")
    return Landmark(x, y, z)


@dataclass(frozen=True)
class HandLandmarks:
    """Container for one hand's landmarks with geometry helpers.

    Built by copying the provider's points, so later mutation on the
    provider side never leaks into an analysis pass.
    """
    landmarks: Tuple[Landmark, ...]
    handedness: str = "unknown"

    @classmethod
    def from_points(cls, points: Iterable, handedness: str = "unknown") -> "HandLandmarks":
        """Validate and copy a raw point sequence.

        Raises:
            IncompleteLandmarks: fewer or more than 21 points, or any point
                missing, of the wrong arity, or non-finite.
        """
        if points is None:
            raise IncompleteLandmarks("No landmarks supplied", count=0)
        try:
            points = list(points)
        except TypeError:
            raise IncompleteLandmarks("Landmarks are not a sequence") from None
        if len(points) != NUM_LANDMARKS:
            raise IncompleteLandmarks(
                f"Expected {NUM_LANDMARKS} landmarks, got {len(points)}", count=len(points))

        return cls(
            landmarks=tuple(_coerce_point(p, i) for i, p in enumerate(points)),
            handedness=handedness,
        )

    def get(self, index: LandmarkIndex) -> Landmark:
        """Get landmark by index."""
        return self.landmarks[index]

    def point(self, index: LandmarkIndex) -> np.ndarray:
        """Get landmark as a numpy (3,) vector."""
        return np.asarray(self.landmarks[index], dtype=np.float64)

    def to_numpy(self) -> np.ndarray:
        """Convert landmarks to numpy array of shape (21, 3)."""
        return np.array(self.landmarks, dtype=np.float64)

    def key_points(self) -> np.ndarray:
        """Wrist and fingertips as a (6, 3) array."""
        return self.to_numpy()[list(KEY_POINTS)]


def parse_landmarks(points, handedness: str = "unknown") -> Optional[HandLandmarks]:
    """Turn provider output into HandLandmarks; ``None`` means no hand."""
    if points is None:
        return None
    return HandLandmarks.from_points(points, handedness=handedness)
