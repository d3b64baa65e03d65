"""
Frame-to-frame stability tracking.

Decides whether the hand pose has settled by comparing each frame with
the previous one (window depth 1) and counts consecutive stable frames.

Two policies are available. A tracker runs exactly one of them, chosen
by configuration:

    finger_state     Stable when every finger flag is identical to the
                     previous frame and the classifier confidence moved
                     by no more than ``max_confidence_delta``.
    landmark_motion  Stable when the mean displacement of the wrist and
                     five fingertips maps to a score above
                     ``motion_cutoff`` via score = max(0, 1 - d * k).

The streak counter resets to zero on any unstable frame and on clear(),
which the engine calls for no-hand frames, rejected frames, target
changes and lesson resets.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.errors import ConfigError
from ..core.types import FINGERS, FingerStates, StabilityResult
from ..detection.landmarks import HandLandmarks
from ..utils.config import setting

logger = logging.getLogger(__name__)

POLICY_FINGER_STATE = "finger_state"
POLICY_LANDMARK_MOTION = "landmark_motion"


@dataclass
class StabilityConfig:
    """Stability tracker configuration."""
    policy: str = POLICY_FINGER_STATE
    # finger_state: allowed classifier confidence drift between frames
    max_confidence_delta: float = 0.15
    # landmark_motion: displacement multiplier k and stable cutoff
    motion_scale: float = 10.0
    motion_cutoff: float = 0.6
    # Consecutive stable frames required before a match is confirmed
    required_stable_frames: int = 3

    def __post_init__(self):
        if self.policy not in (POLICY_FINGER_STATE, POLICY_LANDMARK_MOTION):
            raise ConfigError(f"Unknown stability policy: {self.policy!r}")
        if self.required_stable_frames < 1:
            raise ConfigError("required_stable_frames must be at least 1")
        if not 0.0 <= self.motion_cutoff < 1.0:
            raise ConfigError("motion_cutoff must be in [0, 1)")

    @classmethod
    def from_dict(cls, config: dict) -> "StabilityConfig":
        """Create config from dictionary."""
        return cls(
            policy=setting(config, "policy", POLICY_FINGER_STATE, str),
            max_confidence_delta=setting(config, "max_confidence_delta", 0.15),
            motion_scale=setting(config, "motion_scale", 10.0),
            motion_cutoff=setting(config, "motion_cutoff", 0.6),
            required_stable_frames=setting(config, "required_stable_frames", 3, int),
        )


@dataclass(frozen=True)
class FrameSnapshot:
    """What the tracker remembers about one frame."""
    finger_states: FingerStates
    confidence: float
    landmarks: Optional[HandLandmarks] = None


class StabilityPolicy:
    """Compares the current frame snapshot against the previous one."""

    name = ""

    def compare(self, previous: FrameSnapshot, current: FrameSnapshot) -> StabilityResult:
        raise NotImplementedError


class FingerStatePolicy(StabilityPolicy):
    """Stability by identity of the five finger flags."""

    name = POLICY_FINGER_STATE

    def __init__(self, max_confidence_delta: float = 0.15):
        self.max_confidence_delta = max_confidence_delta

    def compare(self, previous: FrameSnapshot, current: FrameSnapshot) -> StabilityResult:
        unchanged = sum(1 for a, b in zip(previous.finger_states.signature,
                                          current.finger_states.signature) if a == b)
        drift = abs(current.confidence - previous.confidence)

        if unchanged == len(FINGERS) and drift <= self.max_confidence_delta:
            return StabilityResult(is_stable=True, score=1.0)

        if unchanged < len(FINGERS):
            score = unchanged / len(FINGERS)
        else:
            score = max(0.0, 1.0 - drift)
        return StabilityResult(is_stable=False, score=score)


class LandmarkMotionPolicy(StabilityPolicy):
    """Stability by average key-point displacement."""

    name = POLICY_LANDMARK_MOTION

    def __init__(self, motion_scale: float = 10.0, motion_cutoff: float = 0.6):
        self.motion_scale = motion_scale
        self.motion_cutoff = motion_cutoff

    def displacement(self, previous: HandLandmarks, current: HandLandmarks) -> float:
        """Mean Euclidean distance of wrist + fingertips between frames."""
        deltas = current.key_points() - previous.key_points()
        return float(np.mean(np.linalg.norm(deltas, axis=1)))

    def compare(self, previous: FrameSnapshot, current: FrameSnapshot) -> StabilityResult:
        if previous.landmarks is None or current.landmarks is None:
            return StabilityResult.unstable()
        moved = self.displacement(previous.landmarks, current.landmarks)
        score = max(0.0, 1.0 - moved * self.motion_scale)
        return StabilityResult(is_stable=score > self.motion_cutoff, score=score)


def create_policy(config: StabilityConfig) -> StabilityPolicy:
    if config.policy == POLICY_LANDMARK_MOTION:
        return LandmarkMotionPolicy(config.motion_scale, config.motion_cutoff)
    return FingerStatePolicy(config.max_confidence_delta)


class StabilityTracker:
    """
    Tracks pose stability and the consecutive-stable-frame streak.

    Example:
        >>> tracker = StabilityTracker(StabilityConfig())
        >>> result = tracker.update(FrameSnapshot(states, confidence=0.9))
        >>> if tracker.is_settled:
        ...     print("Pose held long enough")
    """

    def __init__(self, config: Optional[StabilityConfig] = None):
        self.config = config or StabilityConfig()
        self.policy = create_policy(self.config)
        self._previous: Optional[FrameSnapshot] = None
        self._stable_frames = 0

    def update(self, snapshot: FrameSnapshot) -> StabilityResult:
        """Compare against the previous frame and advance the streak."""
        if self._previous is None:
            result = StabilityResult.unstable()
        else:
            result = self.policy.compare(self._previous, snapshot)

        if result.is_stable:
            self._stable_frames += 1
        else:
            if self._stable_frames:
                logger.debug("Stability streak broken after %d frames (score=%.2f)",
                             self._stable_frames, result.score)
            self._stable_frames = 0

        self._previous = snapshot
        return result

    def clear(self) -> None:
        """Drop the previous snapshot and reset the streak."""
        self._previous = None
        self._stable_frames = 0

    @property
    def stable_frames(self) -> int:
        return self._stable_frames

    @property
    def required_frames(self) -> int:
        return self.config.required_stable_frames

    @property
    def is_settled(self) -> bool:
        """True once the streak reaches the confirmation threshold."""
        return self._stable_frames >= self.config.required_stable_frames

    @property
    def has_previous(self) -> bool:
        return self._previous is not None
