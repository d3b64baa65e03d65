"""
Shared domain types for the fingerspelling engine.

Centralizes enums and value objects used across modules to avoid
circular imports between detection, recognition and lesson code.
"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple


# =============================================================================
# Fingers
# =============================================================================

# Canonical finger order; every 5-tuple in the engine follows it.
FINGERS: Tuple[str, ...] = ("thumb", "index", "middle", "ring", "pinky")

FINGER_LABELS: Dict[str, str] = {
    "thumb": "Thumb",
    "index": "Index",
    "middle": "Middle",
    "ring": "Ring",
    "pinky": "Pinky",
}

Signature = Tuple[bool, bool, bool, bool, bool]


class HandOrientation(Enum):
    """Direction of the wrist -> middle fingertip vector in image space."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class FrameStatus(Enum):
    """Outcome of a single process_frame() pass."""
    OK = "ok"
    NO_HAND = "no_hand"
    REJECTED = "rejected"
    AMBIGUOUS = "ambiguous"
    THROTTLED = "throttled"


# =============================================================================
# Value Objects
# =============================================================================

@dataclass(frozen=True)
class FingerState:
    """Extension flag and joint angle (degrees, 180 = straight) of one finger."""
    extended: bool
    angle: float = 180.0


@dataclass(frozen=True)
class FingerStates:
    """The five finger states of one hand for one frame."""
    thumb: FingerState
    index: FingerState
    middle: FingerState
    ring: FingerState
    pinky: FingerState

    @classmethod
    def from_signature(cls, signature, angles=None) -> "FingerStates":
        """Build from five booleans in thumb -> pinky order."""
        signature = tuple(bool(s) for s in signature)
        if len(signature) != len(FINGERS):
            raise ValueError(f"Expected {len(FINGERS)} finger flags, got {len(signature)}")
        angles = angles or [180.0 if s else 90.0 for s in signature]
        return cls(*(FingerState(extended=s, angle=float(a))
                     for s, a in zip(signature, angles)))

    @property
    def signature(self) -> Signature:
        return tuple(self.get(f).extended for f in FINGERS)

    @property
    def extended_count(self) -> int:
        return sum(self.signature)

    def get(self, finger: str) -> FingerState:
        if finger not in FINGERS:
            raise KeyError(finger)
        return getattr(self, finger)

    def items(self) -> Iterator[Tuple[str, FingerState]]:
        for finger in FINGERS:
            yield finger, self.get(finger)

    def to_dict(self) -> dict:
        return {f: {"extended": s.extended, "angle": round(s.angle, 2)}
                for f, s in self.items()}


@dataclass(frozen=True)
class StabilityResult:
    """Frame-to-frame stability verdict."""
    is_stable: bool
    score: float

    @staticmethod
    def unstable() -> "StabilityResult":
        return StabilityResult(is_stable=False, score=0.0)


@dataclass(frozen=True)
class GestureAnalysis:
    """Per-frame engine output consumed by the presentation layer.

    ``detected_letter`` is only set for confident matches; ``best_guess``
    always carries the classifier's nearest letter when a hand was seen.
    """
    status: FrameStatus
    target_letter: Optional[str] = None
    detected_letter: Optional[str] = None
    best_guess: Optional[str] = None
    confidence: float = 0.0
    finger_states: Optional[FingerStates] = None
    hand_orientation: Optional[HandOrientation] = None
    stability: StabilityResult = field(default_factory=StabilityResult.unstable)
    stable_frames: int = 0
    matches_target: bool = False
    confirmed: bool = False
    feedback: Tuple[str, ...] = ()
    timestamp: float = field(default_factory=time.time)
    latency_ms: float = 0.0

    @property
    def has_hand(self) -> bool:
        return self.finger_states is not None

    def as_throttled(self, target_letter: Optional[str], timestamp: float) -> "GestureAnalysis":
        """Copy of this analysis reported for a skipped frame.

        The hand data is carried over; the target is the current one, so a
        frame skipped right after a confirmation already shows the next letter.
        """
        return replace(
            self,
            status=FrameStatus.THROTTLED,
            target_letter=target_letter,
            matches_target=(self.detected_letter is not None
                            and self.detected_letter == target_letter),
            confirmed=False,
            timestamp=timestamp,
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "target_letter": self.target_letter,
            "detected_letter": self.detected_letter,
            "best_guess": self.best_guess,
            "confidence": round(self.confidence, 3),
            "finger_states": self.finger_states.to_dict() if self.finger_states else None,
            "hand_orientation": self.hand_orientation.value if self.hand_orientation else None,
            "stability": {
                "is_stable": self.stability.is_stable,
                "score": round(self.stability.score, 3),
            },
            "stable_frames": self.stable_frames,
            "matches_target": self.matches_target,
            "confirmed": self.confirmed,
            "feedback": list(self.feedback),
            "timestamp": self.timestamp,
            "latency_ms": round(self.latency_ms, 3),
        }
