"""
Static Letter Classifier
=========================

Scores a five-flag finger signature against the 26 ASL templates.

Scoring:
    raw   = matching fingers / 5
    final = raw * letter base weight

The best final score wins; ties go to the earliest letter in A->Z order.

Known ambiguity: several letters share a signature under the five-flag
model (A/C/E/M/N/O/S/T are all a closed fist; D/G/Q/X/Z, H/K/R/U/V and
I/J also collide). Real ASL separates them by thumb placement and finger
curvature that this model does not see. When a lesson target is given,
the classifier reports the target instead of the canonical winner if the
two share a signature and the target clears the acceptance threshold on
its own weight. This never changes which signature won.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..core.errors import AmbiguousClassification, ConfigError
from ..core.types import FINGER_LABELS, FingerStates
from ..utils.config import setting
from .patterns import ASLPattern, PatternTable, get_patterns

logger = logging.getLogger(__name__)

POSITIONING_GUIDANCE: Tuple[str, ...] = (
    "Position your hand in the center",
    "Make sure all fingers are visible",
)


@dataclass
class ClassifierConfig:
    """Letter classifier configuration."""
    # Minimum weighted score to report a positive identification
    acceptance_threshold: float = 0.65
    # Enable detailed per-letter score logging
    debug: bool = False

    def __post_init__(self):
        if not 0.0 <= self.acceptance_threshold <= 1.0:
            raise ConfigError(
                f"acceptance_threshold must be in [0, 1], got {self.acceptance_threshold}")

    @classmethod
    def from_dict(cls, config: dict) -> "ClassifierConfig":
        """Create config from dictionary."""
        return cls(
            acceptance_threshold=setting(config, "acceptance_threshold", 0.65),
            debug=setting(config, "debug", False, bool),
        )


@dataclass(frozen=True)
class Classification:
    """Classifier verdict for one frame."""
    letter: str
    confidence: float
    is_confident: bool
    threshold: float
    scores: Dict[str, float] = field(default_factory=dict, compare=False)

    def require_confident(self) -> str:
        """Return the letter, or raise if it is only a best guess."""
        if not self.is_confident:
            raise AmbiguousClassification(self.letter, self.confidence, self.threshold)
        return self.letter

    def ranked(self, top_n: int = 5) -> List[Tuple[str, float]]:
        """Highest scoring letters, stable in A->Z order on ties."""
        return sorted(self.scores.items(), key=lambda kv: -kv[1])[:top_n]


def compare_with_pattern(states: FingerStates, pattern: ASLPattern) -> float:
    """Fraction of fingers whose extension matches the pattern (0.0 - 1.0)."""
    matches = sum(1 for actual, expected in zip(states.signature, pattern.signature)
                  if actual == expected)
    return matches / len(pattern.signature)


def mismatch_feedback(states: FingerStates, pattern: ASLPattern) -> List[str]:
    """Corrective instructions for each mismatching finger, thumb -> pinky."""
    feedback = []
    for finger, state in states.items():
        expected = pattern.expects(finger)
        if state.extended == expected:
            continue
        verb = "Extend" if expected else "Close"
        feedback.append(f"{verb} your {FINGER_LABELS[finger]} finger")
    return feedback


class LetterClassifier:
    """
    Template-matching classifier over the ASL pattern table.

    Example:
        >>> classifier = LetterClassifier()
        >>> result = classifier.classify(states, target="D")
        >>> if result.is_confident:
        ...     print(f"Detected: {result.letter} ({result.confidence:.2f})")
    """

    def __init__(self, config: Optional[ClassifierConfig] = None,
                 patterns: Optional[PatternTable] = None):
        self.config = config or ClassifierConfig()
        self.patterns = patterns if patterns is not None else get_patterns()

    @property
    def threshold(self) -> float:
        return self.config.acceptance_threshold

    def score_all(self, states: FingerStates) -> Dict[str, float]:
        """Weighted score for every letter in canonical order."""
        return {letter: compare_with_pattern(states, pattern) * pattern.weight
                for letter, pattern in self.patterns.items()}

    def classify(self, states: FingerStates, target: Optional[str] = None) -> Classification:
        """
        Classify a finger signature.

        Args:
            states: Finger states for the current frame
            target: Lesson target letter, used only to pick among letters
                that share the winning signature

        Returns:
            Classification with the best letter and its weighted score
        """
        scores = self.score_all(states)

        best_letter = None
        best_score = -1.0
        for letter, score in scores.items():
            if score > best_score:
                best_letter, best_score = letter, score

        letter, confidence = best_letter, best_score
        if target:
            target = target.upper()
            if (target in self.patterns
                    and target != best_letter
                    and self.patterns[target].signature == self.patterns[best_letter].signature
                    and scores[target] >= self.threshold):
                letter, confidence = target, scores[target]

        if self.config.debug:
            top = ", ".join(f"{c}={s:.2f}" for c, s in
                            sorted(scores.items(), key=lambda kv: -kv[1])[:5])
            logger.debug("Scores for %s: %s -> %s", states.signature, top, letter)

        return Classification(
            letter=letter,
            confidence=confidence,
            is_confident=confidence >= self.threshold,
            threshold=self.threshold,
            scores=scores,
        )

    def feedback(self, states: FingerStates, letter: str) -> List[str]:
        """Corrective instructions toward ``letter``'s expected signature."""
        return mismatch_feedback(states, self.patterns[letter])
