"""Letter recognition: pattern table, classifier, stability and evaluation."""
from .patterns import ASLPattern, PatternTable, load_patterns, get_patterns, CANONICAL_LETTERS
from .classifier import LetterClassifier, ClassifierConfig, Classification, compare_with_pattern
from .stability import StabilityTracker, StabilityConfig, FrameSnapshot
from .evaluator import GestureEvaluator, EvaluationResult

__all__ = [
    "ASLPattern",
    "PatternTable",
    "load_patterns",
    "get_patterns",
    "CANONICAL_LETTERS",
    "LetterClassifier",
    "ClassifierConfig",
    "Classification",
    "compare_with_pattern",
    "StabilityTracker",
    "StabilityConfig",
    "FrameSnapshot",
    "GestureEvaluator",
    "EvaluationResult",
]
