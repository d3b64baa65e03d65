"""
Exception hierarchy for the fingerspelling engine.

Every per-frame error is recoverable: the engine reports it through the
frame's status and keeps the session alive. Lesson misuse and broken
configuration raise to the caller.
"""


class FingerspellError(Exception):
    """Base class for all engine errors."""


class IncompleteLandmarks(FingerspellError):
    """Landmark set is missing points or carries malformed coordinates."""

    def __init__(self, message: str, count: int = -1):
        super().__init__(message)
        self.count = count


class AmbiguousClassification(FingerspellError):
    """Best letter score fell below the acceptance threshold."""

    def __init__(self, best_guess: str, confidence: float, threshold: float):
        super().__init__(
            f"No confident match (best guess {best_guess} at "
            f"{confidence:.2f}, threshold {threshold:.2f})"
        )
        self.best_guess = best_guess
        self.confidence = confidence
        self.threshold = threshold


class PatternTableError(FingerspellError):
    """The ASL pattern asset is missing entries or malformed."""


class LessonStateError(FingerspellError):
    """A lesson transition was requested from a phase that does not allow it."""


class InvalidName(FingerspellError):
    """Submitted name contains no spellable letters."""


class ConfigError(FingerspellError):
    """A configuration value is out of range or of the wrong kind."""
