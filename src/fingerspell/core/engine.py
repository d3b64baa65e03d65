"""
Per-frame fingerspelling engine.

Encapsulates the extract -> classify -> stabilize -> maybe-advance cycle
behind a single entry point, ``process_frame``.

Architecture:
    Landmark Provider -> FingerStateExtractor -> LetterClassifier
    -> StabilityTracker -> confirmation gate -> LessonController
    -> EventBus / GestureAnalysis (presentation layer)

Confirmation policy: a match is confirmed when the classifier reports the
lesson's current letter with confidence at or above the acceptance
threshold, the stability streak has reached ``required_stable_frames``
consecutive stable frames, and the lesson is not in cooldown. Every
lesson transition clears the stability streak and previous snapshot.

Processing is non-reentrant. A call that arrives while another pass is
running, or a hand frame arriving sooner than ``min_frame_interval``
after the last analyzed one, is dropped and reported as THROTTLED.
No-hand frames are never throttled so the streak resets immediately.
"""

import time
import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from .errors import ConfigError, IncompleteLandmarks
from .events import EventBus, Events
from .types import FrameStatus, GestureAnalysis, StabilityResult
from ..detection.finger_state import ExtractorConfig, FingerStateExtractor
from ..detection.landmarks import HandLandmarks
from ..lesson.controller import LessonConfig, LessonController
from ..lesson.state import LessonPhase, LessonState
from ..recognition.classifier import (
    POSITIONING_GUIDANCE, ClassifierConfig, LetterClassifier,
)
from ..recognition.patterns import PatternTable, get_patterns
from ..recognition.stability import FrameSnapshot, StabilityConfig, StabilityTracker
from ..utils.config import section_of, setting
from ..utils.performance import LatencyStats, Timer

logger = logging.getLogger(__name__)

# Timestamps derived from frame counters (i / fps) carry float rounding
_CLOCK_EPSILON = 1e-6


@dataclass
class EngineConfig:
    """Application configuration container."""
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    stability: StabilityConfig = field(default_factory=StabilityConfig)
    lesson: LessonConfig = field(default_factory=LessonConfig)
    # Minimum spacing between analyzed hand frames, seconds
    min_frame_interval: float = 0.1
    # Optional override for the bundled pattern table
    patterns_path: Optional[str] = None

    def __post_init__(self):
        if self.min_frame_interval < 0:
            raise ConfigError("min_frame_interval must be non-negative")

    @classmethod
    def from_dict(cls, config: dict) -> "EngineConfig":
        """Create config from a full configuration dictionary."""
        classifier = section_of(config, "classifier")
        return cls(
            extractor=ExtractorConfig.from_dict(section_of(config, "extractor")),
            classifier=ClassifierConfig.from_dict(classifier),
            stability=StabilityConfig.from_dict(section_of(config, "stability")),
            lesson=LessonConfig.from_dict(section_of(config, "lesson")),
            min_frame_interval=setting(section_of(config, "engine"), "min_frame_interval", 0.1),
            patterns_path=setting(classifier, "patterns_path", None, str),
        )


class FingerspellEngine:
    """
    Fingerspelling lesson engine.

    Owns one extractor, classifier, stability tracker and lesson
    controller for a single landmark stream.

    Example:
        >>> engine = FingerspellEngine()
        >>> engine.on_advance(lambda letter, index, **_: print("Got", letter))
        >>> engine.start_lesson("Dave")
        >>> for points in provider:           # 21 (x, y, z) points or None
        ...     analysis = engine.process_frame(points)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        patterns: Optional[PatternTable] = None,
        bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or EngineConfig()
        self.patterns = patterns if patterns is not None else get_patterns(self.config.patterns_path)
        self.bus = bus or EventBus()
        self._clock = clock

        self.extractor = FingerStateExtractor(self.config.extractor)
        self.classifier = LetterClassifier(self.config.classifier, self.patterns)
        self.tracker = StabilityTracker(self.config.stability)
        self.lesson = LessonController(self.config.lesson, bus=self.bus, clock=clock)

        # Reentrant so event handlers may call skip_letter()/reset()
        self._lock = threading.RLock()
        self._processing = False
        self._last_analysis: Optional[GestureAnalysis] = None
        self._last_frame_time: Optional[float] = None
        self._hand_present = False
        self._frame_count = 0
        self.latency = LatencyStats(budget_ms=self.config.min_frame_interval * 1000 or 100.0)

        logger.info("Engine ready: policy=%s, %d stable frames, threshold=%.2f, cooldown=%.1fs",
                    self.tracker.policy.name, self.tracker.required_frames,
                    self.classifier.threshold, self.config.lesson.cooldown_seconds)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def on_advance(self, callback: Callable) -> None:
        """Call ``callback(letter=, index=, state=)`` once per confirmed match."""
        self.bus.subscribe(Events.LETTER_CONFIRMED, callback)

    def on_complete(self, callback: Callable) -> None:
        """Call ``callback(name=, state=)`` when the last letter is confirmed."""
        self.bus.subscribe(Events.LESSON_COMPLETED, callback)

    # -------------------------------------------------------------------------
    # Lesson control
    # -------------------------------------------------------------------------

    @property
    def state(self) -> LessonState:
        return self.lesson.state

    @property
    def target_letter(self) -> Optional[str]:
        return self.lesson.current_letter

    @property
    def last_analysis(self) -> Optional[GestureAnalysis]:
        return self._last_analysis

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def start_lesson(self, name: str) -> LessonState:
        with self._lock:
            state = self.lesson.submit_name(name)
            self.tracker.clear()
            return state

    def skip_letter(self) -> LessonState:
        with self._lock:
            state = self.lesson.skip(self._clock())
            self.tracker.clear()
            return state

    def reset(self) -> LessonState:
        with self._lock:
            state = self.lesson.reset()
            self.tracker.clear()
            self._last_analysis = None
            self._last_frame_time = None
            return state

    # -------------------------------------------------------------------------
    # Frame processing
    # -------------------------------------------------------------------------

    def process_frame(self, landmarks=None, handedness: str = "unknown") -> GestureAnalysis:
        """
        Analyze one frame and advance the lesson on a confirmed match.

        Args:
            landmarks: 21 (x, y, z) points for one hand, or None when no
                hand was detected
            handedness: Optional provider hint, carried on the landmarks

        Returns:
            GestureAnalysis for this frame
        """
        if not self._lock.acquire(blocking=False):
            logger.debug("Frame dropped: previous analysis still running")
            return self._throttled()

        try:
            # An event handler calling back into process_frame lands here
            if self._processing:
                logger.debug("Frame dropped: re-entrant call from an event handler")
                return self._throttled()
            self._processing = True
            try:
                with Timer("process_frame") as timer:
                    analysis = self._process_locked(landmarks, handedness)
            finally:
                self._processing = False
            if analysis.status != FrameStatus.THROTTLED:
                analysis = replace(analysis, latency_ms=timer.elapsed_ms)
                self.latency.record(timer.elapsed_ms)
                self._last_analysis = analysis
            return analysis
        finally:
            self._lock.release()

    def _throttled(self) -> GestureAnalysis:
        now = self._clock()
        if self._last_analysis is not None:
            return self._last_analysis.as_throttled(self.target_letter, now)
        return GestureAnalysis(status=FrameStatus.THROTTLED, target_letter=self.target_letter,
                               timestamp=now)

    def _process_locked(self, landmarks, handedness: str) -> GestureAnalysis:
        now = self._clock()
        target = self.lesson.current_letter

        if landmarks is None:
            return self._no_hand(target, now)

        if (self._last_frame_time is not None
                and now - self._last_frame_time < self.config.min_frame_interval - _CLOCK_EPSILON):
            return self._throttled()
        self._last_frame_time = now
        self._frame_count += 1

        try:
            hand = HandLandmarks.from_points(landmarks, handedness=handedness)
            finger_states, orientation = self.extractor.analyze(hand)
        except IncompleteLandmarks as e:
            logger.warning("Rejected frame %d: %s", self._frame_count, e)
            self.tracker.clear()
            self.bus.emit(Events.FRAME_REJECTED, reason=str(e))
            return GestureAnalysis(status=FrameStatus.REJECTED, target_letter=target,
                                   timestamp=now)

        if not self._hand_present:
            self._hand_present = True
            self.bus.emit(Events.HAND_DETECTED, handedness=hand.handedness)

        classification = self.classifier.classify(finger_states, target=target)
        stability = self.tracker.update(
            FrameSnapshot(finger_states, classification.confidence, hand))

        if classification.is_confident:
            status = FrameStatus.OK
            detected = classification.letter
            reference = target or detected
            feedback = tuple(self.classifier.feedback(finger_states, reference))
        else:
            status = FrameStatus.AMBIGUOUS
            detected = None
            feedback = POSITIONING_GUIDANCE

        matches_target = detected is not None and detected == target
        stable_frames = self.tracker.stable_frames
        confirmed = False

        if matches_target and self.tracker.is_settled and self.lesson.can_confirm(now):
            before = self.lesson.state
            after = self.lesson.confirm(now)
            confirmed = after is not before
            if confirmed:
                # New target: nothing from the old letter may carry over
                self.tracker.clear()

        return GestureAnalysis(
            status=status,
            target_letter=target,
            detected_letter=detected,
            best_guess=classification.letter,
            confidence=classification.confidence,
            finger_states=finger_states,
            hand_orientation=orientation,
            stability=stability,
            stable_frames=stable_frames,
            matches_target=matches_target,
            confirmed=confirmed,
            feedback=feedback,
            timestamp=now,
        )

    def _no_hand(self, target: Optional[str], now: float) -> GestureAnalysis:
        self.tracker.clear()
        if self._hand_present:
            self._hand_present = False
            self.bus.emit(Events.HAND_LOST)
        return GestureAnalysis(
            status=FrameStatus.NO_HAND,
            target_letter=target,
            stability=StabilityResult.unstable(),
            timestamp=now,
        )

    @property
    def is_active(self) -> bool:
        return self.lesson.phase == LessonPhase.IN_PROGRESS
