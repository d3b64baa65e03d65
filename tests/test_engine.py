"""
Tests for the Per-Frame Engine
===============================
"""

import threading

import pytest

from conftest import FakeClock
from fingerspell.core.engine import EngineConfig, FingerspellEngine
from fingerspell.core.events import Events
from fingerspell.core.types import FrameStatus
from fingerspell.detection.synthetic import hand_for_letter, synthetic_hand
from fingerspell.lesson.controller import LessonConfig
from fingerspell.lesson.state import LessonPhase
from fingerspell.recognition.stability import StabilityConfig

STEP = 0.25


@pytest.fixture
def engine(clock, patterns):
    return FingerspellEngine(EngineConfig(), patterns=patterns, clock=clock)


def feed(engine, clock, points, frames, step=STEP):
    """Process ``frames`` copies of ``points``, one clock step apart."""
    results = []
    for _ in range(frames):
        results.append(engine.process_frame(points))
        clock.advance(step)
    return results


class TestConfirmation:
    """Test suite for the confirm-on-stable-match gate."""

    def test_four_identical_frames_confirm_once(self, engine, clock, patterns):
        advances = []
        engine.on_advance(lambda letter, index, **_: advances.append((letter, index)))
        engine.start_lesson("Dave")

        results = feed(engine, clock, hand_for_letter("D", patterns), 4)

        assert [r.stable_frames for r in results] == [0, 1, 2, 3]
        assert [r.confirmed for r in results] == [False, False, False, True]
        assert results[0].detected_letter == "D"
        assert results[0].matches_target
        assert advances == [("D", 0)]
        assert engine.target_letter == "A"

    def test_confirmation_is_exactly_once(self, engine, clock, patterns):
        advances = []
        engine.on_advance(lambda letter, **_: advances.append(letter))
        engine.start_lesson("Dd")

        feed(engine, clock, hand_for_letter("D", patterns), 12)

        # Second D waits out the cooldown, then confirms on a fresh streak
        assert advances == ["D", "D"]
        assert engine.state.phase == LessonPhase.COMPLETED

    def test_cooldown_blocks_second_confirmation(self, clock, patterns):
        config = EngineConfig(lesson=LessonConfig(cooldown_seconds=2.0))
        engine = FingerspellEngine(config, patterns=patterns, clock=clock)
        confirmed_at = []
        engine.on_advance(lambda **_: confirmed_at.append(clock()))
        engine.start_lesson("Dd")

        points = hand_for_letter("D", patterns)
        results = feed(engine, clock, points, 12)

        assert confirmed_at == [0.75, 2.75]
        # Settled and matching, but still cooling down
        assert results[7].stable_frames >= 3
        assert not results[7].confirmed

    def test_fist_cluster_letter_learnable(self, engine, clock, patterns):
        engine.start_lesson("S")
        results = feed(engine, clock, hand_for_letter("S", patterns), 4)
        assert results[0].detected_letter == "S"
        assert results[-1].confirmed
        assert engine.state.phase == LessonPhase.COMPLETED

    def test_wrong_letter_gives_feedback(self, engine, clock, patterns):
        engine.start_lesson("B")
        results = feed(engine, clock, hand_for_letter("L", patterns), 5)
        assert not any(r.confirmed for r in results)
        assert results[-1].status == FrameStatus.OK
        assert results[-1].detected_letter == "L"
        assert "Close your Thumb finger" in results[-1].feedback
        assert not results[-1].matches_target

    def test_on_complete(self, engine, clock, patterns):
        completed = []
        engine.on_complete(lambda name, **_: completed.append(name))
        engine.start_lesson("Li")
        feed(engine, clock, hand_for_letter("L", patterns), 4)
        clock.advance(1.0)
        feed(engine, clock, hand_for_letter("I", patterns), 4)
        assert completed == ["LI"]

    def test_no_lesson_still_classifies(self, engine, clock, patterns):
        result = feed(engine, clock, hand_for_letter("W", patterns), 1)[0]
        assert result.target_letter is None
        assert result.detected_letter == "W"
        assert not result.matches_target
        assert not result.confirmed


class TestStreakResets:
    """Test suite for the conditions that restart the stability streak."""

    def test_no_hand_resets_streak(self, engine, clock, patterns):
        engine.start_lesson("D")
        points = hand_for_letter("D", patterns)
        feed(engine, clock, points, 3)

        result = engine.process_frame(None)
        assert result.status == FrameStatus.NO_HAND
        assert result.stable_frames == 0
        assert not result.stability.is_stable

        clock.advance(STEP)
        results = feed(engine, clock, points, 3)
        assert not any(r.confirmed for r in results)
        assert feed(engine, clock, points, 1)[0].confirmed

    def test_rejected_frame_resets_streak(self, engine, clock, patterns):
        rejected = []
        engine.bus.subscribe(Events.FRAME_REJECTED, lambda reason: rejected.append(reason))
        engine.start_lesson("D")
        points = hand_for_letter("D", patterns)
        feed(engine, clock, points, 3)

        result = feed(engine, clock, points[:20], 1)[0]
        assert result.status == FrameStatus.REJECTED
        assert result.detected_letter is None
        assert len(rejected) == 1
        assert engine.tracker.stable_frames == 0

    def test_skip_clears_tracker(self, engine, clock, patterns):
        skipped = []
        engine.bus.subscribe(Events.LETTER_SKIPPED, lambda letter, **_: skipped.append(letter))
        engine.start_lesson("Da")
        feed(engine, clock, hand_for_letter("A", patterns), 3)
        engine.skip_letter()
        assert skipped == ["D"]
        assert engine.tracker.stable_frames == 0
        assert not engine.tracker.has_previous

    def test_reset_clears_everything(self, engine, clock, patterns):
        engine.start_lesson("D")
        feed(engine, clock, hand_for_letter("D", patterns), 2)
        engine.reset()
        assert engine.state.phase == LessonPhase.IDLE
        assert engine.last_analysis is None
        assert not engine.tracker.has_previous

    def test_hand_detected_and_lost_events(self, engine, clock, patterns):
        seen = []
        engine.bus.subscribe(Events.HAND_DETECTED, lambda **_: seen.append("detected"))
        engine.bus.subscribe(Events.HAND_LOST, lambda **_: seen.append("lost"))
        points = hand_for_letter("B", patterns)
        feed(engine, clock, points, 2)
        engine.process_frame(None)
        engine.process_frame(None)
        feed(engine, clock, points, 1)
        assert seen == ["detected", "lost", "detected"]


class TestFrameStatus:
    """Test suite for ambiguous, throttled and reentrant frames."""

    def test_ambiguous_frame(self, engine, clock):
        engine.start_lesson("W")
        result = engine.process_frame(synthetic_hand((True, False, True, True, False)))
        assert result.status == FrameStatus.AMBIGUOUS
        assert result.detected_letter is None
        assert result.best_guess == "W"
        assert result.feedback == (
            "Position your hand in the center",
            "Make sure all fingers are visible",
        )

    def test_fast_frames_throttled(self, engine, clock, patterns):
        points = hand_for_letter("B", patterns)
        first = engine.process_frame(points)
        clock.advance(0.05)
        second = engine.process_frame(points)
        assert second.status == FrameStatus.THROTTLED
        assert second.best_guess == first.best_guess
        assert engine.frame_count == 1
        assert engine.last_analysis is first

    def test_throttled_frame_shows_next_target(self, engine, clock, patterns):
        points = hand_for_letter("D", patterns)
        engine.start_lesson("Da")
        feed(engine, clock, points, 3)
        assert engine.process_frame(points).confirmed

        clock.advance(0.05)
        skipped = engine.process_frame(points)
        assert skipped.status == FrameStatus.THROTTLED
        assert skipped.target_letter == "A"
        assert skipped.detected_letter == "D"
        assert not skipped.matches_target
        assert not skipped.confirmed

    def test_timestamps_follow_engine_clock(self, engine, clock, patterns):
        clock.advance(42.0)
        assert engine.process_frame(hand_for_letter("B", patterns)).timestamp == 42.0
        clock.advance(0.01)
        assert engine.process_frame(hand_for_letter("B", patterns)).timestamp == pytest.approx(42.01)
        clock.advance(1.0)
        assert engine.process_frame(None).timestamp == pytest.approx(43.01)
        clock.advance(1.0)
        assert engine.process_frame([[0.0, 0.0, 0.0]] * 20).timestamp == pytest.approx(44.01)

    def test_no_hand_never_throttled(self, engine, clock, patterns):
        engine.process_frame(hand_for_letter("B", patterns))
        clock.advance(0.01)
        assert engine.process_frame(None).status == FrameStatus.NO_HAND

    def test_latency_recorded(self, engine, patterns):
        result = engine.process_frame(hand_for_letter("B", patterns))
        assert result.latency_ms > 0.0
        assert result.to_dict()["status"] == "ok"

    def test_concurrent_call_throttled(self, engine, patterns):
        points = hand_for_letter("B", patterns)
        engine._lock.acquire()
        try:
            results = []
            worker = threading.Thread(target=lambda: results.append(engine.process_frame(points)))
            worker.start()
            worker.join(timeout=5)
        finally:
            engine._lock.release()
        assert results[0].status == FrameStatus.THROTTLED

    def test_handler_may_reset_lesson(self, engine, clock, patterns):
        engine.on_advance(lambda **_: engine.reset())
        engine.start_lesson("Da")
        results = feed(engine, clock, hand_for_letter("D", patterns), 4)
        assert results[-1].confirmed
        assert engine.state.phase == LessonPhase.IDLE

    def test_handler_cannot_reenter_process_frame(self, engine, clock, patterns):
        inner = []
        points = hand_for_letter("D", patterns)
        engine.on_advance(lambda **_: inner.append(engine.process_frame(points)))
        engine.start_lesson("Da")
        feed(engine, clock, points, 4)
        assert inner[0].status == FrameStatus.THROTTLED

    def test_landmark_motion_policy(self, clock, patterns):
        config = EngineConfig(stability=StabilityConfig(policy="landmark_motion"))
        engine = FingerspellEngine(config, patterns=patterns, clock=clock)
        engine.start_lesson("V")
        results = feed(engine, clock, hand_for_letter("V", patterns), 4)
        assert results[-1].confirmed


class TestEngineConfig:
    """Test suite for building the engine from a config mapping."""

    def test_from_dict(self):
        config = EngineConfig.from_dict({
            "classifier": {"acceptance_threshold": 0.7},
            "stability": {"policy": "landmark_motion"},
            "lesson": {"cooldown_seconds": 0.5},
            "engine": {"min_frame_interval": 0.0},
        })
        assert config.classifier.acceptance_threshold == 0.7
        assert config.stability.policy == "landmark_motion"
        assert config.lesson.cooldown_seconds == 0.5
        assert config.min_frame_interval == 0.0
        assert config.patterns_path is None

    def test_engine_with_defaults(self):
        engine = FingerspellEngine(clock=FakeClock())
        assert engine.classifier.threshold == 0.65
        assert engine.tracker.required_frames == 3
        assert not engine.is_active
