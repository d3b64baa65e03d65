"""
Tests for Stability Tracking
=============================
"""

import pytest

from conftest import make_hand, make_states
from fingerspell.core.errors import ConfigError
from fingerspell.recognition.stability import (
    FingerStatePolicy, FrameSnapshot, LandmarkMotionPolicy, StabilityConfig,
    StabilityTracker, create_policy,
)

INDEX_ONLY = (False, True, False, False, False)
INDEX_MIDDLE = (False, True, True, False, False)


def snapshot(signature=INDEX_ONLY, confidence=0.9, **hand_kwargs):
    return FrameSnapshot(make_states(signature), confidence, make_hand(signature, **hand_kwargs))


class TestFingerStatePolicy:
    """Test suite for the finger-identity stability policy."""

    @pytest.fixture
    def policy(self):
        return FingerStatePolicy(max_confidence_delta=0.15)

    def test_identical_frames_stable(self, policy):
        result = policy.compare(snapshot(), snapshot())
        assert result.is_stable
        assert result.score == 1.0

    def test_one_finger_changed(self, policy):
        result = policy.compare(snapshot(INDEX_ONLY), snapshot(INDEX_MIDDLE))
        assert not result.is_stable
        assert result.score == pytest.approx(0.8)

    def test_confidence_drift_breaks_stability(self, policy):
        result = policy.compare(snapshot(confidence=0.9), snapshot(confidence=0.7))
        assert not result.is_stable
        assert result.score == pytest.approx(0.8)

    def test_small_drift_allowed(self, policy):
        assert policy.compare(snapshot(confidence=0.9), snapshot(confidence=0.8)).is_stable


class TestLandmarkMotionPolicy:
    """Test suite for the landmark displacement policy."""

    @pytest.fixture
    def policy(self):
        return LandmarkMotionPolicy(motion_scale=10.0, motion_cutoff=0.6)

    def test_still_hand(self, policy):
        result = policy.compare(snapshot(), snapshot())
        assert result.is_stable
        assert result.score == pytest.approx(1.0)

    def test_small_motion_stable(self, policy):
        result = policy.compare(snapshot(), snapshot(offset=(0.02, 0.0)))
        assert result.score == pytest.approx(0.8, abs=1e-4)
        assert result.is_stable

    def test_large_motion_unstable(self, policy):
        result = policy.compare(snapshot(), snapshot(offset=(0.05, 0.0)))
        assert result.score == pytest.approx(0.5, abs=1e-4)
        assert not result.is_stable

    def test_score_floor(self, policy):
        result = policy.compare(snapshot(), snapshot(offset=(0.3, 0.0)))
        assert result.score == 0.0

    def test_finger_change_ignored_when_still(self, policy):
        # Only key-point motion counts, not the finger flags
        prev = FrameSnapshot(make_states(INDEX_ONLY), 0.9, make_hand(INDEX_ONLY))
        curr = FrameSnapshot(make_states(INDEX_MIDDLE), 0.9, make_hand(INDEX_ONLY))
        assert policy.compare(prev, curr).is_stable

    def test_missing_landmarks_unstable(self, policy):
        prev = FrameSnapshot(make_states(INDEX_ONLY), 0.9)
        assert not policy.compare(prev, prev).is_stable


class TestStabilityTracker:
    """Test suite for the consecutive stable frame streak."""

    @pytest.fixture
    def tracker(self):
        return StabilityTracker(StabilityConfig())

    def test_first_frame_unstable(self, tracker):
        result = tracker.update(snapshot())
        assert not result.is_stable
        assert result.score == 0.0
        assert tracker.stable_frames == 0
        assert tracker.has_previous

    def test_streak_counts_and_settles(self, tracker):
        for _ in range(3):
            tracker.update(snapshot())
        assert tracker.stable_frames == 2
        assert not tracker.is_settled
        tracker.update(snapshot())
        assert tracker.stable_frames == 3
        assert tracker.is_settled

    def test_unstable_frame_resets_streak(self, tracker):
        for _ in range(3):
            tracker.update(snapshot())
        tracker.update(snapshot(INDEX_MIDDLE))
        assert tracker.stable_frames == 0
        tracker.update(snapshot(INDEX_MIDDLE))
        assert tracker.stable_frames == 1

    def test_clear(self, tracker):
        for _ in range(4):
            tracker.update(snapshot())
        tracker.clear()
        assert tracker.stable_frames == 0
        assert not tracker.has_previous
        assert not tracker.update(snapshot()).is_stable

    def test_policy_selection(self):
        assert isinstance(create_policy(StabilityConfig()), FingerStatePolicy)
        tracker = StabilityTracker(StabilityConfig(policy="landmark_motion"))
        assert isinstance(tracker.policy, LandmarkMotionPolicy)
        assert tracker.policy.name == "landmark_motion"

    def test_required_frames_configurable(self):
        tracker = StabilityTracker(StabilityConfig(required_stable_frames=1))
        tracker.update(snapshot())
        tracker.update(snapshot())
        assert tracker.is_settled

    @pytest.mark.parametrize("kwargs", [
        {"policy": "mixed"},
        {"required_stable_frames": 0},
        {"motion_cutoff": 1.0},
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ConfigError):
            StabilityConfig(**kwargs)

    def test_from_dict(self):
        config = StabilityConfig.from_dict({"policy": "landmark_motion", "required_stable_frames": 5})
        assert config.policy == "landmark_motion"
        assert config.required_stable_frames == 5
        assert config.max_confidence_delta == 0.15
