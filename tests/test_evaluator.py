"""
Tests for the Gesture Evaluator
================================
"""

import pytest

from conftest import make_states
from fingerspell.core.types import FrameStatus, GestureAnalysis, HandOrientation, StabilityResult
from fingerspell.recognition.evaluator import GestureEvaluator, build_prompt


def analysis(signature, stable=True, score=1.0, orientation=HandOrientation.UP):
    return GestureAnalysis(
        status=FrameStatus.OK,
        finger_states=make_states(signature),
        hand_orientation=orientation,
        stability=StabilityResult(is_stable=stable, score=score),
        confidence=0.9,
    )


class TestGestureEvaluator:
    """Test suite for the deterministic evaluator."""

    @pytest.fixture
    def evaluator(self, patterns):
        return GestureEvaluator(patterns)

    def test_perfect_attempt(self, evaluator, patterns):
        result = evaluator.evaluate(analysis(patterns["D"].signature), "d")
        assert result.is_correct
        assert result.confidence == 1.0
        assert result.feedback == []
        assert "excellent" in result.reasoning

    def test_poor_attempt(self, evaluator):
        result = evaluator.evaluate(analysis((True, False, False, False, True), stable=False), "B")
        assert not result.is_correct
        # 1/5 matched, unstable, upright hand
        assert result.confidence == pytest.approx(0.25)
        assert result.feedback[:4] == [
            "Close your Thumb finger",
            "Extend your Index finger",
            "Extend your Middle finger",
            "Extend your Ring finger",
        ]
        assert "hold still" in result.reasoning

    def test_near_miss_bonus(self, evaluator):
        # 4/5 matched: 0.8 + 0.25, capped at 1.0
        result = evaluator.evaluate(analysis((False, True, True, True, False), stable=False,
                                             orientation=HandOrientation.DOWN), "B")
        assert result.confidence == pytest.approx(1.0)
        assert result.is_correct
        assert "Rotate your hand to face the camera" in result.feedback

    def test_three_match_bonus(self, evaluator):
        # 3/5 matched: 0.6 + 0.15, stable at 0.7 adds 0.10, sideways adds nothing
        result = evaluator.evaluate(analysis((False, True, True, False, False), score=0.7,
                                             orientation=HandOrientation.LEFT), "B")
        assert result.confidence == pytest.approx(0.85)

    def test_two_matches_incorrect(self, evaluator):
        result = evaluator.evaluate(analysis((True, True, False, False, False), stable=False,
                                             orientation=HandOrientation.LEFT), "W")
        assert result.confidence == pytest.approx(0.4)
        assert not result.is_correct
        assert len(result.suggested_improvements) == len(result.feedback)

    def test_no_hand(self, evaluator):
        result = evaluator.evaluate(GestureAnalysis(status=FrameStatus.NO_HAND), "A")
        assert not result.is_correct
        assert result.confidence == 0.0
        assert result.feedback == ["Unable to evaluate gesture"]

    def test_unknown_target(self, evaluator, patterns):
        result = evaluator.evaluate(analysis(patterns["A"].signature), "?")
        assert not result.is_correct

    def test_to_dict(self, evaluator, patterns):
        data = evaluator.evaluate(analysis(patterns["Y"].signature), "Y").to_dict()
        assert set(data) == {"is_correct", "confidence", "feedback", "reasoning",
                             "suggested_improvements"}


class TestBuildPrompt:
    """Test suite for the model prompt renderer."""

    def test_contains_frame_facts(self, patterns):
        prompt = build_prompt(analysis(patterns["L"].signature), "l")
        assert 'Target Letter: L' in prompt
        assert "Hand Stability: Stable (100%)" in prompt
        assert "Hand Orientation: up" in prompt
        assert "- Thumb: Extended" in prompt
        assert "- Middle: Closed" in prompt

    def test_without_hand(self):
        prompt = build_prompt(GestureAnalysis(status=FrameStatus.NO_HAND), "A")
        assert "Finger States Analysis" not in prompt
        assert "Detected Letter: None" in prompt
