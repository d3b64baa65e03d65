"""
Gesture evaluation with coaching feedback.

A deterministic local heuristic that grades a frame's analysis against a
target letter and explains the verdict. It runs synchronously; nothing
here calls an external model. ``build_prompt`` renders the same facts as
text so a hosted model could be swapped in behind the same result type.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..core.types import FINGER_LABELS, GestureAnalysis, HandOrientation
from .patterns import PatternTable, get_patterns

logger = logging.getLogger(__name__)

CORRECT_THRESHOLD = 0.65

_GOOD_ORIENTATIONS = (HandOrientation.UP, HandOrientation.RIGHT)


@dataclass(frozen=True)
class EvaluationResult:
    """Verdict and coaching text for one attempt."""
    is_correct: bool
    confidence: float
    feedback: List[str] = field(default_factory=list)
    reasoning: str = ""
    suggested_improvements: List[str] = field(default_factory=list)

    @staticmethod
    def failed(reason: str) -> "EvaluationResult":
        return EvaluationResult(
            is_correct=False,
            confidence=0.0,
            feedback=["Unable to evaluate gesture"],
            reasoning=reason,
            suggested_improvements=["Try again with better hand positioning"],
        )

    def to_dict(self) -> dict:
        return {
            "is_correct": self.is_correct,
            "confidence": round(self.confidence, 3),
            "feedback": list(self.feedback),
            "reasoning": self.reasoning,
            "suggested_improvements": list(self.suggested_improvements),
        }


class GestureEvaluator:
    """Grades an analysis against a target letter.

    Score = finger match fraction, with a bonus for near-complete matches,
    plus bonuses for a stable hand and a camera-facing orientation, capped
    at 1.0. The attempt counts as correct above ``CORRECT_THRESHOLD``.
    """

    def __init__(self, patterns: Optional[PatternTable] = None,
                 threshold: float = CORRECT_THRESHOLD):
        self.patterns = patterns if patterns is not None else get_patterns()
        self.threshold = threshold

    def evaluate(self, analysis: GestureAnalysis, target: str) -> EvaluationResult:
        if analysis.finger_states is None:
            return EvaluationResult.failed("No hand was detected in this frame.")
        target = target.upper()
        if target not in self.patterns:
            return EvaluationResult.failed(f"Unknown target letter {target!r}.")

        pattern = self.patterns[target]
        suggestions: List[str] = []
        improvements: List[str] = []
        reasoning = [f"Analyzing hand gesture for letter {target}."]

        matches = 0
        for i, (finger, state) in enumerate(analysis.finger_states.items()):
            label = FINGER_LABELS[finger]
            expected = pattern.expects(finger)
            if state.extended == expected:
                matches += 1
                reasoning.append(
                    f"{label} is correctly {'extended' if expected else 'closed'}.")
                continue
            if expected:
                suggestions.append(f"Extend your {label} finger")
                improvements.append(pattern.tips[i] if i < len(pattern.tips)
                                    else f"Make sure your {label} finger is pointing up")
            else:
                suggestions.append(f"Close your {label} finger")
                improvements.append(f"Bend your {label} finger down")
            reasoning.append(
                f"{label} should be {'extended' if expected else 'closed'} "
                f"but is {'extended' if state.extended else 'closed'}.")

        accuracy = matches / len(pattern.signature)
        if accuracy >= 0.8:
            reasoning.append("Overall, this is an excellent attempt at the sign.")
        elif accuracy >= 0.6:
            reasoning.append("This is close but needs some adjustments.")
        else:
            reasoning.append("This needs significant improvement to match the target sign.")

        match_score = self._match_score(matches, len(pattern.signature))
        stability_bonus = self._stability_bonus(analysis)
        orientation_bonus = 0.0

        orientation = analysis.hand_orientation
        if orientation is not None:
            if orientation in _GOOD_ORIENTATIONS:
                orientation_bonus = 0.05
                reasoning.append("Hand orientation looks good.")
            else:
                suggestions.append("Rotate your hand to face the camera")
                improvements.append("Make sure your palm is visible to the camera")

        stability = analysis.stability
        if stability.is_stable:
            kind = "very stable" if stability.score > 0.8 else "stable"
            reasoning.append(f"Hand is {kind} ({round(stability.score * 100)}% stability).")
        else:
            reasoning.append("Hand movement detected - try to hold still.")

        final = min(match_score + stability_bonus + orientation_bonus, 1.0)
        logger.debug("Evaluated %s: match=%.2f stability=+%.2f orientation=+%.2f -> %.2f",
                     target, match_score, stability_bonus, orientation_bonus, final)

        return EvaluationResult(
            is_correct=final > self.threshold,
            confidence=final,
            feedback=suggestions,
            reasoning=" ".join(reasoning),
            suggested_improvements=improvements,
        )

    @staticmethod
    def _match_score(matches: int, total: int) -> float:
        base = matches / total
        if matches >= 4:
            return min(base + 0.25, 1.0)
        if matches >= 3:
            return min(base + 0.15, 1.0)
        return base

    @staticmethod
    def _stability_bonus(analysis: GestureAnalysis) -> float:
        stability = analysis.stability
        if not stability.is_stable:
            return 0.0
        if stability.score > 0.8:
            return 0.15
        if stability.score > 0.6:
            return 0.10
        return 0.0


def build_prompt(analysis: GestureAnalysis, target: str) -> str:
    """Render an analysis as an evaluation request for a language model."""
    lines = [
        "You are an expert in American Sign Language (ASL) and computer vision analysis.",
        "",
        f'Task: Evaluate if a hand gesture matches the target ASL letter "{target.upper()}".',
        "",
        f"Target Letter: {target.upper()}",
        f"Detected Letter: {analysis.detected_letter or 'None'}",
        f"Detection Confidence: {analysis.confidence:.2f}",
        f"Hand Stability: {'Stable' if analysis.stability.is_stable else 'Unstable'} "
        f"({round(analysis.stability.score * 100)}%)",
        f"Hand Orientation: "
        f"{analysis.hand_orientation.value if analysis.hand_orientation else 'Unknown'}",
    ]
    if analysis.finger_states is not None:
        lines.append("")
        lines.append("Finger States Analysis:")
        for finger, state in analysis.finger_states.items():
            lines.append(f"- {FINGER_LABELS[finger]}: "
                         f"{'Extended' if state.extended else 'Closed'} "
                         f"(angle: {state.angle:.2f})")
    lines.extend([
        "",
        "Respond in JSON format:",
        '{"isCorrect": boolean, "confidence": number (0-1), "feedback": [string], '
        '"reasoning": string, "suggestedImprovements": [string]}',
    ])
    return "\n".join(lines)
