# feedback_signals.py
"""
Maps subjective post-workout feedback to the adjustment signals consumed by
the workout generator. The three signals are derived independently.
"""

from typing import Any, Dict, Union

from pydantic import ValidationError as SchemaValidationError

from models.errors import ValidationError
from models.schemas import (
    DifficultyAdjustment,
    Feedback,
    FeedbackSignals,
    IntensityPreference,
    QuickReaction,
    VarietyPreference,
)


def coerce_feedback(data: Union[Feedback, Dict[str, Any]]) -> Feedback:
    """Accept a Feedback or a plain mapping; ratings outside 1-5 raise ValidationError"""
    if isinstance(data, Feedback):
        return data
    try:
        return Feedback.model_validate(data)
    except SchemaValidationError as e:
        raise ValidationError(f"Invalid feedback: {e}") from e


def difficulty_adjustment(feedback: Feedback) -> DifficultyAdjustment:
    if feedback.difficulty <= 2 or feedback.quick_reaction == QuickReaction.TOO_EASY:
        return DifficultyAdjustment.INCREASE   # Next workout should be harder
    if feedback.difficulty >= 4 or feedback.quick_reaction == QuickReaction.TOO_HARD:
        return DifficultyAdjustment.DECREASE
    return DifficultyAdjustment.MAINTAIN


def variety_preference(feedback: Feedback) -> VarietyPreference:
    if feedback.enjoyment <= 2 or feedback.quick_reaction == QuickReaction.HATED_IT:
        return VarietyPreference.HIGH_VARIETY
    if feedback.enjoyment >= 4 or feedback.quick_reaction == QuickReaction.LOVED_IT:
        return VarietyPreference.SIMILAR_STYLE
    return VarietyPreference.MODERATE_VARIETY


def intensity_preference(feedback: Feedback) -> IntensityPreference:
    if feedback.energy >= 4 and feedback.difficulty <= 3:
        return IntensityPreference.INCREASE_INTENSITY  # Energy left over
    if feedback.energy <= 2 and feedback.difficulty >= 3:
        return IntensityPreference.DECREASE_INTENSITY  # Drained
    return IntensityPreference.MAINTAIN_INTENSITY


def derive_feedback_signals(feedback: Union[Feedback, Dict[str, Any]]) -> FeedbackSignals:
    feedback = coerce_feedback(feedback)
    return FeedbackSignals(
        difficulty_adjustment=difficulty_adjustment(feedback),
        variety_preference=variety_preference(feedback),
        intensity_preference=intensity_preference(feedback),
    )
