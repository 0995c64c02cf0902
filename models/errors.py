# errors.py
"""
Error taxonomy for the workout session engine.
Only ExternalServiceError and DuplicateSubmissionError are expected at runtime;
both are handled inside the engine. The others are contract violations by the caller.
"""

from typing import Any, Optional


class WorkoutEngineError(Exception):
    """Base class for every error raised by the engine"""


class ValidationError(WorkoutEngineError):
    """Malformed input, e.g. a main-phase set without reps or a rating outside 1-5"""


class InvalidStateError(WorkoutEngineError):
    """Operation attempted from an incompatible session state"""


class DuplicateSubmissionError(WorkoutEngineError):
    """
    The completion pipeline already ran for this (session_id, date) key.
    Carries the first result so callers can hand it back unchanged.
    """

    def __init__(self, key, previous_result: Optional[Any] = None):
        super().__init__(f"Completion already recorded for {key}")
        self.key = key
        self.previous_result = previous_result


class ExternalServiceError(WorkoutEngineError):
    """Workout generation failed or returned a plan that failed validation"""
