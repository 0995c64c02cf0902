"""Shared fixtures for the workout engine tests."""

from datetime import datetime, timedelta, timezone

import pytest

from models.schemas import ExerciseSpec, SessionStatus, TimerMode, WorkoutPlan
from services.completion_service import CompletionPipeline
from services.notification_service import NotificationService


class FakeClock:
    """Wall clock that only moves when the test says so"""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 5, 18, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def plan():
    # 6 sets in total: 2 warm-up, 3 main, 1 cool-down
    return WorkoutPlan(
        warmup=[
            ExerciseSpec(name="Arm Circles", target_sets=2, target_reps=10, rest_seconds=0,
                         target_muscles=["shoulders"]),
        ],
        main=[
            ExerciseSpec(name="Goblet Squat", target_sets=2, target_reps=12, rest_seconds=60,
                         target_muscles=["quadriceps", "glutes"]),
            ExerciseSpec(name="Push-ups", target_sets=1, target_reps=10, rest_seconds=30,
                         target_muscles=["chest"]),
        ],
        cooldown=[
            ExerciseSpec(name="Hamstring Stretch", target_sets=1, target_reps="30 seconds", rest_seconds=0,
                         target_muscles=["hamstrings"]),
        ],
        estimated_duration=30,
    )


@pytest.fixture
def notifier():
    return NotificationService()


@pytest.fixture
def pipeline(notifier, clock):
    return CompletionPipeline(notifier=notifier, clock=clock)


def _run_to_completion(controller, reps=10):
    """Record every remaining set, skipping rests, until the session is complete"""
    while controller.status == SessionStatus.IN_PROGRESS:
        if controller.state.timer_mode == TimerMode.RESTING:
            controller.skip_rest()
        else:
            controller.record_set({"reps": reps})


@pytest.fixture
def run_to_completion():
    return _run_to_completion
