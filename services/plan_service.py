from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError as SchemaValidationError

from config import config
from models.errors import ExternalServiceError
from models.schemas import (
    PHASE_ORDER,
    ExerciseSpec,
    FeedbackSignals,
    GenerationRequest,
    WorkoutPlan,
)
from utils.logging_utils import logger

# Generator callables receive a GenerationRequest and return a plan (model or raw dict)
PlanGenerator = Callable[[GenerationRequest], Union[WorkoutPlan, Dict[str, Any]]]


class PlanService:
    """
    Gatekeeper between the external workout generator and the session engine.
    Validates generated plans and substitutes a fixed fallback plan when
    generation fails, so a user always gets a workout.
    """

    @staticmethod
    def build_request(
        fitness_level: str = "beginner",
        goals: Optional[List[str]] = None,
        equipment: Optional[List[str]] = None,
        duration_minutes: int = 30,
        intensity_preference: str = "moderate",
        recent_plans: Optional[List[WorkoutPlan]] = None,
        prior_feedback_signals: Optional[FeedbackSignals] = None,
    ) -> GenerationRequest:
        """Collect what the generator needs, including recent exercise names for variety"""
        recent_names = []
        for plan in recent_plans or []:
            for exercise in plan.main:
                if exercise.name not in recent_names:
                    recent_names.append(exercise.name)

        return GenerationRequest(
            fitness_level=fitness_level,
            goals=goals or [],
            equipment=equipment or ["bodyweight"],
            duration_minutes=duration_minutes,
            intensity_preference=intensity_preference,
            recent_exercise_names=recent_names,
            prior_feedback_signals=prior_feedback_signals,
        )

    @staticmethod
    def validate_plan(plan: WorkoutPlan) -> List[str]:
        """
        Return the list of problems found in a plan, empty when it is usable.
        Rest of 0 seconds is allowed (no rest screen), any other rest must be in bounds.
        """
        problems = []
        if not plan.main:
            problems.append("main block has no exercises")

        for phase in PHASE_ORDER:
            for index, exercise in enumerate(plan.exercises(phase)):
                where = f"{phase.value}[{index}]"
                if not exercise.name.strip():
                    problems.append(f"{where}: missing name")
                if not exercise.target_muscles:
                    problems.append(f"{where}: missing target muscles")
                if not config.min_sets <= exercise.target_sets <= config.max_sets:
                    problems.append(f"{where}: sets {exercise.target_sets} out of range")
                if isinstance(exercise.target_reps, int):
                    if not config.min_reps <= exercise.target_reps <= config.max_reps:
                        problems.append(f"{where}: reps {exercise.target_reps} out of range")
                elif not exercise.target_reps.strip():
                    problems.append(f"{where}: missing reps")
                if exercise.rest_seconds and not (
                    config.min_rest_seconds <= exercise.rest_seconds <= config.max_rest_seconds
                ):
                    problems.append(f"{where}: rest {exercise.rest_seconds}s out of range")

        if not config.min_duration_minutes <= plan.estimated_duration <= config.max_duration_minutes:
            problems.append(f"estimated duration {plan.estimated_duration} min out of range")

        return problems

    def ensure_valid(self, plan: Union[WorkoutPlan, Dict[str, Any]]) -> WorkoutPlan:
        """Parse and validate a generated plan, raising ExternalServiceError when unusable"""
        if not isinstance(plan, WorkoutPlan):
            try:
                plan = WorkoutPlan.model_validate(plan)
            except SchemaValidationError as e:
                raise ExternalServiceError(f"Generated plan is malformed: {e}") from e

        problems = self.validate_plan(plan)
        if problems:
            raise ExternalServiceError(f"Generated plan failed validation: {'; '.join(problems)}")
        return plan

    @staticmethod
    def fallback_plan(duration_minutes: int = 30) -> WorkoutPlan:
        """Beginner bodyweight routine used whenever generation fails"""
        duration = max(config.min_duration_minutes, min(config.max_duration_minutes, duration_minutes))
        return WorkoutPlan(
            warmup=[
                ExerciseSpec(name="Arm Circles", target_sets=1, target_reps=10, rest_seconds=0,
                             target_muscles=["shoulders"]),
                ExerciseSpec(name="Leg Swings", target_sets=1, target_reps=10, rest_seconds=0,
                             target_muscles=["hips"]),
            ],
            main=[
                ExerciseSpec(name="Bodyweight Squats", target_sets=3, target_reps=10, rest_seconds=60,
                             target_muscles=["quadriceps", "glutes"],
                             instructions="Keep your back straight, lower until thighs are parallel to ground"),
                ExerciseSpec(name="Push-ups (knee variation if needed)", target_sets=3, target_reps=8,
                             rest_seconds=60, target_muscles=["chest", "triceps", "shoulders"],
                             instructions="Lower chest to ground, push up explosively"),
                ExerciseSpec(name="Plank", target_sets=3, target_reps="30 seconds", rest_seconds=45,
                             target_muscles=["core"],
                             instructions="Keep body straight from head to heels"),
            ],
            cooldown=[
                ExerciseSpec(name="Child's Pose", target_sets=1, target_reps="30 seconds", rest_seconds=0,
                             target_muscles=["back"]),
                ExerciseSpec(name="Hamstring Stretch", target_sets=1, target_reps="30 seconds", rest_seconds=0,
                             target_muscles=["hamstrings"]),
            ],
            estimated_duration=duration,
            workout_type="strength",
            difficulty="beginner",
            focus=["full_body"],
            ai_generated=False,
        )

    def resolve_plan(self, generator: Optional[PlanGenerator], request: GenerationRequest) -> WorkoutPlan:
        """
        Ask the generator for a plan and fall back to the default routine on any failure.
        Generation problems are logged, never raised to the caller.
        """
        if generator is None:
            logger.warning("No workout generator configured, using fallback plan")
            return self.fallback_plan(request.duration_minutes)

        try:
            generated = generator(request)
            return self.ensure_valid(generated)
        except ExternalServiceError as e:
            logger.error(f"Workout generation rejected: {e}")
        except Exception as e:
            logger.error(f"Workout generator failed: {e}")

        logger.info("Using fallback workout plan")
        return self.fallback_plan(request.duration_minutes)

# Global service instance
plan_service = PlanService()
