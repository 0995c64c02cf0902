# session_controller.py
"""
State machine driving one workout through warm-up, main and cool-down.
Tracks the current exercise/set, rest timing and the performance log, and
hands the finished session to the completion pipeline exactly once.
"""

import math
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError

from models.errors import DuplicateSubmissionError, InvalidStateError, ValidationError
from models.feedback_signals import coerce_feedback
from models.performance_log import PerformanceLog
from models.schemas import (
    PHASE_ORDER,
    ActualPerformance,
    BadgeState,
    CompletionResult,
    ExerciseSpec,
    Feedback,
    GamificationProfile,
    Phase,
    SessionSnapshot,
    SessionStatus,
    TimerMode,
    WorkoutPlan,
)
from utils.logging_utils import logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(BaseModel):
    """Mutable state of the active session, owned by SessionController"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    phase: Phase
    exercise_index: int = 0
    set_index: int = 0
    timer_mode: TimerMode = TimerMode.ACTIVE
    remaining_rest_seconds: int = 0
    rest_ends_at_ms: Optional[int] = None       # Absolute end of the running rest on the session clock
    session_started_at: datetime
    performance_log: PerformanceLog = Field(default_factory=PerformanceLog)


class SessionController:
    """
    Drives a single workout session.
    The rest timer is advanced by tick(elapsed_ms) from an external clock; the
    remaining rest is always recomputed from the absolute end time, so late or
    batched ticks land on the right value.
    """

    def __init__(
        self,
        plan: WorkoutPlan,
        user_id: str = "anonymous",
        session_id: Optional[str] = None,
        pipeline=None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.plan = plan
        self.user_id = user_id
        self.session_id = session_id or uuid.uuid4().hex
        self.pipeline = pipeline
        self.clock = clock

        self.status = SessionStatus.NOT_STARTED
        self.state: Optional[SessionState] = None
        self.completed_at: Optional[datetime] = None
        self.result: Optional[CompletionResult] = None
        self._clock_ms = 0  # Session clock, advanced only by tick()

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    @property
    def current_exercise(self) -> Optional[ExerciseSpec]:
        if self.state is None or self.state.phase == Phase.COMPLETE:
            return None
        exercises = self.plan.exercises(self.state.phase)
        if self.state.exercise_index >= len(exercises):
            return None
        return exercises[self.state.exercise_index]

    @property
    def performance_log(self) -> Optional[PerformanceLog]:
        return self.state.performance_log if self.state else None

    def snapshot(self) -> SessionSnapshot:
        """Current session status for clients"""
        completed_sets = self.state.performance_log.completed_sets(self.plan) if self.state else 0
        snapshot = SessionSnapshot(
            session_id=self.session_id,
            status=self.status,
            current_exercise=self.current_exercise,
            completed_sets=completed_sets,
            total_sets=self.plan.total_sets,
        )
        if self.state is not None:
            snapshot.phase = self.state.phase
            snapshot.exercise_index = self.state.exercise_index
            snapshot.set_index = self.state.set_index
            snapshot.timer_mode = self.state.timer_mode
            snapshot.remaining_rest_seconds = self.state.remaining_rest_seconds
        return snapshot

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_in_progress(self, operation: str):
        if self.status != SessionStatus.IN_PROGRESS or self.state is None:
            raise InvalidStateError(f"Cannot {operation}: session is {self.status.value}")

    def _require_timer(self, operation: str, mode: TimerMode):
        self._require_in_progress(operation)
        if self.state.timer_mode != mode:
            raise InvalidStateError(
                f"Cannot {operation} while {self.state.timer_mode.value}, expected {mode.value}"
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> SessionSnapshot:
        """NotStarted -> first exercise of the first non-empty phase"""
        if self.status != SessionStatus.NOT_STARTED:
            raise InvalidStateError(f"Session {self.session_id} already started")
        if self.plan.total_exercises == 0:
            raise ValidationError("Workout plan has no exercises")

        self.state = SessionState(phase=Phase.WARMUP, session_started_at=self.clock())
        self.status = SessionStatus.IN_PROGRESS
        if not self.plan.warmup:
            self._enter_next_phase()

        logger.info(f"Session {self.session_id} started for {self.user_id} in {self.state.phase.value}")
        return self.snapshot()

    def record_set(self, actual: Union[ActualPerformance, Dict[str, Any]]) -> SessionSnapshot:
        """
        Record the performance of the current set and move on.
        Main-phase sets must carry reps, weight is always optional.
        """
        self._require_timer("record a set", TimerMode.ACTIVE)

        if not isinstance(actual, ActualPerformance):
            try:
                actual = ActualPerformance.model_validate(actual)
            except SchemaValidationError as e:
                raise ValidationError(f"Invalid set data: {e}") from e

        state = self.state
        if state.phase == Phase.MAIN and _is_blank(actual.reps):
            raise ValidationError("Main-phase sets need a positive rep count")

        exercise = self.current_exercise
        state.performance_log.record(state.phase, state.exercise_index, state.set_index, actual)
        logger.info(
            f"Recorded {exercise.name} set {state.set_index + 1}/{exercise.target_sets} "
            f"(reps={actual.reps}, weight={actual.weight})"
        )

        if state.set_index + 1 < exercise.target_sets:
            if exercise.rest_seconds > 0:
                self._begin_rest(exercise.rest_seconds)
            else:
                # No rest configured, go straight to the next set
                state.set_index += 1
        else:
            self._advance_exercise()

        return self.snapshot()

    def tick(self, elapsed_ms: int) -> int:
        """
        Advance the session clock by ``elapsed_ms`` while resting.
        Returns the remaining rest in whole seconds, never below 0.
        """
        self._require_timer("tick", TimerMode.RESTING)
        if elapsed_ms < 0:
            raise ValidationError("elapsed_ms must not be negative")

        self._clock_ms += int(elapsed_ms)
        remaining_ms = max(0, self.state.rest_ends_at_ms - self._clock_ms)
        self.state.remaining_rest_seconds = math.ceil(remaining_ms / 1000)

        if self.state.remaining_rest_seconds == 0:
            logger.info("Rest finished")
            self._end_rest()
        return self.state.remaining_rest_seconds

    def skip_rest(self) -> SessionSnapshot:
        self._require_timer("skip rest", TimerMode.RESTING)
        logger.info(f"Rest skipped with {self.state.remaining_rest_seconds}s left")
        self._end_rest()
        return self.snapshot()

    def go_back(self) -> bool:
        """
        Return to the previous exercise of the current phase.
        Never crosses a phase boundary and keeps everything already recorded.
        Returns False when already at the first exercise of the phase.
        """
        self._require_in_progress("go back")
        state = self.state
        if state.exercise_index == 0:
            return False

        if state.timer_mode == TimerMode.RESTING:
            self._cancel_rest()

        state.exercise_index -= 1
        exercise = self.current_exercise
        state.set_index = state.performance_log.first_open_set(
            state.phase, state.exercise_index, exercise.target_sets
        )
        state.timer_mode = TimerMode.ACTIVE
        logger.info(f"Went back to {exercise.name} (set {state.set_index + 1})")
        return True

    def abort(self) -> Dict[str, Any]:
        """
        Stop the session without running the completion pipeline.
        The session state is dropped; the returned partial log is the only
        copy left, callers that want to keep it must persist it themselves.
        """
        if self.status in (SessionStatus.FINISHED, SessionStatus.ABORTED):
            raise InvalidStateError(f"Cannot abort: session is {self.status.value}")

        records = self.state.performance_log.to_records() if self.state else []
        partial = {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "aborted_at": self.clock().isoformat(),
            "phase": self.state.phase.value if self.state else None,
            "records": records,
        }

        self.state = None
        self.status = SessionStatus.ABORTED
        logger.info(f"Session {self.session_id} aborted with {len(records)} recorded sets")
        return partial

    def finish(
        self,
        profile: GamificationProfile,
        feedback: Union[Feedback, Dict[str, Any]],
        badge_states: Optional[Iterable[BadgeState]] = None,
        today: Optional[date] = None,
    ) -> CompletionResult:
        """
        Summarize the session and run the completion pipeline once.
        Calling finish() again returns the first result unchanged.
        """
        if self.status == SessionStatus.FINISHED:
            logger.warning(f"finish() called again for session {self.session_id}, returning first result")
            return self.result
        if self.status != SessionStatus.COMPLETE:
            raise InvalidStateError(f"Cannot finish: session is {self.status.value}")

        feedback = coerce_feedback(feedback)
        duration = (self.completed_at - self.state.session_started_at).total_seconds()
        summary = self.state.performance_log.summarize(self.plan, duration)
        today = today or self.completed_at.date()

        pipeline = self.pipeline
        if pipeline is None:
            # Imported here to avoid a models -> services import cycle
            from services.completion_service import completion_pipeline
            pipeline = completion_pipeline

        try:
            result = pipeline.complete(
                session_id=self.session_id,
                today=today,
                summary=summary,
                profile=profile,
                feedback=feedback,
                badge_states=badge_states,
            )
        except DuplicateSubmissionError as e:
            logger.warning(f"Duplicate completion for {e.key}, keeping first result")
            result = e.previous_result

        self.result = result
        self.status = SessionStatus.FINISHED
        return result

    # ------------------------------------------------------------------
    # Internal movement
    # ------------------------------------------------------------------

    def _begin_rest(self, seconds: int):
        self.state.timer_mode = TimerMode.RESTING
        self.state.rest_ends_at_ms = self._clock_ms + seconds * 1000
        self.state.remaining_rest_seconds = seconds
        logger.info(f"Resting for {seconds}s")

    def _cancel_rest(self):
        self.state.timer_mode = TimerMode.ACTIVE
        self.state.rest_ends_at_ms = None
        self.state.remaining_rest_seconds = 0

    def _end_rest(self):
        self._cancel_rest()
        self.state.set_index += 1

    def _advance_exercise(self):
        """Next exercise in this phase, otherwise the next phase that has exercises"""
        state = self.state
        if state.exercise_index + 1 < len(self.plan.exercises(state.phase)):
            state.exercise_index += 1
            state.set_index = 0
            state.timer_mode = TimerMode.ACTIVE
            logger.info(f"Next exercise: {self.current_exercise.name}")
        else:
            self._enter_next_phase()

    def _enter_next_phase(self):
        state = self.state
        position = PHASE_ORDER.index(state.phase) if state.phase in PHASE_ORDER else len(PHASE_ORDER)

        for phase in PHASE_ORDER[position + 1:]:
            if self.plan.exercises(phase):
                state.phase = phase
                state.exercise_index = 0
                state.set_index = 0
                state.timer_mode = TimerMode.ACTIVE
                logger.info(f"Entering {phase.value} phase")
                return

        state.phase = Phase.COMPLETE
        state.exercise_index = 0
        state.set_index = 0
        state.timer_mode = TimerMode.IDLE
        self.status = SessionStatus.COMPLETE
        self.completed_at = self.clock()
        logger.info(f"Session {self.session_id} complete, waiting for finish()")


def _is_blank(reps) -> bool:
    """Missing, empty text or a rep count of zero or less"""
    if reps is None:
        return True
    if isinstance(reps, str):
        return not reps.strip()
    return reps <= 0
