"""Tests for the session state machine."""

import pytest

from models.errors import InvalidStateError, ValidationError
from models.schemas import (
    ExerciseSpec,
    Feedback,
    GamificationProfile,
    Phase,
    SessionStatus,
    TimerMode,
    WorkoutPlan,
)
from models.session_controller import SessionController


@pytest.fixture
def controller(plan, pipeline, clock):
    return SessionController(plan, user_id="ana", session_id="s-1", pipeline=pipeline, clock=clock)


def _to_main(controller):
    controller.start()
    controller.record_set({"reps": 10})
    controller.record_set({"reps": 10})
    assert controller.state.phase == Phase.MAIN


class TestStart:
    def test_start_enters_first_warmup_exercise(self, controller, clock):
        snapshot = controller.start()

        assert snapshot.status == SessionStatus.IN_PROGRESS
        assert snapshot.phase == Phase.WARMUP
        assert (snapshot.exercise_index, snapshot.set_index) == (0, 0)
        assert snapshot.timer_mode == TimerMode.ACTIVE
        assert controller.state.session_started_at == clock.now

    def test_start_twice_is_rejected(self, controller):
        controller.start()
        with pytest.raises(InvalidStateError):
            controller.start()

    def test_empty_warmup_is_skipped(self, plan, pipeline):
        no_warmup = plan.model_copy(update={"warmup": []})
        controller = SessionController(no_warmup, pipeline=pipeline)
        controller.start()
        assert controller.state.phase == Phase.MAIN

    def test_plan_without_exercises_is_rejected(self, pipeline):
        controller = SessionController(WorkoutPlan(), pipeline=pipeline)
        with pytest.raises(ValidationError):
            controller.start()

    def test_operations_before_start_are_rejected(self, controller):
        with pytest.raises(InvalidStateError):
            controller.record_set({"reps": 5})
        with pytest.raises(InvalidStateError):
            controller.go_back()


class TestRecordSet:
    def test_main_phase_requires_reps(self, controller):
        _to_main(controller)
        with pytest.raises(ValidationError):
            controller.record_set({"weight": 10})
        with pytest.raises(ValidationError):
            controller.record_set({"reps": "  "})

        controller.record_set({"reps": 10})
        logged = controller.performance_log.get(Phase.MAIN, 0, 0)
        assert logged.reps == 10
        assert logged.completed is True

    @pytest.mark.parametrize("reps", [0, -3])
    def test_main_phase_rejects_non_positive_reps(self, controller, reps):
        _to_main(controller)
        with pytest.raises(ValidationError):
            controller.record_set({"reps": reps})

        assert controller.performance_log.get(Phase.MAIN, 0, 0) is None
        assert controller.state.set_index == 0

    def test_weight_is_optional(self, controller):
        _to_main(controller)
        controller.record_set({"reps": 8, "weight": 20.0})
        assert controller.performance_log.get(Phase.MAIN, 0, 0).weight == 20.0

    def test_warmup_sets_do_not_need_reps(self, controller):
        controller.start()
        controller.record_set({})
        assert controller.performance_log.get(Phase.WARMUP, 0, 0) is not None

    def test_zero_rest_passes_straight_to_next_set(self, controller):
        controller.start()
        snapshot = controller.record_set({"reps": 10})

        assert snapshot.timer_mode == TimerMode.ACTIVE
        assert snapshot.set_index == 1
        assert snapshot.remaining_rest_seconds == 0

    def test_remaining_sets_start_rest(self, controller):
        _to_main(controller)
        snapshot = controller.record_set({"reps": 10})

        assert snapshot.timer_mode == TimerMode.RESTING
        assert snapshot.remaining_rest_seconds == 60

    def test_record_set_while_resting_is_rejected(self, controller):
        _to_main(controller)
        controller.record_set({"reps": 10})
        with pytest.raises(InvalidStateError):
            controller.record_set({"reps": 10})

    def test_last_set_advances_to_next_exercise(self, controller):
        _to_main(controller)
        controller.record_set({"reps": 10})
        controller.skip_rest()
        snapshot = controller.record_set({"reps": 10})

        assert snapshot.phase == Phase.MAIN
        assert snapshot.exercise_index == 1
        assert snapshot.set_index == 0
        assert snapshot.current_exercise.name == "Push-ups"

    def test_phases_run_in_order_until_complete(self, controller):
        _to_main(controller)
        controller.record_set({"reps": 10})
        controller.skip_rest()
        controller.record_set({"reps": 10})
        snapshot = controller.record_set({"reps": 10})
        assert snapshot.phase == Phase.COOLDOWN

        snapshot = controller.record_set({"reps": "30 seconds"})
        assert snapshot.phase == Phase.COMPLETE
        assert snapshot.status == SessionStatus.COMPLETE
        assert snapshot.timer_mode == TimerMode.IDLE


class TestRestTimer:
    def _start_rest(self, controller):
        _to_main(controller)
        controller.record_set({"reps": 10})
        assert controller.state.timer_mode == TimerMode.RESTING

    def test_late_tick_resolves_to_zero_and_advances(self, controller):
        self._start_rest(controller)

        remaining = controller.tick(90_000)

        assert remaining == 0
        assert controller.state.remaining_rest_seconds == 0
        assert controller.state.timer_mode == TimerMode.ACTIVE
        assert controller.state.set_index == 1

    def test_batched_ticks_follow_absolute_end(self, controller):
        self._start_rest(controller)

        assert controller.tick(20_000) == 40
        assert controller.tick(0) == 40
        assert controller.tick(19_500) == 21
        assert controller.tick(500) == 20
        assert controller.tick(25_000) == 0
        assert controller.state.timer_mode == TimerMode.ACTIVE

    def test_tick_while_active_is_rejected(self, controller):
        controller.start()
        with pytest.raises(InvalidStateError):
            controller.tick(1000)

    def test_negative_tick_is_rejected(self, controller):
        self._start_rest(controller)
        with pytest.raises(ValidationError):
            controller.tick(-1)

    def test_skip_rest_discards_countdown(self, controller):
        self._start_rest(controller)
        controller.tick(10_000)

        snapshot = controller.skip_rest()

        assert snapshot.timer_mode == TimerMode.ACTIVE
        assert snapshot.set_index == 1
        assert snapshot.remaining_rest_seconds == 0

    def test_skip_rest_while_active_is_rejected(self, controller):
        controller.start()
        with pytest.raises(InvalidStateError):
            controller.skip_rest()


class TestGoBack:
    def test_go_back_keeps_recorded_sets(self, controller):
        _to_main(controller)
        controller.record_set({"reps": 12})
        controller.skip_rest()
        controller.record_set({"reps": 11})
        assert controller.state.exercise_index == 1

        assert controller.go_back() is True

        assert controller.state.exercise_index == 0
        # Both squat sets are done, so the revisit starts at the first set
        assert controller.state.set_index == 0
        assert controller.performance_log.get(Phase.MAIN, 0, 0).reps == 12
        assert controller.performance_log.get(Phase.MAIN, 0, 1).reps == 11

    def test_go_back_never_crosses_phase_boundary(self, controller):
        _to_main(controller)
        assert controller.go_back() is False
        assert controller.state.phase == Phase.MAIN
        assert controller.state.exercise_index == 0

    def test_go_back_cancels_running_rest(self, pipeline):
        plan = WorkoutPlan(main=[
            ExerciseSpec(name="Row", target_sets=1, target_reps=10, rest_seconds=0, target_muscles=["back"]),
            ExerciseSpec(name="Press", target_sets=3, target_reps=10, rest_seconds=90, target_muscles=["chest"]),
        ])
        controller = SessionController(plan, pipeline=pipeline)
        controller.start()
        controller.record_set({"reps": 10})
        controller.record_set({"reps": 10})
        assert controller.state.timer_mode == TimerMode.RESTING

        controller.go_back()

        assert controller.state.timer_mode == TimerMode.ACTIVE
        assert controller.state.exercise_index == 0
        assert controller.state.remaining_rest_seconds == 0


class TestAbort:
    def test_abort_returns_partial_log_and_drops_state(self, controller):
        _to_main(controller)
        controller.record_set({"reps": 10, "weight": 16})

        partial = controller.abort()

        assert controller.status == SessionStatus.ABORTED
        assert controller.state is None
        assert partial["session_id"] == "s-1"
        assert len(partial["records"]) == 3
        assert partial["records"][-1]["phase"] == "main"
        assert partial["records"][-1]["weight"] == 16

    def test_abort_while_resting(self, controller):
        _to_main(controller)
        controller.record_set({"reps": 10})
        controller.abort()
        assert controller.status == SessionStatus.ABORTED

    def test_abort_twice_is_rejected(self, controller):
        controller.start()
        controller.abort()
        with pytest.raises(InvalidStateError):
            controller.abort()


class TestFinish:
    def test_finish_before_complete_is_rejected(self, controller):
        controller.start()
        with pytest.raises(InvalidStateError):
            controller.finish(GamificationProfile(user_id="ana"), Feedback(difficulty=3, enjoyment=3, energy=3))

    def test_finish_runs_pipeline(self, controller, clock, run_to_completion):
        controller.start()
        clock.advance(minutes=50)
        run_to_completion(controller)

        profile = GamificationProfile(user_id="ana", xp=100)
        result = controller.finish(profile, {"difficulty": 4, "enjoyment": 5, "energy": 4})

        assert controller.status == SessionStatus.FINISHED
        assert result.summary.completion_percentage == 100
        assert result.summary.duration_seconds == 50 * 60
        # 50 base + 25 full completion + 10 difficulty + 10 duration
        assert result.reward_result.xp_gained == 95
        assert result.profile.total_workouts == 1
        assert result.profile.streak == 1
        assert [b.id for b in result.new_badges] == ["first_workout"]

    def test_finish_twice_returns_first_result(self, controller, run_to_completion):
        controller.start()
        run_to_completion(controller)
        profile = GamificationProfile(user_id="ana", xp=100)
        feedback = Feedback(difficulty=3, enjoyment=3, energy=3)

        first = controller.finish(profile, feedback)
        second = controller.finish(profile, feedback)

        assert second == first
        assert second.reward_result.new_xp == first.reward_result.new_xp

    def test_duplicate_key_from_new_controller_is_a_no_op(self, plan, pipeline, clock, run_to_completion):
        profile = GamificationProfile(user_id="ana")
        feedback = Feedback(difficulty=3, enjoyment=3, energy=3)

        first_controller = SessionController(plan, session_id="retry", pipeline=pipeline, clock=clock)
        first_controller.start()
        run_to_completion(first_controller)
        first = first_controller.finish(profile, feedback)

        retry = SessionController(plan, session_id="retry", pipeline=pipeline, clock=clock)
        retry.start()
        run_to_completion(retry)
        second = retry.finish(first.profile, feedback)

        assert second == first
        assert second.profile.xp == first.profile.xp

    def test_invalid_feedback_is_rejected_before_pipeline(self, controller, pipeline, run_to_completion):
        controller.start()
        run_to_completion(controller)
        with pytest.raises(ValidationError):
            controller.finish(GamificationProfile(), {"difficulty": 0, "enjoyment": 3, "energy": 3})
        assert controller.status == SessionStatus.COMPLETE
        assert pipeline.lookup("s-1", controller.completed_at.date()) is None

    def test_skipped_sets_lower_completion(self, controller):
        controller.start()
        controller.record_set({"completed": False})
        controller.record_set({"reps": 10})
        controller.record_set({"reps": 10})
        controller.skip_rest()
        controller.record_set({"reps": 10, "completed": False})
        controller.record_set({"reps": 10})
        controller.record_set({"reps": 10})

        result = controller.finish(GamificationProfile(), Feedback(difficulty=3, enjoyment=3, energy=3))

        assert result.summary.completed_sets == 4
        assert result.summary.total_sets == 6
        assert result.summary.completion_percentage == 67
        assert result.streak_result.current_streak == 0
