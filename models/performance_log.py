# performance_log.py
"""
Per-set record of planned vs. actual performance for one session.
Entries are keyed by (phase, exercise_index, set_index) because exercise
indices restart at 0 in every phase. Writes overwrite, nothing is ever removed.
"""

from typing import Any, Dict, List, Optional, Tuple

from models.schemas import (
    PHASE_ORDER,
    ActualPerformance,
    Phase,
    PerformanceSummary,
    WorkoutPlan,
)

LogKey = Tuple[Phase, int, int]


class PerformanceLog:

    def __init__(self):
        self._entries: Dict[LogKey, ActualPerformance] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries

    def record(self, phase: Phase, exercise_index: int, set_index: int, actual: ActualPerformance):
        """Write (or overwrite) the performance of one set"""
        self._entries[(phase, exercise_index, set_index)] = actual

    def get(self, phase: Phase, exercise_index: int, set_index: int) -> Optional[ActualPerformance]:
        return self._entries.get((phase, exercise_index, set_index))

    def sets_for_exercise(self, phase: Phase, exercise_index: int) -> Dict[int, ActualPerformance]:
        """Recorded sets of one exercise, keyed by set index"""
        return {
            set_idx: actual
            for (ph, ex_idx, set_idx), actual in self._entries.items()
            if ph == phase and ex_idx == exercise_index
        }

    def first_open_set(self, phase: Phase, exercise_index: int, target_sets: int) -> int:
        """Index of the first set not yet completed, 0 if every set is done"""
        recorded = self.sets_for_exercise(phase, exercise_index)
        for set_idx in range(target_sets):
            actual = recorded.get(set_idx)
            if actual is None or not actual.completed:
                return set_idx
        return 0

    def completed_sets(self, plan: WorkoutPlan) -> int:
        """
        Count completed sets that fall inside the plan.
        Entries beyond an exercise's target sets are ignored so the
        completion percentage can never exceed 100 through stray writes.
        """
        count = 0
        for (phase, ex_idx, set_idx), actual in self._entries.items():
            exercises = plan.exercises(phase)
            if ex_idx >= len(exercises) or set_idx >= exercises[ex_idx].target_sets:
                continue
            if actual.completed:
                count += 1
        return count

    def completed_exercises(self, plan: WorkoutPlan) -> int:
        """An exercise counts as completed when every one of its target sets is completed"""
        count = 0
        for phase in PHASE_ORDER:
            for ex_idx, exercise in enumerate(plan.exercises(phase)):
                recorded = self.sets_for_exercise(phase, ex_idx)
                if all(
                    recorded.get(set_idx) is not None and recorded[set_idx].completed
                    for set_idx in range(exercise.target_sets)
                ):
                    count += 1
        return count

    def summarize(self, plan: WorkoutPlan, duration_seconds: int) -> PerformanceSummary:
        total_sets = plan.total_sets
        completed_sets = self.completed_sets(plan)
        if total_sets > 0:
            # Round half up, round() would round 12.5 down to 12
            percentage = (200 * completed_sets + total_sets) // (2 * total_sets)
        else:
            percentage = 0

        return PerformanceSummary(
            completed_exercises=self.completed_exercises(plan),
            total_exercises=plan.total_exercises,
            completed_sets=completed_sets,
            total_sets=total_sets,
            completion_percentage=max(0, min(100, percentage)),
            duration_seconds=max(0, int(duration_seconds)),
        )

    def to_records(self) -> List[Dict[str, Any]]:
        """Flat, ordered list of entries for callers that persist a (partial) log"""
        records = []
        for (phase, ex_idx, set_idx), actual in sorted(
            self._entries.items(),
            key=lambda item: (PHASE_ORDER.index(item[0][0]), item[0][1], item[0][2])
        ):
            record = {"phase": phase.value, "exercise_index": ex_idx, "set_index": set_idx}
            record.update(actual.model_dump())
            records.append(record)
        return records
