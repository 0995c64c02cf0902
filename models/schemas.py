# schemas.py
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Phase(str, Enum):
    WARMUP = "warmup"
    MAIN = "main"
    COOLDOWN = "cooldown"
    COMPLETE = "complete"  # Past the last cooldown exercise


# Fixed execution order of the plan blocks
PHASE_ORDER = [Phase.WARMUP, Phase.MAIN, Phase.COOLDOWN]


class TimerMode(str, Enum):
    ACTIVE = "active"
    RESTING = "resting"
    IDLE = "idle"


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"      # All phases done, waiting for finish()
    FINISHED = "finished"      # Completion pipeline applied
    ABORTED = "aborted"


class QuickReaction(str, Enum):
    TOO_EASY = "too_easy"
    PERFECT = "perfect"
    TOO_HARD = "too_hard"
    LOVED_IT = "loved_it"
    HATED_IT = "hated_it"


class DifficultyAdjustment(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    MAINTAIN = "maintain"


class VarietyPreference(str, Enum):
    HIGH_VARIETY = "high_variety"
    SIMILAR_STYLE = "similar_style"
    MODERATE_VARIETY = "moderate_variety"


class IntensityPreference(str, Enum):
    INCREASE_INTENSITY = "increase_intensity"
    DECREASE_INTENSITY = "decrease_intensity"
    MAINTAIN_INTENSITY = "maintain_intensity"


class ExerciseSpec(BaseModel):
    """One planned exercise of a workout block"""
    model_config = ConfigDict(frozen=True)

    name: str
    target_sets: int
    target_reps: Union[int, str]                # Numeric reps or text such as "30 seconds" / "AMRAP"
    rest_seconds: int = 0                       # Rest between sets, 0 means no rest screen
    target_muscles: List[str] = Field(default_factory=list)
    instructions: Optional[str] = None
    modifications: Optional[List[str]] = None
    weight: Optional[Union[float, str]] = None  # Suggested load or "bodyweight"


class WorkoutPlan(BaseModel):
    """
    Generated workout consumed as data. Frozen so a running session can hold
    a reference to it instead of a copy.
    """
    model_config = ConfigDict(frozen=True)

    warmup: List[ExerciseSpec] = Field(default_factory=list)
    main: List[ExerciseSpec] = Field(default_factory=list)
    cooldown: List[ExerciseSpec] = Field(default_factory=list)
    estimated_duration: int = 30                # minutes
    workout_type: str = "strength"
    difficulty: str = "beginner"
    focus: List[str] = Field(default_factory=list)
    ai_generated: bool = False

    def exercises(self, phase: Phase) -> List[ExerciseSpec]:
        if phase == Phase.COMPLETE:
            return []
        return getattr(self, phase.value)

    @property
    def total_exercises(self) -> int:
        return sum(len(self.exercises(phase)) for phase in PHASE_ORDER)

    @property
    def total_sets(self) -> int:
        return sum(ex.target_sets for phase in PHASE_ORDER for ex in self.exercises(phase))


class ActualPerformance(BaseModel):
    """What the user actually did for one set"""
    weight: Optional[float] = None
    reps: Optional[Union[int, str]] = None
    completed: bool = True
    notes: Optional[str] = None


class PerformanceSummary(BaseModel):
    completed_exercises: int
    total_exercises: int
    completed_sets: int
    total_sets: int
    completion_percentage: int      # round(100 * completed_sets / total_sets), clamped to [0, 100]
    duration_seconds: int

    @property
    def duration_minutes(self) -> float:
        return self.duration_seconds / 60


class Feedback(BaseModel):
    """Post-workout subjective ratings, each on a 1-5 scale"""
    difficulty: int = Field(ge=1, le=5)
    enjoyment: int = Field(ge=1, le=5)
    energy: int = Field(ge=1, le=5)
    notes: Optional[str] = None
    quick_reaction: Optional[QuickReaction] = None


class FeedbackSignals(BaseModel):
    """Discrete adjustment hints handed to the external workout generator"""
    difficulty_adjustment: DifficultyAdjustment
    variety_preference: VarietyPreference
    intensity_preference: IntensityPreference


class GamificationProfile(BaseModel):
    user_id: str = "anonymous"
    streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_workout_date: Optional[date] = None
    total_workouts: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_longest_streak(self):
        if self.longest_streak < self.streak:
            raise ValueError("longest_streak must be >= streak")
        return self


class StreakResult(BaseModel):
    current_streak: int
    longest_streak: int
    last_workout_date: Optional[date] = None
    streak_broken: bool = False
    missed_days: int = 0


class RewardResult(BaseModel):
    xp_gained: int
    new_xp: int
    new_level: int
    level_up: bool


class BadgeRequirement(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["streak", "total_workouts"]
    threshold: int


class Badge(BaseModel):
    """Static catalog entry"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    icon: str = ""
    category: Literal["streak", "milestone", "achievement"] = "achievement"
    requirement: BadgeRequirement
    rarity: Literal["common", "rare", "epic", "legendary"] = "common"
    rule: Optional[str] = None      # Named predicate replacing the plain threshold check


class BadgeState(BaseModel):
    """Per-user unlock status of one catalog badge"""
    badge_id: str
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None


class UnlockedBadge(Badge):
    unlocked_at: datetime


class NotificationEvent(BaseModel):
    kind: Literal["badge_unlocked", "streak_milestone", "level_up"]
    user_id: str
    title: str
    body: str
    tag: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class CompletionResult(BaseModel):
    """Single payload returned by finish() for the caller to persist and display"""
    session_id: str
    completed_on: date
    summary: PerformanceSummary
    streak_result: StreakResult
    reward_result: RewardResult
    new_badges: List[UnlockedBadge] = Field(default_factory=list)
    feedback_signals: FeedbackSignals
    feedback_recorded: bool = True
    profile: GamificationProfile
    badge_states: List[BadgeState] = Field(default_factory=list)
    events: List[NotificationEvent] = Field(default_factory=list)


class GenerationRequest(BaseModel):
    """Input handed to the external workout generator"""
    fitness_level: str = "beginner"
    goals: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=lambda: ["bodyweight"])
    duration_minutes: int = 30
    intensity_preference: str = "moderate"
    recent_exercise_names: List[str] = Field(default_factory=list)
    prior_feedback_signals: Optional[FeedbackSignals] = None


class SessionSnapshot(BaseModel):
    """
    Read-only view of a session returned to clients.
    Mirrors what the workout screen needs to render the current step.
    """
    session_id: str
    status: SessionStatus
    phase: Optional[Phase] = None
    exercise_index: int = 0
    set_index: int = 0
    timer_mode: TimerMode = TimerMode.IDLE
    remaining_rest_seconds: int = 0
    current_exercise: Optional[ExerciseSpec] = None
    completed_sets: int = 0
    total_sets: int = 0
