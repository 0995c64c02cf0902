from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from config import config
from models.badges import DEFAULT_BADGE_CATALOG, evaluate_badges, merge_badge_states
from models.errors import DuplicateSubmissionError
from models.feedback_signals import coerce_feedback, derive_feedback_signals
from models.rewards import calculate_reward
from models.schemas import (
    Badge,
    BadgeState,
    CompletionResult,
    Feedback,
    GamificationProfile,
    PerformanceSummary,
)
from models.streak import accumulate_streak
from services.notification_service import NotificationService, notification_service
from utils.logging_utils import logger


class CompletionPipeline:
    """
    Turns a finished session into streak, reward, badge and feedback results.

    Runs Streak -> Reward -> Badge -> Feedback synchronously. Every stage only
    computes new values; the idempotency ledger, the feedback ledger and the
    notifier outbox are written after all stages succeeded, so a failing stage
    leaves nothing half-applied.

    Both ledgers are in-memory and keep only the last few days
    (config.ledger_retention_days); older keys are pruned after each commit.
    """

    def __init__(
        self,
        notifier: Optional[NotificationService] = None,
        catalog: Optional[List[Badge]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.notifier = notifier if notifier is not None else notification_service
        self.catalog = catalog if catalog is not None else DEFAULT_BADGE_CATALOG
        self.clock = clock
        self._results: Dict[Tuple[str, date], CompletionResult] = {}
        self._feedback_days: Set[Tuple[str, date]] = set()

    def lookup(self, session_id: str, today: date) -> Optional[CompletionResult]:
        return self._results.get((session_id, today))

    def prune(self, before: date) -> int:
        """
        Forget ledger entries for days earlier than ``before``.
        Returns the number of completion results dropped.
        """
        stale = [key for key in self._results if key[1] < before]
        for key in stale:
            del self._results[key]
        self._feedback_days = {key for key in self._feedback_days if key[1] >= before}
        if stale:
            logger.info(f"Pruned {len(stale)} completion results older than {before}")
        return len(stale)

    def complete(
        self,
        session_id: str,
        today: date,
        summary: PerformanceSummary,
        profile: GamificationProfile,
        feedback: Feedback,
        badge_states: Optional[Iterable[BadgeState]] = None,
    ) -> CompletionResult:
        """
        Apply the pipeline once per (session_id, today).
        A repeated key raises DuplicateSubmissionError carrying the first result.
        """
        key = (session_id, today)
        if key in self._results:
            raise DuplicateSubmissionError(key, self._results[key])

        feedback = coerce_feedback(feedback)
        badge_states = list(badge_states or [])
        meets_threshold = summary.completion_percentage >= config.completion_threshold
        logger.info(
            f"Completing session {session_id} for {profile.user_id}: "
            f"{summary.completion_percentage}% (threshold met: {meets_threshold})"
        )

        streak_result = accumulate_streak(
            last_workout_date=profile.last_workout_date,
            today=today,
            current_streak=profile.streak,
            longest_streak=profile.longest_streak,
            meets_threshold=meets_threshold,
        )

        reward_result = calculate_reward(summary, feedback, profile)

        updated_profile = GamificationProfile(
            user_id=profile.user_id,
            streak=streak_result.current_streak,
            longest_streak=streak_result.longest_streak,
            last_workout_date=streak_result.last_workout_date,
            total_workouts=profile.total_workouts + 1,
            level=max(profile.level, reward_result.new_level),
            xp=reward_result.new_xp,
        )

        new_badges = evaluate_badges(updated_profile, badge_states, self.catalog, now=self.clock())
        merged_states = merge_badge_states(badge_states, new_badges, self.catalog)

        feedback_signals = derive_feedback_signals(feedback)
        feedback_key = (profile.user_id, today)
        feedback_recorded = feedback_key not in self._feedback_days
        if not feedback_recorded:
            logger.info(f"Feedback for {profile.user_id} already recorded on {today}, ignoring resubmission")

        events = self.notifier.build_events(profile, streak_result, reward_result, new_badges)

        result = CompletionResult(
            session_id=session_id,
            completed_on=today,
            summary=summary,
            streak_result=streak_result,
            reward_result=reward_result,
            new_badges=new_badges,
            feedback_signals=feedback_signals,
            feedback_recorded=feedback_recorded,
            profile=updated_profile,
            badge_states=merged_states,
            events=events,
        )

        # Commit point
        self._results[key] = result
        self._feedback_days.add(feedback_key)
        self.notifier.publish(events)
        self.prune(today - timedelta(days=config.ledger_retention_days))

        logger.info(
            f"Session {session_id}: streak {streak_result.current_streak}, "
            f"+{reward_result.xp_gained} XP, {len(new_badges)} new badges"
        )
        return result

# Global pipeline instance
completion_pipeline = CompletionPipeline()
