# streak.py
"""
Streak accumulation for a finished session.
Pure function: takes the previous streak record and the session outcome,
returns the updated record without touching any stored state.
"""

from datetime import date
from typing import Optional

from models.schemas import StreakResult
from utils.logging_utils import logger


def accumulate_streak(
    last_workout_date: Optional[date],
    today: date,
    current_streak: int,
    longest_streak: int,
    meets_threshold: bool,
) -> StreakResult:
    """
    Update a streak for a session finished on ``today``.

    A session below the completion threshold neither grows nor breaks the
    streak (grace period). Same-day re-logging leaves it unchanged, the next
    calendar day extends it, and any longer gap restarts it at 1.
    """
    if not meets_threshold:
        return StreakResult(
            current_streak=current_streak,
            longest_streak=max(longest_streak, current_streak),
            last_workout_date=last_workout_date,
            streak_broken=False,
            missed_days=0,
        )

    days_between = (today - last_workout_date).days if last_workout_date else 0

    new_streak = current_streak
    streak_broken = False
    missed_days = 0

    if days_between < 0:
        logger.warning(f"Workout date {today} is before last workout {last_workout_date}, keeping streak")
    elif days_between == 0:
        # First qualifying session ever starts the streak
        if last_workout_date is None and current_streak == 0:
            new_streak = 1
    elif days_between == 1:
        new_streak = current_streak + 1
    else:
        new_streak = 1
        streak_broken = True
        missed_days = days_between - 1

    return StreakResult(
        current_streak=new_streak,
        longest_streak=max(longest_streak, new_streak),
        last_workout_date=last_workout_date if days_between < 0 else today,
        streak_broken=streak_broken,
        missed_days=missed_days,
    )


def is_streak_milestone(previous_streak: int, result: StreakResult, milestones) -> bool:
    """True when the streak grew onto one of the milestone days"""
    return result.current_streak != previous_streak and result.current_streak in milestones
