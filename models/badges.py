# badges.py
"""
Data-driven badge evaluation.
Badges live in a declarative catalog; the evaluator checks each locked badge
against the post-workout profile generically. Badges whose unlock condition is
not a plain threshold name a rule from SPECIAL_RULES instead.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from models.schemas import (
    Badge,
    BadgeRequirement,
    BadgeState,
    GamificationProfile,
    UnlockedBadge,
)
from utils.logging_utils import logger


def _returning_after_break(profile: GamificationProfile) -> bool:
    # Day 1 of a new streak for someone who has trained before
    return profile.streak == 1 and profile.total_workouts > 1


SPECIAL_RULES: Dict[str, Callable[[GamificationProfile], bool]] = {
    "returning_after_break": _returning_after_break,
}


def _badge(badge_id, name, description, icon, category, req_type, threshold, rarity, rule=None) -> Badge:
    return Badge(
        id=badge_id,
        name=name,
        description=description,
        icon=icon,
        category=category,
        requirement=BadgeRequirement(type=req_type, threshold=threshold),
        rarity=rarity,
        rule=rule,
    )


DEFAULT_BADGE_CATALOG: List[Badge] = [
    # Streak badges
    _badge("streak_3", "Getting Started", "Complete 3 workouts in a row", "🔥", "streak", "streak", 3, "common"),
    _badge("streak_7", "Week Warrior", "Maintain a 7-day workout streak", "⚡", "streak", "streak", 7, "common"),
    _badge("streak_14", "Two Week Champion", "Keep going for 14 days straight", "💪", "streak", "streak", 14, "rare"),
    _badge("streak_30", "Monthly Master", "Incredible 30-day streak!", "👑", "streak", "streak", 30, "epic"),
    _badge("streak_100", "Centurion", "Legendary 100-day streak", "🏆", "streak", "streak", 100, "legendary"),

    # Total workout milestones
    _badge("workouts_10", "Perfect Ten", "Complete your first 10 workouts", "🎯", "milestone", "total_workouts", 10, "common"),
    _badge("workouts_50", "Half Century", "50 workouts completed!", "⭐", "milestone", "total_workouts", 50, "rare"),
    _badge("workouts_100", "Century Club", "100 workouts - you're unstoppable!", "💯", "milestone", "total_workouts", 100, "epic"),

    # Special achievements
    _badge("first_workout", "First Step", "Complete your very first workout", "🌟", "achievement", "total_workouts", 1, "common"),
    _badge("comeback_kid", "Comeback Kid", "Return after missing a day", "🔄", "achievement", "streak", 1, "rare",
           rule="returning_after_break"),
]


def badge_qualifies(badge: Badge, profile: GamificationProfile) -> bool:
    """Check one catalog badge against the profile"""
    if badge.rule is not None:
        rule = SPECIAL_RULES.get(badge.rule)
        if rule is None:
            logger.warning(f"Unknown badge rule '{badge.rule}' for badge {badge.id}")
            return False
        return rule(profile)

    requirement = badge.requirement
    if requirement.type == "streak":
        return profile.streak >= requirement.threshold
    if requirement.type == "total_workouts":
        return profile.total_workouts >= requirement.threshold
    return False


def unlocked_ids(states: Optional[Iterable[BadgeState]]) -> set:
    return {state.badge_id for state in states or [] if state.unlocked}


def evaluate_badges(
    profile: GamificationProfile,
    badge_states: Optional[Iterable[BadgeState]] = None,
    catalog: Optional[List[Badge]] = None,
    now: Optional[datetime] = None,
) -> List[UnlockedBadge]:
    """
    Return the badges newly unlocked by ``profile``.

    Badges already unlocked in ``badge_states`` are skipped, so the result
    never repeats a badge. The result is ordered by requirement threshold
    (catalog order breaks ties) so celebrations play in a stable sequence.
    """
    catalog = DEFAULT_BADGE_CATALOG if catalog is None else catalog
    already_unlocked = unlocked_ids(badge_states)
    unlocked_at = now or datetime.now(timezone.utc)

    newly_unlocked = []
    for badge in catalog:
        if badge.id in already_unlocked:
            continue
        if badge_qualifies(badge, profile):
            newly_unlocked.append(UnlockedBadge(**badge.model_dump(), unlocked_at=unlocked_at))

    # sorted() is stable, equal thresholds keep catalog order
    newly_unlocked = sorted(newly_unlocked, key=lambda b: b.requirement.threshold)
    if newly_unlocked:
        logger.info(f"Unlocked badges for {profile.user_id}: {[b.id for b in newly_unlocked]}")
    return newly_unlocked


def merge_badge_states(
    badge_states: Optional[Iterable[BadgeState]],
    new_badges: Iterable[UnlockedBadge],
    catalog: Optional[List[Badge]] = None,
) -> List[BadgeState]:
    """
    Fold newly unlocked badges into the per-user states.
    An unlocked state is never replaced, so badges cannot be re-locked.
    """
    catalog = DEFAULT_BADGE_CATALOG if catalog is None else catalog
    merged: Dict[str, BadgeState] = {badge.id: BadgeState(badge_id=badge.id) for badge in catalog}

    for state in badge_states or []:
        existing = merged.get(state.badge_id)
        if existing is not None and existing.unlocked and not state.unlocked:
            continue
        merged[state.badge_id] = state.model_copy()

    for badge in new_badges:
        if merged.get(badge.id) is not None and merged[badge.id].unlocked:
            continue
        merged[badge.id] = BadgeState(badge_id=badge.id, unlocked=True, unlocked_at=badge.unlocked_at)

    return list(merged.values())
