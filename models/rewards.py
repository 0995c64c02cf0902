# rewards.py
from config import config
from models.schemas import Feedback, GamificationProfile, PerformanceSummary, RewardResult


def calculate_xp_gain(summary: PerformanceSummary, feedback: Feedback) -> int:
    """
    XP earned for one session.
    Base reward plus bonuses for completion, a hard session, a long session
    and detailed written feedback.
    """
    xp = config.base_xp

    if summary.completion_percentage >= 100:
        xp += config.full_completion_bonus
    elif summary.completion_percentage >= config.completion_threshold:
        xp += config.good_completion_bonus

    if feedback.difficulty >= config.difficulty_bonus_min_rating:
        xp += config.difficulty_bonus

    if summary.duration_seconds >= config.duration_bonus_minutes * 60:
        xp += config.duration_bonus

    if feedback.notes and len(feedback.notes) > config.feedback_detail_min_chars:
        xp += config.feedback_detail_bonus

    return xp


def level_for_xp(xp: int) -> int:
    return xp // config.xp_per_level + 1


def calculate_reward(
    summary: PerformanceSummary,
    feedback: Feedback,
    profile: GamificationProfile,
) -> RewardResult:
    """Compute the XP/level delta; the profile itself is left untouched"""
    xp_gained = calculate_xp_gain(summary, feedback)
    new_xp = profile.xp + xp_gained
    new_level = level_for_xp(new_xp)

    return RewardResult(
        xp_gained=xp_gained,
        new_xp=new_xp,
        new_level=new_level,
        level_up=new_level > profile.level,
    )
