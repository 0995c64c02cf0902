# motivation.py
def get_streak_milestone_text(streak_days: int) -> str:
    """
    Build the celebration message for a streak milestone.
    Known milestone days get their own emoji, anything else falls back to a target.
    """

    milestone_emojis = {
        3: "🔥",
        7: "⚡",
        14: "💪",
        30: "👑",
        100: "🏆"
    }

    emoji = milestone_emojis.get(streak_days, "🎯")
    return f"{emoji} {streak_days}-Day Streak! Amazing consistency, {streak_days} workouts in a row!"


def get_badge_unlock_text(badge_name: str, description: str) -> str:
    """Message shown when a badge is unlocked"""
    return f"Badge Unlocked: {badge_name}! {description}"


def get_level_up_text(level: int) -> str:
    return f"Level up! You reached level {level} 🌟"
