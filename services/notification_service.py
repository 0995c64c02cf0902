from typing import List

from config import config
from models.schemas import (
    GamificationProfile,
    NotificationEvent,
    RewardResult,
    StreakResult,
    UnlockedBadge,
)
from models.streak import is_streak_milestone
from utils.logging_utils import logger
from utils.motivation import get_badge_unlock_text, get_level_up_text, get_streak_milestone_text


class NotificationService:
    """
    Builds badge, streak milestone and level-up events and queues them in an outbox.
    Delivery (push, in-app) is done by whoever drains the outbox.
    """

    def __init__(self):
        self.outbox: List[NotificationEvent] = []

    @staticmethod
    def build_events(
        profile: GamificationProfile,
        streak_result: StreakResult,
        reward_result: RewardResult,
        new_badges: List[UnlockedBadge],
    ) -> List[NotificationEvent]:
        """Create the events for one completed session without queueing them"""
        events = []

        for badge in new_badges:
            events.append(NotificationEvent(
                kind="badge_unlocked",
                user_id=profile.user_id,
                title=f"Badge Unlocked: {badge.name}!",
                body=get_badge_unlock_text(badge.name, badge.description),
                tag=f"badge-{badge.id}",
                payload={"badge_id": badge.id, "rarity": badge.rarity, "icon": badge.icon},
            ))

        if is_streak_milestone(profile.streak, streak_result, config.streak_milestones):
            days = streak_result.current_streak
            events.append(NotificationEvent(
                kind="streak_milestone",
                user_id=profile.user_id,
                title=f"{days}-Day Streak!",
                body=get_streak_milestone_text(days),
                tag=f"streak-milestone-{days}",
                payload={"streak": days},
            ))

        if reward_result.level_up:
            events.append(NotificationEvent(
                kind="level_up",
                user_id=profile.user_id,
                title="Level up!",
                body=get_level_up_text(reward_result.new_level),
                tag=f"level-{reward_result.new_level}",
                payload={"level": reward_result.new_level, "xp": reward_result.new_xp},
            ))

        return events

    def publish(self, events: List[NotificationEvent]):
        for event in events:
            logger.info(f"Queued {event.kind} notification for {event.user_id}: {event.title}")
        self.outbox.extend(events)

        overflow = len(self.outbox) - config.max_outbox_events
        if overflow > 0:
            logger.warning(f"Outbox full, dropping {overflow} oldest undrained notifications")
            del self.outbox[:overflow]

    def drain(self) -> List[NotificationEvent]:
        """Hand all queued events to the caller and empty the outbox"""
        events, self.outbox = self.outbox, []
        return events

# Global service instance
notification_service = NotificationService()
