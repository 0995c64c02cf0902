"""Tests for the data-driven badge evaluator."""

from datetime import datetime, timezone

from models.badges import (
    DEFAULT_BADGE_CATALOG,
    badge_qualifies,
    evaluate_badges,
    merge_badge_states,
)
from models.schemas import Badge, BadgeRequirement, BadgeState, GamificationProfile

NOW = datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc)


def _profile(streak, total):
    return GamificationProfile(user_id="ana", streak=streak, longest_streak=streak, total_workouts=total)


class TestEvaluateBadges:
    def test_simultaneous_streak_badges_are_ordered_by_threshold(self):
        new = evaluate_badges(_profile(streak=30, total=0), now=NOW)

        assert [b.id for b in new] == ["streak_3", "streak_7", "streak_14", "streak_30"]
        assert [b.requirement.threshold for b in new] == [3, 7, 14, 30]
        assert all(b.unlocked_at == NOW for b in new)

    def test_three_thresholds_crossed_at_once(self):
        catalog = [b for b in DEFAULT_BADGE_CATALOG if b.id in ("streak_30", "streak_3", "streak_7")]
        new = evaluate_badges(_profile(streak=30, total=0), catalog=list(reversed(catalog)), now=NOW)

        assert [b.requirement.threshold for b in new] == [3, 7, 30]

    def test_total_workout_milestones(self):
        new = evaluate_badges(_profile(streak=2, total=10), now=NOW)
        assert [b.id for b in new] == ["first_workout", "workouts_10"]

    def test_already_unlocked_badges_are_skipped(self):
        states = [BadgeState(badge_id="streak_3", unlocked=True, unlocked_at=NOW)]
        new = evaluate_badges(_profile(streak=7, total=0), states, now=NOW)
        assert [b.id for b in new] == ["streak_7"]

    def test_returning_after_break(self):
        new = evaluate_badges(_profile(streak=1, total=5), now=NOW)
        assert [b.id for b in new] == ["first_workout", "comeback_kid"]

    def test_brand_new_user_is_not_a_comeback(self):
        new = evaluate_badges(_profile(streak=1, total=1), now=NOW)
        assert [b.id for b in new] == ["first_workout"]

    def test_unknown_rule_never_qualifies(self):
        badge = Badge(
            id="mystery",
            name="Mystery",
            description="?",
            requirement=BadgeRequirement(type="streak", threshold=0),
            rule="does_not_exist",
        )
        assert badge_qualifies(badge, _profile(streak=5, total=5)) is False


class TestBadgeMonotonicity:
    def test_lower_streak_never_relocks(self):
        first = evaluate_badges(_profile(streak=7, total=7), now=NOW)
        states = merge_badge_states([], first)

        later = evaluate_badges(_profile(streak=1, total=8), states, now=NOW)
        merged = merge_badge_states(states, later)

        unlocked = {s.badge_id for s in merged if s.unlocked}
        assert {"streak_3", "streak_7", "first_workout"} <= unlocked
        assert "streak_7" not in {b.id for b in later}

    def test_locked_state_cannot_override_unlock(self):
        states = [
            BadgeState(badge_id="streak_3", unlocked=True, unlocked_at=NOW),
            BadgeState(badge_id="streak_3", unlocked=False),
        ]
        merged = {s.badge_id: s for s in merge_badge_states(states, [])}
        assert merged["streak_3"].unlocked is True
        assert merged["streak_3"].unlocked_at == NOW

    def test_merge_covers_whole_catalog(self):
        merged = merge_badge_states(None, [])
        assert len(merged) == len(DEFAULT_BADGE_CATALOG)
        assert not any(s.unlocked for s in merged)
