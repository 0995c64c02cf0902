import argparse
from typing import List


class Config:
    """
    Central configuration manager for the workout session engine.
    Handles command-line argument parsing, debug modes, and gamification parameters.
    """

    def __init__(self):
        # Application mode settings
        self.debug_mode: str = "debug"
        self.host: str = "0.0.0.0"
        self.port: int = 8000

        # Session completion policy
        self.completion_threshold: int = 80  # Percent of sets needed for a session to count towards the streak

        # XP and level parameters
        self.base_xp: int = 50
        self.full_completion_bonus: int = 25  # completion_percentage == 100
        self.good_completion_bonus: int = 15  # completion_percentage >= completion_threshold
        self.difficulty_bonus: int = 10
        self.difficulty_bonus_min_rating: int = 4
        self.duration_bonus: int = 10
        self.duration_bonus_minutes: int = 45
        self.feedback_detail_bonus: int = 5
        self.feedback_detail_min_chars: int = 10  # Notes must be longer than this
        self.xp_per_level: int = 500

        # Plan validation bounds
        self.min_sets: int = 1
        self.max_sets: int = 6
        self.min_reps: int = 1
        self.max_reps: int = 50
        self.min_rest_seconds: int = 15
        self.max_rest_seconds: int = 300
        self.min_duration_minutes: int = 5
        self.max_duration_minutes: int = 180

        # Streak days that trigger a milestone notification
        self.streak_milestones: List[int] = [3, 7, 14, 30, 100]

        # In-memory ledger and outbox limits
        self.ledger_retention_days: int = 2  # Completion and feedback ledgers keep this many days before today
        self.max_outbox_events: int = 1000   # Oldest undrained notifications are dropped beyond this

        # Human-readable descriptions for each debug mode
        self.mode_descriptions = {
            "debug": "Debug Mode (session transitions logged)",
            "non_debug": "Non-Debug Mode (minimal logging)"
        }

    def setup_from_args(self, argv=None):
        """
        Parse command line arguments and configure application settings.
        """
        parser = argparse.ArgumentParser(description="Workout Session Engine Backend")
        parser.add_argument(
            "--mode",
            choices=["debug", "non_debug"],
            default="debug",
            help="Debug mode setting"
        )
        parser.add_argument("--host", default=self.host, help="Interface to bind")
        parser.add_argument("--port", type=int, default=self.port, help="Port to listen on")
        args = parser.parse_args(argv)

        self.debug_mode = args.mode
        self.host = args.host
        self.port = args.port

    @property
    def mode_description(self) -> str:
        """Get human-readable description of current mode"""
        return self.mode_descriptions[self.debug_mode]

# Global configuration instance - import this in other modules
config = Config()
