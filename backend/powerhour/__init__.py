"""Power Hour bot: live sales-activity leaderboard for Slack."""

__version__ = "1.1.0"
