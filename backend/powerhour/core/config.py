"""Power Hour bot configuration"""

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# === Path Configuration ===
POWERHOUR_DIR = Path(__file__).parent.parent
BACKEND_DIR = POWERHOUR_DIR.parent
DATA_DIR = BACKEND_DIR / "data"

# HubSpot deal stage UUID for "Demo Scheduled"
DEMO_SCHEDULED_STAGE = "098183b8-daf7-4145-b7af-17dd19c077f9"


@dataclass(frozen=True)
class EngineConfig:
    """Values the session engine reads. Built from settings or directly in tests."""

    default_duration_minutes: int = 60
    roster: tuple[str, ...] = ()
    team_goal_threshold: int = 12
    team_goal_reward: str = ""
    demo_streak_count: int = 2
    demo_streak_window_minutes: int = 20
    conversation_streak_count: int = 5
    conversation_streak_window_minutes: int = 30
    inactivity_threshold_minutes: int = 15
    inactivity_sweep_minutes: int = 5
    refresh_interval_minutes: int = 10
    final_push_minutes: int = 10
    close_race_points: int = 5
    conversation_min_seconds: int = 120
    demo_stage_id: str = DEMO_SCHEDULED_STAGE
    event_dedupe_ttl_seconds: int = 3600
    announce_dials: bool = True
    roster_lookup: frozenset[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "roster_lookup", frozenset(name.strip().lower() for name in self.roster if name.strip())
        )

    def accepts(self, actor: str) -> bool:
        """Roster allowlist check. An empty roster accepts everyone."""
        if not self.roster_lookup:
            return True
        return actor.strip().lower() in self.roster_lookup


class PowerHourSettings(BaseSettings):
    """Power Hour bot settings"""

    model_config = SettingsConfigDict(
        env_file=BACKEND_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Slack
    slack_bot_token: str = Field(default="", description="Slack bot token (xoxb-...)")
    slack_signing_secret: str = Field(default="", description="Slack signing secret")

    # Upstream APIs
    hubspot_access_token: str = Field(default="", description="HubSpot private app token")
    aircall_api_id: str = Field(default="", description="Aircall API ID")
    aircall_api_token: str = Field(default="", description="Aircall API token")
    giphy_api_key: str = Field(default="", description="Giphy API key")

    # Session engine
    default_duration_minutes: int = Field(default=60, description="Default Power Hour length")
    roster: str = Field(default="", description="Comma separated rep names, empty = everyone")
    team_goal_threshold: int = Field(default=12, description="Team demo goal")
    team_goal_reward: str = Field(default="", description="Reward label, empty disables the goal")
    demo_streak_count: int = Field(default=2)
    demo_streak_window_minutes: int = Field(default=20)
    conversation_streak_count: int = Field(default=5)
    conversation_streak_window_minutes: int = Field(default=30)
    inactivity_threshold_minutes: int = Field(default=15)
    inactivity_sweep_minutes: int = Field(default=5)
    refresh_interval_minutes: int = Field(default=10)
    final_push_minutes: int = Field(default=10)
    close_race_points: int = Field(default=5)
    conversation_min_seconds: int = Field(default=120)
    demo_stage_id: str = Field(default=DEMO_SCHEDULED_STAGE)
    event_dedupe_ttl_seconds: int = Field(default=3600)
    announce_dials: bool = Field(default=True, description="Post a message for every dial")

    # Results log
    google_sheet_id: str = Field(default="", description="Results spreadsheet, empty = local file")
    google_credentials: str = Field(default="", description="Service account JSON")
    google_credentials_file: Path | None = Field(
        default=None, description="Service account JSON file, used when GOOGLE_CREDENTIALS is empty"
    )
    results_path: Path = Field(
        default=DATA_DIR / "power_hour_results.jsonl", description="Finished session log"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("default_duration_minutes", "team_goal_threshold")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("refresh_interval_minutes", "inactivity_sweep_minutes")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        # Interval tasks sleep this long between fires
        if v <= 0:
            raise ValueError("must be at least 1 minute")
        return v

    @field_validator("google_credentials")
    @classmethod
    def validate_credentials_json(cls, v: str) -> str:
        if v.strip():
            try:
                json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"not valid JSON: {e}") from e
        return v

    @property
    def google_credentials_info(self) -> dict | None:
        return json.loads(self.google_credentials) if self.google_credentials.strip() else None

    @property
    def roster_names(self) -> tuple[str, ...]:
        return tuple(name.strip() for name in self.roster.split(",") if name.strip())

    def engine_config(self) -> EngineConfig:
        return EngineConfig(
            default_duration_minutes=self.default_duration_minutes,
            roster=self.roster_names,
            team_goal_threshold=self.team_goal_threshold,
            team_goal_reward=self.team_goal_reward,
            demo_streak_count=self.demo_streak_count,
            demo_streak_window_minutes=self.demo_streak_window_minutes,
            conversation_streak_count=self.conversation_streak_count,
            conversation_streak_window_minutes=self.conversation_streak_window_minutes,
            inactivity_threshold_minutes=self.inactivity_threshold_minutes,
            inactivity_sweep_minutes=self.inactivity_sweep_minutes,
            refresh_interval_minutes=self.refresh_interval_minutes,
            final_push_minutes=self.final_push_minutes,
            close_race_points=self.close_race_points,
            conversation_min_seconds=self.conversation_min_seconds,
            demo_stage_id=self.demo_stage_id,
            event_dedupe_ttl_seconds=self.event_dedupe_ttl_seconds,
            announce_dials=self.announce_dials,
        )


@lru_cache
def get_settings() -> PowerHourSettings:
    """Get cached settings instance"""
    return PowerHourSettings()
