"""Power Hour engine and its Slack message formatting."""

from .engine import PowerHourEngine

__all__ = ["PowerHourEngine"]
