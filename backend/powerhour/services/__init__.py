"""External collaborators: Slack, HubSpot, Aircall, Giphy, results log, digest."""

from .aircall_api import AircallAPIClient
from .digest import DigestService, format_digest
from .giphy_api import GiphyClient
from .hubspot_api import HubSpotAPIClient
from .results_log import GoogleSheetsResultsLog, JsonlResultsLog
from .slack_api import SlackMessenger

__all__ = [
    "AircallAPIClient",
    "DigestService",
    "GiphyClient",
    "HubSpotAPIClient",
    "GoogleSheetsResultsLog",
    "JsonlResultsLog",
    "SlackMessenger",
    "format_digest",
]
