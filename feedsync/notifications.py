"""
Catalog Feed Sync - Notification Service
Posts a run report to a Discord webhook.
"""

import logging
from typing import Optional

import httpx

from .models import SyncOutcome, SyncSummary

logger = logging.getLogger(__name__)

# Status colors (Semaphore system)
COLOR_SUCCESS = 0x2ECC71  # Green
COLOR_NEUTRAL = 0x95A5A6  # Grey
COLOR_WARNING = 0xF1C40F  # Yellow
COLOR_ERROR = 0xE74C3C   # Red


class NotificationService:
    """
    Sends sync reports via webhook.

    A failed notification is logged and swallowed; it never changes the
    outcome of the sync run.
    """

    def __init__(
        self,
        discord_webhook_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.discord_url = discord_webhook_url
        self._client = client or httpx.Client(timeout=30.0)

    def send_report(self, summary: SyncSummary):
        """Send sync report to all configured webhooks."""
        if self.discord_url:
            self._send_discord(summary)

    def _determine_status(self, summary: SyncSummary) -> tuple:
        """Determine status color and label based on sync result."""
        if summary.outcome == SyncOutcome.FAILED:
            return COLOR_ERROR, "FAILED"
        if summary.outcome == SyncOutcome.DRY_RUN:
            return COLOR_WARNING, "DRY RUN"
        if summary.outcome == SyncOutcome.NO_CHANGES:
            return COLOR_NEUTRAL, "NO CHANGES"
        return COLOR_SUCCESS, "UPDATED"

    def build_embed(self, summary: SyncSummary) -> dict:
        sample_ids = summary.sample_ids
        color, status_text = self._determine_status(summary)

        fields = [
            {"name": "Parsed", "value": f"**{summary.records_parsed}** records", "inline": True},
            {"name": "Valid", "value": f"**{summary.products_count}** products", "inline": True},
            {"name": "Skipped", "value": f"**{summary.transform.skipped}**", "inline": True},
        ]

        if summary.delta is not None:
            fields.extend([
                {"name": "New", "value": f"**{summary.delta.new}**", "inline": True},
                {"name": "Changed", "value": f"**{summary.delta.changed}**", "inline": True},
                {"name": "Removed", "value": f"**{summary.delta.removed}**", "inline": True},
            ])

        if sample_ids:
            preview = ", ".join(f"`{pid}`" for pid in sample_ids[:10])
            if len(sample_ids) > 10:
                preview += f" ... +{len(sample_ids) - 10}"
            fields.append({"name": "Sample ids", "value": preview[:1024], "inline": False})

        if summary.error:
            fields.append({"name": "Error", "value": summary.error[:1024], "inline": False})

        return {
            "title": "Catalog Feed Sync",
            "description": f"**{status_text}** at {summary.timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
            "color": color,
            "fields": fields,
            "timestamp": summary.timestamp.isoformat(),
        }

    def _send_discord(self, summary: SyncSummary):
        try:
            response = self._client.post(
                self.discord_url,
                json={"embeds": [self.build_embed(summary)]},
            )
            if response.status_code in (200, 204):
                logger.info("Discord notification sent successfully")
            else:
                logger.warning(f"Discord notification failed: {response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Failed to send Discord notification: {e}")

    def close(self):
        """Close HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
