"""
Catalog Feed Sync - Feed Fetcher
Downloads the vendor XML feed over HTTP.
"""

import logging
from typing import Optional

import httpx

from .exceptions import FetchError

logger = logging.getLogger(__name__)


class FeedFetcher:
    """
    Single-shot HTTP GET of the vendor feed.

    No retries: a failed fetch is fatal for the run and the external
    scheduler decides whether to try again.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 120.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def fetch(self) -> bytes:
        """
        Download the feed.

        Returns:
            Raw response body

        Raises:
            FetchError: On non-2xx status or any transport error
        """
        logger.info(
            "Fetching XML feed from vendor...",
            extra={"stage": "fetch", "feed_url": self.url},
        )
        try:
            response = self._client.get(self.url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch XML feed: {e}", url=self.url) from e

        if not response.is_success:
            raise FetchError(
                f"Failed to fetch XML feed: HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                url=self.url,
            )

        content = response.content
        logger.info(f"Downloaded {len(content) / 1024 / 1024:.1f}MB of XML data")
        return content

    def close(self):
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
