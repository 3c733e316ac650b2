"""
Catalog Feed Sync - Sync Orchestrator
Runs Fetch -> Parse -> Transform -> Delta -> Persist with safety gates.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .delta import compute_delta, has_changes
from .exceptions import CatalogSyncError, ConfigurationError, EmptyBatchError
from .fetcher import FeedFetcher
from .models import (
    CategoryMapConfig,
    DeltaCounts,
    MarkupConfig,
    SyncOutcome,
    SyncSummary,
)
from .notifications import NotificationService
from .parser import XmlFeedParser
from .state import SyncStateStore
from .transformer import ProductTransformer

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def load_policy(path: Path, model: Type[ModelT], setting: str) -> ModelT:
    """Load and validate a JSON policy file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}", setting=setting) from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read {path}: {e}", setting=setting) from e

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {path.name}: {e}", setting=setting) from e


class SyncOrchestrator:
    """
    Sequences one sync run.

    Gates, in order:
    1. LoadConfig  - policies + previous state (missing state = empty baseline)
    2. Fetch       - any HTTP/transport failure is fatal
    3. Parse       - malformed feed is fatal
    4. Transform   - skips invalid records, resolves slug collisions
    5. EmptyGuard  - zero products aborts: never wipe the live catalog
    6. Delta       - compare against previous hash table
    7. ChangeGuard - no change exits successfully without writing
    8. Persist     - catalog + state + history, all or nothing

    Assumes at most one concurrent run; the scheduler must guarantee it.
    """

    def __init__(
        self,
        settings,
        fetcher: Optional[FeedFetcher] = None,
        store: Optional[SyncStateStore] = None,
        notifier: Optional[NotificationService] = None,
        parser: Optional[XmlFeedParser] = None,
    ):
        self.settings = settings
        self.fetcher = fetcher
        self.store = store or SyncStateStore(
            state_path=settings.state_path,
            history_path=settings.history_path,
            catalog_path=settings.catalog_path,
            history_limit=settings.history_limit,
            state_sample_size=settings.state_sample_size,
            history_sample_size=settings.history_sample_size,
        )
        self.notifier = notifier
        self.parser = parser or XmlFeedParser()

    def run(self, dry_run: bool = False) -> SyncSummary:
        """
        Execute a full run.

        Returns:
            SyncSummary for successful terminal states (no_changes,
            written, dry_run)

        Raises:
            CatalogSyncError: On any fatal gate; nothing has been written
        """
        summary = SyncSummary()
        try:
            self._run(summary, dry_run)
        except CatalogSyncError as e:
            summary.outcome = SyncOutcome.FAILED
            summary.error = str(e)
            e.summary = summary
            self._notify(summary)
            raise
        self._notify(summary)
        return summary

    def _run(self, summary: SyncSummary, dry_run: bool):
        # 1. LoadConfig
        logger.info("Loading configuration...", extra={"stage": "load_config"})
        markup, category_map = self.load_config()
        previous = self.store.load_state()
        history = self.store.load_history()
        fetcher = self._get_fetcher()

        # 2. Fetch
        try:
            payload = fetcher.fetch()
        finally:
            if fetcher is not self.fetcher:
                fetcher.close()
        summary.feed_bytes = len(payload)

        # 3. Parse
        logger.info("Parsing XML...", extra={"stage": "parse"})
        records = self.parser.parse(payload)
        summary.records_parsed = len(records)

        # 4. Transform
        logger.info("Transforming products...", extra={"stage": "transform"})
        transformer = ProductTransformer(
            markup, category_map, id_prefix=self.settings.product_id_prefix
        )
        products, stats = transformer.transform_all(records)
        summary.transform = stats

        # 5. EmptyGuard
        if not products:
            raise EmptyBatchError(
                "Zero valid products after transformation. Aborting to prevent data wipe.",
                records_parsed=len(records),
            )

        # 6. Delta
        logger.info("Computing delta...", extra={"stage": "delta"})
        delta, new_hashes = compute_delta(products, previous.product_hash)
        summary.delta = DeltaCounts.from_delta(delta)
        summary.sample_ids = (delta.new + delta.changed + delta.removed)[: self.store.state_sample_size]

        # 7. ChangeGuard
        if not has_changes(delta):
            logger.info("No changes detected. Skipping file writes.")
            summary.outcome = SyncOutcome.NO_CHANGES
            return

        logger.info(
            f"Delta summary: {len(delta.new)} new, {len(delta.removed)} removed, "
            f"{len(delta.changed)} changed, {delta.unchanged} unchanged",
            extra={"products_count": len(products)},
        )

        if dry_run:
            logger.info(f"DRY RUN: would write {len(products)} products, skipping file writes")
            summary.outcome = SyncOutcome.DRY_RUN
            return

        # 8. Persist
        now = datetime.now(timezone.utc)
        state = self.store.build_state(products, delta, new_hashes, now)
        entry = self.store.build_history_entry(len(products), delta, now)
        history = self.store.prepend_history(history, entry)

        logger.info(f"Writing {len(products)} products...", extra={"stage": "persist"})
        written = self.store.persist(products, state, history)
        summary.files_written = [str(p) for p in written]
        summary.outcome = SyncOutcome.WRITTEN
        logger.info("Sync complete!")

    def load_config(self) -> Tuple[MarkupConfig, CategoryMapConfig]:
        if not self.settings.feed_configured and self.fetcher is None:
            raise ConfigurationError(
                "LIBERTA_FEED_URL environment variable is not set",
                setting="liberta_feed_url",
            )
        markup = load_policy(Path(self.settings.markup_path), MarkupConfig, "markup_path")
        category_map = load_policy(
            Path(self.settings.category_map_path), CategoryMapConfig, "category_map_path"
        )
        return markup, category_map

    def _get_fetcher(self) -> FeedFetcher:
        if self.fetcher is not None:
            return self.fetcher
        return FeedFetcher(self.settings.liberta_feed_url, timeout=self.settings.feed_timeout)

    def _notify(self, summary: SyncSummary):
        if self.notifier is None:
            return
        self.notifier.send_report(summary)
