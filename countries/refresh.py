"""
Catalog refresh: fetch both upstream feeds, transform, upsert, render the
summary image and commit, in that order.

Everything after the fetch runs inside one database transaction, so a failed
upsert, read-back or render leaves the catalog exactly as it was. The image
is rendered to a scratch file inside the transaction and moved onto the
served path only after commit.
"""
import enum
import logging
import os
import threading
import time
from collections import namedtuple

from django.conf import settings
from django.db import DatabaseError, transaction

from . import catalog, utils
from .exceptions import RefreshTimedOut, StorageFailure, UpstreamUnavailable
from .fetchers import UpstreamFetcher
from .transform import RecordTransformer

logger = logging.getLogger(__name__)

RefreshResult = namedtuple(
    "RefreshResult",
    ["records_fetched", "records_written", "records_skipped", "refreshed_at"],
)


class RefreshStage(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    UPSERTING = "upserting"
    RENDERING = "rendering"
    COMMITTING = "committing"
    ABORTING = "aborting"


class RefreshState:
    """Timestamp of the last committed refresh. In memory only."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last_refreshed_at = None

    @property
    def last_refreshed_at(self):
        with self._lock:
            return self._last_refreshed_at

    def publish(self, refreshed_at):
        with self._lock:
            self._last_refreshed_at = refreshed_at


class CatalogRefresher:
    """Runs catalog refreshes one at a time and publishes their commit time."""

    def __init__(self, fetcher, transformer, state=None, top_n=5, deadline=None):
        self.fetcher = fetcher
        self.transformer = transformer
        self.state = state or RefreshState()
        self.top_n = top_n
        self.deadline = deadline
        self.stage = RefreshStage.IDLE
        # overlapping refreshes queue behind the running one
        self._single_flight = threading.Lock()

    @classmethod
    def from_settings(cls, state=None):
        return cls(
            UpstreamFetcher.from_settings(),
            RecordTransformer.from_settings(),
            state=state,
            top_n=settings.SUMMARY_TOP_N,
            deadline=settings.REFRESH_DEADLINE_SECONDS,
        )

    def _enter(self, stage):
        logger.debug("Refresh stage %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def _check_deadline(self, started):
        if self.deadline is not None and time.monotonic() - started > self.deadline:
            raise RefreshTimedOut(f"Refresh exceeded its {self.deadline}s deadline during {self.stage.value}")

    def refresh(self):
        """Run one refresh and return a RefreshResult; raises a RefreshError on failure."""
        with self._single_flight:
            try:
                return self._run(time.monotonic())
            finally:
                self._enter(RefreshStage.IDLE)

    def _run(self, started):
        logger.info("Starting catalog refresh")
        self._enter(RefreshStage.FETCHING)
        try:
            countries, rates = self.fetcher.fetch()
            self._check_deadline(started)
        except (UpstreamUnavailable, RefreshTimedOut):
            # no transaction was opened
            self._enter(RefreshStage.ABORTING)
            raise

        tmp_path = None
        try:
            with transaction.atomic():
                self._enter(RefreshStage.TRANSFORMING)
                batch = self.transformer.transform_batch(countries, rates)
                self._check_deadline(started)

                self._enter(RefreshStage.UPSERTING)
                written = catalog.upsert_countries(batch.rows)
                total, top = catalog.read_back_aggregates(self.top_n)
                self._check_deadline(started)

                self._enter(RefreshStage.RENDERING)
                tmp_path = utils.reserve_temp_image_path()
                utils.generate_summary_image(total, top, utils.get_now().isoformat(), path=tmp_path)
                self._check_deadline(started)

                self._enter(RefreshStage.COMMITTING)
        except Exception as exc:
            self._enter(RefreshStage.ABORTING)
            logger.error("Refresh failed, transaction rolled back: %s", exc)
            self._discard(tmp_path)
            if isinstance(exc, DatabaseError):
                raise StorageFailure(f"Committing the refresh failed: {exc}") from exc
            raise

        self._publish_artifact(tmp_path)
        refreshed_at = utils.get_now().isoformat()
        self.state.publish(refreshed_at)
        logger.info(
            "Refresh committed: %d fetched, %d written, %d skipped, %d in catalog",
            len(countries), written, batch.skipped, total,
        )
        return RefreshResult(len(countries), written, batch.skipped, refreshed_at)

    def _publish_artifact(self, tmp_path):
        # the catalog is already committed, so a failed move only costs a stale image
        try:
            utils.publish_summary_image(tmp_path)
        except OSError as exc:
            logger.warning("Refresh committed but the summary image was not published: %s", exc)
            self._discard(tmp_path)

    @staticmethod
    def _discard(path):
        if path is None:
            return
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove scratch image %s: %s", path, exc)
