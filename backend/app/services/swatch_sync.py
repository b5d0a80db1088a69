"""Full-catalog synchronization pass.

A pass walks every catalog page, maps the records and then reconciles all of
them inside one database transaction. Either every record of the pass is
committed or none is.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core.database import async_session, utcnow
from backend.app.services.filamentcolors import FilamentColorsClient
from backend.app.services.reconciler import PassView, Reconciler
from backend.app.services.swatch_mapper import RemoteSwatch, map_swatch
from backend.app.services.sync_errors import (
    FetchFailed,
    MappingFailed,
    PassCancelled,
    ReconciliationFailed,
    TransactionFailed,
)

logger = logging.getLogger(__name__)


@dataclass
class PassResult:
    """Outcome of one synchronization pass."""

    success: bool
    records_processed: int = 0
    records_skipped: int = 0  # Rejected by the mapper
    pages_fetched: int = 0
    entities_created: int = 0
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


class SwatchSyncService:
    """Runs synchronization passes against the local store."""

    def __init__(
        self,
        client: FilamentColorsClient | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        reconciler: Reconciler | None = None,
    ):
        self.client = client or FilamentColorsClient()
        self.session_factory = session_factory or async_session
        self.reconciler = reconciler or Reconciler()

    async def fetch_records(
        self, stop_requested: Callable[[], bool] | None = None
    ) -> tuple[list[RemoteSwatch], int, int]:
        """Walk all catalog pages and map their records.

        Malformed records are logged and skipped. ``stop_requested`` is polled
        after each page, so a page request in flight always completes first.

        Returns:
            (mapped records, skipped record count, pages fetched)

        Raises:
            FetchFailed: if any page cannot be retrieved.
            PassCancelled: if ``stop_requested`` returned True between pages.
        """
        records: list[RemoteSwatch] = []
        skipped = 0
        pages = 0

        walk = self.client.iter_pages()
        try:
            async for page in walk:
                pages += 1
                for raw in page.results:
                    try:
                        records.append(map_swatch(raw))
                    except MappingFailed as e:
                        skipped += 1
                        logger.warning("Skipping malformed record on page %d: %s", page.index, e)
                logger.info(
                    "Fetched %d records from page %d, total: %d", len(page.results), page.index, len(records)
                )

                if stop_requested is not None and stop_requested():
                    raise PassCancelled(pages)
        finally:
            await walk.aclose()

        return records, skipped, pages

    async def run_pass(self, records: Iterable[RemoteSwatch], started_at: datetime | None = None) -> PassResult:
        """Reconcile ``records`` atomically.

        All staged writes share one transaction. Any failing record rolls the
        whole pass back, leaving the store exactly as it was before.
        """
        started_at = started_at or utcnow()
        result = PassResult(success=False, started_at=started_at)

        swatch_id = None
        async with self.session_factory() as session:
            try:
                view = await PassView.load(session)
                for record in records:
                    swatch_id = record.id
                    mutation = self.reconciler.stage(record, view, started_at)
                    await self.reconciler.apply(session, mutation)
                    result.records_processed += 1
                    result.entities_created += len(mutation.created)
            except Exception as e:
                await session.rollback()
                error = e
                if not isinstance(error, ReconciliationFailed):
                    error = ReconciliationFailed(swatch_id, f"{type(e).__name__}: {e}")
                logger.error("Sync pass rolled back after %d records: %s", result.records_processed, error)
                result.error = str(error)
                result.finished_at = utcnow()
                return result

            try:
                await session.commit()
            except Exception as e:
                await session.rollback()
                error = TransactionFailed(f"Commit failed: {type(e).__name__}: {e}")
                logger.error("%s", error)
                result.error = str(error)
                result.finished_at = utcnow()
                return result

        result.success = True
        result.finished_at = utcnow()
        logger.info(
            "Committed %d swatches (%d new rows) in %.1fs",
            result.records_processed,
            result.entities_created,
            result.duration_seconds or 0.0,
        )
        return result

    async def sync_all(self, stop_requested: Callable[[], bool] | None = None) -> PassResult:
        """Run one full pass: fetch every page, then reconcile atomically.

        A fetch failure or a stop request during the walk fails the pass
        before anything is written.
        """
        started_at = utcnow()
        logger.info("Starting full sync from %s", self.client.base_url)

        try:
            records, skipped, pages = await self.fetch_records(stop_requested)
        except FetchFailed as e:
            logger.error("Catalog fetch failed, nothing reconciled: %s", e)
            return PassResult(success=False, error=str(e), started_at=started_at, finished_at=utcnow())
        except PassCancelled as e:
            logger.warning("Catalog walk stopped, nothing reconciled: %s", e)
            return PassResult(
                success=False,
                error=str(e),
                pages_fetched=e.pages_fetched,
                started_at=started_at,
                finished_at=utcnow(),
            )

        logger.info("Fetched %d swatches from %d pages (%d skipped)", len(records), pages, skipped)

        result = await self.run_pass(records, started_at=started_at)
        result.records_skipped = skipped
        result.pages_fetched = pages
        return result

    async def close(self):
        await self.client.close()
