"""Extraction cycle orchestration: pages -> sales -> dedup -> history -> report."""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from src.config import config
from src.deliver.webhook import DeliveryError, WebhookClient
from src.fetch.accessor import ExtractionError, SnapshotAccessor, go_to_first_page
from src.jobs.metrics import Metrics
from src.jobs.report import Reporter
from src.parse.assembler import assemble_sales
from src.parse.merge import merge_by_id
from src.parse.models import Sale
from src.store.registry import IdentityRegistry
from src.store.sales_store import SalesStore
from src.store.state import RunState, StateStore, now_iso

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    rows: int = 0
    batch: list[Sale] = field(default_factory=list)
    appended: int = 0
    duplicates: int = 0
    discarded: int = 0
    report_path: Optional[Path] = None


class CycleRunner:
    """
    Owns the identity registry for the life of the process. The registry is
    rehydrated once from the full history (plus the cached keys) and then
    carried from cycle to cycle.
    """

    def __init__(
        self,
        accessor: SnapshotAccessor,
        sales_store: Optional[SalesStore] = None,
        state_store: Optional[StateStore] = None,
        reporter: Optional[Reporter] = None,
        webhook: Optional[WebhookClient] = None,
        max_pages: Optional[int] = None,
        extract_timeout: Optional[float] = None,
        report_every: Optional[float] = None,
        metrics: Optional[Metrics] = None,
    ):
        self.accessor = accessor
        self.sales_store = sales_store or SalesStore()
        self.state_store = state_store or StateStore()
        self.reporter = reporter
        self.webhook = webhook
        self.max_pages = max(1, max_pages or config.MAX_PAGES)
        self.extract_timeout = extract_timeout or config.EXTRACT_TIMEOUT
        self.report_every = config.REPORT_EVERY if report_every is None else report_every
        self.metrics = metrics or Metrics()

        self.state: RunState = self.state_store.load()
        self.registry: IdentityRegistry = self.sales_store.rehydrate_registry(self.state.known_ids)

    async def extract_batch(self) -> tuple[int, list[Sale]]:
        """Walk up to max_pages pages and merge every sale by id across them."""
        rows = 0
        sales: list[Sale] = []
        paginated = False

        for page_no in range(self.max_pages):
            blocks = await self.accessor.get_row_blocks()
            rows += len(blocks)
            page_sales = merge_by_id(assemble_sales(blocks))
            sales.extend(page_sales)
            logger.debug(f"[CYCLE] page={page_no + 1} rows={len(blocks)} sales={len(page_sales)}")

            if page_no + 1 >= self.max_pages:
                break
            if not await self.accessor.advance_page():
                break
            paginated = True

        if paginated:
            await go_to_first_page(self.accessor)

        return rows, merge_by_id(sales)

    async def run_cycle(self) -> CycleResult:
        """
        One extraction cycle. Extraction failures and timeouts raise
        ExtractionError before anything is written or registered.
        """
        try:
            rows, batch = await asyncio.wait_for(self.extract_batch(), timeout=self.extract_timeout)
        except asyncio.TimeoutError as e:
            self.metrics.increment("failed_cycles")
            raise ExtractionError(f"Extraction exceeded timeout ({self.extract_timeout}s)") from e
        except ExtractionError:
            self.metrics.increment("failed_cycles")
            raise
        except Exception as e:
            self.metrics.increment("failed_cycles")
            raise ExtractionError(f"Extraction failed: {e}") from e

        appended = self.sales_store.append(batch, self.registry)
        result = CycleResult(
            rows=rows,
            batch=batch,
            appended=appended.appended,
            duplicates=appended.duplicates,
            discarded=appended.discarded,
        )

        if result.appended:
            logger.info(f"[CYCLE] +{result.appended} new sales (known keys: {len(self.registry)})")
        else:
            logger.info("[CYCLE] No new sales.")

        self.save_state()

        self.metrics.record_cycle(
            rows=rows,
            sales=len(batch),
            appended=result.appended,
            duplicates=result.duplicates,
            discarded=result.discarded,
        )

        if result.appended:
            result.report_path = await self._maybe_report()
        return result

    async def _maybe_report(self) -> Optional[Path]:
        """Render the full history when the report cooldown has passed, then deliver it."""
        if self.reporter is None:
            return None

        since = self.state.seconds_since_report()
        if since is not None and since < self.report_every:
            logger.info(f"[CYCLE] New sales detected, report in cooldown (~{int(self.report_every - since)}s)")
            return None

        try:
            report_path = self.reporter.render(self.sales_store.load(), datetime.now())
        except OSError as e:
            logger.warning(f"[CYCLE] Report rendering failed: {e}")
            return None

        self.state.last_report_at = now_iso()
        self.state_store.save(self.state)

        if self.webhook is not None and self.webhook.enabled:
            content_type = getattr(self.reporter, "content_type", "application/octet-stream")
            try:
                await self.webhook.send_file(report_path, content_type=content_type)
            except DeliveryError as e:
                logger.warning(f"[CYCLE] Report delivery failed (status={e.status_code}): {e}")
        return report_path

    def save_state(self) -> None:
        """Persist the key cache and last run time (used on shutdown)."""
        self.state.remember(self.registry.recent_keys(config.KNOWN_IDS_CAP), cap=config.KNOWN_IDS_CAP)
        self.state.last_run_at = now_iso()
        self.state_store.save(self.state)
