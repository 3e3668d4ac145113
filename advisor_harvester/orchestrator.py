"""Two-phase harvest: enumerate agent IDs, then stream detail records."""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Iterator, Sequence, TypeVar

import structlog

from .config import HarvestConfig
from .engine import Fetcher
from .engine.exporter import BaseExporter
from .ui import ProgressReporter

T = TypeVar("T")
Sleeper = Callable[[float], Awaitable[None]]


class EnumerationError(RuntimeError):
    """The first listing page could not be fetched; the run cannot start."""


@dataclass(slots=True)
class HarvestSummary:
    page_count: int
    agent_ids: int
    written: int
    errors: list[str] = field(default_factory=list)
    output_path: Path | None = None

    @property
    def failed(self) -> int:
        return len(self.errors)

    def error_preview(self, limit: int = 10) -> tuple[list[str], int]:
        """Return the first ``limit`` errors and how many were left out."""

        return self.errors[:limit], max(0, len(self.errors) - limit)


def batched(items: Iterable[T], size: int) -> Iterator[list[T]]:
    batch: list[T] = []
    for item in items:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


class Orchestrator:
    """Drive listing enumeration and detail fetching in sequential batches.

    Items inside a batch run concurrently and are always awaited to settlement;
    a failed item never aborts its batch or the run. Only the first listing
    page is fatal, since the page count comes from it.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        config: HarvestConfig,
        progress: ProgressReporter | None = None,
        sleep: Sleeper | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.config = config
        self.progress = progress or ProgressReporter(enabled=False)
        self._sleep = sleep or asyncio.sleep
        self.logger = logger or structlog.get_logger("advisor_harvester.orchestrator")
        self.errors: list[str] = []

    # ------------------------------------------------------------------
    async def run(self, exporter: BaseExporter, output_path: Path | None = None) -> HarvestSummary:
        self.errors = []
        try:
            agent_ids, page_count = await self.collect_agent_ids()
            written = await self.fetch_details(agent_ids, exporter)
        finally:
            self.progress.close()
            exporter.flush()
            exporter.close()
        summary = HarvestSummary(
            page_count=page_count,
            agent_ids=len(agent_ids),
            written=written,
            errors=list(self.errors),
            output_path=output_path,
        )
        self.logger.info(
            "harvest_finished",
            pages=page_count,
            agent_ids=summary.agent_ids,
            written=written,
            errors=summary.failed,
        )
        return summary

    async def collect_agent_ids(self) -> tuple[list[Any], int]:
        """Phase 1: read page 0 for the total, then the remaining pages in batches."""

        page_size = self.config.page_size
        try:
            total, agent_ids = await self._fetch_payload(
                self.config.endpoints.list_url(0, page_size), self._first_page
            )
        except Exception as exc:
            self.logger.error("enumeration_failed", error=str(exc))
            raise EnumerationError(f"Failed to fetch the first listing page: {exc}") from exc

        page_count = math.ceil(total / page_size)
        self.logger.info("enumeration_started", total=total, pages=page_count)
        self.progress.start(max(page_count, 1), "Fetching agent IDs", completed=1)

        for batch in batched(range(1, page_count), self.config.batch_size):
            results = await asyncio.gather(
                *(self._fetch_page(page) for page in batch), return_exceptions=True
            )
            for page, result in zip(batch, results):
                if isinstance(result, BaseException):
                    self._record_error(f"Failed to fetch page {page}: {result}")
                elif result:
                    agent_ids.extend(result)
            self.logger.info("batch_settled", phase="enumeration", pages=list(batch))
            await self._pause()

        self.progress.close()
        self.logger.info("enumeration_finished", agent_ids=len(agent_ids))
        return agent_ids, page_count

    async def fetch_details(self, agent_ids: Sequence[Any], exporter: BaseExporter) -> int:
        """Phase 2: fetch each agent's detail and append settled records to ``exporter``."""

        written = 0
        self.progress.start(len(agent_ids), "Fetching full details")
        for batch in batched(agent_ids, self.config.batch_size):
            tasks = [asyncio.ensure_future(self._fetch_detail(agent_id)) for agent_id in batch]
            settled: list[dict[str, Any] | None] = []
            for next_done in asyncio.as_completed(tasks):
                try:
                    settled.append(await next_done)
                except Exception as exc:  # noqa: BLE001
                    self._record_error(f"Detail task crashed: {exc}")
            for record in settled:
                if record is not None:
                    exporter.export(record)
                    written += 1
            exporter.flush()
            self.logger.info("batch_settled", phase="details", size=len(batch), written=written)
            await self._pause()
        self.progress.close()
        return written

    # ------------------------------------------------------------------
    async def _fetch_page(self, page: int) -> list[Any] | None:
        url = self.config.endpoints.list_url(page, self.config.page_size)

        async def _attempt() -> list[Any]:
            return await self._fetch_payload(url, self._page_ids)

        return await self._with_retry(f"page {page}", _attempt)

    async def _fetch_detail(self, agent_id: Any) -> dict[str, Any] | None:
        url = self.config.endpoints.detail_url(agent_id)

        def _record(payload: Any) -> dict[str, Any]:
            data = self._data(payload)
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise TypeError(f"Unexpected detail payload for agent {agent_id}")
            record: dict[str, Any] = {"id": agent_id}
            record.update(data)
            return record

        async def _attempt() -> dict[str, Any]:
            return await self._fetch_payload(url, _record)

        return await self._with_retry(f"agent {agent_id}", _attempt)

    async def _with_retry(self, label: str, operation: Callable[[], Awaitable[T]]) -> T | None:
        """Run ``operation`` up to ``max_retries`` times with a flat delay in between.

        Returns ``None`` after the last failed attempt; the failure is recorded
        in the error log rather than raised.
        """

        max_retries = self.config.max_retries
        for attempt in range(1, max_retries + 1):
            try:
                result = await operation()
            except Exception as exc:  # noqa: BLE001
                if attempt < max_retries:
                    self.logger.debug("item_retry", item=label, attempt=attempt, error=str(exc))
                    await self._sleep(self.config.retry_delay_ms / 1000)
                    continue
                self._record_error(f"Failed to fetch {label} after {max_retries} attempts: {exc}")
                self.progress.advance(success=False)
                return None
            self.progress.advance()
            return result
        return None

    async def _fetch_payload(self, url: str, extract: Callable[[Any], T]) -> T:
        """Fetch ``url`` and run ``extract`` on the body.

        A body that fails extraction is evicted from the response cache so the
        next attempt goes back to the network.
        """

        payload = await self.fetcher.fetch(url, None, self.config.cache.ttl_seconds)
        try:
            return extract(payload)
        except (KeyError, IndexError, TypeError, ValueError):
            self.fetcher.invalidate(url)
            raise

    def _first_page(self, payload: Any) -> tuple[int, list[Any]]:
        total = int(self._data(payload)[self.config.endpoints.total_field])
        return total, self._page_ids(payload)

    def _data(self, payload: Any) -> Any:
        return payload[self.config.endpoints.data_field]

    def _page_ids(self, payload: Any) -> list[Any]:
        endpoints = self.config.endpoints
        items = self._data(payload)[endpoints.items_field]
        if not isinstance(items, list):
            raise TypeError(f"Listing field {endpoints.items_field!r} is not a list")
        return [item[endpoints.id_field] for item in items]

    def _record_error(self, message: str) -> None:
        self.errors.append(message)
        self.logger.warning("item_failed", error=message)

    async def _pause(self) -> None:
        if self.config.batch_delay_ms > 0:
            await self._sleep(self.config.batch_delay_ms / 1000)


__all__ = ["EnumerationError", "HarvestSummary", "Orchestrator", "batched"]
