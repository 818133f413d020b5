"""
Async worker pool: fans a fixed sample budget out over N tasks and folds their totals.
"""

import asyncio
import logging
import time
from typing import List, Optional

from s3bench.common.metrics_utils import is_success_status, object_key_for_worker
from s3bench.common.work_budget import AsyncWorkBudget
from s3bench.errors import BenchmarkRunError, StorageError, UnexpectedStatusError, WorkerFailedError
from s3bench.persistence.prom import SimplePrometheusExporter
from s3bench.persistence.record import RunConfig, RunReport, WorkerResult
from s3bench.systems.base import get_connection_count

logger = logging.getLogger(__name__)


class WorkerPool:
    """Runs one benchmark run at a time as asyncio tasks sharing a storage system.

    Each run gets a fresh :class:`AsyncWorkBudget`. Workers claim one unit at a
    time and fetch outside the claim lock; the first failure cancels the
    remaining workers and aborts the run without a report.
    """

    def __init__(self, storage_system, metrics: Optional[SimplePrometheusExporter] = None):
        """Initialize the async worker pool.

        Args:
            storage_system: Entered async storage system exposing ``fetch(key)``
            metrics: Optional Prometheus exporter fed with every fetch
        """
        self.storage_system = storage_system
        self.metrics = metrics

    async def run(self, config: RunConfig) -> RunReport:
        """Execute one run and return its report.

        Raises:
            BenchmarkRunError: a worker failed; the cause is chained
        """
        config.validate()
        budget = AsyncWorkBudget(config.samples)
        if self.metrics:
            self.metrics.update_workers(config.workers)

        logger.info(f"Starting run: {config.workers} workers, {config.samples} samples")

        start_time = time.perf_counter()
        tasks = [
            asyncio.create_task(self._worker_task(worker_id, budget, config))
            for worker_id in range(config.workers)
        ]
        try:
            results: List[WorkerResult] = await asyncio.gather(*tasks)
        except (StorageError, WorkerFailedError) as e:
            await self._cancel(tasks)
            logger.error(f"Run aborted after {budget.claimed} claims: {e}")
            raise BenchmarkRunError(config, str(e)) from e
        except asyncio.CancelledError:
            await self._cancel(tasks)
            raise
        elapsed = time.perf_counter() - start_time

        report = RunReport.from_results(config, elapsed, results)
        if self.metrics:
            self.metrics.update_throughput(report.throughput_mb_s)

        logger.info(
            f"Run finished: {report.requests} requests, {report.total_bytes} bytes "
            f"in {elapsed:.3f}s ({report.throughput_mb_s:.1f} MB/s)"
        )
        logger.debug(f"Established connections: {get_connection_count()}")
        return report

    @staticmethod
    async def _cancel(tasks: List[asyncio.Task]):
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _worker_task(self, worker_id: int, budget: AsyncWorkBudget, config: RunConfig) -> WorkerResult:
        """Claim-and-fetch loop of one worker."""
        key = object_key_for_worker(config.key_prefix, worker_id, config.fan_out)
        result = WorkerResult(worker_id, key)
        try:
            while await budget.claim():
                await self._fetch_and_record(result, config.track_latency)
        except StorageError:
            raise
        except Exception as e:
            raise WorkerFailedError(worker_id, repr(e)) from e

        logger.debug(f"Worker {worker_id} done: {result.requests} requests, {result.bytes} bytes")
        return result

    async def _fetch_and_record(self, result: WorkerResult, track_latency: bool):
        """Download the worker's key once and add it to the worker's totals."""
        start_time = time.perf_counter()
        fetched = await self.storage_system.fetch(result.key)
        last_byte_seconds = time.perf_counter() - start_time

        if not is_success_status(fetched.status):
            raise UnexpectedStatusError(
                f"Unexpected HTTP {fetched.status} for {result.key}",
                key=result.key,
                status=fetched.status,
            )

        num_bytes = len(fetched.data)
        if track_latency:
            result.add(num_bytes, fetched.first_byte_seconds, last_byte_seconds)
        else:
            result.add(num_bytes)

        if self.metrics:
            self.metrics.record_request(fetched.status, last_byte_seconds, num_bytes)
