"""
Thread-per-worker pool for blocking storage systems.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

from s3bench.common.metrics_utils import is_success_status, object_key_for_worker
from s3bench.common.work_budget import WorkBudget
from s3bench.errors import BenchmarkRunError, StorageError, UnexpectedStatusError, WorkerFailedError
from s3bench.persistence.prom import SimplePrometheusExporter
from s3bench.persistence.record import RunConfig, RunReport, WorkerResult
from s3bench.systems.base import get_connection_count

logger = logging.getLogger(__name__)


class ThreadWorkerPool:
    """Threaded counterpart of :class:`s3bench.common.worker_pool.WorkerPool`.

    Threads cannot be cancelled, so a failure sets an abort event that stops
    every other worker at its next claim; the run then raises once all threads
    have been joined. A caller-owned ``stop`` event serves as that abort event,
    which lets the caller end a run early.
    """

    def __init__(self, storage_system, metrics: Optional[SimplePrometheusExporter] = None):
        self.storage_system = storage_system
        self.metrics = metrics

    def run(self, config: RunConfig, stop: Optional[threading.Event] = None) -> RunReport:
        config.validate()
        budget = WorkBudget(config.samples)
        abort = stop if stop is not None else threading.Event()
        if self.metrics:
            self.metrics.update_workers(config.workers)

        logger.info(f"Starting threaded run: {config.workers} workers, {config.samples} samples")

        results: List[WorkerResult] = []
        failure = None
        start_time = time.perf_counter()
        with ThreadPoolExecutor(
            max_workers=max(1, config.workers), thread_name_prefix="s3bench-worker"
        ) as executor:
            futures = [
                executor.submit(self._worker, worker_id, budget, abort, config)
                for worker_id in range(config.workers)
            ]
            for future in as_completed(futures):
                try:
                    results.append(future.result())
                except (StorageError, WorkerFailedError) as e:
                    if failure is None:
                        failure = e
                        abort.set()
        elapsed = time.perf_counter() - start_time

        if failure is not None:
            logger.error(f"Run aborted after {budget.claimed} claims: {failure}")
            raise BenchmarkRunError(config, str(failure)) from failure
        if abort.is_set() and budget.remaining > 0:
            logger.warning(f"Run stopped after {budget.claimed} of {config.samples} claims")
            raise BenchmarkRunError(config, "Run stopped before all samples were downloaded")

        report = RunReport.from_results(config, elapsed, results)
        if self.metrics:
            self.metrics.update_throughput(report.throughput_mb_s)

        logger.info(
            f"Run finished: {report.requests} requests, {report.total_bytes} bytes "
            f"in {elapsed:.3f}s ({report.throughput_mb_s:.1f} MB/s)"
        )
        logger.debug(f"Established connections: {get_connection_count()}")
        return report

    def _worker(self, worker_id: int, budget: WorkBudget, abort: threading.Event, config: RunConfig) -> WorkerResult:
        key = object_key_for_worker(config.key_prefix, worker_id, config.fan_out)
        result = WorkerResult(worker_id, key)
        try:
            while not abort.is_set() and budget.claim():
                self._fetch_and_record(result, config.track_latency)
        except StorageError:
            raise
        except Exception as e:
            raise WorkerFailedError(worker_id, repr(e)) from e
        return result

    def _fetch_and_record(self, result: WorkerResult, track_latency: bool):
        start_time = time.perf_counter()
        fetched = self.storage_system.fetch(result.key)
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
