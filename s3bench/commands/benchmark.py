"""
Download benchmark: a single run or a worker-count sweep.
"""

import asyncio
import logging
import threading
from typing import List, Optional

from s3bench.algorithms.sweep import Sweep
from s3bench.common.storage_factory import create_storage_system
from s3bench.common.thread_pool import ThreadWorkerPool
from s3bench.common.worker_pool import WorkerPool
from s3bench.configuration import (
    DOWNLOAD_OUTPUT_PREFIX,
    MODE_ASYNC,
    MODE_THREADS,
    MODES,
    SWEEP_OUTPUT_PREFIX,
)
from s3bench.errors import ConfigError
from s3bench.persistence.parquet import ParquetPersistence
from s3bench.persistence.prom import SimplePrometheusExporter
from s3bench.persistence.record import RunConfig, RunReport, SweepConfig
from s3bench.persistence.report import ReportWriter

logger = logging.getLogger(__name__)


class BenchmarkRunner:
    """Wires a storage system, a worker pool and the report sinks together."""

    def __init__(
        self,
        mode: str = MODE_ASYNC,
        writer: Optional[ReportWriter] = None,
        persistence: Optional[ParquetPersistence] = None,
        metrics: Optional[SimplePrometheusExporter] = None,
        storage_factory=create_storage_system,
    ):
        if mode not in MODES:
            raise ConfigError(f"Unsupported mode: {mode}")
        self.mode = mode
        self.writer = writer or ReportWriter()
        self.persistence = persistence
        self.metrics = metrics
        self.storage_factory = storage_factory

        logger.info(f"Initialized benchmark runner in {mode} mode")

    async def run_download(self, config: RunConfig) -> RunReport:
        """One run: one header line and one report line."""
        config.validate()
        self.writer.track_latency = config.track_latency
        self.writer.write_header()

        if self.mode == MODE_THREADS:
            report = await self._in_thread(self._download_blocking, config)
        else:
            storage_system = self.storage_factory(config, MODE_ASYNC)
            async with storage_system:
                report = await WorkerPool(storage_system, self.metrics).run(config)

        self._emit(report)
        self._save(DOWNLOAD_OUTPUT_PREFIX)
        return report

    def _download_blocking(self, config: RunConfig, stop: threading.Event) -> RunReport:
        storage_system = self.storage_factory(config, MODE_THREADS)
        with storage_system:
            return ThreadWorkerPool(storage_system, self.metrics).run(config, stop=stop)

    async def run_sweep(self, sweep_config: SweepConfig) -> List[RunReport]:
        """One header line, then one report line per worker count."""
        sweep = Sweep(sweep_config, on_report=self._emit)
        base = sweep_config.base
        self.writer.track_latency = base.track_latency
        self.writer.write_header()

        try:
            if self.mode == MODE_THREADS:
                return await self._in_thread(self._sweep_blocking, sweep)

            storage_system = self.storage_factory(base, MODE_ASYNC, max_workers=sweep_config.max_workers)
            async with storage_system:
                return await sweep.execute(WorkerPool(storage_system, self.metrics))
        finally:
            self._save(SWEEP_OUTPUT_PREFIX)

    def _sweep_blocking(self, sweep: Sweep, stop: threading.Event) -> List[RunReport]:
        sweep_config = sweep.sweep_config
        storage_system = self.storage_factory(sweep_config.base, MODE_THREADS, max_workers=sweep_config.max_workers)
        with storage_system:
            return sweep.execute_blocking(ThreadWorkerPool(storage_system, self.metrics), stop=stop)

    @staticmethod
    async def _in_thread(func, *args):
        """Run a blocking driver in a worker thread, stopping it if the caller is cancelled."""
        stop = threading.Event()
        try:
            return await asyncio.to_thread(func, *args, stop)
        except asyncio.CancelledError:
            stop.set()
            raise

    def _emit(self, report: RunReport):
        self.writer.write(report)
        if self.persistence is not None:
            self.persistence.store_report(report)

    def _save(self, filename_prefix: str):
        if self.persistence is None:
            return
        parquet_file = self.persistence.save_to_file(filename_prefix)
        if parquet_file:
            logger.info(f"Run reports saved to: {parquet_file}")
