"""
Worker-count sweep: repeats a run at start, start + step, ... up to an explicit bound.
"""

import logging
import threading
from typing import Callable, Iterator, List, Optional

from s3bench.persistence.record import RunConfig, RunReport, SweepConfig

logger = logging.getLogger(__name__)


class Sweep:
    """Characterises throughput scaling by stepping the worker count.

    Reports are handed to ``on_report`` as soon as each run finishes. The first
    failed run propagates its error and ends the sweep.
    """

    def __init__(self, sweep_config: SweepConfig, on_report: Optional[Callable[[RunReport], None]] = None):
        self.sweep_config = sweep_config.validate()
        self.on_report = on_report
        self.reports: List[RunReport] = []

        logger.info(
            f"Initialized sweep: {sweep_config.start_workers} -> {sweep_config.max_workers} "
            f"workers, step {sweep_config.step}, {sweep_config.base.samples} samples per run"
        )

    def worker_counts(self) -> Iterator[int]:
        """Worker counts of the sweep, stopping below the upper bound."""
        return iter(range(self.sweep_config.start_workers, self.sweep_config.max_workers, self.sweep_config.step))

    def run_configs(self) -> Iterator[RunConfig]:
        for workers in self.worker_counts():
            yield self.sweep_config.base.with_workers(workers)

    async def execute(self, worker_pool) -> List[RunReport]:
        """Run the sweep on an async worker pool."""
        for step_count, config in enumerate(self.run_configs(), start=1):
            logger.info(f"Executing sweep step {step_count} at {config.workers} workers...")
            self._record(await worker_pool.run(config))
        return self.reports

    def execute_blocking(self, worker_pool, stop: Optional[threading.Event] = None) -> List[RunReport]:
        """Run the sweep on a threaded worker pool.

        Setting ``stop`` ends the current run and skips the remaining ones.
        """
        for step_count, config in enumerate(self.run_configs(), start=1):
            if stop is not None and stop.is_set():
                logger.info(f"Sweep stopped after {len(self.reports)} runs")
                break
            logger.info(f"Executing sweep step {step_count} at {config.workers} workers...")
            self._record(worker_pool.run(config, stop=stop))
        return self.reports

    def _record(self, report: RunReport):
        self.reports.append(report)
        if self.on_report:
            self.on_report(report)
