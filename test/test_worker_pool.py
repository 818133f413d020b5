"""
Tests for the async worker pool (run driver and worker loop).
"""

import unittest

from fakes import FakeAsyncStorage

from s3bench.common.worker_pool import WorkerPool
from s3bench.errors import (
    BenchmarkRunError,
    ConfigError,
    ObjectNotFoundError,
    TransportError,
    UnexpectedStatusError,
    WorkerFailedError,
)
from s3bench.persistence.record import RunConfig


class TestWorkerPoolRun(unittest.IsolatedAsyncioTestCase):
    """Test work distribution and aggregation of a single async run."""

    async def test_every_sample_fetched_exactly_once(self):
        for workers, samples in [(1, 10), (3, 10), (7, 3), (10, 100)]:
            storage = FakeAsyncStorage(size=10)
            report = await WorkerPool(storage).run(RunConfig(workers=workers, samples=samples))

            self.assertEqual(storage.calls, samples)
            self.assertEqual(report.requests, samples)
            self.assertEqual(report.total_bytes, 10 * samples)
            self.assertEqual(report.workers, workers)

    async def test_fifty_workers_never_exceed_budget(self):
        for _ in range(3):
            storage = FakeAsyncStorage(size=1, delay=0.0001)
            report = await WorkerPool(storage).run(RunConfig(workers=50, samples=1000))

            self.assertEqual(storage.calls, 1000)
            self.assertEqual(report.total_bytes, 1000)

    async def test_per_worker_bytes_are_summed(self):
        # Each worker claims one sample before any fetch completes
        storage = FakeAsyncStorage(sizes={"k-0": 100, "k-1": 200, "k-2": 300}, delay=0.01)
        config = RunConfig(workers=3, samples=3, key_prefix="k", fan_out=3)

        report = await WorkerPool(storage).run(config)

        self.assertEqual(sorted(storage.keys), ["k-0", "k-1", "k-2"])
        self.assertEqual(report.total_bytes, 600)
        self.assertAlmostEqual(report.throughput_bytes_per_second, 600 / report.elapsed_seconds)

    async def test_zero_workers(self):
        storage = FakeAsyncStorage()
        report = await WorkerPool(storage).run(RunConfig(workers=0, samples=10))

        self.assertEqual(storage.calls, 0)
        self.assertEqual(report.total_bytes, 0)
        self.assertEqual(report.throughput_mb_s, 0.0)

    async def test_zero_samples(self):
        storage = FakeAsyncStorage()
        report = await WorkerPool(storage).run(RunConfig(workers=5, samples=0))

        self.assertEqual(storage.calls, 0)
        self.assertEqual(report.total_bytes, 0)
        self.assertEqual(report.avg_first_byte_ms, 0.0)
        self.assertEqual(report.avg_last_byte_ms, 0.0)

    async def test_throughput_uses_wall_clock(self):
        storage = FakeAsyncStorage(size=1024 * 1024, delay=0.01)
        report = await WorkerPool(storage).run(RunConfig(workers=4, samples=8))

        # Two rounds of 10ms downloads on four workers
        self.assertGreaterEqual(report.elapsed_seconds, 0.02)
        self.assertAlmostEqual(report.throughput_mb_s, 8 / report.elapsed_seconds, places=6)
        self.assertGreater(report.avg_last_byte_ms, 0.0)

    async def test_keys_follow_fan_out(self):
        storage = FakeAsyncStorage()
        await WorkerPool(storage).run(
            RunConfig(workers=6, samples=60, key_prefix="obj", fan_out=4)
        )

        self.assertEqual(set(storage.keys), {"obj-0", "obj-1", "obj-2", "obj-3"})

    async def test_latency_not_tracked(self):
        storage = FakeAsyncStorage()
        report = await WorkerPool(storage).run(RunConfig(workers=2, samples=4, track_latency=False))

        self.assertIsNone(report.avg_first_byte_ms)
        self.assertIsNone(report.avg_last_byte_ms)

    async def test_invalid_config_rejected_before_fetching(self):
        storage = FakeAsyncStorage()
        with self.assertRaises(ConfigError):
            await WorkerPool(storage).run(RunConfig(workers=-1, samples=10))
        self.assertEqual(storage.calls, 0)


class TestWorkerPoolFailures(unittest.IsolatedAsyncioTestCase):
    """Test that any fetch failure aborts the whole run."""

    async def test_fetch_error_aborts_run(self):
        storage = FakeAsyncStorage(fail_on=5)
        with self.assertRaises(BenchmarkRunError) as ctx:
            await WorkerPool(storage).run(RunConfig(workers=1, samples=10))

        self.assertIsInstance(ctx.exception.__cause__, TransportError)
        self.assertEqual(storage.calls, 5)

    async def test_failure_cancels_other_workers(self):
        storage = FakeAsyncStorage(fail_on=1, delay=0.01)
        with self.assertRaises(BenchmarkRunError):
            await WorkerPool(storage).run(RunConfig(workers=4, samples=1000))

        # Only the first round of fetches was started
        self.assertLess(storage.calls, 1000)

    async def test_not_found_is_fatal(self):
        storage = FakeAsyncStorage(fail_on=1, error=ObjectNotFoundError)
        with self.assertRaises(BenchmarkRunError) as ctx:
            await WorkerPool(storage).run(RunConfig(workers=2, samples=4))

        self.assertIsInstance(ctx.exception.__cause__, ObjectNotFoundError)

    async def test_unexpected_status_is_fatal(self):
        storage = FakeAsyncStorage(status=500)
        with self.assertRaises(BenchmarkRunError) as ctx:
            await WorkerPool(storage).run(RunConfig(workers=1, samples=3))

        self.assertIsInstance(ctx.exception.__cause__, UnexpectedStatusError)
        self.assertEqual(ctx.exception.__cause__.status, 500)
        self.assertEqual(storage.calls, 1)

    async def test_partial_content_status_accepted(self):
        storage = FakeAsyncStorage(status=206)
        report = await WorkerPool(storage).run(RunConfig(workers=1, samples=3))
        self.assertEqual(report.requests, 3)

    async def test_worker_crash_surfaces_as_worker_failure(self):
        class BrokenStorage(FakeAsyncStorage):
            async def fetch(self, key):
                raise KeyError(key)

        with self.assertRaises(BenchmarkRunError) as ctx:
            await WorkerPool(BrokenStorage()).run(RunConfig(workers=3, samples=3))

        self.assertIsInstance(ctx.exception.__cause__, WorkerFailedError)


if __name__ == '__main__':
    unittest.main()
