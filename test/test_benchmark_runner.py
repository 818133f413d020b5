"""
Tests for the download command runner and its report sinks.
"""

import asyncio
import io
import os
import tempfile
import unittest

import pandas as pd
from prometheus_client import CollectorRegistry

from fakes import FakeAsyncStorage, FakeBlockingStorage, factory_for

from s3bench.commands.benchmark import BenchmarkRunner
from s3bench.configuration import MODE_THREADS
from s3bench.errors import BenchmarkRunError, ConfigError
from s3bench.persistence.parquet import ParquetPersistence
from s3bench.persistence.prom import SimplePrometheusExporter
from s3bench.persistence.record import RunConfig, RunReport, SweepConfig
from s3bench.persistence.report import ReportWriter


class TestReportWriter(unittest.TestCase):
    """Test header and line rendering."""

    def test_header_and_line(self):
        stream = io.StringIO()
        writer = ReportWriter(stream)
        report = RunReport(
            workers=3, samples=4, elapsed_seconds=2.0, total_bytes=4 * 1024 * 1024,
            requests=4, total_first_byte_seconds=0.2, total_last_byte_seconds=0.4,
        )

        writer.write(report)
        writer.write(report)

        lines = stream.getvalue().splitlines()
        self.assertEqual(len(lines), 3)
        self.assertEqual(
            lines[0],
            "Time, Bytes downloaded, MB downloaded, Throughput, Avg first byte, Avg last byte",
        )
        self.assertEqual(lines[1], "   2.0000 s, 4194304 B, 4.0 MB,    2.0 MB/s,    50 ms,   100 ms")
        self.assertEqual(writer.lines_written, 2)

    def test_without_latency(self):
        stream = io.StringIO()
        writer = ReportWriter(stream, track_latency=False)
        writer.write(RunReport(workers=1, samples=1, elapsed_seconds=1.0, total_bytes=0, requests=1))

        header, line = stream.getvalue().splitlines()
        self.assertNotIn("Avg first byte", header)
        self.assertEqual(line.count(","), 3)


class TestBenchmarkRunner(unittest.IsolatedAsyncioTestCase):
    """Test single runs and sweeps through the runner."""

    def _runner(self, storage, **kwargs):
        self.stream = io.StringIO()
        return BenchmarkRunner(
            writer=ReportWriter(self.stream),
            storage_factory=factory_for(storage),
            **kwargs,
        )

    def _lines(self):
        return self.stream.getvalue().splitlines()

    async def test_download_prints_one_line(self):
        storage = FakeAsyncStorage(size=100)
        report = await self._runner(storage).run_download(RunConfig(workers=3, samples=6))

        self.assertEqual(report.total_bytes, 600)
        self.assertEqual(len(self._lines()), 2)
        self.assertTrue(storage.entered)
        self.assertTrue(storage.exited)

    async def test_failed_run_prints_no_report_line(self):
        storage = FakeAsyncStorage(fail_on=5)

        with self.assertRaises(BenchmarkRunError):
            await self._runner(storage).run_download(RunConfig(workers=1, samples=10))

        # Header only
        self.assertEqual(len(self._lines()), 1)
        self.assertTrue(storage.exited)

    async def test_download_on_threads(self):
        storage = FakeBlockingStorage(size=10)
        report = await self._runner(storage, mode=MODE_THREADS).run_download(RunConfig(workers=4, samples=8))

        self.assertEqual(report.total_bytes, 80)
        self.assertTrue(storage.exited)

    async def test_sweep_prints_header_once(self):
        storage = FakeAsyncStorage(size=1)
        sweep_config = SweepConfig(
            start_workers=1, base=RunConfig(workers=1, samples=5), step=5, max_workers=12,
        )

        reports = await self._runner(storage).run_sweep(sweep_config)

        self.assertEqual(len(reports), 3)
        self.assertEqual(len(self._lines()), 4)

    async def test_sweep_reports_saved_to_parquet(self):
        storage = FakeAsyncStorage(size=1)
        sweep_config = SweepConfig(
            start_workers=2, base=RunConfig(workers=2, samples=4), step=2, max_workers=7,
        )
        with tempfile.TemporaryDirectory() as output_dir:
            persistence = ParquetPersistence(output_dir)
            await self._runner(storage, persistence=persistence).run_sweep(sweep_config)

            files = os.listdir(output_dir)
            self.assertEqual(len(files), 1)
            df = pd.read_parquet(os.path.join(output_dir, files[0]))

        self.assertEqual(list(df["workers"]), [2, 4, 6])
        self.assertEqual(list(df["total_bytes"]), [4, 4, 4])
        self.assertTrue(files[0].startswith("sweep_"))

    async def test_download_saved_with_download_prefix(self):
        storage = FakeAsyncStorage(size=1)
        with tempfile.TemporaryDirectory() as output_dir:
            persistence = ParquetPersistence(output_dir)
            await self._runner(storage, persistence=persistence).run_download(RunConfig(workers=2, samples=4))

            files = os.listdir(output_dir)

        self.assertEqual(len(files), 1)
        self.assertTrue(files[0].startswith("download_"))

    async def test_cancelled_threaded_sweep_stops_fetching(self):
        storage = FakeBlockingStorage(size=1, delay=0.01)
        sweep_config = SweepConfig(
            start_workers=2, base=RunConfig(workers=2, samples=100), step=1, max_workers=4,
        )
        task = asyncio.create_task(self._runner(storage, mode=MODE_THREADS).run_sweep(sweep_config))
        await asyncio.sleep(0.05)

        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        # Fetches in flight at cancellation may still complete
        await asyncio.sleep(0.1)
        calls = storage.calls
        await asyncio.sleep(0.3)

        self.assertEqual(storage.calls, calls)
        self.assertLess(calls, 100)
        self.assertTrue(storage.exited)

    async def test_metrics_exported(self):
        registry = CollectorRegistry()
        metrics = SimplePrometheusExporter(registry=registry)
        storage = FakeAsyncStorage(size=10)

        await self._runner(storage, metrics=metrics).run_download(RunConfig(workers=2, samples=5))

        self.assertEqual(registry.get_sample_value("s3bench_bytes_downloaded_total"), 50.0)
        self.assertEqual(registry.get_sample_value("s3bench_requests_total", {"status": "200"}), 5.0)
        self.assertEqual(registry.get_sample_value("s3bench_workers"), 2.0)

    def test_unknown_mode_rejected(self):
        with self.assertRaises(ConfigError):
            BenchmarkRunner(mode="processes")


class TestParquetPersistence(unittest.TestCase):
    """Test saving run reports."""

    def test_nothing_to_save(self):
        with tempfile.TemporaryDirectory() as output_dir:
            self.assertIsNone(ParquetPersistence(output_dir).save_to_file())

    def test_dataframe_columns(self):
        with tempfile.TemporaryDirectory() as output_dir:
            persistence = ParquetPersistence(output_dir)
            persistence.store_report(
                RunReport(workers=1, samples=1, elapsed_seconds=1.0, total_bytes=10, requests=1)
            )
            df = persistence.to_dataframe()

        self.assertIn("throughput_mb_s", df.columns)
        self.assertIn("avg_last_byte_ms", df.columns)
        self.assertEqual(len(df), 1)


if __name__ == '__main__':
    unittest.main()
