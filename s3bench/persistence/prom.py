"""
Simple Prometheus metrics exporter for the S3 download benchmark.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, REGISTRY, start_http_server

logger = logging.getLogger(__name__)


class SimplePrometheusExporter:
    """Live counters for fetches, bytes and per-run throughput."""

    def __init__(self, port: int = 9100, registry: Optional[CollectorRegistry] = None):
        self.port = port
        self.registry = registry if registry is not None else REGISTRY
        self.server_started = False

        self.requests_total = Counter(
            "s3bench_requests_total", "Completed object fetches", ["status"], registry=self.registry
        )
        self.request_duration = Histogram(
            "s3bench_request_duration_seconds", "Fetch duration until the last byte", registry=self.registry
        )
        self.bytes_downloaded = Counter(
            "s3bench_bytes_downloaded_total", "Total bytes downloaded", registry=self.registry
        )
        self.throughput = Gauge(
            "s3bench_throughput_mb_per_second", "Throughput of the last finished run", registry=self.registry
        )
        self.workers = Gauge(
            "s3bench_workers", "Worker count of the current run", registry=self.registry
        )

    def start_server(self):
        """Start the Prometheus HTTP server."""
        if not self.server_started:
            start_http_server(self.port, registry=self.registry)
            self.server_started = True
            logger.info(f"Prometheus server started on port {self.port}")

    def record_request(self, status: int, duration_seconds: float, bytes_downloaded: int):
        self.requests_total.labels(status=str(status)).inc()
        self.request_duration.observe(duration_seconds)
        self.bytes_downloaded.inc(bytes_downloaded)

    def update_throughput(self, throughput_mb_s: float):
        self.throughput.set(throughput_mb_s)

    def update_workers(self, workers: int):
        self.workers.set(workers)
