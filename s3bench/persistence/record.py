"""
Basic data structures for the S3 download benchmark.
"""

from typing import Iterable, Optional

from s3bench.configuration import (
    AWS_REGION,
    BUCKET_NAME,
    BYTES_PER_MB,
    KEY_FAN_OUT_WIDTH,
    KEY_PREFIX,
    MILLISECONDS_PER_SECOND,
    REQUEST_TIMEOUT_SECONDS,
    S3_ENDPOINT,
    SWEEP_MAX_WORKERS,
    SWEEP_STEP,
)
from s3bench.errors import ConfigError


class RunConfig:
    """Parameters of one harness run (fixed worker count and sample count)."""

    def __init__(
        self,
        workers: int,
        samples: int,
        bucket: str = BUCKET_NAME,
        key_prefix: str = KEY_PREFIX,
        region: str = AWS_REGION,
        endpoint_url: Optional[str] = None,
        fan_out: int = KEY_FAN_OUT_WIDTH,
        track_latency: bool = True,
        request_timeout: Optional[float] = REQUEST_TIMEOUT_SECONDS,
    ):
        self.workers = workers
        self.samples = samples
        self.bucket = bucket
        self.key_prefix = key_prefix
        self.region = region
        self.endpoint_url = endpoint_url or S3_ENDPOINT or None
        self.fan_out = fan_out
        self.track_latency = track_latency
        # 0 and None both mean "no per-fetch timeout"
        self.request_timeout = request_timeout or None

    def validate(self) -> "RunConfig":
        """Raise ConfigError if the run cannot be executed."""
        if self.workers < 0:
            raise ConfigError(f"Worker count must be >= 0, got {self.workers}")
        if self.samples < 0:
            raise ConfigError(f"Sample count must be >= 0, got {self.samples}")
        if self.fan_out < 1:
            raise ConfigError(f"Key fan-out width must be >= 1, got {self.fan_out}")
        if not self.bucket:
            raise ConfigError("Bucket name must not be empty")
        if self.request_timeout is not None and self.request_timeout < 0:
            raise ConfigError(f"Request timeout must be >= 0, got {self.request_timeout}")
        return self

    def with_workers(self, workers: int) -> "RunConfig":
        """Copy of this config with a different worker count."""
        return RunConfig(
            workers=workers,
            samples=self.samples,
            bucket=self.bucket,
            key_prefix=self.key_prefix,
            region=self.region,
            endpoint_url=self.endpoint_url,
            fan_out=self.fan_out,
            track_latency=self.track_latency,
            request_timeout=self.request_timeout,
        )

    def __repr__(self) -> str:
        return (
            f"RunConfig(workers={self.workers}, samples={self.samples}, "
            f"bucket='{self.bucket}', key_prefix='{self.key_prefix}', region='{self.region}')"
        )


class SweepConfig:
    """A sequence of runs varying the worker count by a fixed step."""

    def __init__(
        self,
        start_workers: int,
        base: RunConfig,
        step: int = SWEEP_STEP,
        max_workers: int = SWEEP_MAX_WORKERS,
    ):
        self.start_workers = start_workers
        self.step = step
        self.max_workers = max_workers
        self.base = base

    def validate(self) -> "SweepConfig":
        if self.start_workers < 0:
            raise ConfigError(f"Start worker count must be >= 0, got {self.start_workers}")
        if self.step < 1:
            raise ConfigError(f"Sweep step must be >= 1, got {self.step}")
        if self.max_workers <= self.start_workers:
            raise ConfigError(
                f"Max worker count ({self.max_workers}) must be above the start "
                f"worker count ({self.start_workers})"
            )
        self.base.validate()
        return self


class WorkerResult:
    """Totals accumulated by a single worker. Only its own worker mutates it."""

    def __init__(self, worker_id: int, key: str):
        self.worker_id = worker_id
        self.key = key
        self.requests = 0
        self.bytes = 0
        self.first_byte_seconds = 0.0
        self.last_byte_seconds = 0.0

    def add(self, num_bytes: int, first_byte_seconds: float = 0.0, last_byte_seconds: float = 0.0):
        self.requests += 1
        self.bytes += num_bytes
        self.first_byte_seconds += first_byte_seconds
        self.last_byte_seconds += last_byte_seconds

    def __repr__(self) -> str:
        return (
            f"WorkerResult(worker_id={self.worker_id}, key='{self.key}', "
            f"requests={self.requests}, bytes={self.bytes})"
        )


class RunReport:
    """Aggregate of all worker results for one run.

    Attributes are read-only; a report is built once by :meth:`from_results`
    (or directly from totals) and then printed or persisted.
    """

    def __init__(
        self,
        workers: int,
        samples: int,
        elapsed_seconds: float,
        total_bytes: int,
        requests: int,
        total_first_byte_seconds: float = 0.0,
        total_last_byte_seconds: float = 0.0,
        track_latency: bool = True,
    ):
        self._workers = workers
        self._samples = samples
        self._elapsed_seconds = elapsed_seconds
        self._total_bytes = total_bytes
        self._requests = requests
        self._total_first_byte_seconds = total_first_byte_seconds
        self._total_last_byte_seconds = total_last_byte_seconds
        self._track_latency = track_latency

    @classmethod
    def from_results(
        cls, config: RunConfig, elapsed_seconds: float, results: Iterable[WorkerResult]
    ) -> "RunReport":
        """Fold worker results into a report by summation."""
        total_bytes = 0
        requests = 0
        first = 0.0
        last = 0.0
        for result in results:
            total_bytes += result.bytes
            requests += result.requests
            first += result.first_byte_seconds
            last += result.last_byte_seconds
        return cls(
            workers=config.workers,
            samples=config.samples,
            elapsed_seconds=elapsed_seconds,
            total_bytes=total_bytes,
            requests=requests,
            total_first_byte_seconds=first,
            total_last_byte_seconds=last,
            track_latency=config.track_latency,
        )

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def samples(self) -> int:
        return self._samples

    @property
    def elapsed_seconds(self) -> float:
        return self._elapsed_seconds

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    @property
    def requests(self) -> int:
        return self._requests

    @property
    def track_latency(self) -> bool:
        return self._track_latency

    @property
    def total_mb(self) -> float:
        return self._total_bytes / BYTES_PER_MB

    @property
    def throughput_bytes_per_second(self) -> float:
        if self._elapsed_seconds <= 0:
            return 0.0
        return self._total_bytes / self._elapsed_seconds

    @property
    def throughput_mb_s(self) -> float:
        return self.throughput_bytes_per_second / BYTES_PER_MB

    @property
    def avg_first_byte_ms(self) -> Optional[float]:
        """Total first-byte latency over the sample count, None when untracked."""
        return self._average_ms(self._total_first_byte_seconds)

    @property
    def avg_last_byte_ms(self) -> Optional[float]:
        return self._average_ms(self._total_last_byte_seconds)

    def _average_ms(self, total_seconds: float) -> Optional[float]:
        if not self._track_latency:
            return None
        if self._samples <= 0:
            return 0.0
        return total_seconds / self._samples * MILLISECONDS_PER_SECOND

    def to_dict(self) -> dict:
        return {
            "workers": self._workers,
            "samples": self._samples,
            "requests": self._requests,
            "elapsed_seconds": self._elapsed_seconds,
            "total_bytes": self._total_bytes,
            "throughput_mb_s": self.throughput_mb_s,
            "avg_first_byte_ms": self.avg_first_byte_ms,
            "avg_last_byte_ms": self.avg_last_byte_ms,
        }

    def __repr__(self) -> str:
        return (
            f"RunReport(workers={self._workers}, samples={self._samples}, "
            f"elapsed={self._elapsed_seconds:.3f}s, bytes={self._total_bytes}, "
            f"throughput={self.throughput_mb_s:.1f} MB/s)"
        )
