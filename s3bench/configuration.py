"""
Configuration constants for the S3 download benchmark.

This module contains all configuration parameters including:
- Object storage location defaults
- Work distribution parameters (fan-out width, sweep step and bound)
- Request timeouts and accepted HTTP status codes
- File size constants and conversion factors
"""

import os
from typing import FrozenSet

# =============================================================================
# OBJECT STORAGE LOCATION
# =============================================================================

BUCKET_NAME: str = os.getenv("BUCKET_NAME", "abk-test-rusoto-download")
KEY_PREFIX: str = os.getenv("KEY_PREFIX", "test-object")
AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")

# Empty means the SDK resolves the regional AWS endpoint
S3_ENDPOINT: str = os.getenv("S3_ENDPOINT", "")

# Empty credentials fall through to the SDK's default provider chain
AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")

# =============================================================================
# WORK DISTRIBUTION
# =============================================================================

# Workers rotate over this many backing objects: key = "{prefix}-{index % width}"
KEY_FAN_OUT_WIDTH: int = 40

DEFAULT_WORKERS: int = 3
DEFAULT_SAMPLES: int = 10

# Sweep: start, start + step, ... while below the upper bound
SWEEP_STEP: int = 5
SWEEP_MAX_WORKERS: int = 80

# Harness realisations
MODE_ASYNC: str = "async"
MODE_THREADS: str = "threads"
MODES = (MODE_ASYNC, MODE_THREADS)

# =============================================================================
# REQUESTS
# =============================================================================

# Per-fetch timeout; a hung fetch becomes a fatal error for the run (0 disables)
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "120"))
CONNECT_TIMEOUT_SECONDS: int = 5

HTTP_SUCCESS_STATUS: int = 200
HTTP_PARTIAL_CONTENT_STATUS: int = 206
HTTP_NOT_FOUND_STATUS: int = 404
SUCCESS_STATUSES: FrozenSet[int] = frozenset({HTTP_SUCCESS_STATUS, HTTP_PARTIAL_CONTENT_STATUS})

# Extra pooled connections on top of one per worker
CONNECTION_POOL_HEADROOM: int = 10
MAX_POOL_CONNECTIONS: int = 2000

# =============================================================================
# FILE SIZE CONSTANTS
# =============================================================================

BYTES_PER_MB: int = 1024 * 1024
MILLISECONDS_PER_SECOND: int = 1000

# =============================================================================
# CLI DEFAULTS
# =============================================================================

DEFAULT_LOG_LEVEL: str = os.getenv("S3BENCH_LOG_LEVEL", "INFO")
LOG_FORMAT: str = "%(asctime)s - %(levelname)s - %(message)s"
SWEEP_OUTPUT_PREFIX: str = "sweep"
DOWNLOAD_OUTPUT_PREFIX: str = "download"
