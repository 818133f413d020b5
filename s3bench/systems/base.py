"""
Async S3 object storage system used by the benchmark harness.
"""

import asyncio
import logging
import os
import time
from typing import NamedTuple, Optional

import aioboto3
import psutil
from aiohttp.client_exceptions import ClientError as AiohttpClientError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from s3bench.configuration import (
    CONNECT_TIMEOUT_SECONDS,
    CONNECTION_POOL_HEADROOM,
    HTTP_NOT_FOUND_STATUS,
    MAX_POOL_CONNECTIONS,
)
from s3bench.errors import ObjectNotFoundError, StorageError, TransportError, UnexpectedStatusError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = ("NoSuchKey", "NotFound", "NoSuchBucket", "404")


class FetchResult(NamedTuple):
    """Body and status of one GET, plus the time until the response arrived."""

    data: bytes
    status: int
    first_byte_seconds: float


def pool_size_for(workers: int) -> int:
    """Connection pool size for a run with ``workers`` concurrent fetches."""
    return max(1, min(workers + CONNECTION_POOL_HEADROOM, MAX_POOL_CONNECTIONS))


def create_client_config(
    max_pool_connections: int, request_timeout: Optional[float] = None
) -> Config:
    """botocore config shared by the async and the blocking systems."""
    return Config(
        max_pool_connections=max_pool_connections,
        connect_timeout=CONNECT_TIMEOUT_SECONDS,
        read_timeout=request_timeout or 60,
        # A failed fetch is fatal to the run, so the SDK does not retry it
        retries={
            "max_attempts": 1,
            "mode": "standard",
        },
        tcp_keepalive=True,
    )


def translate_client_error(error: ClientError, key: str) -> StorageError:
    """Map a botocore ClientError onto the storage error taxonomy."""
    error_code = error.response.get("Error", {}).get("Code", "Unknown")
    status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)

    if status_code == HTTP_NOT_FOUND_STATUS or error_code in NOT_FOUND_CODES:
        return ObjectNotFoundError(f"Object {key} not found ({error_code})", key=key)
    return UnexpectedStatusError(
        f"S3 error {error_code} (HTTP {status_code}) for {key}", key=key, status=status_code
    )


def get_connection_count() -> int:
    """Get number of established connections for this process."""
    try:
        process = psutil.Process(os.getpid())
        connections = process.net_connections(kind="inet")
        return len([c for c in connections if c.status == psutil.CONN_ESTABLISHED])
    except psutil.Error as e:
        logger.debug(f"Failed to get connection count: {e}")
        return -1


class ObjectStorageSystem:
    """Async S3 client bound to one bucket.

    Use as an async context manager; the underlying aioboto3 client (and its
    connection pool) is shared by every worker of a run.
    """

    def __init__(
        self,
        bucket_name: str,
        region: str,
        endpoint: Optional[str] = None,
        credentials: Optional[dict] = None,
        request_timeout: Optional[float] = None,
        max_pool_connections: int = MAX_POOL_CONNECTIONS,
    ):
        credentials = credentials or {}
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint = endpoint
        self.request_timeout = request_timeout

        self._config = create_client_config(max_pool_connections, request_timeout)
        self.session = aioboto3.Session(
            aws_access_key_id=credentials.get("access_key_id"),
            aws_secret_access_key=credentials.get("secret_access_key"),
            region_name=region,
        )
        self.client = None
        self._client_context = None

        logger.info(
            f"Initialized async storage for bucket {bucket_name} in {region} "
            f"(endpoint={endpoint or 'default'}, "
            f"max_pool_connections={self._config.max_pool_connections})"
        )

    async def __aenter__(self):
        self._client_context = self.session.client(
            "s3",
            endpoint_url=self.endpoint,
            config=self._config,
        )
        self.client = await self._client_context.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client_context is not None:
            await self._client_context.__aexit__(exc_type, exc_val, exc_tb)
        self._client_context = None
        self.client = None

    def _require_client(self):
        if not self.client:
            raise RuntimeError("Storage client not initialized. Use async context manager.")

    async def fetch(self, key: str) -> FetchResult:
        """Download a whole object.

        Raises:
            TransportError: connection failure, SDK failure or timeout
            ObjectNotFoundError: the object does not exist
            UnexpectedStatusError: any other error status
        """
        self._require_client()
        try:
            if self.request_timeout:
                return await asyncio.wait_for(self._get_object(key), timeout=self.request_timeout)
            return await self._get_object(key)
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Timeout after {self.request_timeout}s downloading {key}", key=key
            ) from e
        except ClientError as e:
            raise translate_client_error(e, key) from e
        except (BotoCoreError, AiohttpClientError) as e:
            raise TransportError(f"Transport error downloading {key}: {e}", key=key) from e

    async def _get_object(self, key: str) -> FetchResult:
        start_time = time.perf_counter()
        response = await self.client.get_object(Bucket=self.bucket_name, Key=key)
        first_byte_seconds = time.perf_counter() - start_time

        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        body = response["Body"]
        try:
            data = await body.read()
        finally:
            body.close()
        return FetchResult(data, status, first_byte_seconds)

    async def upload(self, key: str, data: bytes) -> None:
        """Upload ``data`` as a single object."""
        self._require_client()
        try:
            await self.client.put_object(
                Bucket=self.bucket_name, Key=key, Body=data, ContentLength=len(data)
            )
        except ClientError as e:
            raise translate_client_error(e, key) from e
        except (BotoCoreError, AiohttpClientError) as e:
            raise TransportError(f"Transport error uploading {key}: {e}", key=key) from e
