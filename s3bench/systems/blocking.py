"""
Blocking S3 object storage system for thread-per-worker runs.
"""

import logging
import time
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from s3bench.configuration import MAX_POOL_CONNECTIONS
from s3bench.errors import TransportError
from s3bench.systems.base import FetchResult, create_client_config, translate_client_error

logger = logging.getLogger(__name__)


class BlockingObjectStorageSystem:
    """boto3 S3 client bound to one bucket.

    botocore clients are thread-safe, so one instance is shared by all worker
    threads. The per-fetch timeout is enforced as the socket read timeout.
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
        self.session = boto3.session.Session(
            aws_access_key_id=credentials.get("access_key_id"),
            aws_secret_access_key=credentials.get("secret_access_key"),
            region_name=region,
        )
        self.client = None

        logger.info(
            f"Initialized blocking storage for bucket {bucket_name} in {region} "
            f"(max_pool_connections={self._config.max_pool_connections})"
        )

    def __enter__(self):
        self.client = self.session.client(
            "s3", endpoint_url=self.endpoint, config=self._config
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.client is not None:
            self.client.close()
            self.client = None

    def _require_client(self):
        if not self.client:
            raise RuntimeError("Storage client not initialized. Use context manager.")

    def fetch(self, key: str) -> FetchResult:
        """Download a whole object; raises the same errors as the async system."""
        self._require_client()
        try:
            start_time = time.perf_counter()
            response = self.client.get_object(Bucket=self.bucket_name, Key=key)
            first_byte_seconds = time.perf_counter() - start_time

            status = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
            body = response["Body"]
            try:
                data = body.read()
            finally:
                body.close()
            return FetchResult(data, status, first_byte_seconds)
        except ClientError as e:
            raise translate_client_error(e, key) from e
        except BotoCoreError as e:
            raise TransportError(f"Transport error downloading {key}: {e}", key=key) from e

    def upload(self, key: str, data: bytes) -> None:
        self._require_client()
        try:
            self.client.put_object(
                Bucket=self.bucket_name, Key=key, Body=data, ContentLength=len(data)
            )
        except ClientError as e:
            raise translate_client_error(e, key) from e
        except BotoCoreError as e:
            raise TransportError(f"Transport error uploading {key}: {e}", key=key) from e
