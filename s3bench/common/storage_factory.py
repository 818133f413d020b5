"""
Factory module for creating storage system instances.
"""

import logging

# Keep SDK chatter out of the benchmark output
logging.getLogger("botocore").setLevel(logging.CRITICAL)
logging.getLogger("botocore.credentials").setLevel(logging.CRITICAL)
logging.getLogger("boto3").setLevel(logging.CRITICAL)
logging.getLogger("aioboto3").setLevel(logging.CRITICAL)
logging.getLogger("aiobotocore").setLevel(logging.CRITICAL)
logging.getLogger("urllib3").setLevel(logging.CRITICAL)
logging.getLogger("s3transfer").setLevel(logging.CRITICAL)

from s3bench.configuration import (
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    MODE_ASYNC,
    MODE_THREADS,
)
from s3bench.persistence.record import RunConfig
from s3bench.systems.base import ObjectStorageSystem, pool_size_for
from s3bench.systems.blocking import BlockingObjectStorageSystem

logger = logging.getLogger(__name__)


def create_storage_system(config: RunConfig, mode: str = MODE_ASYNC, max_workers: int = None):
    """Create the storage system a run (or a whole sweep) downloads through.

    Args:
        config: Run configuration naming bucket, region and endpoint
        mode: 'async' for an aioboto3 system, 'threads' for a boto3 system
        max_workers: Largest worker count the system will serve (pool sizing);
            defaults to ``config.workers``

    Returns:
        ObjectStorageSystem or BlockingObjectStorageSystem

    Raises:
        ValueError: If mode is not supported
    """
    credentials = {
        "access_key_id": AWS_ACCESS_KEY_ID or None,
        "secret_access_key": AWS_SECRET_ACCESS_KEY or None,
    }
    pool_size = pool_size_for(max_workers if max_workers is not None else config.workers)

    if mode == MODE_ASYNC:
        system_class = ObjectStorageSystem
    elif mode == MODE_THREADS:
        system_class = BlockingObjectStorageSystem
    else:
        raise ValueError(f"Unsupported mode: {mode}. Must be '{MODE_ASYNC}' or '{MODE_THREADS}'.")

    return system_class(
        bucket_name=config.bucket,
        region=config.region,
        endpoint=config.endpoint_url,
        credentials=credentials,
        request_timeout=config.request_timeout,
        max_pool_connections=pool_size,
    )
