"""
Create test objects for the download benchmark.
"""

import logging
import time

from s3bench.common.storage_factory import create_storage_system
from s3bench.configuration import BYTES_PER_MB, MODE_ASYNC
from s3bench.errors import ConfigError
from s3bench.persistence.record import RunConfig

logger = logging.getLogger(__name__)


class Uploader:
    """Sequential uploader of zero-filled test objects named ``{prefix}-{i}``."""

    def __init__(self, config: RunConfig, storage_factory=create_storage_system):
        self.config = config
        self.storage_factory = storage_factory

        logger.info(f"Initialized uploader for bucket {config.bucket}")

    async def create_files(self, file_size_mb: int, num_files: int) -> int:
        """Upload ``num_files`` objects of ``file_size_mb`` MB, one at a time.

        The first failed upload propagates; objects already uploaded stay.

        Returns:
            Number of objects uploaded
        """
        if file_size_mb < 0:
            raise ConfigError(f"File size must be >= 0 MB, got {file_size_mb}")
        if num_files < 0:
            raise ConfigError(f"Number of files must be >= 0, got {num_files}")

        file_size = file_size_mb * BYTES_PER_MB
        data = bytes(file_size)
        storage_system = self.storage_factory(self.config, MODE_ASYNC, max_workers=1)

        start_time = time.time()
        async with storage_system:
            for i in range(num_files):
                key = f"{self.config.key_prefix}-{i}"
                logger.info(f"Uploading {key} ({file_size} bytes)")
                await storage_system.upload(key, data)

        upload_time = time.time() - start_time
        logger.info(f"Uploaded {num_files} objects in {upload_time:.2f} seconds")
        return num_files
