"""
Tests for creating the benchmark's test objects.
"""

import unittest

from fakes import FakeAsyncStorage, factory_for

from s3bench.commands.uploader import Uploader
from s3bench.configuration import BYTES_PER_MB
from s3bench.errors import ConfigError, TransportError
from s3bench.persistence.record import RunConfig


class TestUploader(unittest.IsolatedAsyncioTestCase):
    """Test cases for Uploader class."""

    def setUp(self):
        self.storage = FakeAsyncStorage()
        self.uploader = Uploader(
            RunConfig(workers=1, samples=0, key_prefix="test-object"),
            storage_factory=factory_for(self.storage),
        )

    async def test_uploads_zero_filled_objects_in_order(self):
        uploaded = await self.uploader.create_files(1, 3)

        self.assertEqual(uploaded, 3)
        self.assertEqual(
            [key for key, _, _ in self.storage.uploads],
            ["test-object-0", "test-object-1", "test-object-2"],
        )
        for _, size, head in self.storage.uploads:
            self.assertEqual(size, BYTES_PER_MB)
            self.assertEqual(head, bytes(16))
        self.assertTrue(self.storage.entered)
        self.assertTrue(self.storage.exited)

    async def test_zero_files(self):
        self.assertEqual(await self.uploader.create_files(1, 0), 0)
        self.assertEqual(self.storage.uploads, [])

    async def test_first_upload_error_is_fatal(self):
        self.storage.fail_on = 2

        with self.assertRaises(TransportError):
            await self.uploader.create_files(1, 5)

        self.assertEqual(len(self.storage.uploads), 1)
        self.assertTrue(self.storage.exited)

    async def test_invalid_arguments(self):
        with self.assertRaises(ConfigError):
            await self.uploader.create_files(-1, 1)
        with self.assertRaises(ConfigError):
            await self.uploader.create_files(1, -1)


if __name__ == '__main__':
    unittest.main()
