"""
Error taxonomy for the benchmark harness and its storage adapters.
"""


class BenchmarkError(Exception):
    """Base class for every error raised by s3bench."""


class ConfigError(BenchmarkError):
    """Invalid benchmark configuration, detected before any run starts."""


class StorageError(BenchmarkError):
    """The object-storage collaborator failed a fetch or an upload."""

    def __init__(self, message: str, key: str = None):
        super().__init__(message)
        self.key = key


class TransportError(StorageError):
    """Connection, SDK or timeout failure talking to the object store."""


class ObjectNotFoundError(StorageError):
    """The requested object does not exist."""


class UnexpectedStatusError(StorageError):
    """The object store answered with a non-success HTTP status."""

    def __init__(self, message: str, key: str = None, status: int = None):
        super().__init__(message, key=key)
        self.status = status


class WorkerFailedError(BenchmarkError):
    """A worker died with something other than a storage error."""

    def __init__(self, worker_id: int, message: str):
        super().__init__(f"Worker {worker_id} failed: {message}")
        self.worker_id = worker_id


class BenchmarkRunError(BenchmarkError):
    """A run was aborted; ``__cause__`` holds the failure that stopped it."""

    def __init__(self, config, message: str):
        super().__init__(
            f"Run with {config.workers} workers / {config.samples} samples failed: {message}"
        )
        self.config = config
