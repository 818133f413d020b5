"""
Shared helpers for the worker loops: key fan-out and response status checks.
"""

from s3bench.configuration import KEY_FAN_OUT_WIDTH, SUCCESS_STATUSES


def object_key_for_worker(key_prefix: str, worker_index: int, fan_out: int = KEY_FAN_OUT_WIDTH) -> str:
    """
    Compute the object key a worker downloads.

    Workers rotate over a bounded hot set of ``fan_out`` objects, so worker 47
    with a width of 40 reads ``"{prefix}-7"``.

    Args:
        key_prefix: Common prefix of the test objects
        worker_index: Zero-based index of the worker within its run
        fan_out: Number of distinct backing objects

    Returns:
        Object key for this worker
    """
    if fan_out < 1:
        raise ValueError(f"fan_out must be >= 1, got {fan_out}")
    return f"{key_prefix}-{worker_index % fan_out}"


def is_success_status(status: int) -> bool:
    """True for the HTTP statuses a completed object download may carry."""
    return status in SUCCESS_STATUSES
