"""
Common utilities for the S3 download benchmark.
"""

from .work_budget import AsyncWorkBudget, WorkBudget
from .worker_pool import WorkerPool
from .thread_pool import ThreadWorkerPool

__all__ = ['AsyncWorkBudget', 'WorkBudget', 'WorkerPool', 'ThreadWorkerPool']
