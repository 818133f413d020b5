"""
S3 download throughput benchmark.
"""

__version__ = "0.1.0"
