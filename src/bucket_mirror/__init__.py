# src/bucket_mirror/__init__.py
"""
bucket-mirror: copy every object of one bucket into another.

This package lists a source container, copies each object to a destination
container with a bounded worker pool, retries transient failures in rounds
until they converge or stop shrinking, and reports objects that can never be
copied.

The primary entry point for programmatic use is the `SyncSession` class.
"""

from typing import List

from bucket_mirror.session import SyncReport, SyncSession

__all__: List[str] = ["SyncReport", "SyncSession"]
