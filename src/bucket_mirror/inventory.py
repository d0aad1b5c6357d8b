# src/bucket_mirror/inventory.py
"""Builds the complete inventory of a source container."""

import logging
import time
from typing import List, Optional

from bucket_mirror.backend import ListPage, StorageBackend
from bucket_mirror.exceptions import BackendError, BackendUnavailable
from bucket_mirror.models import Inventory, ObjectRecord
from bucket_mirror.progress import format_bytes, format_duration

logger: logging.Logger = logging.getLogger(__name__)


class InventoryBuilder:
    """Drains a backend's paginated listing into a single `Inventory`."""

    def __init__(self, backend: StorageBackend) -> None:
        """
        Initialize the builder.

        Args:
            backend (StorageBackend): The backend holding the source container.
        """
        self._backend: StorageBackend = backend

    def build(self, container: str) -> Inventory:
        """
        Lists every object in `container`.

        A partial listing is never returned: a failure on any page, first or
        later, aborts the build.

        Args:
            container (str): The container to enumerate.

        Returns:
            Inventory: Every listed record with count and byte totals.

        Raises:
            BackendUnavailable: If any listing page cannot be retrieved.
        """
        logger.info(f"Building object list for '{container}'...")
        start_time: float = time.monotonic()
        records: List[ObjectRecord] = []
        token: Optional[str] = None
        pages: int = 0

        while True:
            try:
                page: ListPage = self._backend.list_page(container, token)
            except BackendError as e:
                raise BackendUnavailable(
                    f"Listing '{container}' failed after {pages} page(s) and "
                    f"{len(records)} object(s); refusing to sync against an "
                    f"incomplete inventory: {e}"
                ) from e
            pages += 1
            records.extend(page.records)
            logger.info(f"{len(records)}\t\tobjects found")
            if page.next_token is None:
                break
            token = page.next_token

        inventory: Inventory = Inventory.from_records(records)
        elapsed_s: float = time.monotonic() - start_time
        logger.info(
            f"{inventory.total_count}\t\tobjects found with a total size of "
            f"{format_bytes(inventory.total_bytes)}"
        )
        logger.info(f"Built full object list in {format_duration(elapsed_s)}")
        return inventory
