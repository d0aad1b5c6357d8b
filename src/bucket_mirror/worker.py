# src/bucket_mirror/worker.py
"""
Defines the transfer worker pool.

Each round copies a set of records with a bounded thread pool. Every record
produces exactly one `TransferOutcome`; workers never raise out of a round
and never touch shared collections, only the lock-guarded counters.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional

from bucket_mirror.backend import ObjectPayload, StorageBackend
from bucket_mirror.exceptions import BackendError, InvalidObjectError
from bucket_mirror.models import (
    ObjectRecord,
    PermanentFailure,
    RetryableFailure,
    Success,
    SyncCounters,
    TransferOutcome,
)

logger: logging.Logger = logging.getLogger(__name__)


def copy_object(
    record: ObjectRecord,
    destination: str,
    source_backend: StorageBackend,
    dest_backend: StorageBackend,
    counters: SyncCounters,
    access_policy: str = "public-read",
) -> TransferOutcome:
    """
    Copies one object and classifies the result.

    The object is written under the same key with the metadata read from
    the source. Invalid keys or arguments on write are permanent; any other
    fault, expected or not, is retryable so the record is never lost.

    Args:
        record (ObjectRecord): The source object to copy.
        destination (str): The destination container.
        source_backend (StorageBackend): Backend the record is read from.
        dest_backend (StorageBackend): Backend the copy is written to.
        counters (SyncCounters): Session counters, bumped on success.
        access_policy (str): Access policy applied to the written object.

    Returns:
        TransferOutcome: `Success`, `RetryableFailure` or `PermanentFailure`.
    """
    try:
        payload: ObjectPayload = source_backend.read_object(record.container, record.key)
        bytes_written: int = dest_backend.write_object(
            destination,
            record.key,
            payload.body,
            payload.metadata,
            access_policy,
        )
    except InvalidObjectError as e:
        logger.error(f"Permanent failure for '{record.key}': {e}")
        return PermanentFailure(key=record.key, reason=str(e))
    except BackendError as e:
        logger.warning(f"Retryable failure for '{record.key}': {e}")
        return RetryableFailure(record=record, reason=str(e))
    except Exception as e:
        logger.exception(f"An unexpected error occurred transferring '{record.key}'")
        return RetryableFailure(record=record, reason=f"{type(e).__name__}: {e}")

    counters.record_copy(bytes_written)
    logger.debug(f"Copied '{record.key}' ({bytes_written} bytes)")
    return Success(record=record, bytes_written=bytes_written)


class TransferWorkerPool:
    """Runs copy rounds with at most `concurrency` objects in flight."""

    def __init__(
        self,
        source_backend: StorageBackend,
        destination: str,
        counters: SyncCounters,
        concurrency: int,
        access_policy: str = "public-read",
        dest_backend: Optional[StorageBackend] = None,
    ) -> None:
        """
        Initialize the pool.

        Args:
            source_backend (StorageBackend): Backend holding the source objects.
            destination (str): The destination container.
            counters (SyncCounters): Session counters shared with the reporter.
            concurrency (int): Maximum number of simultaneous copies.
            access_policy (str): Access policy for written objects.
            dest_backend (StorageBackend, optional): Backend for writes;
                defaults to `source_backend`.
        """
        self._source_backend: StorageBackend = source_backend
        self._dest_backend: StorageBackend = dest_backend or source_backend
        self._destination: str = destination
        self._counters: SyncCounters = counters
        self._concurrency: int = concurrency
        self._access_policy: str = access_policy

    @property
    def concurrency(self) -> int:
        return self._concurrency

    def run_round(self, records: Iterable[ObjectRecord]) -> List[TransferOutcome]:
        """
        Copies every record and waits for all of them to finish.

        A fresh executor is used per round, so rounds never overlap.

        Args:
            records (Iterable[ObjectRecord]): The round's workload.

        Returns:
            List[TransferOutcome]: One outcome per record, in completion order.
        """
        workload: List[ObjectRecord] = list(records)
        if not workload:
            return []

        logger.debug(
            f"Starting round of {len(workload)} object(s) "
            f"with {self._concurrency} worker(s)."
        )
        outcomes: List[TransferOutcome] = []
        with ThreadPoolExecutor(
            max_workers=self._concurrency, thread_name_prefix="transfer"
        ) as executor:
            futures: Dict["Future[TransferOutcome]", ObjectRecord] = {
                executor.submit(
                    copy_object,
                    record,
                    self._destination,
                    self._source_backend,
                    self._dest_backend,
                    self._counters,
                    self._access_policy,
                ): record
                for record in workload
            }
            for future in as_completed(futures):
                outcomes.append(future.result())

        return outcomes
