# src/bucket_mirror/models.py
"""
Data model shared by the sync engine components.

Records and inventories are immutable once listed. The only state mutated
from worker threads is `SyncCounters`, which guards its increments with a lock.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Mapping, Tuple, Union


@dataclass(frozen=True)
class ObjectRecord:
    """
    Identifies one object in a container.

    Attributes:
        container (str): The bucket the object was listed from.
        key (str): The object key, unique within the container.
        size (int): Size of the object in bytes, as reported by the listing.
        metadata (Mapping[str, Any]): Opaque listing metadata (etag, storage
            class, ...). Not used for comparisons.
    """

    container: str
    key: str
    size: int
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Inventory:
    """
    A complete, immutable set of records with derived aggregates.

    Attributes:
        records (Tuple[ObjectRecord, ...]): The listed records. Order carries
            no meaning.
        total_count (int): Number of records.
        total_bytes (int): Sum of every record's size.
    """

    records: Tuple[ObjectRecord, ...] = ()
    total_count: int = field(init=False)
    total_bytes: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", tuple(self.records))
        object.__setattr__(self, "total_count", len(self.records))
        object.__setattr__(self, "total_bytes", sum(r.size for r in self.records))

    @classmethod
    def from_records(cls, records: Iterable[ObjectRecord]) -> "Inventory":
        return cls(records=tuple(records))

    def keys(self) -> List[str]:
        return [record.key for record in self.records]

    def __len__(self) -> int:
        return self.total_count

    def __iter__(self) -> Iterator[ObjectRecord]:
        return iter(self.records)

    def __bool__(self) -> bool:
        return self.total_count > 0


@dataclass(frozen=True)
class Success:
    """An object was copied; `bytes_written` were sent to the destination."""

    record: ObjectRecord
    bytes_written: int


@dataclass(frozen=True)
class RetryableFailure:
    """A backend fault interrupted the copy; the record goes into the next round."""

    record: ObjectRecord
    reason: str = ""


@dataclass(frozen=True)
class PermanentFailure:
    """The destination rejected the key or arguments; never retried."""

    key: str
    reason: str


TransferOutcome = Union[Success, RetryableFailure, PermanentFailure]


class SyncCounters:
    """
    Session-wide progress counters written concurrently by transfer workers.

    Increments happen under a lock. Reads of the individual properties are
    unsynchronized; use `snapshot()` for a consistent pair.
    """

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._items_copied: int = 0
        self._bytes_sent: int = 0

    @property
    def items_copied(self) -> int:
        return self._items_copied

    @property
    def bytes_sent(self) -> int:
        return self._bytes_sent

    def record_copy(self, bytes_written: int) -> None:
        """
        Registers one successfully copied object.

        Args:
            bytes_written (int): The number of bytes written to the destination.
        """
        with self._lock:
            self._items_copied += 1
            self._bytes_sent += bytes_written

    def snapshot(self) -> Tuple[int, int]:
        """
        Returns a consistent `(items_copied, bytes_sent)` pair.

        Returns:
            Tuple[int, int]: The two counters read under the lock.
        """
        with self._lock:
            return self._items_copied, self._bytes_sent
