# src/bucket_mirror/session.py
"""Core orchestration logic for one bucket-to-bucket sync."""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import click
from rich.console import Console

from bucket_mirror.backend import StorageBackend
from bucket_mirror.config import AppConfig
from bucket_mirror.exceptions import SessionError
from bucket_mirror.inventory import InventoryBuilder
from bucket_mirror.models import Inventory, PermanentFailure, SyncCounters
from bucket_mirror.progress import ProgressReporter, format_bytes, format_duration
from bucket_mirror.retry import RetryCoordinator, RetryState
from bucket_mirror.worker import TransferWorkerPool

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncReport:
    """
    The final outcome of a sync session.

    Attributes:
        source (str): The source container.
        destination (str): The destination container.
        state (RetryState): `CONVERGED` or `EXHAUSTED`.
        total_count (int): Objects in the source inventory.
        total_bytes (int): Bytes in the source inventory.
        items_copied (int): Objects copied.
        bytes_sent (int): Bytes written to the destination.
        elapsed_s (float): Wall time of the whole session.
        rounds (int): Copy rounds that ran.
        permanent_failures (Tuple[PermanentFailure, ...]): Objects that can
            never be copied under their current key.
        exhausted_keys (Tuple[str, ...]): Keys still failing when the retry
            loop stopped making progress.
    """

    source: str
    destination: str
    state: RetryState
    total_count: int
    total_bytes: int
    items_copied: int
    bytes_sent: int
    elapsed_s: float
    rounds: int
    permanent_failures: Tuple[PermanentFailure, ...] = field(default_factory=tuple)
    exhausted_keys: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def permanent_keys(self) -> List[str]:
        return [failure.key for failure in self.permanent_failures]

    @property
    def succeeded(self) -> bool:
        """True when every object was copied."""
        return (
            self.state is RetryState.CONVERGED
            and not self.permanent_failures
            and not self.exhausted_keys
        )


class SyncSession:
    """
    Orchestrates one sync from start to finish.

    A session is single-use: build inventory, copy it in retry rounds while
    a progress reporter runs, then print a summary. Calling `run()` twice
    raises `SessionError`.
    """

    def __init__(
        self,
        backend: StorageBackend,
        source: str,
        destination: str,
        config: Optional[AppConfig] = None,
        dest_backend: Optional[StorageBackend] = None,
        console: Optional[Console] = None,
    ) -> None:
        """
        Initializes the session.

        Args:
            backend (StorageBackend): Backend holding the source container.
            source (str): The container to copy from.
            destination (str): The container to copy to.
            config (AppConfig, optional): Operational settings.
            dest_backend (StorageBackend, optional): Backend holding the
                destination container; defaults to `backend`.
            console (Console, optional): Where progress and the summary go.
        """
        self.source: str = source
        self.destination: str = destination
        self.counters: SyncCounters = SyncCounters()
        self.inventory: Optional[Inventory] = None
        self.permanent_failures: List[PermanentFailure] = []
        self.start_time: Optional[float] = None
        self._config: AppConfig = config or AppConfig()
        self._backend: StorageBackend = backend
        self._dest_backend: StorageBackend = dest_backend or backend
        self._console: Console = console or Console()
        self._started: bool = False

    def run(self) -> SyncReport:
        """
        Executes the sync.

        Listing failures (`BackendUnavailable`) propagate unchanged. Copy
        failures never abort the run; they end up in the report.

        Returns:
            SyncReport: What was copied and what was not.
        """
        if self._started:
            raise SessionError("A SyncSession can only be run once.")
        self._started = True
        self.start_time = time.monotonic()

        logger.info(f"Starting sync 's3://{self.source}' -> 's3://{self.destination}'.")
        self.inventory = InventoryBuilder(self._backend).build(self.source)

        pool: TransferWorkerPool = TransferWorkerPool(
            self._backend,
            self.destination,
            self.counters,
            concurrency=self._config.concurrency,
            access_policy=self._config.access_policy,
            dest_backend=self._dest_backend,
        )
        coordinator: RetryCoordinator = RetryCoordinator(
            self.inventory, max_rounds=self._config.max_rounds
        )

        if self.inventory:
            logger.info(
                f"Copying {self.inventory.total_count} object(s) "
                f"with {pool.concurrency} worker(s)."
            )
            with ProgressReporter(
                self.counters,
                total_count=self.inventory.total_count,
                interval_s=self._config.progress_interval_s,
                start_time=self.start_time,
                console=self._console,
            ):
                coordinator.run(pool.run_round)
        else:
            logger.info("Source container is empty. Nothing to copy.")

        self.permanent_failures = coordinator.permanent_failures
        items_copied, bytes_sent = self.counters.snapshot()
        exhausted_keys: Tuple[str, ...] = (
            tuple(coordinator.retry_set.keys())
            if coordinator.state is RetryState.EXHAUSTED
            else ()
        )
        report: SyncReport = SyncReport(
            source=self.source,
            destination=self.destination,
            state=coordinator.state,
            total_count=self.inventory.total_count,
            total_bytes=self.inventory.total_bytes,
            items_copied=items_copied,
            bytes_sent=bytes_sent,
            elapsed_s=time.monotonic() - self.start_time,
            rounds=len(coordinator.rounds),
            permanent_failures=tuple(self.permanent_failures),
            exhausted_keys=exhausted_keys,
        )
        self._print_summary(report)
        return report

    def _print_summary(self, report: SyncReport) -> None:
        """
        Prints the final report. Failed keys are always listed explicitly.

        Args:
            report (SyncReport): The report to print.
        """

        def out(line: str = "") -> None:
            click.echo(line, file=self._console.file)

        out()
        out(
            f"Copied {report.items_copied}/{report.total_count} object(s), "
            f"{format_bytes(report.bytes_sent)} in {report.rounds} round(s)."
        )
        out("BAD KEYS:")
        for failure in report.permanent_failures:
            out(f"\t{failure.key}\t{failure.reason}")
        out("END BAD KEYS")
        if report.exhausted_keys:
            out("RETRIES EXHAUSTED:")
            for key in report.exhausted_keys:
                out(f"\t{key}")
            out("END RETRIES EXHAUSTED")
        out(f"Total runtime {format_duration(report.elapsed_s)}")

        if report.succeeded:
            logger.info("Sync completed successfully.")
        else:
            logger.warning(
                f"Sync finished with {len(report.permanent_failures)} permanent "
                f"failure(s) and {len(report.exhausted_keys)} exhausted key(s)."
            )
