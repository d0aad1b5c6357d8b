# src/bucket_mirror/retry.py
"""
Round-based retry coordination.

The coordinator feeds the worker pool one round at a time. Retryable
failures of round N become the workload of round N+1 for as long as that
workload keeps shrinking. A round that does not shrink it ends the loop as
`EXHAUSTED` instead of retrying a persistently unreachable destination forever.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from bucket_mirror.exceptions import SessionError
from bucket_mirror.models import (
    Inventory,
    ObjectRecord,
    PermanentFailure,
    RetryableFailure,
    Success,
    TransferOutcome,
)

logger: logging.Logger = logging.getLogger(__name__)

RoundRunner = Callable[[Inventory], List[TransferOutcome]]


class RetryState(Enum):
    """States of the retry loop."""

    RUNNING = "running"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RoundSummary:
    """
    What one round did.

    Attributes:
        number (int): 1-based round number.
        submitted (int): Size of the round's workload.
        succeeded (int): Objects copied.
        retryable (int): Objects queued for the next round.
        permanent (int): Objects dropped as permanently invalid.
    """

    number: int
    submitted: int
    succeeded: int
    retryable: int
    permanent: int


class RetryCoordinator:
    """Drives copy rounds until the retry set converges or stops shrinking."""

    def __init__(self, inventory: Inventory, max_rounds: Optional[int] = None) -> None:
        """
        Initialize the coordinator with the full inventory as the first retry set.

        Args:
            inventory (Inventory): Every object to copy.
            max_rounds (int, optional): Stop as `EXHAUSTED` after this many
                rounds even if the retry set is still shrinking.
        """
        self._max_rounds: Optional[int] = max_rounds
        self._retry_set: Inventory = inventory
        self._permanent_failures: List[PermanentFailure] = []
        self._rounds: List[RoundSummary] = []
        self._state: RetryState = (
            RetryState.RUNNING if inventory else RetryState.CONVERGED
        )

    @property
    def state(self) -> RetryState:
        return self._state

    @property
    def retry_set(self) -> Inventory:
        return self._retry_set

    @property
    def permanent_failures(self) -> List[PermanentFailure]:
        return list(self._permanent_failures)

    @property
    def rounds(self) -> List[RoundSummary]:
        return list(self._rounds)

    @property
    def done(self) -> bool:
        return self._state is not RetryState.RUNNING

    def record_round(self, outcomes: Sequence[TransferOutcome]) -> RetryState:
        """
        Applies the outcomes of one round over the current retry set.

        Args:
            outcomes (Sequence[TransferOutcome]): One outcome per record of
                the current retry set.

        Returns:
            RetryState: The state after the transition.

        Raises:
            SessionError: If the loop already reached a terminal state, or if
                the outcome count does not match the submitted workload.
        """
        if self.done:
            raise SessionError(f"Retry loop already finished ({self._state.value}).")

        submitted: int = self._retry_set.total_count
        if len(outcomes) != submitted:
            raise SessionError(
                f"Round produced {len(outcomes)} outcome(s) for {submitted} object(s)."
            )

        succeeded: int = 0
        retryable: List[ObjectRecord] = []
        for outcome in outcomes:
            if isinstance(outcome, Success):
                succeeded += 1
            elif isinstance(outcome, RetryableFailure):
                retryable.append(outcome.record)
            elif isinstance(outcome, PermanentFailure):
                self._permanent_failures.append(outcome)
            else:
                raise TypeError(f"Unknown transfer outcome: {outcome!r}")

        summary: RoundSummary = RoundSummary(
            number=len(self._rounds) + 1,
            submitted=submitted,
            succeeded=succeeded,
            retryable=len(retryable),
            permanent=submitted - succeeded - len(retryable),
        )
        self._rounds.append(summary)
        self._retry_set = Inventory.from_records(retryable)

        logger.info(
            f"Round {summary.number}: {summary.succeeded} copied, "
            f"{summary.retryable} to retry, {summary.permanent} permanently failed "
            f"(of {summary.submitted})."
        )

        if not retryable:
            self._state = RetryState.CONVERGED
        elif len(retryable) >= submitted:
            logger.warning(
                f"Retry set did not shrink ({len(retryable)} object(s)); giving up."
            )
            self._state = RetryState.EXHAUSTED
        elif self._max_rounds is not None and summary.number >= self._max_rounds:
            logger.warning(
                f"Reached the limit of {self._max_rounds} round(s) with "
                f"{len(retryable)} object(s) left; giving up."
            )
            self._state = RetryState.EXHAUSTED
        return self._state

    def run(self, run_round: RoundRunner) -> RetryState:
        """
        Runs rounds until the loop reaches a terminal state.

        Args:
            run_round (RoundRunner): Copies an inventory and returns one
                outcome per record, e.g. `TransferWorkerPool.run_round`.

        Returns:
            RetryState: `CONVERGED` or `EXHAUSTED`.
        """
        while not self.done:
            if self._rounds:
                logger.info(f"Retrying {self._retry_set.total_count} object(s)...")
            self.record_round(run_round(self._retry_set))
        return self._state
