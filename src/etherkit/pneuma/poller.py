"""
Confirmation polling.

A ``ConfirmationPoller`` waits for a transaction receipt by querying the
node at fixed ticks.  Time and cancellation are injected: a ``Clock``
supplies ``monotonic()`` and an interruptible ``sleep()``, and a
``CancelToken`` carries the caller's abort signal.  Tests use
``VirtualClock`` so no real time passes.

"Confirmed" means a receipt exists.  Nothing here tracks block depth.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Optional, Protocol

from ..errors import ConfirmationCancelledError, ConfirmationTimeoutError
from .receipt import Receipt
from .rpc import ChainQueryService

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL = 1.0
DEFAULT_POLL_INTERVAL = 1.0


class CancelToken:
    """Thread-safe cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


class Clock(Protocol):
    def monotonic(self) -> float:
        ...

    def sleep(self, seconds: float, cancel_token: CancelToken) -> None:
        ...


class SystemClock:
    """Wall clock; sleeping returns early when the token is cancelled."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel_token: CancelToken) -> None:
        if seconds > 0:
            cancel_token.wait(seconds)


class VirtualClock:
    """Clock whose time only moves when someone sleeps on it."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float, cancel_token: CancelToken) -> None:
        if seconds > 0:
            self.sleeps.append(seconds)
            self.now += seconds


class PollState(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self is not PollState.PENDING


class ConfirmationPoller:
    """
    Wait for a receipt, a deadline, or cancellation, whichever comes first.

    Ticks happen at ``start + k * interval`` for k = 1, 2, ...  A query that
    runs past one or more ticks drops them: the next tick is the later of
    the regular one and ``interval`` after the query returned, so queries
    are never closer together than ``interval``.  If the next tick would
    fall after the deadline, the poller sleeps to the deadline and times
    out without querying.  Cancellation is observed before and after every
    sleep, never in the middle of a query.

    Args:
        provider: Chain query service
        tx_hash: Transaction hash to wait for
        timeout: Seconds from construction until the deadline
        interval: Seconds between queries; values below one second are
                  raised to one second
        clock: Time source (default: SystemClock)
        cancel_token: Caller's cancellation signal (default: a fresh token)
    """

    def __init__(
        self,
        provider: ChainQueryService,
        tx_hash: str,
        timeout: float,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Optional[Clock] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> None:
        if timeout < 0:
            raise ValueError(f"timeout must be non-negative, got {timeout}")
        if interval < MIN_POLL_INTERVAL:
            logger.debug("poll interval %.3fs raised to %.1fs", interval, MIN_POLL_INTERVAL)
            interval = MIN_POLL_INTERVAL

        self.provider = provider
        self.tx_hash = tx_hash
        self.timeout = timeout
        self.interval = interval
        self.clock: Clock = clock or SystemClock()
        self.cancel_token = cancel_token or CancelToken()

        self.state = PollState.PENDING
        self.receipt: Optional[Receipt] = None
        self.ticks = 0
        self._start = self.clock.monotonic()
        self._deadline = self._start + timeout
        self._next_tick = self._start + self.interval

    def cancel(self) -> None:
        self.cancel_token.cancel()

    def _finish(self, state: PollState) -> None:
        self.state = state
        logger.debug("poll %s -> %s after %d tick(s)", self.tx_hash, state.value, self.ticks)

    def _outcome(self) -> Receipt:
        if self.state is PollState.CONFIRMED:
            assert self.receipt is not None
            return self.receipt
        if self.state is PollState.TIMED_OUT:
            raise ConfirmationTimeoutError(self.tx_hash, self.timeout)
        raise ConfirmationCancelledError(self.tx_hash)

    def wait(self) -> Receipt:
        """
        Poll until a terminal state.

        Returns:
            The transaction receipt

        Raises:
            ConfirmationTimeoutError: Deadline passed without a receipt
            ConfirmationCancelledError: The token was cancelled
            RpcError: A receipt query failed
        """
        while not self.state.terminal:
            self._step()
        return self._outcome()

    def _step(self) -> None:
        if self.cancel_token.cancelled:
            self._finish(PollState.CANCELLED)
            return

        next_tick = self._next_tick
        now = self.clock.monotonic()

        if next_tick > self._deadline:
            self.clock.sleep(max(0.0, self._deadline - now), self.cancel_token)
            if self.cancel_token.cancelled:
                self._finish(PollState.CANCELLED)
            else:
                logger.warning("transaction %s not confirmed within %ss", self.tx_hash, self.timeout)
                self._finish(PollState.TIMED_OUT)
            return

        self.clock.sleep(max(0.0, next_tick - now), self.cancel_token)
        if self.cancel_token.cancelled:
            self._finish(PollState.CANCELLED)
            return

        self.ticks += 1
        logger.debug("poll %s tick %d", self.tx_hash, self.ticks)
        receipt = self.provider.get_transaction_receipt(self.tx_hash)
        self._next_tick = max(next_tick + self.interval, self.clock.monotonic() + self.interval)
        if receipt is not None:
            self.receipt = receipt
            logger.info(
                "transaction %s confirmed in block %d (status %d)",
                self.tx_hash,
                receipt.block_number,
                receipt.status,
            )
            self._finish(PollState.CONFIRMED)


def wait_for_receipt(
    provider: ChainQueryService,
    tx_hash: str,
    timeout: float = 120.0,
    interval: float = DEFAULT_POLL_INTERVAL,
    clock: Optional[Clock] = None,
    cancel_token: Optional[CancelToken] = None,
) -> Receipt:
    """
    Wait for a transaction receipt.

    Raises:
        ConfirmationTimeoutError: If no receipt is found within timeout
        ConfirmationCancelledError: If cancel_token is cancelled first
    """
    poller = ConfirmationPoller(
        provider,
        tx_hash,
        timeout=timeout,
        interval=interval,
        clock=clock,
        cancel_token=cancel_token,
    )
    return poller.wait()
