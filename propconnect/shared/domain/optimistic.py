"""Optimistic mutation protocol.

A toggle-style mutation is written once as an ``OptimisticCommand``:

1. ``capture()`` the slice value before the change,
2. ``apply()`` the optimistic value before any network I/O,
3. ``send()`` the request,
4. ``commit()`` the server's authoritative result on success,
5. ``restore()`` the captured value exactly on failure, then re-raise.

Steps 1 and 2 run as soon as the command starts. Steps 3 and 4 run under the
slice's ``SingleFlight`` lock, so requests on one slice reach the server
in call order and the last commit reflects the server's final state.

When another mutation of the same slice overlaps a failing one, the captured
value may hold the other mutation's optimistic change. The failing command
then ``revert()``s only its own change and ``reconcile()``s with the server
once the slice is free.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class SingleFlight:
    """Per-slice serialization of the network phase of mutations."""

    def __init__(self, name: str) -> None:
        self.name = name
        # Lazy initialization to avoid event loop binding issues
        self._lock: Optional[asyncio.Lock] = None
        self._loop_id: Optional[int] = None
        self._waiting = 0

    def _ensure_lock(self) -> asyncio.Lock:
        loop_id = id(asyncio.get_running_loop())
        if self._lock is None or self._loop_id != loop_id:
            self._lock = asyncio.Lock()
            self._loop_id = loop_id
        return self._lock

    @property
    def in_flight(self) -> int:
        """Number of mutations holding or waiting for the slice."""
        return self._waiting

    async def __aenter__(self) -> "SingleFlight":
        self._waiting += 1
        try:
            await self._ensure_lock().acquire()
        except BaseException:
            self._waiting -= 1
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._waiting -= 1
        self._lock.release()


class OptimisticCommand(ABC, Generic[T, R]):
    """One optimistic mutation of a store slice."""

    name = "mutation"

    def __init__(self, flight: Optional[SingleFlight] = None) -> None:
        self._flight = flight
        self._snapshot: Optional[T] = None
        self._overlapped = False

    @abstractmethod
    def capture(self) -> T:
        """Return a copy of the slice value before the change."""

    @abstractmethod
    def apply(self) -> None:
        """Write the optimistic value to the slice."""

    @abstractmethod
    async def send(self) -> R:
        """Issue the network request."""

    @abstractmethod
    async def commit(self, result: R) -> None:
        """Replace the slice with the server's authoritative value."""

    @abstractmethod
    def restore(self, snapshot: T) -> None:
        """Write ``snapshot`` back to the slice."""

    def revert(self) -> None:
        """Undo only this command's change. Defaults to a full restore."""
        self.restore(self._snapshot)

    async def reconcile(self) -> None:
        """Re-read the slice from the server after an overlapping failure."""

    def rollback(self) -> None:
        if self._overlapped:
            self.revert()
        else:
            self.restore(self._snapshot)

    def on_success(self, result: R) -> None:
        """Hook for user feedback after commit."""

    def on_failure(self, error: Exception) -> None:
        """Hook for user feedback after rollback."""

    async def _send_and_commit(self) -> R:
        result = await self.send()
        await self.commit(result)
        return result

    async def run(self) -> R:
        """Execute the protocol.

        Raises:
            Exception: Whatever ``send()`` raised, after the slice was restored
        """
        self._overlapped = self._flight is not None and self._flight.in_flight > 0
        self._snapshot = self.capture()
        self.apply()
        try:
            if self._flight is None:
                result = await self._send_and_commit()
            else:
                async with self._flight:
                    result = await self._send_and_commit()
        except Exception as exc:
            logger.warning(f"{self.name} failed, rolling back: {exc}")
            # Mutations queued behind this one captured its optimistic value
            if self._flight is not None and self._flight.in_flight > 0:
                self._overlapped = True
            self.rollback()
            self.on_failure(exc)
            if self._overlapped:
                async with self._flight:
                    await self.reconcile()
            raise
        self.on_success(result)
        return result
