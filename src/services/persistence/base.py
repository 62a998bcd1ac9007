"""
Persistence contracts for the claims ledger.

A ClaimStore is the primary, push-based document store. A LocalClaimCache is
the fallback snapshot file used when the store is unreachable.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Iterable

from src.schemas.claim import Claim
from src.utils.errors import PersistenceError

SnapshotHandler = Callable[[list[Claim]], Awaitable[None]]
ErrorHandler = Callable[[PersistenceError], Awaitable[None]]


class Subscription(ABC):
    """Handle returned by ClaimStore.subscribe."""

    @abstractmethod
    async def cancel(self) -> None:
        """Stop delivering snapshots. Safe to call more than once."""


class ClaimStore(ABC):
    """
    Primary claim store.

    Every method raises PersistenceError when the backend fails. After a
    successful write, subscribers eventually receive a full snapshot that
    reflects it.
    """

    @abstractmethod
    async def put_claim(self, claim: Claim) -> None:
        """Insert or replace one claim document."""

    @abstractmethod
    async def delete_claim(self, claim_id: str) -> None:
        """Remove one claim document; missing ids are ignored."""

    @abstractmethod
    async def put_many(self, claims: Iterable[Claim]) -> None:
        """Write a batch of claims in one operation."""

    @abstractmethod
    async def delete_all(self) -> None:
        """Remove every claim document."""

    @abstractmethod
    async def subscribe(
        self,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Subscription:
        """
        Start receiving full snapshots.

        The current snapshot is delivered before this returns. Failures while
        listening afterwards are reported through ``on_error``.
        """

    async def close(self) -> None:
        """Release backend connections."""


class LocalClaimCache(ABC):
    """Fallback snapshot of the claim collection kept on the local machine."""

    @abstractmethod
    async def load_all(self) -> list[Claim]:
        """Return the cached claims, or an empty list when nothing is cached."""

    @abstractmethod
    async def save_all(self, claims: Iterable[Claim]) -> None:
        """Replace the cached snapshot."""
