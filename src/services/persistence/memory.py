"""
In-process claim store.

Used for the demo backend and for tests. Every write pushes a fresh snapshot
to all subscribers before the write call returns. ``fail_writes`` and
``fail_subscribe`` inject backend failures.
"""

from typing import Iterable, Optional

from src.schemas.claim import Claim
from src.services.persistence.base import (
    ClaimStore,
    ErrorHandler,
    SnapshotHandler,
    Subscription,
)
from src.utils.errors import PersistenceError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class _MemorySubscription(Subscription):
    def __init__(self, store: "InMemoryClaimStore", handlers: tuple):
        self._store = store
        self._handlers = handlers

    async def cancel(self) -> None:
        if self._handlers in self._store._subscribers:
            self._store._subscribers.remove(self._handlers)


class InMemoryClaimStore(ClaimStore):
    """Dictionary-backed ClaimStore."""

    def __init__(self, claims: Optional[Iterable[Claim]] = None):
        self._documents: dict[str, dict] = {}
        self._subscribers: list[tuple[SnapshotHandler, ErrorHandler]] = []
        self.fail_writes = False
        self.fail_subscribe = False
        self.write_count = 0
        for claim in claims or ():
            self._documents[claim.id] = claim.to_record()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def snapshot(self) -> list[Claim]:
        """Current contents, decoded from the stored records."""
        return [Claim.from_record(record) for record in self._documents.values()]

    def has_claim(self, claim_id: str) -> bool:
        return claim_id in self._documents

    def _check_writable(self, action: str) -> None:
        if self.fail_writes:
            raise PersistenceError(f"Claim store unavailable ({action})")

    async def _publish(self) -> None:
        claims = self.snapshot()
        for on_snapshot, _ in list(self._subscribers):
            await on_snapshot(claims)

    async def put_claim(self, claim: Claim) -> None:
        self._check_writable("save claim")
        self._documents[claim.id] = claim.to_record()
        self.write_count += 1
        await self._publish()

    async def delete_claim(self, claim_id: str) -> None:
        self._check_writable("delete claim")
        self._documents.pop(claim_id, None)
        self.write_count += 1
        await self._publish()

    async def put_many(self, claims: Iterable[Claim]) -> None:
        self._check_writable("save claims")
        for claim in claims:
            self._documents[claim.id] = claim.to_record()
        self.write_count += 1
        await self._publish()

    async def delete_all(self) -> None:
        self._check_writable("delete claims")
        self._documents.clear()
        self.write_count += 1
        await self._publish()

    async def subscribe(
        self,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Subscription:
        if self.fail_subscribe:
            raise PersistenceError("Claim store unavailable (subscribe)")
        handlers = (on_snapshot, on_error)
        self._subscribers.append(handlers)
        logger.debug(f"Subscriber added ({len(self._subscribers)} active)")
        await on_snapshot(self.snapshot())
        return _MemorySubscription(self, handlers)

    async def emit_error(self, message: str = "claim store connection lost") -> None:
        """Report a listener failure to every subscriber."""
        error = PersistenceError(message)
        for _, on_error in list(self._subscribers):
            await on_error(error)
