"""
Redis Claim Store
Each claim is one JSON document in a Redis hash keyed by claim id. Writes
publish the claim id on a channel; subscribers reload the hash and receive a
full snapshot.
Source: https://redis.io/docs/connect/clients/python/
"""

import asyncio
import json
from contextlib import contextmanager, suppress
from typing import Iterable, Iterator, Optional

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from src.schemas.claim import Claim
from src.services.persistence.base import (
    ClaimStore,
    ErrorHandler,
    SnapshotHandler,
    Subscription,
)
from src.utils.errors import PersistenceError, ValidationError
from src.utils.logging import get_logger

logger = get_logger(__name__)

CLEAR_MESSAGE = "*"


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Re-raise Redis and socket failures as PersistenceError."""
    try:
        yield
    except (RedisError, OSError) as e:
        logger.error(f"Redis failure while trying to {action}: {e}")
        raise PersistenceError(f"Redis error during {action}: {e}") from e


class RedisSubscription(Subscription):
    def __init__(self, pubsub: PubSub, task: asyncio.Task):
        self._pubsub = pubsub
        self._task = task
        self._cancelled = False

    async def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        try:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"Error closing claim subscription: {e}")


class RedisClaimStore(ClaimStore):
    """
    ClaimStore backed by a Redis hash plus a pub/sub change channel.

    Evidence: hashes keep one field per document; pub/sub fans out change
    notifications to every running service instance.
    Source: https://redis.io/docs/data-types/hashes/
    """

    def __init__(self, redis: Redis, key: str = "claims", channel: str = "claims:changes"):
        self._redis = redis
        self._key = key
        self._channel = channel

    @classmethod
    def from_url(
        cls,
        url: str,
        key: str = "claims",
        channel: str = "claims:changes",
    ) -> "RedisClaimStore":
        redis = Redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(redis, key=key, channel=channel)

    async def ping(self) -> bool:
        with _translate_errors("reach Redis"):
            return bool(await self._redis.ping())

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Disconnected from Redis")

    # =========================================================================
    # Reads
    # =========================================================================

    async def load_snapshot(self) -> list[Claim]:
        """
        Read every claim document.

        Documents that fail to decode are skipped and logged so one bad entry
        cannot hide the rest of the ledger.
        """
        with _translate_errors("load claims"):
            documents = await self._redis.hgetall(self._key)

        claims = []
        for claim_id, raw in documents.items():
            try:
                claims.append(Claim.from_record(json.loads(raw)))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Skipping unreadable claim document {claim_id}: {e}")
        return claims

    # =========================================================================
    # Writes
    # =========================================================================

    async def put_claim(self, claim: Claim) -> None:
        with _translate_errors("save claim"):
            await self._redis.hset(self._key, claim.id, json.dumps(claim.to_record()))
            await self._redis.publish(self._channel, claim.id)

    async def delete_claim(self, claim_id: str) -> None:
        with _translate_errors("delete claim"):
            await self._redis.hdel(self._key, claim_id)
            await self._redis.publish(self._channel, claim_id)

    async def put_many(self, claims: Iterable[Claim]) -> None:
        mapping = {claim.id: json.dumps(claim.to_record()) for claim in claims}
        if not mapping:
            return
        with _translate_errors("save claims"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.hset(self._key, mapping=mapping)
                pipe.publish(self._channel, CLEAR_MESSAGE)
                await pipe.execute()

    async def delete_all(self) -> None:
        with _translate_errors("delete claims"):
            await self._redis.delete(self._key)
            await self._redis.publish(self._channel, CLEAR_MESSAGE)

    # =========================================================================
    # Subscription
    # =========================================================================

    async def subscribe(
        self,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Subscription:
        pubsub = self._redis.pubsub()
        with _translate_errors("subscribe to claim changes"):
            await pubsub.subscribe(self._channel)
        try:
            await on_snapshot(await self.load_snapshot())
        except BaseException:
            await self._close_pubsub(pubsub)
            raise

        task = asyncio.create_task(self._listen(pubsub, on_snapshot, on_error))
        logger.info(f"Subscribed to claim changes on {self._channel}")
        return RedisSubscription(pubsub, task)

    @staticmethod
    async def _close_pubsub(pubsub: PubSub) -> None:
        try:
            await pubsub.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"Error closing claim subscription: {e}")

    async def _listen(
        self,
        pubsub: PubSub,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> None:
        error: Optional[PersistenceError] = None
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                await on_snapshot(await self.load_snapshot())
        except PersistenceError as e:
            error = e
        except (RedisError, OSError) as e:
            error = PersistenceError(f"Claim change listener stopped: {e}")

        if error is not None:
            logger.error(f"Claim subscription failed: {error.message}")
            await on_error(error)
