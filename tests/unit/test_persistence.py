"""
Unit tests for claim persistence backends.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.core.config import ClaimsSettings
from src.core.enums import ClaimStatus, StorageBackend
from src.services.persistence import (
    InMemoryClaimStore,
    JsonFileClaimCache,
    RedisClaimStore,
    build_claim_store,
    build_local_cache,
)
from src.utils.errors import PersistenceError


class TestInMemoryClaimStore:
    """Tests for the in-process store."""

    @pytest.mark.asyncio
    async def test_subscribe_delivers_current_snapshot(self, make_claim):
        """Subscribers get the current contents immediately."""
        claim = make_claim()
        store = InMemoryClaimStore([claim])
        snapshots = []

        async def on_snapshot(claims):
            snapshots.append(claims)

        await store.subscribe(on_snapshot, AsyncMock())

        assert snapshots == [[claim]]

    @pytest.mark.asyncio
    async def test_writes_push_snapshots(self, make_claim):
        """Every write publishes a full snapshot."""
        store = InMemoryClaimStore()
        snapshots = []

        async def on_snapshot(claims):
            snapshots.append(len(claims))

        subscription = await store.subscribe(on_snapshot, AsyncMock())
        claim = make_claim()
        await store.put_claim(claim)
        await store.delete_claim(claim.id)
        await subscription.cancel()
        await store.put_claim(claim)

        assert snapshots == [0, 1, 0]

    @pytest.mark.asyncio
    async def test_failure_injection(self, make_claim):
        """fail_writes and fail_subscribe raise PersistenceError."""
        store = InMemoryClaimStore()
        store.fail_writes = True
        with pytest.raises(PersistenceError):
            await store.put_claim(make_claim())
        assert store.write_count == 0

        store.fail_subscribe = True
        with pytest.raises(PersistenceError):
            await store.subscribe(AsyncMock(), AsyncMock())

    @pytest.mark.asyncio
    async def test_documents_are_records(self, make_claim):
        """Stored values are decoded from wire records, not shared objects."""
        claim = make_claim(status=ClaimStatus.APPROVED)
        store = InMemoryClaimStore()
        await store.put_claim(claim)

        stored = store.snapshot()[0]
        assert stored is not claim
        assert stored.to_record() == claim.to_record()


class TestJsonFileClaimCache:
    """Tests for the local JSON file cache."""

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        """No file means no cached claims."""
        cache = JsonFileClaimCache(tmp_path / "none.json")
        assert await cache.load_all() == []

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path, make_claim):
        """Saved claims load back with the same records."""
        cache = JsonFileClaimCache(tmp_path / "nested" / "claims.json")
        claims = [make_claim(), make_claim("Priya Sharma", status=ClaimStatus.SUBMITTED)]

        await cache.save_all(claims)
        loaded = await cache.load_all()

        assert [c.to_record() for c in loaded] == [c.to_record() for c in claims]
        assert json.loads(cache.path.read_text(encoding="utf-8"))[0]["patientName"] == "Rajesh Kumar"

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path):
        """Unparseable files raise PersistenceError."""
        path = tmp_path / "claims.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            await JsonFileClaimCache(path).load_all()

    @pytest.mark.asyncio
    async def test_wrong_shape_raises(self, tmp_path):
        """A JSON object instead of a list is corrupt."""
        path = tmp_path / "claims.json"
        path.write_text('{"claims": []}', encoding="utf-8")
        with pytest.raises(PersistenceError):
            await JsonFileClaimCache(path).load_all()

    @pytest.mark.asyncio
    async def test_invalid_record_raises(self, tmp_path):
        """Records that fail validation are corrupt."""
        path = tmp_path / "claims.json"
        path.write_text('[{"id": "c1"}]', encoding="utf-8")
        with pytest.raises(PersistenceError):
            await JsonFileClaimCache(path).load_all()

    @pytest.mark.asyncio
    async def test_non_object_record_raises(self, tmp_path):
        """List entries that are not objects are corrupt."""
        path = tmp_path / "claims.json"
        path.write_text('[["c1", "Rajesh Kumar"]]', encoding="utf-8")
        with pytest.raises(PersistenceError, match="Claim record must be an object"):
            await JsonFileClaimCache(path).load_all()


def _redis_mock():
    redis = MagicMock()
    redis.hset = AsyncMock()
    redis.hdel = AsyncMock()
    redis.hgetall = AsyncMock(return_value={})
    redis.publish = AsyncMock()
    redis.delete = AsyncMock()
    redis.ping = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()
    return redis


class TestRedisClaimStore:
    """Tests for the Redis store using a mocked client."""

    @pytest.mark.asyncio
    async def test_put_claim_writes_json_and_publishes(self, make_claim):
        """A claim is one JSON document in the hash plus a change message."""
        redis = _redis_mock()
        store = RedisClaimStore(redis, key="claims", channel="claims:changes")
        claim = make_claim()

        await store.put_claim(claim)

        key, field, value = redis.hset.await_args.args
        assert (key, field) == ("claims", claim.id)
        assert json.loads(value) == claim.to_record()
        redis.publish.assert_awaited_once_with("claims:changes", claim.id)

    @pytest.mark.asyncio
    async def test_delete_claim(self):
        """Deletes remove the hash field."""
        redis = _redis_mock()
        store = RedisClaimStore(redis)

        await store.delete_claim("c1")

        redis.hdel.assert_awaited_once_with("claims", "c1")

    @pytest.mark.asyncio
    async def test_redis_errors_become_persistence_errors(self, make_claim):
        """Connection failures are reported as PersistenceError."""
        redis = _redis_mock()
        redis.hset.side_effect = RedisConnectionError("connection refused")
        store = RedisClaimStore(redis)

        with pytest.raises(PersistenceError) as exc:
            await store.put_claim(make_claim())
        assert "connection refused" in exc.value.message

    @pytest.mark.asyncio
    async def test_load_snapshot_skips_bad_documents(self, make_claim):
        """Unreadable documents are skipped, the rest still load."""
        claim = make_claim()
        bad_bills = {**make_claim("Priya Sharma").to_record(), "bills": [500, "X-Ray"]}
        redis = _redis_mock()
        redis.hgetall.return_value = {
            claim.id: json.dumps(claim.to_record()),
            "broken": "{oops",
            "invalid": json.dumps({"id": "invalid"}),
            "listed": json.dumps(["not", "an", "object"]),
            "number": "42",
            bad_bills["id"]: json.dumps(bad_bills),
        }
        store = RedisClaimStore(redis)

        assert await store.load_snapshot() == [claim]

    @pytest.mark.asyncio
    async def test_subscribe_closes_pubsub_when_snapshot_fails(self):
        """The change channel is released if the first snapshot cannot load."""
        redis = _redis_mock()
        redis.hgetall.side_effect = RedisConnectionError("connection reset")
        pubsub = MagicMock()
        pubsub.subscribe = AsyncMock()
        pubsub.aclose = AsyncMock()
        redis.pubsub = MagicMock(return_value=pubsub)

        with pytest.raises(PersistenceError):
            await RedisClaimStore(redis).subscribe(AsyncMock(), AsyncMock())

        pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_subscribe_closes_pubsub_when_handler_fails(self, make_claim):
        """A failing snapshot handler propagates and releases the channel."""
        claim = make_claim()
        redis = _redis_mock()
        redis.hgetall.return_value = {claim.id: json.dumps(claim.to_record())}
        pubsub = MagicMock()
        pubsub.subscribe = AsyncMock()
        pubsub.aclose = AsyncMock(side_effect=RedisConnectionError("already closed"))
        redis.pubsub = MagicMock(return_value=pubsub)
        on_snapshot = AsyncMock(side_effect=PersistenceError("cache write failed"))

        with pytest.raises(PersistenceError, match="cache write failed"):
            await RedisClaimStore(redis).subscribe(on_snapshot, AsyncMock())

        pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_subscribe_delivers_snapshot_then_listens(self, make_claim):
        """Subscribing delivers the hash contents and reloads on each message."""
        claim = make_claim()
        redis = _redis_mock()
        redis.hgetall.return_value = {claim.id: json.dumps(claim.to_record())}

        messages = asyncio.Queue()

        async def listen():
            while True:
                yield await messages.get()

        pubsub = MagicMock()
        pubsub.subscribe = AsyncMock()
        pubsub.unsubscribe = AsyncMock()
        pubsub.aclose = AsyncMock()
        pubsub.listen = listen
        redis.pubsub = MagicMock(return_value=pubsub)

        store = RedisClaimStore(redis)
        snapshots = []

        async def on_snapshot(claims):
            snapshots.append(claims)

        subscription = await store.subscribe(on_snapshot, AsyncMock())
        assert snapshots == [[claim]]

        await messages.put({"type": "subscribe"})
        await messages.put({"type": "message", "data": claim.id})
        for _ in range(10):
            await asyncio.sleep(0)
        assert len(snapshots) == 2

        await subscription.cancel()
        pubsub.unsubscribe.assert_awaited_once()
        pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_listener_failure_reports_error(self):
        """A broken connection while listening reaches on_error."""
        redis = _redis_mock()

        async def listen():
            raise RedisConnectionError("lost connection")
            yield  # pragma: no cover

        pubsub = MagicMock()
        pubsub.subscribe = AsyncMock()
        pubsub.unsubscribe = AsyncMock()
        pubsub.aclose = AsyncMock()
        pubsub.listen = listen
        redis.pubsub = MagicMock(return_value=pubsub)

        errors = []

        async def on_error(error):
            errors.append(error)

        subscription = await RedisClaimStore(redis).subscribe(AsyncMock(), on_error)
        for _ in range(10):
            await asyncio.sleep(0)
        await subscription.cancel()

        assert len(errors) == 1
        assert isinstance(errors[0], PersistenceError)

    @pytest.mark.asyncio
    async def test_subscribe_failure_raises(self):
        """Failing to subscribe raises PersistenceError."""
        redis = _redis_mock()
        pubsub = MagicMock()
        pubsub.subscribe = AsyncMock(side_effect=RedisConnectionError("down"))
        redis.pubsub = MagicMock(return_value=pubsub)

        with pytest.raises(PersistenceError):
            await RedisClaimStore(redis).subscribe(AsyncMock(), AsyncMock())


class TestBuilders:
    """Tests for backend selection from settings."""

    def test_memory_backend_by_default(self):
        """The memory store is the default."""
        store = build_claim_store(ClaimsSettings(), "redis://localhost:6379/0")
        assert isinstance(store, InMemoryClaimStore)

    def test_redis_backend(self):
        """STORAGE_BACKEND=redis builds a Redis store without connecting."""
        settings = ClaimsSettings(STORAGE_BACKEND=StorageBackend.REDIS)
        store = build_claim_store(settings, "redis://localhost:6379/0")
        assert isinstance(store, RedisClaimStore)

    def test_local_cache_can_be_disabled(self, tmp_path):
        """An empty cache path disables the fallback cache."""
        assert build_local_cache(ClaimsSettings(LOCAL_CACHE_PATH="")) is None
        cache = build_local_cache(ClaimsSettings(LOCAL_CACHE_PATH=str(tmp_path / "c.json")))
        assert isinstance(cache, JsonFileClaimCache)
