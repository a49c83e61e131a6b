"""
Tests for the credential store adapters.

Pattern: FakeRepository (fakeredis for the Redis adapter, tmp_path for files)
"""

import json

import pytest
import pytest_asyncio

from wa_gateway.core.exceptions import CredentialStoreError
from wa_gateway.sessions.credentials import (
    FileCredentialStore,
    InMemoryCredentialStore,
    RedisCredentialStore,
    create_credential_store,
    ensure_safe_session_id,
)

CREDS = {"me": {"id": "15551234567:3@s.whatsapp.net", "name": "Shop"}, "noiseKey": "abc"}


# =============================================================================
# Session id safety
# =============================================================================


class TestSafeSessionId:

    @pytest.mark.parametrize("session_id", ["shop-42", "A", "user@example.com", "a.b_c+d"])
    def test_accepts_plain_ids(self, session_id) -> None:
        assert ensure_safe_session_id(session_id) == session_id

    @pytest.mark.parametrize("session_id", ["", "..", ".", "../etc", "a/b", "a\\b", "x" * 129])
    def test_rejects_path_like_ids(self, session_id) -> None:
        with pytest.raises(CredentialStoreError):
            ensure_safe_session_id(session_id)


# =============================================================================
# File store
# =============================================================================


class TestFileCredentialStore:

    @pytest.mark.asyncio
    async def test_load_missing_returns_none(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)

        assert await store.load("A") is None
        assert await store.exists("A") is False

    @pytest.mark.asyncio
    async def test_save_then_load(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)

        await store.save("A", CREDS)

        assert await store.load("A") == CREDS
        assert json.loads((tmp_path / "A" / "creds.json").read_text()) == CREDS

    @pytest.mark.asyncio
    async def test_save_overwrites(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)
        await store.save("A", CREDS)

        await store.save("A", {"me": None})

        assert await store.load("A") == {"me": None}

    @pytest.mark.asyncio
    async def test_delete_erases_session_directory(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)
        await store.save("A", CREDS)

        assert await store.delete("A") is True
        assert not (tmp_path / "A").exists()
        assert await store.delete("A") is False

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_store_error(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)
        (tmp_path / "A").mkdir()
        (tmp_path / "A" / "creds.json").write_text("{not json")

        with pytest.raises(CredentialStoreError):
            await store.load("A")

    @pytest.mark.asyncio
    async def test_unsafe_id_never_touches_disk(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path / "auth")

        with pytest.raises(CredentialStoreError):
            await store.save("../escape", CREDS)
        assert not (tmp_path / "escape").exists()

    @pytest.mark.asyncio
    async def test_directory_created_on_first_save(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path / "auth")

        assert not (tmp_path / "auth").exists()
        assert await store.load("A") is None
        assert await store.delete("A") is False
        assert not (tmp_path / "auth").exists()

        await store.save("A", CREDS)

        assert (tmp_path / "auth" / "A" / "creds.json").is_file()


# =============================================================================
# Redis store
# =============================================================================


@pytest_asyncio.fixture
async def redis_store(fake_redis):
    return RedisCredentialStore(fake_redis, key_prefix="test-creds:")


class TestRedisCredentialStore:

    @pytest.mark.asyncio
    async def test_save_then_load(self, redis_store, fake_redis) -> None:
        await redis_store.save("A", CREDS)

        assert await redis_store.load("A") == CREDS
        assert await fake_redis.exists("test-creds:A") == 1

    @pytest.mark.asyncio
    async def test_credentials_have_no_expiry(self, redis_store, fake_redis) -> None:
        await redis_store.save("A", CREDS)

        assert await fake_redis.ttl("test-creds:A") == -1

    @pytest.mark.asyncio
    async def test_delete(self, redis_store) -> None:
        await redis_store.save("A", CREDS)

        assert await redis_store.delete("A") is True
        assert await redis_store.exists("A") is False
        assert await redis_store.load("A") is None
        assert await redis_store.delete("A") is False

    @pytest.mark.asyncio
    async def test_backend_failure_wrapped(self, redis_store, fake_redis) -> None:
        await fake_redis.set("test-creds:A", "{broken")

        with pytest.raises(CredentialStoreError) as exc_info:
            await redis_store.load("A")
        assert exc_info.value.session_id == "A"


# =============================================================================
# In-memory store and factory
# =============================================================================


class TestInMemoryCredentialStore:

    @pytest.mark.asyncio
    async def test_round_trip_and_delete_tracking(self) -> None:
        store = InMemoryCredentialStore()
        await store.save("A", CREDS)

        assert await store.exists("A")
        assert await store.delete("A") is True
        assert store.deleted == ["A"]
        assert await store.load("A") is None


class TestCreateCredentialStore:

    def test_file_backend(self, test_settings) -> None:
        store = create_credential_store(test_settings)

        assert isinstance(store, FileCredentialStore)

    def test_redis_backend(self, test_settings) -> None:
        settings = test_settings.model_copy(update={"credential_backend": "redis"})

        store = create_credential_store(settings)

        assert isinstance(store, RedisCredentialStore)
