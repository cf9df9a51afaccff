"""Unit tests for the guest key-value store backends."""

import os
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shiftwise.core.exceptions import LocalStoreError
from shiftwise.services import key_value_store
from shiftwise.services.key_value_store import (
    FileKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
)


@pytest.mark.unit
class TestFileKeyValueStore:
    @pytest.mark.asyncio
    async def test_set_then_get(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path))

        await store.set("@local_goals", "[]")

        assert await store.get("@local_goals") == "[]"
        assert os.path.exists(tmp_path / "local_goals.json")

    @pytest.mark.asyncio
    async def test_missing_key_is_none(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path))

        assert await store.get("@local_user") is None

    @pytest.mark.asyncio
    async def test_undecodable_file_raises_local_store_error(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path))
        (tmp_path / "local_goals.json").write_bytes(b"\xff\xfe[garbage")

        with pytest.raises(LocalStoreError, match="@local_goals"):
            await store.get("@local_goals")

    @pytest.mark.asyncio
    async def test_multi_remove_ignores_missing_keys(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path))
        await store.set("@local_goals", "[]")

        await store.multi_remove(["@local_goals", "@local_shifts"])

        assert await store.get("@local_goals") is None

    @pytest.mark.asyncio
    async def test_keys_cannot_escape_base_dir(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path))

        await store.set("../../etc/passwd", "x")

        assert all(p.parent == tmp_path for p in tmp_path.iterdir())

    @pytest.mark.asyncio
    async def test_empty_key_is_rejected(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path))

        with pytest.raises(LocalStoreError):
            await store.get("@")

    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(FileKeyValueStore(str(tmp_path)), KeyValueStore)


@pytest.mark.unit
class TestRedisKeyValueStore:
    @pytest.mark.asyncio
    async def test_keys_are_namespaced(self):
        client = AsyncMock()
        client.get.return_value = "[]"
        store = RedisKeyValueStore(client=client, namespace="tests")

        await store.set("@local_goals", "[]")
        value = await store.get("@local_goals")

        client.set.assert_awaited_once_with("tests:@local_goals", "[]")
        client.get.assert_awaited_once_with("tests:@local_goals")
        assert value == "[]"

    @pytest.mark.asyncio
    async def test_multi_remove_deletes_in_one_call(self):
        client = AsyncMock()
        store = RedisKeyValueStore(client=client, namespace="tests")

        await store.multi_remove(["@a", "@b"])

        client.delete.assert_awaited_once_with("tests:@a", "tests:@b")

    @pytest.mark.asyncio
    async def test_multi_remove_with_no_keys_is_noop(self):
        client = AsyncMock()
        store = RedisKeyValueStore(client=client, namespace="tests")

        await store.multi_remove([])

        client.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_redis_errors_become_local_store_errors(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("down")
        store = RedisKeyValueStore(client=client, namespace="tests")

        with pytest.raises(LocalStoreError, match="down"):
            await store.get("@local_goals")


@pytest.mark.unit
class TestGetKeyValueStore:
    def test_selects_configured_backend_once(self, tmp_path):
        with patch.object(key_value_store, "_store_instance", None), patch.object(
            key_value_store.settings, "LOCAL_STORE_BACKEND", "file"
        ), patch.object(key_value_store.settings, "LOCAL_STORE_DIR", str(tmp_path)):
            first = key_value_store.get_key_value_store()
            second = key_value_store.get_key_value_store()

        assert isinstance(first, FileKeyValueStore)
        assert first is second
