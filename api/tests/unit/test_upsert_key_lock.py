"""
Tests unitarios para upsert_key_lock.py y su uso desde RecordUseCases.

Verifica la serializacion de upserts por clave con soporte de timeout.
"""
from __future__ import annotations

import asyncio
import json
from typing import List

import pytest

from airtable_bridge.infrastructure.locks.upsert_key_lock import (
    DEFAULT_LOCK_TIMEOUT,
    KeyLockTimeoutError,
    UpsertKeyLockManager,
)
from airtable_bridge.shared.constants.airtable_constants import Operation
from airtable_bridge.shared.exceptions.upstream import KeyLockTimeoutException


class TestKeyLockTimeoutError:

    def test_exception_message_contains_key_and_timeout(self) -> None:
        error = KeyLockTimeoutError("Video posts:Title=Ep12", 30.0)

        assert "Video posts:Title=Ep12" in str(error)
        assert "30.0" in str(error)
        assert error.key == "Video posts:Title=Ep12"
        assert error.timeout == 30.0

    def test_default_timeout(self) -> None:
        assert DEFAULT_LOCK_TIMEOUT == 30.0


class TestUpsertKeyLockManager:

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self) -> None:
        order: List[str] = []

        async def worker(name: str) -> None:
            async with UpsertKeyLockManager.lock("k"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block(self) -> None:
        async with UpsertKeyLockManager.lock("k1"):
            async with UpsertKeyLockManager.lock("k2", timeout=0.1):
                assert set(UpsertKeyLockManager.active_keys()) == {"k1", "k2"}

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        async with UpsertKeyLockManager.lock("k"):
            with pytest.raises(KeyLockTimeoutError):
                async with UpsertKeyLockManager.lock("k", timeout=0.05):
                    pass

    @pytest.mark.asyncio
    async def test_locks_are_removed_when_released(self) -> None:
        async with UpsertKeyLockManager.lock("k"):
            pass

        assert UpsertKeyLockManager.active_keys() == []


class TestUpsertWithKeyLock:

    @pytest.mark.asyncio
    async def test_concurrent_upserts_of_new_key_create_once(self, make_use_cases, airtable) -> None:
        use_cases = make_use_cases(key_lock_enabled=True, key_lock_timeout_s=5.0)
        body = json.dumps({"table": "Video posts", "title": "Ep12", "fields": {"Status": "Published"}})

        results = await asyncio.gather(use_cases.upsert(body), use_cases.upsert(body))

        assert sorted(r.operation for r in results) == [Operation.CREATE, Operation.UPDATE]
        assert len(airtable.calls_of("create")) == 1

    @pytest.mark.asyncio
    async def test_lock_timeout_is_reported(self, make_use_cases, reporter) -> None:
        use_cases = make_use_cases(key_lock_enabled=True, key_lock_timeout_s=0.05)
        body = json.dumps({"table": "Video posts", "title": "Ep12", "fields": {}})

        async with UpsertKeyLockManager.lock("Video posts:Title=Ep12"):
            with pytest.raises(KeyLockTimeoutException):
                await use_cases.upsert(body)

        assert len(reporter.events) == 1
        assert reporter.events[0]["meta"]["service"] == "Video posts-lock"
