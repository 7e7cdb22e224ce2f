"""
Configuración de fixtures para pytest.

Provee dobles en memoria de Airtable y del sink de telemetría para probar
los casos de uso sin red.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

import pytest

from airtable_bridge.application.use_cases.record_use_cases import RecordUseCases
from airtable_bridge.infrastructure.external.airtable.airtable_client import (
    AirtableApiError,
    build_match_formula,
)
from airtable_bridge.infrastructure.external.airtable.types import (
    AirtableCredentials,
    AirtableRecord,
)
from airtable_bridge.infrastructure.locks.upsert_key_lock import UpsertKeyLockManager


class RecordingReporter:
    """Reporter que guarda los eventos; opcionalmente falla en cada envío."""

    def __init__(self, fail: bool = False) -> None:
        self.events: list[dict] = []
        self.fail = fail

    async def log(self, level: str, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self.events.append({"level": level, "message": message, "meta": dict(meta or {})})
        if self.fail:
            raise RuntimeError("telemetry down")


class FakeAirtableClient:
    """
    Airtable en memoria.

    - search_records compara la fórmula contra cada campo de cada registro.
    - failures[stage] = (status, body) hace fallar esa etapa con AirtableApiError.
    - echo_full_on_update=False imita a Airtable devolviendo solo lo parchado.
    - closed cuenta las veces que el caso de uso libero el cliente.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[AirtableRecord]] = {}
        self.calls: list[tuple[str, dict]] = []
        self.failures: dict[str, tuple[int, str]] = {}
        self.error_on: dict[str, Exception] = {}
        self.echo_full_on_update = False
        self.closed = 0
        self._next_id = 1

    def seed(self, table: str, fields: dict, record_id: Optional[str] = None) -> AirtableRecord:
        record = AirtableRecord(record_id=record_id or self._new_id(), fields=dict(fields))
        self.tables.setdefault(table, []).append(record)
        return record

    def _new_id(self) -> str:
        record_id = f"rec{self._next_id:04d}"
        self._next_id += 1
        return record_id

    def _maybe_fail(self, stage: str) -> None:
        if stage in self.error_on:
            raise self.error_on[stage]
        if stage in self.failures:
            status, body = self.failures[stage]
            raise AirtableApiError(status, body)

    def calls_of(self, stage: str) -> list[dict]:
        return [kwargs for name, kwargs in self.calls if name == stage]

    def close(self) -> None:
        self.closed += 1

    def search_records(self, *, table_name, filter_formula, max_records=None, page_size=100):
        self.calls.append(("search", {"table_name": table_name, "filter_formula": filter_formula}))
        self._maybe_fail("search")
        matches = [
            record
            for record in self.tables.get(table_name, [])
            if any(
                isinstance(value, str) and build_match_formula(name, value) == filter_formula
                for name, value in record.fields.items()
            )
        ]
        return matches[:max_records] if max_records else matches

    def create_record(self, *, table_name, fields):
        self.calls.append(("create", {"table_name": table_name, "fields": dict(fields)}))
        self._maybe_fail("create")
        return self.seed(table_name, fields)

    def update_record(self, *, table_name, record_id, fields):
        self.calls.append(
            ("update", {"table_name": table_name, "record_id": record_id, "fields": dict(fields)})
        )
        self._maybe_fail("update")
        records = self.tables.get(table_name, [])
        for index, record in enumerate(records):
            if record.record_id == record_id:
                merged = AirtableRecord(record_id=record_id, fields={**record.fields, **fields})
                records[index] = merged
                return merged if self.echo_full_on_update else AirtableRecord(record_id, dict(fields))
        raise AirtableApiError(404, '{"error": "NOT_FOUND"}')


CREDENTIALS = AirtableCredentials(token="patTEST", base_id="appTEST")


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def failing_reporter() -> RecordingReporter:
    return RecordingReporter(fail=True)


@pytest.fixture
def airtable() -> FakeAirtableClient:
    return FakeAirtableClient()


@pytest.fixture
def make_use_cases(reporter: RecordingReporter, airtable: FakeAirtableClient):
    """Factory de RecordUseCases cableado a los dobles en memoria."""

    def _make(**overrides) -> RecordUseCases:
        options = {
            "credentials_provider": lambda: CREDENTIALS,
            "client_factory": lambda credentials: airtable,
            "key_lock_enabled": False,
        }
        options.update(overrides)
        reporter_override = options.pop("reporter", reporter)
        return RecordUseCases(reporter_override, **options)

    return _make


@pytest.fixture(autouse=True)
def cleanup_locks():
    """Limpia los locks por clave antes y después de cada test."""
    UpsertKeyLockManager._locks.clear()
    UpsertKeyLockManager._waiters.clear()
    yield
    UpsertKeyLockManager._locks.clear()
    UpsertKeyLockManager._waiters.clear()
