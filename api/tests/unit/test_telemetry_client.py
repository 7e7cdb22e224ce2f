"""
Tests unitarios del cliente de telemetria.

Verifica:
- Forma del evento y defaults de source/service.
- Que ningun fallo de entrega se propague.
"""
from __future__ import annotations

import json

import httpx
import pytest
from loguru import logger

from airtable_bridge.infrastructure.external.telemetry.telemetry_client import TelemetryClient


@pytest.fixture
def captured_logs():
    messages: list[str] = []
    sink_id = logger.add(lambda msg: messages.append(str(msg)), level="DEBUG")
    yield messages
    logger.remove(sink_id)


def _client(handler, **kwargs) -> TelemetryClient:
    return TelemetryClient(
        url="https://telemetry.test/api/grafana",
        source="gr8r-airtable-worker",
        enabled=True,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_build_event_applies_defaults() -> None:
    client = TelemetryClient(url="https://telemetry.test", source="gr8r-airtable-worker", enabled=True)
    event = client.build_event("info", "hola")

    assert event == {
        "level": "info",
        "message": "hola",
        "meta": {"source": "gr8r-airtable-worker", "service": "gr8r-unknown"},
    }


def test_build_event_meta_overrides_defaults_and_drops_none() -> None:
    client = TelemetryClient(url="https://telemetry.test", source="gr8r-airtable-worker", enabled=True)
    event = client.build_event("error", "x", {"service": "validation", "title": None, "table": "Subscribers"})

    assert event["meta"] == {
        "source": "gr8r-airtable-worker",
        "service": "validation",
        "table": "Subscribers",
    }


@pytest.mark.asyncio
async def test_log_posts_event_as_json() -> None:
    received: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    await _client(handler).log("info", "Airtable create successful", {"operation": "create"})

    assert len(received) == 1
    assert received[0]["level"] == "info"
    assert received[0]["meta"]["operation"] == "create"
    assert received[0]["meta"]["source"] == "gr8r-airtable-worker"


@pytest.mark.asyncio
async def test_log_non_success_is_only_a_warning(captured_logs) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    await _client(handler).log("error", "Airtable update failed")

    assert any("503" in line for line in captured_logs)


@pytest.mark.asyncio
async def test_log_transport_error_is_swallowed(captured_logs) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    await _client(handler).log("error", "Airtable search failed")

    assert any("Logger failed" in line for line in captured_logs)


@pytest.mark.asyncio
async def test_disabled_client_sends_nothing() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    client = TelemetryClient(
        url="https://telemetry.test",
        enabled=False,
        transport=httpx.MockTransport(handler),
    )
    await client.log("info", "x")

    assert calls == []
