"""
Cliente del sink de telemetria (endpoint de logs estructurados hacia Grafana).
"""
from typing import Any, Mapping, Optional

import httpx
from loguru import logger

from airtable_bridge.core.config import settings
from airtable_bridge.shared.constants.airtable_constants import DEFAULT_SERVICE


class TelemetryClient:
    """
    Cliente fire-and-forget para eventos de resultado.

    Cada evento tiene la forma:
        {"level": ..., "message": ..., "meta": {"source": ..., "service": ..., ...}}

    source y service siempre existen para que el evento sea visible en Loki
    aunque el caller no los envie.
    """

    def __init__(
        self,
        url: str = None,
        source: str = None,
        timeout_s: float = None,
        enabled: bool = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.TELEMETRY_URL
        self.source = source or settings.TELEMETRY_SOURCE
        self.timeout_s = timeout_s if timeout_s is not None else settings.TELEMETRY_TIMEOUT_S
        self.enabled = settings.TELEMETRY_ENABLED if enabled is None else enabled
        self._transport = transport

    def build_event(
        self,
        level: str,
        message: str,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> dict:
        """Arma el payload mezclando meta sobre los defaults {source, service}."""
        merged = {"source": self.source, "service": DEFAULT_SERVICE}
        merged.update({k: v for k, v in (meta or {}).items() if v is not None})
        return {"level": level, "message": message, "meta": merged}

    async def log(
        self,
        level: str,
        message: str,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Envia un evento al sink.

        Nunca lanza: un status no exitoso queda como warning y un error de red
        como error en el log local.
        """
        if not self.enabled or not self.url:
            logger.debug(f"Telemetria deshabilitada. Evento descartado: {message}")
            return

        payload = self.build_event(level, message, meta)

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.post(self.url, json=payload)
            if response.is_success:
                return
            logger.warning(
                f"Sink de telemetria respondio {response.status_code} para '{message}': {response.text}"
            )
        except Exception as e:
            logger.error(f"Logger failed: {e}")
