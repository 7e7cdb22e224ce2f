"""
Interfaz para reportar el resultado de cada llamada a un sink de telemetria.

Este contrato existe para:
- Que los casos de uso no dependan de httpx directamente.
- Facilitar tests unitarios con un reporter que solo registra eventos.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol


class OutcomeReporter(Protocol):
    """
    Envia un evento estructurado {level, message, meta} best-effort.

    Implementaciones:
    - TelemetryClient (HTTP via httpx).
    - Fake en tests.
    """

    async def log(
        self,
        level: str,
        message: str,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Reporta un evento.

        Reglas:
        - Nunca debe alterar el resultado de la operacion principal.
        - Un fallo de entrega se registra localmente y se descarta.
        """
