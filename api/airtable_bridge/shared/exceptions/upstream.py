"""
Excepciones del lado servidor: configuración, Airtable y errores no clasificados.
Todas se traducen a HTTP 500.
"""
from typing import Any, Optional

from airtable_bridge.shared.exceptions.base import AppException


class ConfigurationException(AppException):
    """Falta una credencial requerida; Airtable nunca se contacta."""

    def __init__(self, missing: list[str]):
        super().__init__(
            message=f"Missing configuration: {', '.join(missing)}",
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details={"missing": missing}
        )


class UpstreamException(AppException):
    """
    Airtable respondió con un status no exitoso en una etapa.

    El detalle del error de Airtable se incluye en el mensaje para que el
    caller vea qué falló sin consultar los logs.
    """

    def __init__(
        self,
        stage: str,
        detail: str,
        status: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(
            message=f"{stage.capitalize()} failed: {detail}",
            status_code=500,
            error_code="UPSTREAM_ERROR",
            details={"stage": stage, "status": status, "body": body}
        )
        self.stage = stage


class KeyLockTimeoutException(AppException):
    """No se pudo adquirir el lock de la clave dentro del timeout."""

    def __init__(self, key: str, timeout: float):
        super().__init__(
            message=f"Lock timeout ({timeout}s) for key: {key}",
            status_code=500,
            error_code="KEY_LOCK_TIMEOUT",
            details={"key": key, "timeout": timeout}
        )


class UnhandledException(AppException):
    """Cualquier error no clasificado, capturado en la frontera del caso de uso."""

    def __init__(self, error_message: str):
        super().__init__(
            message=f"Unexpected error: {error_message}",
            status_code=500,
            error_code="UNHANDLED_ERROR"
        )
