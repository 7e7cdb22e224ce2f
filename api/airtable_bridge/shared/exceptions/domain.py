"""
Excepciones relacionadas con la validación del payload.
"""
from airtable_bridge.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio (errores del cliente)."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class PayloadValidationException(DomainException):
    """Payload mal formado o sin estrategia de identificación."""

    def __init__(self, message: str = "Missing or invalid payload fields", errors: list = None):
        details = {"errors": errors} if errors else None
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )
