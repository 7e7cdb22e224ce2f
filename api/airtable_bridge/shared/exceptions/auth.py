"""
Excepciones relacionadas con autorización.
"""
from airtable_bridge.shared.exceptions.base import AppException


class ForbiddenException(AppException):
    """Excepción para acceso prohibido."""

    def __init__(self, message: str = "Acceso prohibido", error_code: str = "FORBIDDEN", details=None):
        super().__init__(
            message=message,
            status_code=403,
            error_code=error_code,
            details=details
        )


class TableNotAllowedException(ForbiddenException):
    """La tabla solicitada no está en la lista de tablas permitidas."""

    def __init__(self, table: str, allowed_tables: list[str]):
        super().__init__(
            message="Invalid table",
            error_code="TABLE_NOT_ALLOWED",
            details={
                "table": table,
                "allowed_tables": allowed_tables
            }
        )
