"""
Constantes relacionadas con Airtable y los eventos de resultado.
Define las tablas permitidas, operaciones y etiquetas de servicio.
"""
from enum import Enum


class AllowedTable(str, Enum):
    """Tablas de Airtable sobre las que el bridge puede operar."""
    VIDEO_POSTS = "Video posts"
    SUBSCRIBERS = "Subscribers"


ALLOWED_TABLES = frozenset(table.value for table in AllowedTable)


class Operation(str, Enum):
    """Clasificacion del resultado de un upsert."""
    CREATE = "create"
    UPDATE = "update"


class OutcomeLevel(str, Enum):
    """Niveles aceptados por el sink de telemetria."""
    INFO = "info"
    ERROR = "error"


# Campo de busqueda por defecto (callers legacy que identifican por titulo)
DEFAULT_FILTER_FIELD = "Title"

# Etiquetas de servicio para eventos de resultado
DEFAULT_SERVICE = "gr8r-unknown"
SERVICE_VALIDATION = "validation"
SERVICE_CONFIG = "config"
SERVICE_UNHANDLED = "unhandled"


def stage_service(table: str, stage: str) -> str:
    """Etiqueta de servicio para una etapa contra Airtable, p.ej. 'Video posts-create'."""
    return f"{table}-{stage}"
