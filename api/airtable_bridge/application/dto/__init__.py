"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .record_dto import (
    UpsertRequestDTO,
    UpsertResponseDTO,
    LookupRequestDTO,
    LookupResponseDTO,
    RecordDTO,
)

__all__ = [
    "UpsertRequestDTO",
    "UpsertResponseDTO",
    "LookupRequestDTO",
    "LookupResponseDTO",
    "RecordDTO",
]
