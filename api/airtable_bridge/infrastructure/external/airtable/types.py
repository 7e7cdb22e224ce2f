"""
Tipos del cliente Airtable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AirtableCredentials:
    token: str
    base_id: str


@dataclass(frozen=True)
class AirtableRecord:
    """Registro remoto de Airtable: id opaco + snapshot de campos."""

    record_id: str
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "AirtableRecord":
        return cls(record_id=raw["id"], fields=raw.get("fields") or {})
