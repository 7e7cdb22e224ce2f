"""
Reglas puras de reconciliacion: clave de busqueda, sanitizacion de campos
y decision create/update.

Se mantienen libres de I/O para poder testearlas facilmente.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from airtable_bridge.shared.constants.airtable_constants import DEFAULT_FILTER_FIELD, Operation


@dataclass(frozen=True)
class ResolvedKey:
    """Par campo/valor usado para buscar un registro existente."""

    filter_field: str
    filter_value: str

    def lock_key(self, table: str) -> str:
        """Clave estable (tabla + campo + valor) para serializar upserts."""
        return f"{table}:{self.filter_field}={self.filter_value}"


def resolve_key(
    title: Optional[str],
    match_field: Optional[str] = None,
    match_value: Optional[str] = None,
) -> ResolvedKey:
    """
    Determina la clave de busqueda.

    - Si vienen match_field y match_value, ganan (p.ej. un transcript ID).
    - Si no, se usa {Title: title} por compatibilidad con callers por titulo.

    No se normaliza nada: Airtable compara de forma exacta y case-sensitive.
    """
    if match_field and match_value:
        return ResolvedKey(filter_field=match_field, filter_value=match_value)
    return ResolvedKey(filter_field=DEFAULT_FILTER_FIELD, filter_value=title)


def sanitize_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Elimina los campos cuyo valor es exactamente "".

    Airtable rechaza columnas tipadas (fechas) con string vacio. 0, False y
    None pasan sin cambios.
    """
    return {name: value for name, value in fields.items() if value != ""}


def build_create_fields(title: Optional[str], sanitized: Mapping[str, Any]) -> dict[str, Any]:
    """Campos del create: Title literal (si existe) seguido de los campos sanitizados."""
    if title:
        return {DEFAULT_FILTER_FIELD: title, **sanitized}
    return dict(sanitized)


def decide_operation(matches: Sequence[Any]) -> Operation:
    """Cero coincidencias -> create; una o mas -> update sobre la primera."""
    return Operation.UPDATE if matches else Operation.CREATE
