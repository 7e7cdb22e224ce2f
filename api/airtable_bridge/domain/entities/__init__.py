"""
Entidades del dominio.
"""
from airtable_bridge.domain.entities.upsert import (
    ResolvedKey,
    resolve_key,
    sanitize_fields,
    build_create_fields,
    decide_operation,
)

__all__ = [
    "ResolvedKey",
    "resolve_key",
    "sanitize_fields",
    "build_create_fields",
    "decide_operation",
]
