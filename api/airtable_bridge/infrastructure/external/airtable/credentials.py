"""
Resolución de credenciales de Airtable.

Las credenciales vienen de Settings (variables de entorno / .env). El caso de
uso recibe un proveedor inyectable para poder simular credenciales ausentes.
"""

from __future__ import annotations

from typing import Callable, Optional

from airtable_bridge.core.config import Settings, settings as default_settings

from .types import AirtableCredentials


CredentialsProvider = Callable[[], Optional[AirtableCredentials]]


def missing_credentials(config: Settings) -> list[str]:
    """Nombres de las variables requeridas que no están configuradas."""
    missing = []
    if not config.AIRTABLE_TOKEN:
        missing.append("AIRTABLE_TOKEN")
    if not config.AIRTABLE_BASE_ID:
        missing.append("AIRTABLE_BASE_ID")
    return missing


def settings_credentials_provider(config: Settings = default_settings) -> CredentialsProvider:
    """Proveedor que lee token y base de Settings; retorna None si falta alguno."""

    def provide() -> Optional[AirtableCredentials]:
        if missing_credentials(config):
            return None
        return AirtableCredentials(token=config.AIRTABLE_TOKEN, base_id=config.AIRTABLE_BASE_ID)

    return provide
