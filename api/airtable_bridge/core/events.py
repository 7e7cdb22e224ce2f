"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger

from airtable_bridge.core.config import settings
from airtable_bridge.infrastructure.external.airtable.credentials import missing_credentials
from airtable_bridge.infrastructure.locks.upsert_key_lock import UpsertKeyLockManager


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Inicializa logging y valida configuracion."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            # Configurar logging adicional
            if settings.LOG_FILE:
                logger.add(
                    settings.LOG_FILE,
                    rotation="500 MB",
                    retention="10 days",
                    level=settings.LOG_LEVEL
                )

            # Validar configuracion critica
            _validate_config()

            logger.success("Aplicacion iniciada correctamente")
        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def _validate_config() -> None:
    """
    Valida que la configuracion critica este presente.

    No aborta el arranque: sin credenciales cada upsert responde con un error
    de configuracion reportado.
    """
    warnings = []

    for name in missing_credentials(settings):
        warnings.append(f"{name} no configurada - los upserts fallaran")

    if not settings.TELEMETRY_ENABLED or not settings.TELEMETRY_URL:
        warnings.append("Telemetria deshabilitada - los eventos de resultado solo quedan en el log local")

    if settings.UPSERT_KEY_LOCK_ENABLED:
        logger.info(f"Lock por clave habilitado (timeout: {settings.UPSERT_KEY_LOCK_TIMEOUT_S}s)")

    # Mostrar advertencias
    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        pending = UpsertKeyLockManager.active_keys()
        if pending:
            logger.warning(f"Upserts en curso al cerrar: {pending}")

        logger.success("Aplicacion cerrada correctamente")

    return shutdown


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Ciclo de vida de la aplicacion: inicio antes de servir, cierre al terminar."""
    await startup_handler(app)()
    try:
        yield
    finally:
        await shutdown_handler(app)()
