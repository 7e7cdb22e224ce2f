"""
Lock opcional por clave de upsert (tabla + campo + valor).

Motivacion:
- El upsert es lookup-then-write y Airtable no ofrece compare-and-swap.
- Dos upserts concurrentes de una clave nueva pueden ver cero coincidencias
  y crear dos registros.
- Dentro de un mismo proceso se puede serializar por clave; entre procesos
  o instancias la carrera sigue existiendo.

Caracteristicas:
- asyncio.Lock por clave (todo el flujo del upsert es async)
- Timeout configurable para evitar esperas indefinidas
- Limpieza de locks que no estan en uso
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from loguru import logger


# Timeout por defecto para adquirir un lock (en segundos)
DEFAULT_LOCK_TIMEOUT = 30.0


class KeyLockTimeoutError(Exception):
    """Excepcion lanzada cuando no se puede adquirir el lock dentro del timeout."""

    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Timeout ({timeout}s) adquiriendo lock para clave: {key}")


class UpsertKeyLockManager:
    """
    Gestor de locks por clave de upsert.

    Los locks son del proceso: se crean bajo demanda y se eliminan al
    liberarse si nadie mas los espera.
    """

    _locks: Dict[str, asyncio.Lock] = {}
    _waiters: Dict[str, int] = {}

    @classmethod
    def _get_or_create_lock(cls, key: str) -> asyncio.Lock:
        """Obtiene o crea un lock para la clave especificada."""
        lock = cls._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            cls._locks[key] = lock
        return lock

    @classmethod
    @asynccontextmanager
    async def lock(cls, key: str, timeout: float = DEFAULT_LOCK_TIMEOUT) -> AsyncIterator[None]:
        """
        Context manager async para serializar upserts de una misma clave.

        Args:
            key: Clave estable (ver ResolvedKey.lock_key)
            timeout: Espera maxima en segundos. Si es None o <= 0 espera indefinidamente.

        Raises:
            KeyLockTimeoutError: Si no se adquiere el lock dentro del timeout.

        Ejemplo:
            async with UpsertKeyLockManager.lock("Video posts:Title=Ep12"):
                ...
        """
        lock = cls._get_or_create_lock(key)
        cls._waiters[key] = cls._waiters.get(key, 0) + 1

        try:
            if timeout and timeout > 0:
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=timeout)
                except asyncio.TimeoutError:
                    logger.warning(f"Timeout adquiriendo lock para clave {key} (timeout: {timeout}s)")
                    raise KeyLockTimeoutError(key, timeout)
            else:
                await lock.acquire()
        except BaseException:
            cls._release_waiter(key)
            raise

        try:
            yield
        finally:
            lock.release()
            cls._release_waiter(key)

    @classmethod
    def _release_waiter(cls, key: str) -> None:
        remaining = cls._waiters.get(key, 1) - 1
        if remaining <= 0:
            cls._waiters.pop(key, None)
            cls._locks.pop(key, None)
        else:
            cls._waiters[key] = remaining

    @classmethod
    def active_keys(cls) -> list[str]:
        """Claves con lock vivo (en uso o con waiters)."""
        return list(cls._locks.keys())
