"""
Casos de uso de registros Airtable: upsert (create-or-patch) y lookup.

Flujo del upsert:
    validar payload -> allowlist -> credenciales -> clave -> sanitizar
    -> buscar -> create | update -> reportar -> responder

Cada rama terminal emite exactamente un evento de resultado. Los errores se
clasifican en la etapa que los detecta y se levantan como AppException;
todo lo demas se captura en la frontera de `upsert`/`lookup`.
"""
from __future__ import annotations

import asyncio
import json
import traceback
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Mapping, Optional, Union

from loguru import logger
from pydantic import BaseModel, ValidationError

from airtable_bridge.application.dto.record_dto import (
    LookupRequestDTO,
    LookupResponseDTO,
    RecordDTO,
    UpsertRequestDTO,
    UpsertResponseDTO,
)
from airtable_bridge.application.interfaces.outcome_reporter import OutcomeReporter
from airtable_bridge.core.config import settings
from airtable_bridge.domain.entities.upsert import (
    ResolvedKey,
    build_create_fields,
    decide_operation,
    resolve_key,
    sanitize_fields,
)
from airtable_bridge.infrastructure.external.airtable.airtable_client import (
    AirtableApiError,
    AirtableClient,
    build_match_formula,
)
from airtable_bridge.infrastructure.external.airtable.credentials import (
    CredentialsProvider,
    settings_credentials_provider,
)
from airtable_bridge.infrastructure.external.airtable.types import (
    AirtableCredentials,
    AirtableRecord,
)
from airtable_bridge.infrastructure.locks.upsert_key_lock import (
    KeyLockTimeoutError,
    UpsertKeyLockManager,
)
from airtable_bridge.shared.constants.airtable_constants import (
    ALLOWED_TABLES,
    SERVICE_CONFIG,
    SERVICE_UNHANDLED,
    SERVICE_VALIDATION,
    Operation,
    OutcomeLevel,
    stage_service,
)
from airtable_bridge.shared.exceptions.auth import TableNotAllowedException
from airtable_bridge.shared.exceptions.base import AppException
from airtable_bridge.shared.exceptions.domain import PayloadValidationException
from airtable_bridge.shared.exceptions.upstream import (
    ConfigurationException,
    KeyLockTimeoutException,
    UnhandledException,
    UpstreamException,
)


ClientFactory = Callable[[AirtableCredentials], AirtableClient]


def default_client_factory(credentials: AirtableCredentials) -> AirtableClient:
    """Cliente Airtable con URL y timeout de Settings."""
    return AirtableClient(
        credentials,
        base_url=settings.AIRTABLE_API_URL,
        timeout_s=settings.AIRTABLE_TIMEOUT_S,
    )


def _parse_body(body: Union[bytes, str, Mapping[str, Any]]) -> Any:
    """Decodifica el body crudo. Un JSON invalido se deja propagar a la frontera."""
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    if isinstance(body, str):
        return json.loads(body)
    return body


def _forensic_payload(payload: Any) -> Any:
    """Payload original en forma serializable para reproducir la llamada."""
    if isinstance(payload, (bytes, bytearray)):
        return payload.decode("utf-8", errors="replace")
    return payload


def _validation_errors(exc: ValidationError) -> list[dict]:
    return [
        {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
        for err in exc.errors()
    ]


class RecordUseCases:
    """
    Reconciliador de registros contra Airtable.

    Sin estado entre llamadas: cada upsert busca, decide y escribe una vez.
    """

    def __init__(
        self,
        reporter: OutcomeReporter,
        credentials_provider: Optional[CredentialsProvider] = None,
        client_factory: Optional[ClientFactory] = None,
        key_lock_enabled: Optional[bool] = None,
        key_lock_timeout_s: Optional[float] = None,
    ):
        self.reporter = reporter
        self.credentials_provider = credentials_provider or settings_credentials_provider()
        self.client_factory = client_factory or default_client_factory
        self.key_lock_enabled = (
            settings.UPSERT_KEY_LOCK_ENABLED if key_lock_enabled is None else key_lock_enabled
        )
        self.key_lock_timeout_s = (
            settings.UPSERT_KEY_LOCK_TIMEOUT_S if key_lock_timeout_s is None else key_lock_timeout_s
        )

    # ------------------------------------------------------------------
    # Operaciones publicas
    # ------------------------------------------------------------------

    async def upsert(self, body: Union[bytes, str, Mapping[str, Any]]) -> UpsertResponseDTO:
        """
        Crea o actualiza un registro segun la clave resuelta.

        Args:
            body: Body crudo (bytes/str JSON) o payload ya decodificado

        Returns:
            UpsertResponseDTO con recordId, campos devueltos por Airtable y operacion

        Raises:
            PayloadValidationException: payload mal formado (400)
            TableNotAllowedException: tabla fuera de la allowlist (403)
            ConfigurationException: faltan credenciales (500)
            UpstreamException: Airtable respondio con error (500)
            UnhandledException: cualquier otro error (500)
        """
        payload: Any = body
        try:
            payload = _parse_body(body)
            return await self._upsert(payload)
        except AppException:
            raise
        except Exception as e:
            await self._report_unhandled(e, payload, "Unexpected Airtable worker error")
            raise UnhandledException(str(e)) from e

    async def lookup(
        self,
        table: Optional[str],
        match_field: Optional[str],
        match_value: Optional[str],
    ) -> LookupResponseDTO:
        """
        Lectura directa por campo/valor exacto, sin mutar nada.

        Aplica la misma validacion, allowlist y clasificacion de errores que el upsert.
        """
        payload = {"table": table, "matchField": match_field, "matchValue": match_value}
        try:
            return await self._lookup(payload)
        except AppException:
            raise
        except Exception as e:
            await self._report_unhandled(e, payload, "Unexpected Airtable lookup error")
            raise UnhandledException(str(e)) from e

    # ------------------------------------------------------------------
    # Upsert
    # ------------------------------------------------------------------

    async def _upsert(self, payload: Any) -> UpsertResponseDTO:
        request = await self._validate(payload, UpsertRequestDTO)
        credentials = await self._resolve_credentials(request.table, request.title)
        client = self.client_factory(credentials)

        key = resolve_key(request.title, request.match_field, request.match_value)
        sanitized = sanitize_fields(request.record_fields)
        dropped = sorted(set(request.record_fields) - set(sanitized))
        if dropped:
            logger.debug(f"Campos vacios omitidos en '{request.table}': {dropped}")

        try:
            async with self._key_lock(request, key):
                return await self._reconcile(client, request, key, sanitized)
        finally:
            client.close()

    async def _reconcile(
        self,
        client: AirtableClient,
        request: UpsertRequestDTO,
        key: ResolvedKey,
        sanitized: dict[str, Any],
    ) -> UpsertResponseDTO:
        matches = await self._find_existing(client, request.table, key, title=request.title)
        operation = decide_operation(matches)
        logger.info(
            f"Upsert '{request.table}' [{key.filter_field}={key.filter_value}]: "
            f"{len(matches)} coincidencia(s) -> {operation.value}"
        )

        if operation == Operation.CREATE:
            record = await self._create(client, request, sanitized)
        else:
            record = await self._update(client, request, matches[0].record_id, sanitized)

        await self._report(
            OutcomeLevel.INFO,
            f"Airtable {operation.value} successful",
            {
                "table": request.table,
                "title": request.title,
                "operation": operation.value,
                "recordId": record.record_id,
                "service": stage_service(request.table, operation.value),
            },
        )

        return UpsertResponseDTO(
            success=True,
            record_id=record.record_id,
            record_fields=record.fields,
            operation=operation,
        )

    async def _create(
        self,
        client: AirtableClient,
        request: UpsertRequestDTO,
        sanitized: dict[str, Any],
    ) -> AirtableRecord:
        fields = build_create_fields(request.title, sanitized)
        try:
            record = await asyncio.to_thread(
                client.create_record, table_name=request.table, fields=fields
            )
        except AirtableApiError as e:
            await self._report_upstream_failure("create", request.table, request.title, e)
            raise UpstreamException("create", e.detail, status=e.status_code, body=e.body) from e

        logger.info(f"Registro creado en '{request.table}': {record.record_id}")
        return record

    async def _update(
        self,
        client: AirtableClient,
        request: UpsertRequestDTO,
        record_id: str,
        sanitized: dict[str, Any],
    ) -> AirtableRecord:
        try:
            record = await asyncio.to_thread(
                client.update_record,
                table_name=request.table,
                record_id=record_id,
                fields=sanitized,
            )
        except AirtableApiError as e:
            await self._report_upstream_failure("update", request.table, request.title, e)
            raise UpstreamException("update", e.detail, status=e.status_code, body=e.body) from e

        logger.info(f"Registro actualizado en '{request.table}': {record.record_id}")
        return record

    @asynccontextmanager
    async def _key_lock(self, request: UpsertRequestDTO, key: ResolvedKey) -> AsyncIterator[None]:
        """Serializa upserts de la misma clave si el lock esta habilitado."""
        if not self.key_lock_enabled:
            yield
            return

        lock_key = key.lock_key(request.table)
        try:
            async with UpsertKeyLockManager.lock(lock_key, timeout=self.key_lock_timeout_s):
                yield
        except KeyLockTimeoutError as e:
            await self._report(
                OutcomeLevel.ERROR,
                "Airtable upsert lock timeout",
                {
                    "table": request.table,
                    "title": request.title,
                    "service": stage_service(request.table, "lock"),
                    "error": str(e),
                },
            )
            raise KeyLockTimeoutException(lock_key, e.timeout) from e

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def _lookup(self, payload: dict) -> LookupResponseDTO:
        request = await self._validate(payload, LookupRequestDTO)
        credentials = await self._resolve_credentials(request.table)
        client = self.client_factory(credentials)

        key = resolve_key(None, request.match_field, request.match_value)
        try:
            records = await self._find_existing(client, request.table, key, limit=None)
        finally:
            client.close()

        await self._report(
            OutcomeLevel.INFO,
            "Airtable lookup successful",
            {
                "table": request.table,
                "service": stage_service(request.table, "search"),
                "count": len(records),
            },
        )
        return LookupResponseDTO(
            success=True,
            records=[RecordDTO(id=r.record_id, record_fields=r.fields) for r in records],
        )

    # ------------------------------------------------------------------
    # Etapas compartidas
    # ------------------------------------------------------------------

    async def _validate(self, payload: Any, model: type[BaseModel]) -> Any:
        """
        Valida forma y luego allowlist, en ese orden.

        La forma se reporta como 400 y la tabla no permitida como 403.
        """
        raw = payload if isinstance(payload, dict) else {}
        table = raw.get("table")

        try:
            if not isinstance(payload, dict):
                raise PayloadValidationException(
                    errors=[{"loc": "body", "msg": "Payload must be a JSON object"}]
                )
            try:
                request = model.model_validate(payload)
            except ValidationError as e:
                raise PayloadValidationException(errors=_validation_errors(e)) from e
        except PayloadValidationException as e:
            logger.warning(f"Payload invalido: {e.details.get('errors')}")
            await self._report(
                OutcomeLevel.ERROR,
                e.message,
                {
                    "table": table,
                    "title": raw.get("title"),
                    "service": SERVICE_VALIDATION,
                    "error": e.details.get("errors"),
                },
            )
            raise

        if request.table not in ALLOWED_TABLES:
            logger.warning(f"Tabla no permitida: {request.table}")
            await self._report(
                OutcomeLevel.ERROR,
                "Invalid table",
                {
                    "table": request.table,
                    "title": raw.get("title"),
                    "service": SERVICE_VALIDATION,
                },
            )
            raise TableNotAllowedException(request.table, sorted(ALLOWED_TABLES))

        return request

    async def _resolve_credentials(self, table: str, title: Optional[str] = None) -> AirtableCredentials:
        credentials = self.credentials_provider()
        if credentials is not None:
            return credentials

        missing = ["AIRTABLE_TOKEN", "AIRTABLE_BASE_ID"]
        logger.error("Credenciales de Airtable no configuradas")
        await self._report(
            OutcomeLevel.ERROR,
            "Airtable credentials missing",
            {"table": table, "title": title, "service": SERVICE_CONFIG, "error": "missing credentials"},
        )
        raise ConfigurationException(missing)

    async def _find_existing(
        self,
        client: AirtableClient,
        table: str,
        key: ResolvedKey,
        *,
        title: Optional[str] = None,
        limit: Optional[int] = 1,
    ) -> list[AirtableRecord]:
        formula = build_match_formula(key.filter_field, key.filter_value)
        try:
            return await asyncio.to_thread(
                client.search_records,
                table_name=table,
                filter_formula=formula,
                max_records=limit,
            )
        except AirtableApiError as e:
            await self._report_upstream_failure("search", table, title, e)
            raise UpstreamException("search", e.detail, status=e.status_code, body=e.body) from e

    async def _report_upstream_failure(
        self, stage: str, table: str, title: Optional[str], error: AirtableApiError
    ) -> None:
        logger.error(f"Airtable {stage} fallo en '{table}' ({error.status_code}): {error.body}")
        await self._report(
            OutcomeLevel.ERROR,
            f"Airtable {stage} failed",
            {
                "table": table,
                "title": title,
                "service": stage_service(table, stage),
                "status": error.status_code,
                "body": error.body,
                "error": error.detail,
            },
        )

    async def _report_unhandled(self, error: Exception, payload: Any, message: str) -> None:
        logger.exception(f"{message}: {error}")
        raw = payload if isinstance(payload, dict) else {}
        await self._report(
            OutcomeLevel.ERROR,
            message,
            {
                "table": raw.get("table"),
                "title": raw.get("title"),
                "service": SERVICE_UNHANDLED,
                "error": str(error),
                "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
                "payload": _forensic_payload(payload),
            },
        )

    async def _report(self, level: OutcomeLevel, message: str, meta: dict) -> None:
        """Reporta un evento; un fallo del reporter nunca cambia la respuesta."""
        try:
            await self.reporter.log(level.value, message, meta)
        except Exception as e:
            logger.warning(f"No se pudo reportar el evento '{message}': {e}")
