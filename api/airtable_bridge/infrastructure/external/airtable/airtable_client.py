"""
Cliente mínimo de Airtable REST API (sin SDKs externos).

Operaciones cubiertas:
- búsqueda por fórmula exacta sobre un campo (con paginación por offset)
- create de un registro
- patch parcial de un registro por id

Sin reintentos: un status no exitoso se levanta inmediatamente como
AirtableApiError con el status y el body para reportarlos.
"""

from __future__ import annotations

import json
from typing import Any, Optional
from urllib.parse import quote

import requests
from loguru import logger

from .types import AirtableCredentials, AirtableRecord


class AirtableApiError(RuntimeError):
    """Airtable respondió con un status no exitoso."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Airtable request falló {status_code}: {body}")

    @property
    def detail(self) -> str:
        """
        Mensaje legible del error de Airtable.

        Airtable responde {"error": {"type": ..., "message": ...}} o
        {"error": "NOT_FOUND"}; si el body no es JSON se usa el texto crudo.
        """
        try:
            payload = json.loads(self.body)
        except ValueError:
            return self.body
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            return error.get("message") or error.get("type") or self.body
        if isinstance(error, str):
            return error
        return self.body


def escape_formula_string(value: str) -> str:
    """Escapa un literal de string para fórmulas Airtable (backslash y comillas dobles)."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_match_formula(field_name: str, value: str) -> str:
    """
    Fórmula de igualdad exacta: {Campo} = "valor".

    La comparación de Airtable es case-sensitive; no se normaliza nada.
    """
    field_ref = "{" + field_name + "}"
    return f'{field_ref} = "{escape_formula_string(value)}"'


class AirtableClient:
    """
    Cliente HTTP de Airtable para una base.

    Importante:
    - No hace cast de tipos de campos: Airtable decide.
    - Es síncrono (requests); los casos de uso lo ejecutan con asyncio.to_thread.
    """

    def __init__(
        self,
        credentials: AirtableCredentials,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.airtable.com/v0",
        timeout_s: float = 30,
    ) -> None:
        self._creds = credentials
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._owns_session = session is None
        self._session = session or requests.Session()

    def close(self) -> None:
        """Cierra la sesion HTTP si la creo el cliente; una sesion inyectada queda abierta."""
        if self._owns_session:
            self._session.close()

    def table_url(self, table_name: str) -> str:
        # Los nombres de tabla pueden tener espacios ("Video posts")
        return f"{self._base_url}/{self._creds.base_id}/{quote(table_name, safe='')}"

    def search_records(
        self,
        *,
        table_name: str,
        filter_formula: str,
        max_records: Optional[int] = None,
        page_size: int = 100,
    ) -> list[AirtableRecord]:
        """
        Lista registros que cumplen la fórmula, en el orden que devuelve Airtable.

        - Maneja paginación por 'offset'
        - max_records corta la búsqueda (el upsert solo necesita el primero)
        """
        url = self.table_url(table_name)
        offset: Optional[str] = None
        results: list[AirtableRecord] = []

        while True:
            query: list[tuple[str, Any]] = [
                ("filterByFormula", filter_formula),
                ("pageSize", page_size),
            ]
            if max_records:
                query.append(("maxRecords", max_records))
            if offset:
                query.append(("offset", offset))

            payload = self._request_json("GET", url, query=query)
            for rec in payload.get("records") or []:
                results.append(AirtableRecord.from_api(rec))

            offset = payload.get("offset")
            if not offset or (max_records and len(results) >= max_records):
                break

        logger.debug(f"Airtable search '{table_name}' [{filter_formula}] -> {len(results)} registro(s)")
        return results

    def create_record(self, *, table_name: str, fields: dict[str, Any]) -> AirtableRecord:
        """Crea exactamente un registro y retorna el id asignado y los campos que Airtable devuelve."""
        payload = self._request_json(
            "POST",
            self.table_url(table_name),
            body={"records": [{"fields": fields}]},
        )
        records = payload.get("records") or []
        if not records:
            raise AirtableApiError(200, "Airtable create no devolvió registros")
        return AirtableRecord.from_api(records[0])

    def update_record(
        self, *, table_name: str, record_id: str, fields: dict[str, Any]
    ) -> AirtableRecord:
        """
        PATCH parcial: solo cambian los campos enviados.

        Retorna lo que Airtable devuelve, que puede no ser el registro completo.
        """
        payload = self._request_json(
            "PATCH",
            f"{self.table_url(table_name)}/{record_id}",
            body={"fields": fields},
        )
        return AirtableRecord(
            record_id=payload.get("id") or record_id,
            fields=payload.get("fields") or {},
        )

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        query: Optional[list[tuple[str, Any]]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Request HTTP contra Airtable.

        - 2xx: retorna el JSON.
        - Cualquier otro status: AirtableApiError con status y texto crudo.
        - Errores de red (requests.RequestException) se propagan tal cual.
        """
        headers = {
            "Authorization": f"Bearer {self._creds.token}",
            "Content-Type": "application/json",
        }

        resp = self._session.request(
            method=method,
            url=url,
            params=query,
            json=body,
            headers=headers,
            timeout=self._timeout_s,
        )

        if 200 <= resp.status_code < 300:
            return resp.json()

        raise AirtableApiError(resp.status_code, resp.text)
