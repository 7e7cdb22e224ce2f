"""
Endpoints de registros Airtable.
Upsert por titulo o por campo/valor, y lookup de solo lectura.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from airtable_bridge.application.dto.record_dto import LookupResponseDTO, UpsertResponseDTO
from airtable_bridge.application.use_cases.record_use_cases import RecordUseCases
from airtable_bridge.api.v1.dependencies.use_case_deps import get_record_use_cases


router = APIRouter(prefix="/airtable", tags=["Airtable"])


@router.post(
    "/update",
    response_model=UpsertResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Crear o actualizar un registro de Airtable"
)
async def upsert_record(
    request: Request,
    use_cases: RecordUseCases = Depends(get_record_use_cases)
) -> UpsertResponseDTO:
    """
    Crea o actualiza un registro.

    Body: {table, title | matchField+matchValue, fields}

    El body se pasa crudo al caso de uso: la validacion y el reporte de
    errores (incluido un JSON invalido) ocurren alli.
    """
    body = await request.body()
    return await use_cases.upsert(body)


@router.get(
    "/lookup",
    response_model=LookupResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Buscar registros por campo/valor exacto"
)
async def lookup_records(
    table: Optional[str] = Query(None, description="Tabla de Airtable"),
    match_field: Optional[str] = Query(None, alias="matchField"),
    match_value: Optional[str] = Query(None, alias="matchValue"),
    use_cases: RecordUseCases = Depends(get_record_use_cases)
) -> LookupResponseDTO:
    """
    Retorna los registros cuyo `matchField` es exactamente `matchValue`.
    """
    return await use_cases.lookup(table, match_field, match_value)
