"""
DTOs del upsert y del lookup de registros Airtable.
Definen la estructura del payload entrante y de las respuestas.
"""
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, StrictStr, model_validator

from airtable_bridge.shared.constants.airtable_constants import Operation


class UpsertRequestDTO(BaseModel):
    """
    Payload del upsert.

    Identificacion: `title`, o bien `matchField` + `matchValue`.
    `fields` debe ser un objeto JSON; los tipos de sus valores no se validan.
    Solo se aceptan las claves JSON (`matchField`, `fields`), nunca los
    nombres de atributo Python.
    """

    table: StrictStr = Field(..., min_length=1, description="Tabla de Airtable")
    title: Optional[StrictStr] = Field(None, description="Titulo del registro (clave legacy)")
    match_field: Optional[StrictStr] = Field(
        None, alias="matchField", description="Campo de busqueda explicito"
    )
    match_value: Optional[StrictStr] = Field(
        None, alias="matchValue", description="Valor exacto a buscar en matchField"
    )
    record_fields: Dict[str, Any] = Field(
        ..., alias="fields", description="Campos a escribir en el registro"
    )

    @model_validator(mode="after")
    def check_identification(self) -> "UpsertRequestDTO":
        """Exige al menos una estrategia de identificacion."""
        if not self.title and not (self.match_field and self.match_value):
            raise ValueError("Either 'title' or both 'matchField' and 'matchValue' are required")
        return self


class LookupRequestDTO(BaseModel):
    """Parametros del lookup de solo lectura."""

    table: StrictStr = Field(..., min_length=1)
    match_field: StrictStr = Field(..., min_length=1, alias="matchField")
    match_value: StrictStr = Field(..., min_length=1, alias="matchValue")


class UpsertResponseDTO(BaseModel):
    """Resultado de un upsert exitoso."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    record_id: str = Field(..., alias="recordId")
    record_fields: Dict[str, Any] = Field(
        default_factory=dict, alias="fields", description="Campos que Airtable devolvio"
    )
    operation: Operation


class RecordDTO(BaseModel):
    """Registro crudo de Airtable."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    record_fields: Dict[str, Any] = Field(default_factory=dict, alias="fields")


class LookupResponseDTO(BaseModel):
    """Resultado de un lookup."""

    success: bool = True
    records: List[RecordDTO] = Field(default_factory=list)
