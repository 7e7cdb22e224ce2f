"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends

from airtable_bridge.application.interfaces.outcome_reporter import OutcomeReporter
from airtable_bridge.application.use_cases.record_use_cases import RecordUseCases
from airtable_bridge.infrastructure.external.telemetry.telemetry_client import TelemetryClient


def get_outcome_reporter() -> OutcomeReporter:
    """
    Dependencia para obtener el reporter de eventos de resultado.

    Returns:
        OutcomeReporter: Cliente del sink de telemetria
    """
    return TelemetryClient()


def get_record_use_cases(
    reporter: OutcomeReporter = Depends(get_outcome_reporter)
) -> RecordUseCases:
    """
    Dependencia para obtener los casos de uso de registros Airtable.

    Args:
        reporter: Reporter de eventos de resultado

    Returns:
        RecordUseCases: Instancia de casos de uso de registros
    """
    return RecordUseCases(reporter)
