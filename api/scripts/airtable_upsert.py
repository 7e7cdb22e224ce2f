"""
CLI: ejecutar un upsert contra Airtable fuera del API.

Uso recomendado:
  - Reproducir un payload reportado en un evento `unhandled` (campo meta.payload).
  - Probar credenciales/tablas sin levantar el servidor.

Variables de entorno requeridas:
  - AIRTABLE_TOKEN
  - AIRTABLE_BASE_ID

Ejecución:
  python scripts/airtable_upsert.py --payload '{"table": "Video posts", "title": "Ep12", "fields": {}}'
  python scripts/airtable_upsert.py --file payload.json
  python scripts/airtable_upsert.py --file payload.json --no-telemetry
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `airtable_bridge/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env si existe (api/.env o raiz del repo).
_REPO_ROOT = _API_ROOT.parent
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_REPO_ROOT / ".env", override=False)

from airtable_bridge.application.use_cases.record_use_cases import RecordUseCases
from airtable_bridge.infrastructure.external.telemetry.telemetry_client import TelemetryClient
from airtable_bridge.shared.exceptions.base import AppException


def _read_payload(args: argparse.Namespace) -> str:
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    return args.payload


async def _run(raw_payload: str, telemetry: bool) -> int:
    use_cases = RecordUseCases(TelemetryClient(enabled=telemetry))
    try:
        result = await use_cases.upsert(raw_payload)
    except AppException as e:
        logger.error(f"Upsert falló ({e.status_code} {e.error_code}): {e.message}")
        return 1

    print(json.dumps(result.model_dump(by_alias=True, mode="json"), indent=2, ensure_ascii=False))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Upsert de un registro en Airtable")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--payload", help="Payload JSON inline")
    source.add_argument("--file", help="Ruta a un archivo con el payload JSON")
    parser.add_argument(
        "--no-telemetry",
        action="store_true",
        help="No enviar eventos de resultado al sink (solo log local)",
    )
    args = parser.parse_args()

    return asyncio.run(_run(_read_payload(args), telemetry=not args.no_telemetry))


if __name__ == "__main__":
    raise SystemExit(main())
