"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.

Las credenciales de Airtable se leen de aqui pero nunca se validan al
importar: su ausencia se reporta por request como error de configuracion.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Grupos:
    - Aplicacion/servidor: APP_NAME, HOST, PORT, ...
    - Airtable: token, base y URL de la API REST
    - Telemetria: endpoint de eventos estructurados (Grafana)
    - Lock por clave: serializacion opcional de upserts en el proceso
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="gr8r Airtable Bridge")
    APP_VERSION: str = Field(default="1.0.3")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Airtable
    AIRTABLE_TOKEN: str = Field(default="")
    AIRTABLE_BASE_ID: str = Field(default="")
    AIRTABLE_API_URL: str = Field(default="https://api.airtable.com/v0")
    AIRTABLE_TIMEOUT_S: float = Field(default=30.0)

    # Telemetria (sink de logs estructurados)
    TELEMETRY_URL: str = Field(default="https://api.gr8r.com/api/grafana")
    TELEMETRY_SOURCE: str = Field(default="gr8r-airtable-worker")
    TELEMETRY_TIMEOUT_S: float = Field(default=10.0)
    TELEMETRY_ENABLED: bool = Field(default=True)

    # Serializacion opcional de upserts por (tabla, clave)
    UPSERT_KEY_LOCK_ENABLED: bool = Field(default=False)
    UPSERT_KEY_LOCK_TIMEOUT_S: float = Field(default=30.0)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",  # Ignorar campos extra del .env
    )


# Instancia global de configuracion
settings = Settings()
