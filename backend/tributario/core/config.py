"""
Configuración central del simulador de régimen tributario.
Los valores se cargan desde variables de entorno o desde el archivo .env.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings


# Colombia no tiene horario de verano: UTC-5 todo el año
COLOMBIA_TZ = timezone(timedelta(hours=-5))


class Settings(BaseSettings):
    """
    Configuración de la aplicación.
    Los parámetros de negocio del comparador también son configurables.
    """
    # Application
    APP_NAME: str = "Simulador de Régimen Tributario"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Parámetros fiscales
    DEFAULT_FISCAL_YEAR: int = 2025
    # Archivo JSON con tablas por año; si no se define se usan las incluidas
    FISCAL_TABLES_PATH: Optional[str] = None

    # Comparador de regímenes
    NEGLIGIBLE_DIFFERENCE: int = 100000
    DEFAULT_GROWTH_RATE: Decimal = Decimal("0.05")
    PROJECTION_YEARS: int = 3
    MIN_OPPORTUNITY_SAVING: int = 0

    # CORS
    CORS_ORIGINS: str = "*"

    # Rate limiting
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_PERIOD: int = 60

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()


def get_colombia_time() -> datetime:
    """Fecha y hora actual en la zona horaria de Colombia."""
    return datetime.now(COLOMBIA_TZ)
