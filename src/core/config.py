"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (SQL/HTTP) y servicios lean config de forma consistente.
- Conserva los nombres de variables del `.env` del túnel de sincronización
  (`FERRAWIN_HOST`, `LOCAL_URL`, `PRODUCTION_TOKEN`, ...).
"""

from __future__ import annotations

import os
import sys
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "ferrawin-sync"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "ferrawin-sync"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "ferrawin-sync"
    return Path.home() / ".config" / "ferrawin-sync"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class Target(str, Enum):
    """Servidor destino de la sincronización."""

    LOCAL = "local"
    PRODUCTION = "production"


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    # Origen: SQL Server de FerraWin
    ferrawin_host: str = Field(default="192.168.0.7", min_length=1)
    ferrawin_port: int = Field(default=1433, ge=1, le=65535)
    ferrawin_database: str = Field(default="FERRAWIN", min_length=1)
    ferrawin_username: str = Field(default="sa")
    ferrawin_password: str = Field(default="")
    ferrawin_odbc_driver: str = Field(
        default="ODBC Driver 17 for SQL Server",
        description="Nombre del driver ODBC tal como lo lista pyodbc.drivers().",
    )
    ferrawin_database_url: str | None = Field(
        default=None,
        description="URL SQLAlchemy completa; si se define, ignora host/port/credenciales.",
    )

    # Destinos: manager local y de producción
    local_url: str = Field(default="http://127.0.0.1/manager/public/")
    local_token: str | None = Field(default=None)
    production_url: str = Field(default="")
    production_token: str | None = Field(default=None)
    api_token: str | None = Field(
        default=None,
        description="Token compartido si no se define uno específico por destino.",
    )

    http_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Timeout por request (segundos).",
    )

    # Sincronización
    sync_compress: bool = Field(default=True, description="Enviar lotes comprimidos con gzip.")
    sync_dias_atras: int = Field(
        default=730,
        ge=1,
        description="Ventana por defecto (días) cuando no se indica año ni rango.",
    )
    sync_max_planillas_por_lote: int = Field(default=5, ge=1)
    sync_max_elementos_por_lote: int = Field(default=1000, ge=1)
    sync_max_reintentos: int = Field(default=3, ge=1, le=20)
    sync_delay_base_seconds: float = Field(default=5.0, ge=0)
    sync_espera_recuperacion_seconds: float = Field(default=30.0, ge=0)
    sync_reintentos_extra_recuperacion: int = Field(default=2, ge=0)
    sync_factor_delay_recuperacion: float = Field(default=2.0, ge=1)

    # Logging y control
    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))
    log_retention_days: int = Field(default=30, ge=1)
    pause_file: Path = Field(default=Path("sync.pause"))
    pid_file: Path = Field(default=Path("sync.pid"))

    def target_url(self, target: Target) -> str:
        """URL base del destino, siempre con `/` final."""

        url = self.local_url if target is Target.LOCAL else self.production_url
        return url.rstrip("/") + "/"

    def target_token(self, target: Target) -> str:
        token = self.local_token if target is Target.LOCAL else self.production_token
        return token or self.api_token or ""
