"""Configuración de logging (loguru).

Dos sinks: consola (stdout) y archivo diario rotado en `log_dir`, con la
retención configurada. Los módulos solo hacen `from loguru import logger`.
"""

from __future__ import annotations

import sys

from loguru import logger

from core.config import AppSettings

LOG_FORMAT = "[{time:YYYY-MM-DD HH:mm:ss}] {level}: {message} {extra}"
CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"


def configure_logging(settings: AppSettings, *, verbose: bool = False, console: bool = True) -> None:
    level = "DEBUG" if verbose else settings.log_level.upper()

    logger.remove()
    if console:
        logger.add(sys.stdout, level=level, format=CONSOLE_FORMAT)

    settings.log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        settings.log_dir / "sync_{time:YYYY-MM-DD}.log",
        rotation="00:00",
        retention=f"{settings.log_retention_days} days",
        level=level,
        format=LOG_FORMAT,
        encoding="utf-8",
    )
