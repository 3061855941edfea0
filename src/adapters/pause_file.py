"""Canal de control basado en archivos (`sync.pause` / `sync.pid`).

La existencia del archivo de pausa es la señal; quien quiera pausar una
corrida (operador, listener remoto) solo tiene que crearlo. El proceso de
sync registra su PID mientras corre y limpia ambos archivos al salir.
"""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger


class FilePauseSignal:
    """`PauseSignal` que consulta el sistema de archivos en cada lectura."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def is_set(self) -> bool:
        return self.path.exists()

    def request_pause(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("pause\n", encoding="utf-8")
        logger.info("Pausa solicitada ({})", self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def read_pid(path: Path) -> int | None:
    try:
        return int(Path(path).read_text(encoding="utf-8").strip())
    except (FileNotFoundError, ValueError):
        return None


class ProcessLock:
    """Context manager: escribe el PID al entrar; borra PID y pausa al salir."""

    def __init__(self, pid_file: Path, pause_file: Path) -> None:
        self.pid_file = Path(pid_file)
        self.pause_file = Path(pause_file)

    def __enter__(self) -> "ProcessLock":
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(str(os.getpid()), encoding="utf-8")
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.pid_file.unlink(missing_ok=True)
        self.pause_file.unlink(missing_ok=True)
