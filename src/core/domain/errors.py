"""Taxonomía de errores de la sincronización.

Política de propagación:
- Los errores por unidad (una planilla, un lote) se capturan en el borde de
  la unidad y se registran; nunca salen del bucle principal.
- Solo `ConnectivityError` al arrancar termina el proceso con estado != 0.
"""

from __future__ import annotations

from collections.abc import Sequence


class SyncError(Exception):
    """Base de todos los errores del túnel de sincronización."""


class ConnectivityError(SyncError):
    """No se alcanza la base FerraWin o el manager al arrancar (fatal)."""


class MalformedCodeError(SyncError):
    """El código no se descompone en `{zconta}-{zcodigo}`; se salta la unidad."""

    def __init__(self, codigo: str) -> None:
        super().__init__(f"Código de planilla inválido: {codigo!r}")
        self.codigo = codigo


class EmptySourceError(SyncError):
    """Sin filas ni cabecera para el código: cuenta como vacía, no como error."""

    def __init__(self, codigo: str) -> None:
        super().__init__(f"Sin datos para formatear: {codigo}")
        self.codigo = codigo


class TransferError(SyncError):
    """Falló un intento de envío (transporte, HTTP != 2xx o `success: false`)."""

    def __init__(self, mensaje: str, *, status_code: int | None = None) -> None:
        super().__init__(mensaje)
        self.status_code = status_code


class RetryExhaustedError(SyncError):
    """Un lote agotó los reintentos de la pasada principal; se encola."""

    def __init__(self, codigos: Sequence[str], intentos: int, ultimo_error: Exception) -> None:
        super().__init__(f"Lote fallido tras {intentos} intentos: {ultimo_error}")
        self.codigos = list(codigos)
        self.intentos = intentos
        self.ultimo_error = ultimo_error


class TerminalBatchError(SyncError):
    """Un lote siguió fallando tras la pasada de recuperación."""

    def __init__(self, codigos: Sequence[str], error: str) -> None:
        super().__init__(f"Lote fallido definitivamente ({', '.join(codigos)}): {error}")
        self.codigos = list(codigos)
        self.error = error


class UnmatchedElementError(SyncError):
    """Elemento almacenado sin correspondencia en FerraWin.

    No se lanza: el matcher acumula instancias en `MatchResult.sin_match`.
    """

    def __init__(self, elemento_id: int | None, fila: str, motivo: str) -> None:
        super().__init__(f"Sin match para elemento #{elemento_id} fila={fila!r}: {motivo}")
        self.elemento_id = elemento_id
        self.fila = fila
        self.motivo = motivo
