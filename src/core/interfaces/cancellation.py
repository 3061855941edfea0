"""Contrato de la señal de pausa.

Un actor externo (listener, operador) la activa o limpia; el Core solo la lee,
y la relee en cada iteración porque su estado es eventualmente consistente.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PauseSignal(Protocol):
    def is_set(self) -> bool:
        """True si se solicitó pausar."""

        ...


class NeverPause:
    """Señal nula para ejecuciones sin canal de control."""

    def is_set(self) -> bool:
        return False
