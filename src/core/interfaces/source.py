"""Contrato del colaborador de extracción (base FerraWin).

Por qué Protocol:
- El Core no conoce SQL ni dialectos; solo pide filas sueltas por código.
- Permite sustituir la base real por fakes en tests sin herencia rígida.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from core.domain.models import FiltroCodigos

RawRow = Mapping[str, Any]
"""Una fila tal como se extrae: campos sin tipo, no se retiene tras el Builder."""


@runtime_checkable
class PlanillaSource(Protocol):
    """Fuente de planillas.

    Reglas de diseño:
    - Los métodos son síncronos: la extracción es secuencial, una planilla a la vez.
    - `entidades_planilla` / `ensamblajes_planilla` devuelven pares
      (fila de cabecera del grupo, filas de sus elementos).
    """

    def listar_codigos(self, filtro: FiltroCodigos) -> list[str]:
        """Códigos en orden descendente según el filtro (sin aplicar `limite`)."""

        ...

    def filas_planilla(self, codigo: str) -> list[RawRow]:
        ...

    def cabecera_planilla(self, codigo: str) -> RawRow | None:
        ...

    def entidades_planilla(self, codigo: str) -> list[tuple[RawRow, list[RawRow]]]:
        ...

    def ensamblajes_planilla(self, codigo: str) -> list[tuple[RawRow, list[RawRow]]]:
        ...

    def elementos_frescos(self, codigo: str) -> list[RawRow]:
        """Elementos re-consultados para el matcher, independientes de lo almacenado."""

        ...

    def descripciones_fila(self, codigo: str) -> list[RawRow]:
        """Pares (`fila`, `descripcion_fila`) por elemento, para el backfill de descripciones."""

        ...

    def estadisticas(self) -> dict[str, Any]:
        ...

    def test_connection(self) -> bool:
        ...
