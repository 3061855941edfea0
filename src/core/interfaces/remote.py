"""Contrato del colaborador remoto (manager de producción/local).

Todas las operaciones son asíncronas porque hacen I/O HTTP. Cualquier fallo
(transporte, HTTP != 2xx, `success: false`) se traduce a `TransferError`.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from core.domain.models import ActualizacionId, DescripcionFila, Element, Planilla, SyncAck


@runtime_checkable
class PlanillaSender(Protocol):
    """Lo mínimo que necesita el dispatcher: enviar un lote."""

    async def enviar_planillas(
        self,
        planillas: Sequence[Planilla],
        metadata: dict[str, Any] | None = None,
    ) -> SyncAck:
        ...


@runtime_checkable
class RemoteSync(PlanillaSender, Protocol):
    """Superficie completa del manager usada por sync y backfill."""

    async def actualizar_ferrawin_ids(self, actualizaciones: Sequence[ActualizacionId]) -> int:
        """Devuelve el número de elementos actualizados."""

        ...

    async def codigos_existentes(self) -> list[str]:
        ...

    async def elementos_para_matching(self, codigo: str) -> list[Element] | None:
        """Elementos almacenados de la planilla; `None` si el manager no la conoce."""

        ...

    async def backfill_descripcion_fila(self, codigo: str, elementos: Sequence[DescripcionFila]) -> int:
        """Devuelve el número de elementos actualizados."""

        ...

    async def test_connection(self) -> bool:
        ...
