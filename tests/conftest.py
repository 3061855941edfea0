"""Fixtures compartidas: fakes de los colaboradores externos."""

from __future__ import annotations

from typing import Any, Callable, Sequence

import pytest

from core.domain.errors import TransferError
from core.domain.models import ActualizacionId, DescripcionFila, Element, FiltroCodigos, Planilla, SyncAck


def make_planilla(codigo: str, elementos: int = 1) -> Planilla:
    return Planilla(
        codigo=codigo,
        elementos=[Element(fila="1", zelemento=str(i + 1)) for i in range(elementos)],
    )


def make_row(**overrides: Any) -> dict[str, Any]:
    """Fila de ORD_BAR tal como la devuelve el adaptador SQL."""

    row: dict[str, Any] = {
        "codigo_cliente": "C01",
        "nombre_cliente": "Construcciones Norte",
        "codigo_obra": "OB7",
        "nombre_obra": "Edificio Sol",
        "ensamblado": "Pilares",
        "seccion": "P1",
        "fecha": "2025-03-14 08:30:00",
        "descripcion_planilla": "Planta baja",
        "fila": "1",
        "zelemento": "1",
        "descripcion_fila": "Pilar P1",
        "marca": "M1",
        "diametro": 12,
        "figura": "F00",
        "longitud": 300.0,
        "dobles_barra": 0,
        "barras": 4,
        "peso": 10.65,
        "zfigura": "",
        "etiqueta": "",
    }
    row.update(overrides)
    return row


class FakeSender:
    """Remoto en memoria; `falla(codigos, intento)` decide si un envío falla."""

    def __init__(self, falla: Callable[[list[str], int], bool] | None = None) -> None:
        self.falla = falla or (lambda codigos, intento: False)
        self.envios: list[list[str]] = []
        self.metadatas: list[dict[str, Any]] = []
        self.aceptados: list[list[str]] = []
        self.existentes: list[str] = []
        self.almacenados: dict[str, list[Element] | None] = {}
        self.actualizaciones: list[ActualizacionId] = []
        self.descripciones: list[tuple[str, list[DescripcionFila]]] = []

    async def enviar_planillas(
        self,
        planillas: Sequence[Planilla],
        metadata: dict[str, Any] | None = None,
    ) -> SyncAck:
        codigos = [p.codigo for p in planillas]
        self.envios.append(codigos)
        self.metadatas.append(metadata or {})
        if self.falla(codigos, len(self.envios)):
            raise TransferError("HTTP 503", status_code=503)
        self.aceptados.append(codigos)
        return SyncAck(planillas_creadas=len(codigos))

    async def actualizar_ferrawin_ids(self, actualizaciones: Sequence[ActualizacionId]) -> int:
        self.actualizaciones.extend(actualizaciones)
        return len(actualizaciones)

    async def backfill_descripcion_fila(self, codigo: str, elementos: Sequence[DescripcionFila]) -> int:
        if codigo == "roto":
            raise TransferError("HTTP 500", status_code=500)
        self.descripciones.append((codigo, list(elementos)))
        return len(elementos)

    async def codigos_existentes(self) -> list[str]:
        return list(self.existentes)

    async def elementos_para_matching(self, codigo: str) -> list[Element] | None:
        return self.almacenados.get(codigo)

    async def test_connection(self) -> bool:
        return True


class FakeSource:
    """Origen en memoria indexado por código."""

    def __init__(
        self,
        *,
        codigos: Sequence[str] = (),
        filas: dict[str, list[dict[str, Any]]] | None = None,
        cabeceras: dict[str, dict[str, Any]] | None = None,
        frescos: dict[str, list[dict[str, Any]]] | None = None,
        descripciones: dict[str, list[dict[str, Any]]] | None = None,
    ) -> None:
        self.codigos = list(codigos)
        self.filas = filas or {}
        self.cabeceras = cabeceras or {}
        self.frescos = frescos or {}
        self.descripciones = descripciones or {}
        self.filtros: list[FiltroCodigos] = []

    def listar_codigos(self, filtro: FiltroCodigos) -> list[str]:
        self.filtros.append(filtro)
        return list(self.codigos)

    def filas_planilla(self, codigo: str) -> list[dict[str, Any]]:
        return self.filas.get(codigo, [])

    def cabecera_planilla(self, codigo: str) -> dict[str, Any] | None:
        return self.cabeceras.get(codigo)

    def entidades_planilla(self, codigo: str) -> list:
        return []

    def ensamblajes_planilla(self, codigo: str) -> list:
        return []

    def elementos_frescos(self, codigo: str) -> list[dict[str, Any]]:
        return self.frescos.get(codigo, [])

    def descripciones_fila(self, codigo: str) -> list[dict[str, Any]]:
        return self.descripciones.get(codigo, [])

    def estadisticas(self) -> dict[str, Any]:
        return {"total_planillas": len(self.codigos)}

    def test_connection(self) -> bool:
        return True


class CountingPause:
    """Se activa después de `tras` lecturas."""

    def __init__(self, tras: int | None = None) -> None:
        self.tras = tras
        self.lecturas = 0

    def is_set(self) -> bool:
        self.lecturas += 1
        return self.tras is not None and self.lecturas > self.tras


class RecordedSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def recorded_sleep() -> RecordedSleep:
    return RecordedSleep()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()
