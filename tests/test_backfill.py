import pytest

from conftest import FakeSender, FakeSource
from core.domain.models import Element
from core.services.backfill import ejecutar_backfill


def _fresco(fila: str, zelemento: str, **kw) -> dict:
    row = {"fila": fila, "zelemento": zelemento, "diametro": 12, "longitud": 300.0, "barras": 4,
           "dobles_barra": 0, "peso": 10.65, "marca": "M1", "figura": "F00"}
    row.update(kw)
    return row


def _almacenado(id: int, fila: str, **kw) -> Element:
    datos = {"diametro": 12, "longitud": 300.0, "barras": 4, "peso": 10.65}
    datos.update(kw)
    return Element(id=id, fila=fila, **datos)


@pytest.mark.asyncio
async def test_backfill_envia_actualizaciones() -> None:
    remote = FakeSender()
    remote.existentes = ["2025-000001", "2025-000002"]
    remote.almacenados = {
        "2025-000001": [_almacenado(1, "01"), _almacenado(2, "2", diametro=16)],
        "2025-000002": None,
    }
    source = FakeSource(frescos={"2025-000001": [_fresco("1", "1"), _fresco("2", "1", diametro=16)]})

    resumen = await ejecutar_backfill(remote=remote, source=source)

    assert resumen.planillas == 2
    assert resumen.actualizados == 2
    assert resumen.omitidas == 1
    assert resumen.errores == 0
    assert [(a.elemento_id, a.ferrawin_id) for a in remote.actualizaciones] == [(1, "1-1"), (2, "2-1")]


@pytest.mark.asyncio
async def test_backfill_dry_run_no_actualiza() -> None:
    remote = FakeSender()
    remote.almacenados = {"2025-000001": [_almacenado(1, "1")]}
    source = FakeSource(frescos={"2025-000001": [_fresco("1", "1")]})

    resumen = await ejecutar_backfill(remote=remote, source=source, codigos=["2025-000001"], dry_run=True)

    assert resumen.actualizados == 1
    assert resumen.dry_run is True
    assert remote.actualizaciones == []


@pytest.mark.asyncio
async def test_backfill_aisla_errores_por_planilla() -> None:
    remote = FakeSender()
    remote.almacenados = {"roto": [_almacenado(1, "1")], "2025-000001": [_almacenado(2, "1")]}
    source = FakeSource(frescos={"2025-000001": [_fresco("1", "1")]})

    resumen = await ejecutar_backfill(remote=remote, source=source, codigos=["roto", "2025-000001"])

    assert resumen.errores == 1
    assert resumen.planillas_con_errores == ["roto"]
    assert resumen.actualizados == 1


@pytest.mark.asyncio
async def test_backfill_planilla_ausente_en_ferrawin() -> None:
    remote = FakeSender()
    remote.almacenados = {"2025-000001": [_almacenado(1, "1")]}

    resumen = await ejecutar_backfill(remote=remote, source=FakeSource(), codigos=["2025-000001"])

    assert resumen.omitidas == 1
    assert remote.actualizaciones == []
