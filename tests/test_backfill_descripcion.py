import pytest

from conftest import FakeSender, FakeSource
from core.services.backfill_descripcion import ejecutar_backfill_descripcion


def _filas(*pares: tuple[str, str | None]) -> list[dict]:
    return [{"fila": fila, "descripcion_fila": descripcion} for fila, descripcion in pares]


@pytest.mark.asyncio
async def test_envia_descripciones_por_planilla() -> None:
    remote = FakeSender()
    source = FakeSource(
        codigos=["2025-000002", "2025-000001"],
        descripciones={
            "2025-000002": _filas((" 1 ", " Pilar P1 "), ("2", None)),
            "2025-000001": _filas(("1", "Zapata Z3")),
        },
    )

    resumen = await ejecutar_backfill_descripcion(remote=remote, source=source)

    assert resumen.planillas == 2
    assert resumen.elementos == 3
    assert resumen.actualizados == 3
    codigo, elementos = remote.descripciones[0]
    assert codigo == "2025-000002"
    assert [(e.fila, e.descripcion_fila) for e in elementos] == [("1", "Pilar P1"), ("2", "")]
    assert source.filtros[0].todos is True


@pytest.mark.asyncio
async def test_limite_y_planillas_sin_elementos() -> None:
    remote = FakeSender()
    source = FakeSource(
        codigos=["2025-000003", "2025-000002", "2025-000001"],
        descripciones={"2025-000003": _filas(("1", "Muro"))},
    )

    resumen = await ejecutar_backfill_descripcion(remote=remote, source=source, limite=2)

    assert resumen.planillas == 2
    assert resumen.omitidas == 1
    assert [codigo for codigo, _ in remote.descripciones] == ["2025-000003"]


@pytest.mark.asyncio
async def test_dry_run_no_envia() -> None:
    remote = FakeSender()
    source = FakeSource(descripciones={"2025-000001": _filas(("1", "Viga"), ("2", "Viga"))})

    resumen = await ejecutar_backfill_descripcion(
        remote=remote,
        source=source,
        codigos=["2025-000001"],
        dry_run=True,
    )

    assert resumen.elementos == 2
    assert resumen.actualizados == 0
    assert resumen.dry_run is True
    assert remote.descripciones == []


@pytest.mark.asyncio
async def test_errores_por_planilla_no_detienen_la_corrida() -> None:
    remote = FakeSender()
    source = FakeSource(descripciones={"roto": _filas(("1", "X")), "2025-000001": _filas(("1", "Losa"))})

    resumen = await ejecutar_backfill_descripcion(remote=remote, source=source, codigos=["roto", "2025-000001"])

    assert resumen.errores == 1
    assert resumen.planillas_con_errores == ["roto"]
    assert resumen.actualizados == 1
