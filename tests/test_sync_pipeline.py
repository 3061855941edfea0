import pytest

from conftest import FakeSender, FakeSource, make_row
from core.config import AppSettings
from core.domain.models import FiltroCodigos
from core.services.sync_pipeline import SyncRequest, politica_desde_config, resolver_codigos, sincronizar


@pytest.mark.asyncio
async def test_resolver_codigos_nuevas_y_limite() -> None:
    source = FakeSource(codigos=["2025-000005", "2025-000004", "2025-000003", "2025-000002"])
    remote = FakeSender()
    remote.existentes = ["2025-000004"]

    codigos = await resolver_codigos(
        source=source,
        remote=remote,
        filtro=FiltroCodigos(todos=True, limite=2),
        solo_nuevas=True,
    )

    assert codigos == ["2025-000005", "2025-000003"]


@pytest.mark.asyncio
async def test_resolver_codigos_sin_remoto() -> None:
    source = FakeSource(codigos=["2025-000002", "2025-000001"])

    codigos = await resolver_codigos(source=source, remote=None, filtro=FiltroCodigos())

    assert codigos == ["2025-000002", "2025-000001"]


@pytest.mark.asyncio
async def test_sincronizar_de_punta_a_punta(recorded_sleep) -> None:
    source = FakeSource(
        codigos=["2025-000002", "2025-000001"],
        filas={"2025-000002": [make_row()], "2025-000001": [make_row(), make_row(zelemento="2")]},
    )
    remote = FakeSender()

    resumen = await sincronizar(source=source, remote=remote, request=SyncRequest(), sleep=recorded_sleep)

    assert resumen.total == 2
    assert resumen.procesadas == 2
    assert remote.envios == [["2025-000002", "2025-000001"]]
    assert remote.metadatas[0]["total_elementos"] == 3


@pytest.mark.asyncio
async def test_sincronizar_sin_codigos() -> None:
    resumen = await sincronizar(source=FakeSource(), remote=FakeSender(), request=SyncRequest())

    assert resumen.total == 0


def test_politica_desde_config() -> None:
    settings = AppSettings(_env_file=None, sync_max_planillas_por_lote=8, sync_delay_base_seconds=1)

    policy = politica_desde_config(settings)

    assert policy.max_planillas_por_lote == 8
    assert policy.delay_base == 1
    assert policy.max_reintentos == settings.sync_max_reintentos
