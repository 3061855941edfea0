import gzip
import json

import httpx
import pytest

from adapters.manager_api import ManagerApiClient
from conftest import make_planilla
from core.config import AppSettings, Target
from core.domain.errors import TransferError
from core.domain.models import ActualizacionId, DescripcionFila


def _settings(**overrides) -> AppSettings:
    datos = {"local_url": "http://manager.test/app", "local_token": "secreto", "sync_compress": True}
    datos.update(overrides)
    return AppSettings(_env_file=None, **datos)


def _client(handler, **overrides) -> ManagerApiClient:
    return ManagerApiClient.from_settings(
        _settings(**overrides),
        target=Target.LOCAL,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_envio_comprimido_con_token() -> None:
    recibido: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        recibido["url"] = str(request.url)
        recibido["headers"] = request.headers
        recibido["body"] = json.loads(gzip.decompress(request.content))
        return httpx.Response(200, json={"success": True, "data": {"planillas_creadas": 2}})

    async with _client(handler) as remote:
        ack = await remote.enviar_planillas(
            [make_planilla("2025-000001"), make_planilla("2025-000002")],
            {"lote": 1},
        )

    assert recibido["url"] == "http://manager.test/app/api/ferrawin/sync"
    assert recibido["headers"]["Authorization"] == "Bearer secreto"
    assert recibido["headers"]["Content-Encoding"] == "gzip"
    assert [p["codigo"] for p in recibido["body"]["planillas"]] == ["2025-000001", "2025-000002"]
    assert recibido["body"]["metadata"] == {"lote": 1}
    assert ack.planillas_creadas == 2


@pytest.mark.asyncio
async def test_envio_sin_compresion() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Content-Encoding" not in request.headers
        assert json.loads(request.content)["planillas"][0]["codigo"] == "2025-000001"
        return httpx.Response(200, json={"success": True})

    async with _client(handler, sync_compress=False) as remote:
        ack = await remote.enviar_planillas([make_planilla("2025-000001")])

    assert ack.raw == {"success": True}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="Service Unavailable"),
        httpx.Response(200, json={"success": False, "error": "validación"}),
        httpx.Response(200, text="<html>login</html>"),
    ],
)
async def test_fallos_se_traducen_a_transfer_error(response: httpx.Response) -> None:
    async with _client(lambda request: response) as remote:
        with pytest.raises(TransferError):
            await remote.enviar_planillas([make_planilla("2025-000001")])


@pytest.mark.asyncio
async def test_acuse_con_contadores_nulos() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": {"planillas_creadas": None}})

    async with _client(handler) as remote:
        ack = await remote.enviar_planillas([make_planilla("2025-000001")])

    assert ack.planillas_creadas == 0


@pytest.mark.asyncio
async def test_acuse_invalido_es_transfer_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": {"planillas_creadas": "muchas"}})

    async with _client(handler) as remote:
        with pytest.raises(TransferError):
            await remote.enviar_planillas([make_planilla("2025-000001")])


@pytest.mark.asyncio
async def test_error_de_transporte() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as remote:
        with pytest.raises(TransferError):
            await remote.enviar_planillas([make_planilla("2025-000001")])
        assert await remote.test_connection() is False


@pytest.mark.asyncio
async def test_codigos_existentes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/app/api/ferrawin/codigos-existentes"
        return httpx.Response(200, json={"success": True, "data": {"codigos": ["2025-000001", "2024-000100"]}})

    async with _client(handler) as remote:
        assert await remote.codigos_existentes() == ["2025-000001", "2024-000100"]


@pytest.mark.asyncio
async def test_elementos_para_matching() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/2025-000404"):
            return httpx.Response(404, json={"success": False, "error": "no existe"})
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": {
                    "elementos": [
                        {"id": 7, "fila": 3, "diametro": "12", "longitud": "300.00", "ferrawin_id": ""},
                    ]
                },
            },
        )

    async with _client(handler) as remote:
        elementos = await remote.elementos_para_matching("2025-000001")
        ausente = await remote.elementos_para_matching("2025-000404")

    assert elementos[0].id == 7
    assert elementos[0].fila == "3"
    assert elementos[0].diametro == 12
    assert elementos[0].longitud == 300.0
    assert elementos[0].ferrawin_id is None
    assert ausente is None


@pytest.mark.asyncio
async def test_actualizar_ferrawin_ids() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"actualizaciones": [{"elemento_id": 7, "ferrawin_id": "3-1"}]}
        return httpx.Response(200, json={"success": True, "actualizados": 1})

    async with _client(handler) as remote:
        total = await remote.actualizar_ferrawin_ids([ActualizacionId(elemento_id=7, ferrawin_id="3-1")])

    assert total == 1


@pytest.mark.asyncio
async def test_backfill_descripcion_fila() -> None:
    recibido: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        recibido["url"] = str(request.url)
        recibido["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "actualizados": 2})

    async with _client(handler) as remote:
        actualizados = await remote.backfill_descripcion_fila(
            "2025-000001",
            [DescripcionFila(fila="1", descripcion_fila="Pilar"), DescripcionFila(fila="2")],
        )

    assert actualizados == 2
    assert recibido["url"].endswith("/api/ferrawin/backfill-descripcion-fila")
    assert recibido["body"] == {
        "codigo_planilla": "2025-000001",
        "elementos": [{"fila": "1", "descripcion_fila": "Pilar"}, {"fila": "2", "descripcion_fila": ""}],
    }


@pytest.mark.asyncio
async def test_status() -> None:
    async with _client(lambda request: httpx.Response(200, json={"status": "ok"})) as remote:
        assert await remote.test_connection() is True
