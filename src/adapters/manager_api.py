"""Cliente del manager (API `api/ferrawin/*`).

Por qué un adaptador propio:
- Traduce cualquier fallo de red, HTTP != 2xx o `success: false` a
  `TransferError`, que es lo único que entiende el dispatcher.
- Comprime con gzip (nivel 9) los lotes de sync: las planillas grandes
  superan fácilmente varios MB de JSON.
"""

from __future__ import annotations

import gzip
import json
from typing import Any, Sequence

import httpx
from loguru import logger
from pydantic import ValidationError

from adapters.http_client import build_async_client
from core.config import AppSettings, Target
from core.domain.errors import ConnectivityError, TransferError
from core.domain.models import ActualizacionId, DescripcionFila, Element, Planilla, SyncAck

SYNC_PATH = "api/ferrawin/sync"
STATUS_PATH = "api/ferrawin/status"
CODIGOS_EXISTENTES_PATH = "api/ferrawin/codigos-existentes"
ELEMENTOS_MATCHING_PATH = "api/ferrawin/elementos-para-matching/{codigo}"
ACTUALIZAR_IDS_PATH = "api/ferrawin/actualizar-ferrawin-ids"
BACKFILL_DESCRIPCION_PATH = "api/ferrawin/backfill-descripcion-fila"


def comprimir_payload(data: dict[str, Any]) -> bytes:
    return gzip.compress(json.dumps(data, ensure_ascii=False).encode("utf-8"), compresslevel=9)


class ManagerApiClient:
    """Implementación de `RemoteSync` sobre `httpx.AsyncClient`."""

    def __init__(self, client: httpx.AsyncClient, *, compress: bool = True) -> None:
        self._client = client
        self._compress = compress

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        target: Target = Target.LOCAL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ManagerApiClient":
        client = build_async_client(settings, target=target, transport=transport)
        return cls(client, compress=settings.sync_compress)

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    async def __aenter__(self) -> "ManagerApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise TransferError(f"{method} {path}: {exc.__class__.__name__}: {exc}") from exc

        if response.status_code >= 400:
            raise TransferError(
                f"{method} {path}: HTTP {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TransferError(f"{method} {path}: respuesta no JSON", status_code=response.status_code) from exc

        if not isinstance(body, dict):
            raise TransferError(f"{method} {path}: respuesta inesperada", status_code=response.status_code)
        if body.get("success") is False:
            raise TransferError(
                f"{method} {path}: {body.get('error') or body.get('message') or 'success=false'}",
                status_code=response.status_code,
            )
        return body

    async def enviar_planillas(
        self,
        planillas: Sequence[Planilla],
        metadata: dict[str, Any] | None = None,
    ) -> SyncAck:
        data = {
            "planillas": [p.a_payload() for p in planillas],
            "metadata": metadata or {},
        }
        if self._compress:
            body = await self._request(
                "POST",
                SYNC_PATH,
                content=comprimir_payload(data),
                headers={"Content-Encoding": "gzip"},
            )
        else:
            body = await self._request("POST", SYNC_PATH, json=data)

        logger.debug(
            "Planillas enviadas: cantidad={} elementos={} comprimido={}",
            len(planillas),
            sum(p.total_elementos for p in planillas),
            self._compress,
        )
        detalle = body.get("data") if isinstance(body.get("data"), dict) else body
        try:
            return SyncAck.model_validate({**detalle, "raw": body})
        except ValidationError as exc:
            raise TransferError(f"POST {SYNC_PATH}: acuse inválido: {exc}") from exc

    async def actualizar_ferrawin_ids(self, actualizaciones: Sequence[ActualizacionId]) -> int:
        body = await self._request(
            "POST",
            ACTUALIZAR_IDS_PATH,
            json={"actualizaciones": [a.model_dump() for a in actualizaciones]},
        )
        return int(body.get("actualizados") or 0)

    async def backfill_descripcion_fila(self, codigo: str, elementos: Sequence[DescripcionFila]) -> int:
        body = await self._request(
            "POST",
            BACKFILL_DESCRIPCION_PATH,
            json={"codigo_planilla": codigo, "elementos": [e.model_dump() for e in elementos]},
        )
        return int(body.get("actualizados") or 0)

    async def codigos_existentes(self) -> list[str]:
        body = await self._request("GET", CODIGOS_EXISTENTES_PATH)
        data = body.get("data") or {}
        return [str(c) for c in data.get("codigos") or []]

    async def elementos_para_matching(self, codigo: str) -> list[Element] | None:
        try:
            body = await self._request("GET", ELEMENTOS_MATCHING_PATH.format(codigo=codigo))
        except TransferError as exc:
            # El manager responde 404 o success=false si no conoce la planilla.
            if exc.status_code is not None and exc.status_code < 500:
                return None
            raise
        data = body.get("data") or {}
        elementos = data.get("elementos") or []
        if isinstance(elementos, dict):
            elementos = list(elementos.values())
        return [Element.model_validate(e) for e in elementos]

    async def test_connection(self) -> bool:
        try:
            response = await self._client.get(STATUS_PATH)
        except httpx.HTTPError as exc:
            logger.error("Error verificando conexión con el manager: {}", exc)
            return False
        return response.status_code == 200

    async def ensure_connection(self) -> None:
        if not await self.test_connection():
            raise ConnectivityError(f"No se pudo conectar al manager: {self.base_url}")
        logger.info("Conexión al manager OK ({})", self.base_url)
