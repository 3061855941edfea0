"""Orquestación de la sincronización masiva.

Este módulo une las piezas del Core para el camino `sync`:
resolución de códigos -> dispatcher (builder por planilla) -> resumen.
La CLI solo decide filtros, destino y presentación; aquí no se imprime nada.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from core.config import AppSettings
from core.domain.models import FiltroCodigos
from core.interfaces.cancellation import PauseSignal
from core.interfaces.remote import RemoteSync
from core.interfaces.source import PlanillaSource
from core.services.dispatcher import BatchDispatcher, DispatchHooks, DispatchPolicy, Sleep, SyncSummary
from core.services.planilla_builder import cargar_planilla


@dataclass
class SyncRequest:
    """Parámetros que controlan una corrida de `sync`."""

    filtro: FiltroCodigos = field(default_factory=FiltroCodigos)
    solo_nuevas: bool = False


async def resolver_codigos(
    *,
    source: PlanillaSource,
    remote: RemoteSync | None,
    filtro: FiltroCodigos,
    solo_nuevas: bool = False,
) -> list[str]:
    """Lista los códigos a procesar en orden descendente.

    Con `solo_nuevas` se descartan los que el manager ya tiene; el `limite`
    se aplica después del filtrado para que `--test N` devuelva N nuevas.
    """

    codigos = source.listar_codigos(filtro)
    logger.info("Encontradas {} planillas en FerraWin", len(codigos))

    if solo_nuevas and remote is not None:
        existentes = set(await remote.codigos_existentes())
        codigos = [c for c in codigos if c not in existentes]
        logger.info("Planillas nuevas (no existen en destino): {}", len(codigos))

    if filtro.limite is not None and filtro.limite > 0:
        codigos = codigos[: filtro.limite]

    return codigos


async def sincronizar(
    *,
    source: PlanillaSource,
    remote: RemoteSync,
    request: SyncRequest,
    policy: DispatchPolicy | None = None,
    pause_signal: PauseSignal | None = None,
    hooks: DispatchHooks | None = None,
    sleep: Sleep | None = None,
    codigos: Sequence[str] | None = None,
) -> SyncSummary:
    """Corre el dispatcher sobre `codigos` (o los resueltos desde `request`)."""

    if codigos is None:
        codigos = await resolver_codigos(
            source=source,
            remote=remote,
            filtro=request.filtro,
            solo_nuevas=request.solo_nuevas,
        )
    if not codigos:
        logger.info("No hay planillas para sincronizar")
        return SyncSummary()

    kwargs = {} if sleep is None else {"sleep": sleep}
    dispatcher = BatchDispatcher(
        sender=remote,
        policy=policy,
        pause_signal=pause_signal,
        hooks=hooks,
        **kwargs,
    )
    return await dispatcher.run(codigos, lambda codigo: cargar_planilla(source, codigo))


def politica_desde_config(settings: AppSettings) -> DispatchPolicy:
    return DispatchPolicy(
        max_planillas_por_lote=settings.sync_max_planillas_por_lote,
        max_elementos_por_lote=settings.sync_max_elementos_por_lote,
        max_reintentos=settings.sync_max_reintentos,
        delay_base=settings.sync_delay_base_seconds,
        espera_recuperacion=settings.sync_espera_recuperacion_seconds,
        reintentos_extra_recuperacion=settings.sync_reintentos_extra_recuperacion,
        factor_delay_recuperacion=settings.sync_factor_delay_recuperacion,
    )
