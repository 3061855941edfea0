"""Backfill de `ferrawin_id` sobre elementos ya importados.

Flujo por planilla: elementos almacenados (manager) + elementos frescos
(FerraWin) -> matcher -> POST de actualizaciones. Los fallos por planilla se
registran y se acumulan; la corrida sigue con la siguiente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from core.interfaces.remote import RemoteSync
from core.interfaces.source import PlanillaSource
from core.services.matcher import emparejar_elementos
from core.services.planilla_builder import construir_elemento_fresco, dividir_codigo


@dataclass
class BackfillSummary:
    planillas: int = 0
    actualizados: int = 0
    matched: int = 0
    no_matched: int = 0
    omitidas: int = 0
    errores: int = 0
    planillas_con_errores: list[str] = field(default_factory=list)
    dry_run: bool = False


async def _backfill_planilla(
    *,
    remote: RemoteSync,
    source: PlanillaSource,
    codigo: str,
    progreso: str,
    resumen: BackfillSummary,
    dry_run: bool,
    verbose: bool,
) -> None:
    almacenados = await remote.elementos_para_matching(codigo)
    if almacenados is None:
        logger.warning("{} Planilla {}: no encontrada en destino", progreso, codigo)
        resumen.omitidas += 1
        return
    if not almacenados:
        logger.warning("{} Planilla {}: sin elementos en destino", progreso, codigo)
        resumen.omitidas += 1
        return

    dividir_codigo(codigo)
    frescos = [construir_elemento_fresco(row) for row in source.elementos_frescos(codigo)]
    if verbose:
        logger.info("{} Elementos destino={} FerraWin={}", progreso, len(almacenados), len(frescos))
    if not frescos:
        logger.warning("{} Planilla {}: no encontrada en FerraWin", progreso, codigo)
        resumen.omitidas += 1
        return

    resultado = emparejar_elementos(almacenados, frescos)
    resumen.matched += resultado.matched
    resumen.no_matched += resultado.no_matched

    if verbose:
        for sin_match in resultado.sin_match:
            logger.debug("{} {}", progreso, sin_match)
        if resultado.por_nivel:
            logger.info("{} Niveles: {}", progreso, dict(resultado.por_nivel))

    if not resultado.updates:
        logger.debug("{} Planilla {}: sin actualizaciones necesarias", progreso, codigo)
        return

    logger.info(
        "{} Planilla {}: {} matches de {} elementos",
        progreso,
        codigo,
        resultado.matched,
        resultado.total_almacenados,
    )

    if dry_run:
        resumen.actualizados += len(resultado.updates)
        return

    resumen.actualizados += await remote.actualizar_ferrawin_ids(resultado.updates)


async def ejecutar_backfill(
    *,
    remote: RemoteSync,
    source: PlanillaSource,
    codigos: Sequence[str] | None = None,
    dry_run: bool = False,
    verbose: bool = False,
) -> BackfillSummary:
    """Recorre las planillas (todas las del destino si `codigos` es None)."""

    if codigos is None:
        logger.info("Obteniendo planillas existentes en destino...")
        codigos = await remote.codigos_existentes()
        logger.info("Planillas encontradas: {}", len(codigos))

    resumen = BackfillSummary(planillas=len(codigos), dry_run=dry_run)
    if dry_run:
        logger.info("MODO DRY-RUN: no se harán cambios")

    for indice, codigo in enumerate(codigos, start=1):
        progreso = f"[{indice}/{len(codigos)}]"
        try:
            await _backfill_planilla(
                remote=remote,
                source=source,
                codigo=codigo,
                progreso=progreso,
                resumen=resumen,
                dry_run=dry_run,
                verbose=verbose,
            )
        except Exception as exc:
            logger.error("{} Excepción en {}: {}", progreso, codigo, exc)
            resumen.errores += 1
            resumen.planillas_con_errores.append(codigo)

    logger.info(
        "=== Backfill completado === planillas={} actualizados={} errores={}",
        resumen.planillas,
        resumen.actualizados,
        resumen.errores,
    )
    if resumen.planillas_con_errores:
        logger.warning("Planillas con errores: {}", ", ".join(resumen.planillas_con_errores))
    return resumen
