"""Backfill de `descripcion_fila` sobre elementos ya importados.

Por qué existe:
- Las planillas sincronizadas antes de exportar `ZSITUACION` quedaron con la
  descripción de fila vacía en el manager.
- No hace falta matcher: el manager resuelve por (`codigo_planilla`, `fila`).

Los códigos salen de FerraWin (todas las planillas, orden descendente).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from core.domain.models import DescripcionFila, FiltroCodigos
from core.interfaces.remote import RemoteSync
from core.interfaces.source import PlanillaSource

_MUESTRA_DRY_RUN = 3


@dataclass
class DescripcionBackfillSummary:
    planillas: int = 0
    elementos: int = 0
    actualizados: int = 0
    omitidas: int = 0
    errores: int = 0
    planillas_con_errores: list[str] = field(default_factory=list)
    dry_run: bool = False


async def ejecutar_backfill_descripcion(
    *,
    remote: RemoteSync,
    source: PlanillaSource,
    codigos: Sequence[str] | None = None,
    limite: int | None = None,
    dry_run: bool = False,
) -> DescripcionBackfillSummary:
    """Envía al manager la descripción de fila de cada elemento de FerraWin."""

    if codigos is None:
        codigos = source.listar_codigos(FiltroCodigos(todos=True))
    if limite is not None and limite > 0:
        codigos = list(codigos)[:limite]

    resumen = DescripcionBackfillSummary(planillas=len(codigos), dry_run=dry_run)
    logger.info("Planillas a procesar: {}", len(codigos))
    if dry_run:
        logger.info("MODO DRY-RUN: no se harán cambios")

    for indice, codigo in enumerate(codigos, start=1):
        progreso = f"[{indice}/{len(codigos)}]"
        try:
            elementos = [DescripcionFila.model_validate(row) for row in source.descripciones_fila(codigo)]
            if not elementos:
                resumen.omitidas += 1
                continue
            resumen.elementos += len(elementos)

            if dry_run:
                logger.info("{} {}: {} elementos (dry-run)", progreso, codigo, len(elementos))
                for elemento in elementos[:_MUESTRA_DRY_RUN]:
                    logger.info("    Fila {}: {}", elemento.fila, elemento.descripcion_fila)
                continue

            actualizados = await remote.backfill_descripcion_fila(codigo, elementos)
            resumen.actualizados += actualizados
            logger.info("{} {}: {} elementos, {} actualizados", progreso, codigo, len(elementos), actualizados)
        except Exception as exc:
            logger.error("{} Excepción en {}: {}", progreso, codigo, exc)
            resumen.errores += 1
            resumen.planillas_con_errores.append(codigo)

    logger.info(
        "=== Backfill de descripciones completado === planillas={} elementos={} actualizados={} errores={}",
        resumen.planillas,
        resumen.elementos,
        resumen.actualizados,
        resumen.errores,
    )
    return resumen
