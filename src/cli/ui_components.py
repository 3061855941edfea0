"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.services.backfill import BackfillSummary
from core.services.backfill_descripcion import DescripcionBackfillSummary
from core.services.dispatcher import SyncSummary


def print_banner(console: Console, *, subtitle: str = "FerraWin → Manager") -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos (JSON/pipelines).
    """

    title = Text("FERRAWIN SYNC", style="bold cyan")
    body = Align.center(Text.assemble(title, "\n", Text(subtitle, style="dim")), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_sync_summary_table(summary: SyncSummary) -> Table:
    table = Table(title="Resumen de sincronización")
    table.add_column("Concepto", style="cyan", no_wrap=True)
    table.add_column("Total", style="white", justify="right")
    table.add_row("Total", str(summary.total))
    table.add_row("Procesadas", str(summary.procesadas))
    table.add_row("  (recuperadas en pasada final)", str(summary.recuperados))
    table.add_row("Vacías", str(summary.vacias))
    table.add_row("Errores", str(summary.errores), style="red" if summary.errores else None)
    table.add_row("Lotes enviados", str(summary.lotes_enviados))
    return table


def build_unsynced_panel(lotes: Sequence[Sequence[str]]) -> Panel | None:
    """Panel con los códigos que no llegaron al manager (uno por línea)."""

    codigos = [codigo for lote in lotes for codigo in lote]
    if not codigos:
        return None
    body = Text("\n".join(codigos), style="red")
    title = Text(f"PLANILLAS NO SINCRONIZADAS ({len(codigos)})", style="bold red")
    return Panel(body, title=title, border_style="red")


def build_pause_panel(summary: SyncSummary) -> Panel:
    body = Text()
    body.append("Sincronización pausada por el usuario.\n")
    if summary.punto_reanudacion:
        body.append("Para continuar: ", style="bold")
        body.append(f"ferrawin-sync sync --desde-codigo {summary.punto_reanudacion}")
    return Panel(body, title=Text("PAUSADO", style="bold yellow"), border_style="yellow")


def build_backfill_table(summary: BackfillSummary) -> Table:
    table = Table(title="Backfill de ferrawin_id" + (" (simulación)" if summary.dry_run else ""))
    table.add_column("Concepto", style="cyan", no_wrap=True)
    table.add_column("Total", style="white", justify="right")
    table.add_row("Planillas", str(summary.planillas))
    table.add_row("Elementos emparejados", str(summary.matched))
    table.add_row("Sin match", str(summary.no_matched))
    table.add_row("Actualizados", str(summary.actualizados))
    table.add_row("Omitidas", str(summary.omitidas))
    table.add_row("Errores", str(summary.errores), style="red" if summary.errores else None)
    return table



def build_descripcion_backfill_table(summary: DescripcionBackfillSummary) -> Table:
    table = Table(title="Backfill de descripcion_fila" + (" (simulación)" if summary.dry_run else ""))
    table.add_column("Concepto", style="cyan", no_wrap=True)
    table.add_column("Total", style="white", justify="right")
    table.add_row("Planillas", str(summary.planillas))
    table.add_row("Elementos encontrados", str(summary.elementos))
    if not summary.dry_run:
        table.add_row("Actualizados", str(summary.actualizados))
    table.add_row("Omitidas", str(summary.omitidas))
    table.add_row("Errores", str(summary.errores), style="red" if summary.errores else None)
    return table

def build_stats_table(stats: dict[str, Any]) -> Table:
    table = Table(title="Estadísticas FerraWin")
    table.add_column("Año", style="cyan", no_wrap=True)
    table.add_column("Planillas", style="white", justify="right")
    for fila in stats.get("por_anio", []):
        table.add_row(str(fila.get("anio")), str(fila.get("planillas")))
    table.caption = (
        f"Total: {stats.get('total_planillas')} planillas, {stats.get('total_elementos')} elementos"
        f" | {stats.get('fecha_primera')} → {stats.get('fecha_ultima')}"
    )
    return table
