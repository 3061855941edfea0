"""CLI principal (Typer).

Por qué Typer + Rich:
- Opciones tipadas y ayuda automática para los operadores.
- Los resúmenes se presentan con Rich; el Core nunca imprime.

Códigos de salida:
- 1 si no hay conectividad al arrancar (FerraWin o manager).
- 0 en cualquier otro caso, aunque queden planillas sin sincronizar
  (el resumen las lista).
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from pathlib import Path

import typer
from rich.console import Console

from adapters.ferrawin_db import FerrawinDatabase
from adapters.json_exporter import export_planillas_json
from adapters.manager_api import ManagerApiClient
from adapters.pause_file import FilePauseSignal, ProcessLock, read_pid
from cli import doctor
from cli.ui_components import (
    build_backfill_table,
    build_descripcion_backfill_table,
    build_pause_panel,
    build_stats_table,
    build_sync_summary_table,
    build_unsynced_panel,
    print_banner,
)
from core.config import AppSettings, Target
from core.domain.errors import ConnectivityError, SyncError
from core.domain.models import FiltroCodigos
from core.logging_setup import configure_logging
from core.services.backfill import BackfillSummary, ejecutar_backfill
from core.services.backfill_descripcion import DescripcionBackfillSummary, ejecutar_backfill_descripcion
from core.services.planilla_builder import cargar_planilla
from core.services.sync_pipeline import SyncRequest, politica_desde_config, resolver_codigos, sincronizar

app = typer.Typer(no_args_is_help=True, help="Sincronización de planillas FerraWin con el manager.")
app.add_typer(doctor.app, name="doctor")

_console = Console()

_DRY_RUN_MUESTRA = 20


def _fecha(valor: datetime | None) -> date | None:
    return valor.date() if valor else None


def _conectar_origen(settings: AppSettings) -> FerrawinDatabase:
    source = FerrawinDatabase.from_settings(settings)
    source.ensure_connection()
    return source


async def _run_sync(
    *,
    settings: AppSettings,
    target: Target,
    filtro: FiltroCodigos,
    solo_nuevas: bool,
    dry_run: bool,
    export_json: Path | None,
) -> None:
    source = _conectar_origen(settings)
    try:
        async with ManagerApiClient.from_settings(settings, target=target) as remote:
            necesita_remoto = solo_nuevas or not (dry_run or export_json)
            if necesita_remoto:
                await remote.ensure_connection()

            codigos = await resolver_codigos(
                source=source,
                remote=remote if solo_nuevas else None,
                filtro=filtro,
                solo_nuevas=solo_nuevas,
            )
            if not codigos:
                _console.print("[yellow]No hay planillas para sincronizar.[/yellow]")
                return

            if dry_run:
                _console.print(f"[bold]DRY-RUN:[/bold] se sincronizarían {len(codigos)} planillas")
                for codigo in codigos[:_DRY_RUN_MUESTRA]:
                    _console.print(f"  - {codigo}")
                if len(codigos) > _DRY_RUN_MUESTRA:
                    _console.print(f"  ... y {len(codigos) - _DRY_RUN_MUESTRA} más")
                return

            if export_json:
                planillas = []
                for codigo in codigos:
                    try:
                        planillas.append(cargar_planilla(source, codigo))
                    except SyncError as exc:
                        _console.print(f"[yellow]{codigo}: {exc}[/yellow]")
                path = export_planillas_json(planillas=planillas, output_path=export_json)
                _console.print(f"[green]Exportadas {len(planillas)} planillas a:[/green] {path}")
                return

            pause_signal = FilePauseSignal(settings.pause_file)
            pause_signal.clear()
            with ProcessLock(settings.pid_file, settings.pause_file):
                summary = await sincronizar(
                    source=source,
                    remote=remote,
                    request=SyncRequest(filtro=filtro, solo_nuevas=solo_nuevas),
                    policy=politica_desde_config(settings),
                    pause_signal=pause_signal,
                    codigos=codigos,
                )
    finally:
        source.close()

    _console.print(build_sync_summary_table(summary))
    if summary.pausado:
        _console.print(build_pause_panel(summary))
    unsynced = build_unsynced_panel(summary.no_sincronizadas)
    if unsynced is not None:
        _console.print(unsynced)


@app.command()
def sync(
    anio: int | None = typer.Option(None, "--anio", help="Año contable (ZCONTA) a sincronizar."),
    todos: bool = typer.Option(False, "--todos", help="Sin filtro de fecha."),
    nuevas: bool = typer.Option(False, "--nuevas", help="Solo planillas que no existen en el destino."),
    test: int | None = typer.Option(None, "--test", min=1, help="Limitar a N planillas."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Listar lo que se sincronizaría, sin enviar."),
    desde_codigo: str | None = typer.Option(None, "--desde-codigo", help="Reanudar desde este código (inclusivo)."),
    desde: datetime | None = typer.Option(None, "--desde", formats=["%Y-%m-%d"], help="Fecha inicial."),
    hasta: datetime | None = typer.Option(None, "--hasta", formats=["%Y-%m-%d"], help="Fecha final."),
    target: Target = typer.Option(Target.LOCAL, "--target", help="Servidor destino."),
    export_json: Path | None = typer.Option(None, "--export-json", help="Exportar a JSON en vez de enviar."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Logging DEBUG."),
) -> None:
    """Sincroniza planillas de FerraWin al manager por lotes."""

    settings = AppSettings()
    configure_logging(settings, verbose=verbose)
    print_banner(_console, subtitle=f"Destino: {target.value} ({settings.target_url(target)})")

    filtro = FiltroCodigos(
        anio=anio,
        fecha_desde=_fecha(desde),
        fecha_hasta=_fecha(hasta),
        dias_atras=settings.sync_dias_atras,
        todos=todos or nuevas,
        desde_codigo=desde_codigo,
        limite=test,
    )

    try:
        asyncio.run(
            _run_sync(
                settings=settings,
                target=target,
                filtro=filtro,
                solo_nuevas=nuevas,
                dry_run=dry_run,
                export_json=export_json,
            )
        )
    except ConnectivityError as exc:
        _console.print(f"[red]Error de conexión:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    except SyncError as exc:
        # Fallo antes de empezar (p.ej. consultando códigos existentes con --nuevas).
        _console.print(f"[red]Error preparando la sincronización:[/red] {exc}")
        raise typer.Exit(code=1) from exc


async def _run_backfill(
    *,
    settings: AppSettings,
    target: Target,
    planilla: str | None,
    dry_run: bool,
    verbose: bool,
) -> BackfillSummary:
    source = _conectar_origen(settings)
    try:
        async with ManagerApiClient.from_settings(settings, target=target) as remote:
            await remote.ensure_connection()
            return await ejecutar_backfill(
                remote=remote,
                source=source,
                codigos=[planilla] if planilla else None,
                dry_run=dry_run,
                verbose=verbose,
            )
    finally:
        source.close()


@app.command()
def backfill(
    target: Target = typer.Option(Target.LOCAL, "--target", help="Servidor destino."),
    planilla: str | None = typer.Option(None, "--planilla", help="Solo esta planilla."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simular sin actualizar."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Detalle por planilla."),
) -> None:
    """Enlaza elementos ya importados con FerraWin y rellena su `ferrawin_id`."""

    settings = AppSettings()
    configure_logging(settings, verbose=verbose)
    print_banner(_console, subtitle=f"Backfill ferrawin_id → {target.value}")

    try:
        summary = asyncio.run(
            _run_backfill(
                settings=settings,
                target=target,
                planilla=planilla,
                dry_run=dry_run,
                verbose=verbose,
            )
        )
    except ConnectivityError as exc:
        _console.print(f"[red]Error de conexión:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    except SyncError as exc:
        # Sin listado de códigos no hay nada que recorrer.
        _console.print(f"[red]Error obteniendo planillas:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _console.print(build_backfill_table(summary))
    if summary.planillas_con_errores:
        _console.print(f"[red]Planillas con errores:[/red] {', '.join(summary.planillas_con_errores)}")
    if dry_run:
        _console.print("[dim](Simulación: ejecutar sin --dry-run para aplicar cambios)[/dim]")


async def _run_backfill_descripcion(
    *,
    settings: AppSettings,
    target: Target,
    planilla: str | None,
    limite: int | None,
    dry_run: bool,
) -> DescripcionBackfillSummary:
    source = _conectar_origen(settings)
    try:
        async with ManagerApiClient.from_settings(settings, target=target) as remote:
            if not dry_run:
                await remote.ensure_connection()
            return await ejecutar_backfill_descripcion(
                remote=remote,
                source=source,
                codigos=[planilla] if planilla else None,
                limite=limite,
                dry_run=dry_run,
            )
    finally:
        source.close()


@app.command("backfill-descripcion")
def backfill_descripcion(
    target: Target = typer.Option(Target.LOCAL, "--target", help="Servidor destino."),
    planilla: str | None = typer.Option(None, "--planilla", help="Solo esta planilla."),
    limit: int | None = typer.Option(None, "--limit", min=1, help="Procesar como mucho N planillas."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Mostrar lo que se enviaría, sin actualizar."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Logging DEBUG."),
) -> None:
    """Rellena `descripcion_fila` (ZSITUACION) en elementos ya importados."""

    settings = AppSettings()
    configure_logging(settings, verbose=verbose)
    print_banner(_console, subtitle=f"Backfill descripcion_fila → {target.value}")

    try:
        summary = asyncio.run(
            _run_backfill_descripcion(
                settings=settings,
                target=target,
                planilla=planilla,
                limite=limit,
                dry_run=dry_run,
            )
        )
    except ConnectivityError as exc:
        _console.print(f"[red]Error de conexión:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _console.print(build_descripcion_backfill_table(summary))
    if summary.planillas_con_errores:
        _console.print(f"[red]Planillas con errores:[/red] {', '.join(summary.planillas_con_errores)}")
    if dry_run:
        _console.print("[dim](Simulación: ejecutar sin --dry-run para aplicar cambios)[/dim]")


@app.command()
def stats() -> None:
    """Estadísticas de la base FerraWin para planificar una migración."""

    settings = AppSettings()
    configure_logging(settings, console=False)
    try:
        source = _conectar_origen(settings)
    except ConnectivityError as exc:
        _console.print(f"[red]Error de conexión:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    try:
        _console.print(build_stats_table(source.estadisticas()))
    finally:
        source.close()


@app.command()
def pause(
    clear: bool = typer.Option(False, "--clear", help="Retirar una pausa pendiente."),
) -> None:
    """Solicita pausar la sincronización en curso (o retira la solicitud)."""

    settings = AppSettings()
    signal = FilePauseSignal(settings.pause_file)
    if clear:
        signal.clear()
        _console.print("[green]Pausa retirada.[/green]")
        return

    pid = read_pid(settings.pid_file)
    if pid is None:
        _console.print("[yellow]No hay ninguna sincronización en curso.[/yellow]")
        return
    signal.request_pause()
    _console.print(f"[green]Pausa solicitada[/green] (PID {pid}); se detendrá tras la planilla actual.")


def run() -> None:
    app()
