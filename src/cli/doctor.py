"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import pyodbc
import typer
from rich.console import Console
from rich.table import Table

from adapters.ferrawin_db import FerrawinDatabase
from adapters.manager_api import ManagerApiClient
from core.config import AppSettings, Target

app = typer.Typer(no_args_is_help=True, help="Diagnóstico de conexiones (FerraWin, driver ODBC, manager).")

_console = Console()


def _check_driver(settings: AppSettings) -> tuple[bool, str]:
    drivers = pyodbc.drivers()
    if settings.ferrawin_odbc_driver in drivers:
        return True, settings.ferrawin_odbc_driver
    disponibles = ", ".join(d for d in drivers if "SQL Server" in d) or "ninguno"
    return False, f"No instalado: {settings.ferrawin_odbc_driver} (disponibles: {disponibles})"


def _check_database(settings: AppSettings) -> tuple[bool, str]:
    source = FerrawinDatabase.from_settings(settings)
    try:
        if not source.test_connection():
            return False, f"{settings.ferrawin_host}:{settings.ferrawin_port}"
        stats = source.estadisticas()
    except Exception as exc:
        return False, str(exc)
    finally:
        source.close()
    return True, f"{stats['total_planillas']} planillas, {stats['total_elementos']} elementos"


async def _check_manager(settings: AppSettings, target: Target) -> tuple[bool, str]:
    url = settings.target_url(target)
    if url == "/":
        return False, "URL no configurada"
    async with ManagerApiClient.from_settings(settings, target=target) as remote:
        ok = await remote.test_connection()
    return ok, url


@app.command()
def run(
    target: Target = typer.Option(Target.LOCAL, "--target", help="Destino a verificar."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="FerraWin Sync Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    ok_driver, detail_driver = _check_driver(settings)
    table.add_row("ODBC driver", "OK" if ok_driver else "FAIL", detail_driver)

    ok_db, detail_db = _check_database(settings)
    table.add_row("FerraWin DB", "OK" if ok_db else "FAIL", detail_db)

    if settings.target_token(target):
        table.add_row("Token", "OK", target.value)
    else:
        table.add_row("Token", "MISSING", f"{target.value.upper()}_TOKEN / API_TOKEN")

    ok_api, detail_api = asyncio.run(_check_manager(settings, target))
    table.add_row(f"Manager ({target.value})", "OK" if ok_api else "FAIL", detail_api)

    _console.print(table)

    if not ok_driver:
        _console.print(
            "\n[yellow]Note:[/yellow] Instala el 'ODBC Driver 17/18 for SQL Server' o ajusta FERRAWIN_ODBC_DRIVER."
        )
    if not (ok_db and ok_api):
        raise typer.Exit(code=1)
