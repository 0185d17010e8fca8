"""CLI principal (Typer).

Comandos:
- `lookup`: consulta uno o más RUTs y muestra el resultado.
- `scan`: escaneo masivo reanudable de un rango de RUNs.
- `doctor`: diagnósticos de configuración/TLS/conectividad.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path

import typer
from rich.console import Console

from adapters.sii import SIIClient
from cli import doctor
from cli.ui_components import build_citizen_table, build_metrics_text, print_banner
from core.config import AppSettings
from core.domain.errors import InvalidRutError, NotFoundError, SIIError
from core.domain.models import CaptchaCredential, Citizen, RequestMetrics
from core.domain.rut import Rut
from core.services.bulk_scan import ScanHooks, ScanRequest, scan

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_INVALID_RUT = 2
EXIT_FAILURE = 3

app = typer.Typer(no_args_is_help=True, help="Consulta de contribuyentes del SII por RUT.")
app.add_typer(doctor.app, name="doctor")

_console = Console()
logger = logging.getLogger("cli")


def configure_logging(settings: AppSettings, *, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class CaptchaRenewalLogger:
    """Callback `on_new_credential`: registra cada captcha y el tiempo entre renovaciones."""

    def __init__(self) -> None:
        self._last: float | None = None

    def __call__(self, credential: CaptchaCredential) -> None:
        now = time.monotonic()
        if self._last is None:
            logger.info(f"Primer captcha: {credential.solution}")
        else:
            logger.info(f"Renovación de captcha: {credential.solution} (tras {now - self._last:.1f}s)")
        self._last = now


async def _lookup_many(
    ruts: list[str], settings: AppSettings
) -> list[tuple[str, Citizen | None, RequestMetrics | None, SIIError | None]]:
    out: list[tuple[str, Citizen | None, RequestMetrics | None, SIIError | None]] = []
    async with SIIClient(settings, on_new_credential=CaptchaRenewalLogger()) as client:
        for rut in ruts:
            try:
                citizen, metrics = await client.lookup(rut)
            except SIIError as exc:
                out.append((rut, None, exc.metrics, exc))
                continue
            out.append((rut, citizen, metrics, None))
    return out


def _exit_code_for(error: SIIError | None) -> int:
    if error is None:
        return EXIT_OK
    if isinstance(error, InvalidRutError):
        return EXIT_INVALID_RUT
    if isinstance(error, NotFoundError):
        return EXIT_NOT_FOUND
    return EXIT_FAILURE


@app.command()
def lookup(
    ruts: list[str] = typer.Argument(..., help="RUTs a consultar (12.345.678-5, 12345678-5, 123456785)."),
    json_output: bool = typer.Option(False, "--json", help="Salida JSON (sin banner ni tablas)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Logging DEBUG."),
) -> None:
    """Consulta nombre y actividades de uno o más RUTs."""

    settings = AppSettings()
    configure_logging(settings, verbose=verbose)
    if not json_output:
        print_banner(_console)

    results = asyncio.run(_lookup_many(ruts, settings))

    exit_code = EXIT_OK
    payload: list[dict[str, object]] = []
    for rut, citizen, metrics, error in results:
        exit_code = max(exit_code, _exit_code_for(error))
        if json_output:
            payload.append(
                {
                    "query": rut,
                    "citizen": citizen.model_dump(mode="json") if citizen else None,
                    "metrics": metrics.model_dump(mode="json") if metrics else None,
                    "error": type(error).__name__ if error else None,
                }
            )
            continue

        if citizen is not None:
            _console.print(build_citizen_table(citizen))
        elif isinstance(error, NotFoundError):
            _console.print(f"[yellow]{rut}:[/yellow] sin registros en el SII")
        else:
            _console.print(f"[red]{rut}:[/red] {error}")
        if metrics is not None:
            _console.print(build_metrics_text(metrics))

    if json_output:
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
    raise typer.Exit(code=exit_code)


@app.command(name="scan")
def scan_command(
    start: int = typer.Option(1, "--start", min=1, help="Primer RUN (inclusive)."),
    end: int = typer.Option(30_000_000, "--end", min=2, help="Último RUN (exclusivo)."),
    workers: int | None = typer.Option(None, "--workers", min=1, help="Workers concurrentes."),
    output_dir: Path | None = typer.Option(None, "--output-dir", help="Directorio de salida JSON."),
    index_file: Path | None = typer.Option(None, "--index-file", help="Archivo de reanudación."),
    no_resume: bool = typer.Option(False, "--no-resume", help="Ignorar el índice guardado."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Logging DEBUG."),
) -> None:
    """Escanea un rango de RUNs y guarda los contribuyentes encontrados."""

    settings = AppSettings()
    configure_logging(settings, verbose=verbose)
    print_banner(_console)

    request = ScanRequest(
        start=start,
        end=end,
        workers=workers or settings.scan_workers,
        output_dir=output_dir or settings.scan_output_dir,
        index_file=index_file or settings.scan_index_file,
        files_per_dir=settings.scan_files_per_dir,
        resume=not no_resume,
    )

    def on_found(citizen: Citizen, metrics: RequestMetrics) -> None:
        _console.print(f"[green]{citizen.rut}[/green] {citizen.name} ", build_metrics_text(metrics))

    def on_error(rut: Rut, error: SIIError) -> None:
        _console.print(f"[red]{rut}[/red] {type(error).__name__}: {error}")

    async def _run() -> None:
        async with SIIClient(settings, on_new_credential=CaptchaRenewalLogger()) as client:
            result = await scan(
                client=client,
                request=request,
                hooks=ScanHooks(found=on_found, error=on_error),
            )
        _console.print(
            f"\n[bold]Escaneo {result.start}..{result.end}:[/bold] "
            f"{result.found} encontrados, {result.not_found} sin registro, {result.errors} errores"
        )

    try:
        asyncio.run(_run())
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def run() -> None:
    app()


if __name__ == "__main__":
    run()
