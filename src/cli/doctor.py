"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_ssl_context, resolve_ca_bundle
from adapters.sii import SIIClient
from core.config import AppSettings, write_user_env_vars
from core.domain.errors import SIIError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_captcha(settings: AppSettings) -> tuple[bool, str]:
    """Obtain one captcha credential end to end (HTTP + TLS + decoding)."""

    try:
        async with SIIClient(settings) as client:
            credential = await client.captcha.ensure_credential()
        return True, f"solution={credential.solution} requests={client.request_count}"
    except SIIError as exc:
        cause = exc.__cause__ or exc
        return False, f"{type(cause).__name__}: {cause}"


def _check_tls(settings: AppSettings) -> tuple[bool, str]:
    try:
        build_ssl_context(settings)
    except (OSError, ValueError) as exc:
        return False, str(exc)
    bundle = resolve_ca_bundle(settings)
    mode = "strict" if settings.tls_verify else "PERMISSIVE (no peer verification)"
    return True, f"{mode}; extra CA: {bundle or 'none'}"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="SII-LOOKUP Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("Captcha URL", "OK", settings.captcha_url)
    table.add_row("Lookup URL", "OK", settings.lookup_url)
    table.add_row(
        "Retries",
        "OK",
        f"captcha_fetch={settings.captcha_fetch_max_attempts} "
        f"lookup={settings.lookup_max_attempts} captcha_rejections={settings.captcha_max_retries}",
    )

    ok_tls, detail_tls = _check_tls(settings)
    table.add_row("TLS", "OK" if ok_tls else "FAIL", detail_tls)

    ok_captcha = False
    if ok_tls:
        ok_captcha, detail_captcha = asyncio.run(_check_captcha(settings))
        table.add_row("Captcha", "OK" if ok_captcha else "FAIL", detail_captcha)

    _console.print(table)

    if ok_tls and not ok_captcha and settings.tls_verify:
        _console.print(
            "\n[yellow]Note:[/yellow] zeus.sii.cl may present a chain missing from the system store. "
            "Add its PEM with `doctor setup-tls` before falling back to permissive mode."
        )


@app.command(name="setup-tls")
def setup_tls() -> None:
    """Interactive TLS setup (stores config in the user config .env)."""

    ca_bundle = typer.prompt("Extra CA bundle path (empty for none)", default="", show_default=False).strip()
    verify = typer.confirm("Verify server certificates (recommended)?", default=True)

    values = {"SII_LOOKUP_TLS_VERIFY": "true" if verify else "false"}
    if ca_bundle:
        values["SII_LOOKUP_CA_BUNDLE_PATH"] = ca_bundle

    env_path = write_user_env_vars(values)
    _console.print(f"[green]Saved TLS config to:[/green] {env_path}")
