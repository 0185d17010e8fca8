"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en `lookup` y `scan`.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import Citizen, RequestMetrics


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Se omite en modos no interactivos (`--json`) para no ensuciar la salida.
    """

    title = Text("SII-LOOKUP", style="bold cyan")
    subtitle = Text("Consulta de contribuyentes • Captcha • Escaneo masivo", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_citizen_table(citizen: Citizen) -> Table:
    """Tabla con nombre y actividades del contribuyente."""

    table = Table(title=f"{citizen.rut} · {citizen.name}")
    table.add_column("Código", style="cyan", no_wrap=True)
    table.add_column("Actividad", style="white")
    for activity in citizen.activities:
        table.add_row(activity.code, activity.name or "-")
    if not citizen.activities:
        table.add_row("-", "Sin actividades registradas")
    return table


def build_metrics_text(metrics: RequestMetrics) -> Text:
    text = Text(style="dim")
    text.append(f"requests={metrics.total_count} ")
    text.append(f"intentos={metrics.attempts} ")
    text.append(f"latencia_media={metrics.avg_time:.2f}s")
    if metrics.captcha_retries:
        text.append(f" captcha_rechazados={metrics.captcha_retries}", style="yellow")
    return text
