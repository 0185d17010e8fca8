"""Escaneo masivo de RUTs.

Recorre un rango de RUNs, calcula el DV de cada uno, consulta el SII con un
único cliente compartido por N workers y guarda cada contribuyente encontrado
como JSON. El último RUN encontrado se persiste para poder reanudar.

La CLI delega aquí todo el trabajo; la presentación (progreso, colores) llega
por `ScanHooks`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from adapters.json_exporter import citizen_output_path, export_citizen_json
from core.domain.errors import NotFoundError, SIIError
from core.domain.models import Citizen, RequestMetrics
from core.domain.rut import RUT_MAX_BODY_DIGITS, Rut
from core.interfaces.lookup import RutLookup

logger = logging.getLogger(__name__)

MAX_RUN = 10**RUT_MAX_BODY_DIGITS - 1


@dataclass
class ScanRequest:
    """Parámetros del escaneo. `end` es exclusivo."""

    start: int = 1
    end: int = 30_000_000
    workers: int = 10
    output_dir: Path = Path("output")
    index_file: Path = Path("last_run_idx.txt")
    files_per_dir: int = 10_000
    resume: bool = True


@dataclass
class ScanHooks:
    """Callbacks opcionales para capas de UI."""

    found: Callable[[Citizen, RequestMetrics], None] | None = None
    not_found: Callable[[Rut], None] | None = None
    error: Callable[[Rut, SIIError], None] | None = None


@dataclass
class ScanResult:
    start: int
    end: int
    found: int = 0
    not_found: int = 0
    errors: int = 0
    last_found_run: int | None = None
    written: list[Path] = field(default_factory=list)


def read_last_run(index_file: Path) -> int:
    """Último RUN guardado, o 0 si no hay índice."""

    if not index_file.exists():
        return 0
    text = index_file.read_text(encoding="utf-8").strip()
    if not text:
        return 0
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError(f"Índice corrupto en {index_file}: {text!r}") from exc


def save_last_run(index_file: Path, run: int) -> None:
    index_file.parent.mkdir(parents=True, exist_ok=True)
    index_file.write_text(f"{run}", encoding="utf-8")


def resolve_start(request: ScanRequest) -> int:
    if not request.resume:
        return request.start
    return max(request.start, read_last_run(request.index_file))


async def scan(
    *,
    client: RutLookup,
    request: ScanRequest,
    hooks: ScanHooks | None = None,
) -> ScanResult:
    hooks = hooks or ScanHooks()
    if request.start < 1 or request.end > MAX_RUN + 1:
        raise ValueError(f"Rango fuera de límites: {request.start}..{request.end}")
    start = resolve_start(request)
    result = ScanResult(start=start, end=request.end)
    if start >= request.end:
        logger.info(f"Nada que escanear: inicio {start} >= fin {request.end}")
        return result

    queue: asyncio.Queue[int | None] = asyncio.Queue(maxsize=request.workers)

    def record_found(citizen: Citizen) -> None:
        # Sin awaits: no hay intercalado entre workers mientras se escribe.
        path = export_citizen_json(
            citizen=citizen,
            output_path=citizen_output_path(
                citizen=citizen,
                output_dir=request.output_dir,
                files_per_dir=request.files_per_dir,
            ),
        )
        result.written.append(path)
        result.found += 1
        run = int(citizen.run)
        if result.last_found_run is None or run > result.last_found_run:
            result.last_found_run = run
            save_last_run(request.index_file, run)

    async def worker() -> None:
        while True:
            run = await queue.get()
            try:
                if run is None:
                    return
                rut = Rut.from_number(run)
                try:
                    citizen, metrics = await client.lookup(rut.formatted)
                except NotFoundError:
                    result.not_found += 1
                    if hooks.not_found:
                        hooks.not_found(rut)
                    continue
                except SIIError as exc:
                    result.errors += 1
                    logger.error(f"Error consultando {rut}: {exc}")
                    if hooks.error:
                        hooks.error(rut, exc)
                    continue

                record_found(citizen)
                logger.info(f"Encontrado: {citizen.rut}: {citizen.name}")
                if hooks.found:
                    hooks.found(citizen, metrics)
            finally:
                queue.task_done()

    async def producer() -> None:
        for run in range(start, request.end):
            await queue.put(run)
        for _ in range(request.workers):
            await queue.put(None)

    tasks = [asyncio.create_task(worker()) for _ in range(request.workers)]
    tasks.append(asyncio.create_task(producer()))
    try:
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()

    return result
