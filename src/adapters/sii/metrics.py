"""Contadores y métricas de requests."""

from __future__ import annotations

import threading
from collections.abc import Sequence

from core.domain.models import RequestMetrics


class RequestCounter:
    """Contador monotónico compartido por todas las llamadas de un cliente.

    Se incrementa desde cualquier worker (tareas o threads); el lock hace
    atómica la operación leer-sumar-escribir.
    """

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        return self._value


def build_metrics(
    counter: RequestCounter,
    latencies: Sequence[float],
    *,
    captcha_retries: int = 0,
) -> RequestMetrics:
    avg = sum(latencies) / len(latencies) if latencies else 0.0
    return RequestMetrics(
        total_count=counter.value,
        avg_time=avg,
        attempts=len(latencies),
        captcha_retries=captcha_retries,
    )
