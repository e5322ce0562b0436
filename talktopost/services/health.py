"""On-demand provider health probes."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping

from talktopost.services import errors

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class HealthReport:
    provider: str
    status: str
    detail: str | None
    latency_ms: float


class ProviderHealthRegistry:
    def __init__(self, probes: Mapping[str, Probe]) -> None:
        self._probes = dict(probes)

    @property
    def providers(self) -> list[str]:
        return sorted(self._probes)

    async def check(self, provider: str) -> HealthReport:
        probe = self._probes.get(provider)
        if probe is None:
            raise errors.NotFound(f"Unknown provider '{provider}'")

        started = time.perf_counter()
        try:
            await probe()
        except Exception as exc:  # every failure becomes an error report
            logger.warning("Health probe %s failed: %s", provider, exc)
            status, detail = "error", str(exc) or type(exc).__name__
        else:
            status, detail = "ok", None
        latency_ms = round((time.perf_counter() - started) * 1000, 2)
        return HealthReport(provider=provider, status=status, detail=detail, latency_ms=latency_ms)


__all__ = ["HealthReport", "ProviderHealthRegistry"]
