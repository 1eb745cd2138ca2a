"""
Process metrics for the /metrics endpoint.
psutil calls can block briefly; they run in the default executor.
"""

import asyncio
import os
import time

import psutil

from models.schemas import ProcessMetrics

_STARTED = time.monotonic()


class SystemService:
    """Stateless: reads the current process each call."""

    @staticmethod
    async def process_metrics(broker_channels: dict[str, str] | None = None) -> ProcessMetrics:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _collect, broker_channels or {})


def _collect(broker_channels: dict[str, str]) -> ProcessMetrics:
    proc = psutil.Process(os.getpid())
    with proc.oneshot():
        cpu = proc.cpu_percent(interval=None)
        mem = proc.memory_info()
        mem_percent = proc.memory_percent()
        threads = proc.num_threads()
        try:
            open_files = len(proc.open_files())
        except (psutil.AccessDenied, psutil.NoSuchProcess):
            open_files = -1
    return ProcessMetrics(
        pid=proc.pid,
        cpu_percent=round(cpu, 2),
        memory_rss_mb=round(mem.rss / (1024 * 1024), 2),
        memory_percent=round(mem_percent, 2),
        threads=threads,
        open_files=open_files,
        uptime_seconds=round(time.monotonic() - _STARTED, 2),
        broker_channels=broker_channels,
    )
