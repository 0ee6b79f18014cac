"""TCP connect probing and the periodic background monitor."""

from __future__ import annotations

import asyncio
import contextlib
import ipaddress
import logging
import sqlite3
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .config import Config
from .db import Database

log = logging.getLogger(__name__)

PROBE_TIMEOUT = 1.0


def parse_address(address: str) -> tuple[str, int]:
    """Split an ``ip:port`` or ``[ipv6]:port`` literal into host and port."""
    error = ValueError(f"invalid socket address syntax: {address!r}")
    host, sep, port_text = address.rpartition(":")
    if not sep or not port_text.isascii() or not port_text.isdigit():
        raise error
    try:
        if host.startswith("[") and host.endswith("]"):
            ip: ipaddress.IPv4Address | ipaddress.IPv6Address = ipaddress.IPv6Address(host[1:-1])
        else:
            ip = ipaddress.IPv4Address(host)
    except ValueError as exc:
        raise error from exc
    port = int(port_text)
    if port > 65535:
        raise error
    return str(ip), port


@dataclass(frozen=True)
class Target:
    """A resolved endpoint to probe."""

    host: str
    port: int
    alias: str


@dataclass
class ProbeResult:
    """Outcome of a series of connection attempts against one target."""

    alias: str
    total: int
    latencies: list[int] = field(default_factory=list)

    @property
    def successes(self) -> int:
        return len(self.latencies)

    @property
    def fails(self) -> int:
        return self.total - self.successes

    @property
    def average_ms(self) -> float:
        """Mean latency of successful attempts, 0.0 when none succeeded."""
        if not self.latencies:
            return 0.0
        return sum(self.latencies) / len(self.latencies)

    @property
    def loss_rate(self) -> float:
        """Percentage of failed attempts."""
        if self.total == 0:
            return float("nan")
        return self.fails / self.total * 100.0


async def probe_target(target: Target, count: int, timeout: float = PROBE_TIMEOUT) -> ProbeResult:
    """Attempt ``count`` TCP connections in turn, timing each one in milliseconds."""
    latencies: list[int] = []
    for _ in range(count):
        start = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(target.host, target.port), timeout
            )
        except (OSError, TimeoutError):
            continue
        latencies.append(int((time.perf_counter() - start) * 1000))
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
    return ProbeResult(alias=target.alias, total=count, latencies=latencies)


async def monitor_loop(cfg: Config, db: Database, targets: Sequence[Target]) -> None:
    """Probe every target forever, storing one metric per target per round."""
    log.debug("Spawning monitor")
    interval = cfg.probe_count
    while True:
        log.debug("Checking interval")
        now = datetime.now(timezone.utc)
        for target in targets:
            result = await probe_target(target, cfg.probe_count)
            try:
                db.insert_metric(target.alias, now, result.average_ms, result.loss_rate)
            except sqlite3.Error as exc:
                log.error("写入 metrics 失败 [%s]: %s", target.alias, exc)
        await asyncio.sleep(interval)


def spawn_monitor(cfg: Config, db: Database, targets: Sequence[Target]) -> asyncio.Task[None]:
    """Start :func:`monitor_loop` as a task on the running event loop."""
    return asyncio.create_task(monitor_loop(cfg, db, list(targets)))