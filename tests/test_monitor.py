import asyncio
import contextlib
import socket
from datetime import datetime, timedelta, timezone

import pytest

from tgprober.config import Config
from tgprober.db import Database
from tgprober.monitor import ProbeResult, Target, parse_address, probe_target, spawn_monitor


async def _accept(reader, writer):
    writer.close()


def _closed_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_parse_ipv4_address():
    assert parse_address("127.0.0.1:8080") == ("127.0.0.1", 8080)


def test_parse_ipv6_address():
    assert parse_address("[::1]:53") == ("::1", 53)


@pytest.mark.parametrize(
    "address",
    ["localhost:80", "10.0.0.1", "10.0.0.1:", "10.0.0.1:70000", "::1:53", "10.0.0.1:http"],
)
def test_parse_rejects_invalid_addresses(address):
    with pytest.raises(ValueError):
        parse_address(address)


def test_probe_result_statistics():
    result = ProbeResult(alias="a", total=4, latencies=[10, 30])
    assert result.successes == 2
    assert result.fails == 2
    assert result.average_ms == sum(result.latencies) / 2
    assert result.loss_rate == result.fails / result.total * 100.0


def test_probe_result_without_successes():
    result = ProbeResult(alias="a", total=3)
    assert result.average_ms == 0.0
    assert result.loss_rate == 100.0


@pytest.mark.asyncio
async def test_probe_open_port_succeeds():
    server = await asyncio.start_server(_accept, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    async with server:
        result = await probe_target(Target("127.0.0.1", port, "open"), 3)
    assert result.alias == "open"
    assert result.total == 3
    assert result.successes == 3
    assert result.loss_rate == 0.0
    assert all(latency >= 0 for latency in result.latencies)


@pytest.mark.asyncio
async def test_probe_closed_port_fails():
    result = await probe_target(Target("127.0.0.1", _closed_port(), "closed"), 2)
    assert result.fails == 2
    assert result.latencies == []
    assert result.loss_rate == 100.0


@pytest.mark.asyncio
async def test_spawn_monitor_records_metrics():
    server = await asyncio.start_server(_accept, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    db = Database(":memory:")
    cfg = Config(token="token", probe_count=1)
    metrics = []
    async with server:
        task = spawn_monitor(cfg, db, [Target("127.0.0.1", port, "local")])
        try:
            for _ in range(100):
                metrics = db.query_metrics(datetime.now(timezone.utc) - timedelta(minutes=1))
                if metrics:
                    break
                await asyncio.sleep(0.05)
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
    db.close()
    assert [m.alias for m in metrics] == ["local"]
    assert metrics[0].loss_rate == 0.0