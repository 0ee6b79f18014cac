"""The /graph command: latency chart of the last hour."""

from __future__ import annotations

import asyncio
import math
import os
import sqlite3
import tempfile
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from matplotlib.figure import Figure

from .db import Database, Metric

X_TICKS = (0.0, 20.0, 40.0, 60.0)
TITLE = "过去 1 小时延迟曲线"
X_LABEL = "时间 (minutes ago)"
Y_LABEL = "延迟 (ms)"


def build_series(
    rows: Iterable[Metric], since: datetime
) -> dict[str, list[tuple[float, float]]]:
    """Group latencies by alias as (minutes since ``since``, latency) points."""
    base = math.floor(since.timestamp())
    series: dict[str, list[tuple[float, float]]] = {}
    for row in rows:
        minutes = (math.floor(row.ts.timestamp()) - base) / 60.0
        series.setdefault(row.alias, []).append((minutes, row.latency))
    return dict(sorted(series.items()))


def render_graph(
    series: Mapping[str, Sequence[tuple[float, float]]], path: str | os.PathLike[str]
) -> Path:
    """Draw the latency lines and save them; the format follows the file extension."""
    figure = Figure(figsize=(8, 6))
    axes = figure.add_subplot()
    for alias, points in series.items():
        axes.plot([x for x, _ in points], [y for _, y in points], label=alias)
    axes.set_xlim(X_TICKS[0], X_TICKS[-1])
    axes.set_xticks(X_TICKS, [f"{int(60.0 - tick)}m ago" for tick in X_TICKS])
    axes.set_title(TITLE)
    axes.set_xlabel(X_LABEL)
    axes.set_ylabel(Y_LABEL)
    axes.grid(True)
    if series:
        axes.legend()
    target = Path(path)
    figure.savefig(target)
    return target


async def graph_command(bot: Any, chat_id: int, db: Database) -> None:
    """Render the last hour of latencies and send the chart as a photo."""
    now = datetime.now(timezone.utc)
    since = now - timedelta(hours=1)
    try:
        rows = db.query_metrics(since)
    except sqlite3.Error:
        rows = []
    series = build_series(rows, since)
    with tempfile.TemporaryDirectory() as workdir:
        image = Path(workdir) / f"graph_{int(now.timestamp())}.jpg"
        await asyncio.to_thread(render_graph, series, image)
        await bot.send_photo(chat_id, image)