"""The /uptime command: loss status per 15-minute window over the last hour."""

from __future__ import annotations

import logging
import math
import sys
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from .botapi import TelegramError
from .db import Database, Metric

log = logging.getLogger(__name__)

LOOKBACK_HOURS = 1
WINDOW_SECONDS = 15 * 60

GOOD = "🟩"
DEGRADED = "🟨"
DOWN = "🟥"

_EPSILON = sys.float_info.epsilon


def bucket_losses(metrics: Iterable[Metric]) -> dict[str, dict[datetime, float]]:
    """Sum loss rates per alias and per 15-minute window, both in ascending order."""
    buckets: dict[str, dict[datetime, float]] = {}
    for metric in metrics:
        secs = math.floor(metric.ts.timestamp())
        start = datetime.fromtimestamp(secs - secs % WINDOW_SECONDS, timezone.utc)
        windows = buckets.setdefault(metric.alias, {})
        windows[start] = windows[start] + metric.loss_rate if start in windows else metric.loss_rate
    return {alias: dict(sorted(windows.items())) for alias, windows in sorted(buckets.items())}


def loss_status(total_loss: float) -> str:
    """Map a window's summed loss to a coloured square."""
    if total_loss <= 50.0 - _EPSILON:
        return GOOD
    if 50.0 - _EPSILON < total_loss < 100.0 - _EPSILON:
        return DEGRADED
    return DOWN


def format_uptime(
    buckets: Mapping[str, Mapping[datetime, float]], lookback: int = LOOKBACK_HOURS
) -> str:
    """Render one line of status squares per alias."""
    lines = [f"过去{lookback} 小时延迟\n"]
    for alias, windows in buckets.items():
        squares = "".join(loss_status(total) for total in windows.values())
        lines.append(f"[{alias}]: {squares}\n")
    return "".join(lines)


async def draw_uptime(bot: Any, chat_id: int, db: Database) -> None:
    """Send the uptime summary of the last hour to the chat."""
    since = datetime.now(timezone.utc) - timedelta(hours=LOOKBACK_HOURS)
    metrics = db.query_metrics(since)
    text = format_uptime(bucket_losses(metrics), LOOKBACK_HOURS)
    try:
        await bot.send_message(chat_id, text)
    except TelegramError as exc:
        log.warning("sending uptime summary failed: %s", exc)