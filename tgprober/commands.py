"""Handlers for the /start, /stop and /isonline bot commands."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from .botapi import TelegramError
from .config import Config
from .db import Database
from .monitor import ProbeResult, Target, probe_target

log = logging.getLogger(__name__)

SUBSCRIBED_TEXT = "✅ 已启用订阅"
UNSUBSCRIBED_TEXT = "❌ 已取消订阅"
PLACEHOLDER_TEXT = "🕒 正在测试中…"

_background: set[asyncio.Task[None]] = set()


def _subscribed(db: Database, chat_id: int) -> bool:
    try:
        return db.is_subscribed(chat_id)
    except sqlite3.Error:
        return False


async def start_command(bot: Any, chat_id: int, user_id: int, cfg: Config, db: Database) -> None:
    """Subscribe the chat when an admin asks."""
    if user_id not in cfg.admins:
        return
    try:
        db.add_subscription(chat_id)
    except sqlite3.Error as exc:
        log.warning("adding subscription for %s failed: %s", chat_id, exc)
    await bot.send_message(chat_id, SUBSCRIBED_TEXT)


async def stop_command(bot: Any, chat_id: int, user_id: int, cfg: Config, db: Database) -> None:
    """Unsubscribe the chat when an admin asks."""
    if user_id not in cfg.admins:
        return
    try:
        db.remove_subscription(chat_id)
    except sqlite3.Error as exc:
        log.warning("removing subscription for %s failed: %s", chat_id, exc)
    await bot.send_message(chat_id, UNSUBSCRIBED_TEXT)


def format_report(results: Iterable[ProbeResult], finished_at: datetime) -> str:
    """Render live probe results as the reply text."""
    parts = [f"🟢 测试完成，完成时间：{finished_at:%Y-%m-%d %H:%M:%S}\n结果：\n"]
    for result in results:
        avg = sum(result.latencies) // len(result.latencies) if result.latencies else 0
        if result.successes == result.total:
            parts.append(f"{result.alias}: ✔ 全部成功，平均延迟 {avg} ms\n")
        elif result.successes == 0:
            parts.append(f"{result.alias}: ❌ 全部失败\n")
        else:
            parts.append(
                f"{result.alias}: 部分成功，平均延迟 {avg} ms，丢包率 {result.loss_rate:.1f}%\n"
            )
    return "".join(parts)


async def _probe_and_report(
    bot: Any, chat_id: int, message_id: int, count: int, targets: Sequence[Target]
) -> None:
    outcomes = await asyncio.gather(
        *(probe_target(target, count) for target in targets), return_exceptions=True
    )
    results = [outcome for outcome in outcomes if isinstance(outcome, ProbeResult)]
    report = format_report(results, datetime.now())
    try:
        await bot.edit_message_text(chat_id, message_id, report)
    except TelegramError as exc:
        log.warning("editing report message failed: %s", exc)


async def isonline_command(
    bot: Any,
    chat_id: int,
    user_id: int,
    cfg: Config,
    db: Database,
    targets: Sequence[Target],
) -> asyncio.Task[None] | None:
    """Post a placeholder, probe all targets in the background and edit in the report.

    Returns the background task, or ``None`` when the chat is not subscribed.
    """
    if not _subscribed(db, chat_id):
        return None
    placeholder = await bot.send_message(chat_id, PLACEHOLDER_TEXT)
    task = asyncio.create_task(
        _probe_and_report(bot, chat_id, placeholder["message_id"], cfg.probe_count, list(targets))
    )
    _background.add(task)
    task.add_done_callback(_background.discard)
    return task