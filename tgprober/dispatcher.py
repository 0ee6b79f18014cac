"""Parsing of bot commands and the long-polling update loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from collections.abc import Sequence
from enum import Enum
from typing import Any

from .botapi import TelegramError
from .commands import isonline_command, start_command, stop_command
from .config import Config
from .db import Database
from .graph import graph_command
from .monitor import Target
from .uptime import draw_uptime

log = logging.getLogger(__name__)

PUBLIC_CHAT_TYPES = frozenset({"group", "supergroup", "channel"})
RETRY_DELAY = 1.0


class Command(Enum):
    """The commands the bot answers to."""

    START = ("start", "启用订阅 (仅限管理员)")
    STOP = ("stop", "取消订阅 (仅限管理员)")
    ISONLINE = ("isonline", "检查在线状态")
    GRAPH = ("graph", "获取延迟曲线")
    UPTIME = ("uptime", "简单获取前2小时在线状态")

    def __init__(self, command: str, description: str) -> None:
        self.command = command
        self.description = description


_BY_NAME = {command.command: command for command in Command}


def parse_command(text: str | None, bot_username: str | None = None) -> Command | None:
    """Recognise ``/name`` or ``/name@bot``; commands take no arguments."""
    if not text:
        return None
    words = text.split(maxsplit=1)
    if not words or not words[0].startswith("/"):
        return None
    name, at, mention = words[0][1:].partition("@")
    if at and bot_username is not None and mention.casefold() != bot_username.casefold():
        return None
    if len(words) > 1:
        return None
    return _BY_NAME.get(name)


def _subscribed(db: Database, chat_id: int) -> bool:
    try:
        return db.is_subscribed(chat_id)
    except sqlite3.Error:
        return False


async def _report_failure(bot: Any, chat_id: int, text: str) -> None:
    with contextlib.suppress(TelegramError):
        await bot.send_message(chat_id, text)


async def handle_update(
    bot: Any,
    update: dict[str, Any],
    cfg: Config,
    db: Database,
    targets: Sequence[Target],
) -> None:
    """Run the command carried by one update, if any; only group chats are served."""
    message = update.get("message")
    if not isinstance(message, dict):
        return
    command = parse_command(message.get("text"))
    if command is None:
        return
    chat = message.get("chat") or {}
    if chat.get("type") not in PUBLIC_CHAT_TYPES:
        return
    sender = message.get("from")
    if not sender:
        return
    chat_id = int(chat["id"])
    user_id = int(sender["id"])

    match command:
        case Command.START:
            await start_command(bot, chat_id, user_id, cfg, db)
        case Command.STOP:
            await stop_command(bot, chat_id, user_id, cfg, db)
        case Command.ISONLINE:
            await isonline_command(bot, chat_id, user_id, cfg, db, targets)
        case Command.GRAPH:
            if _subscribed(db, chat_id):
                try:
                    await graph_command(bot, chat_id, db)
                except Exception as exc:
                    await _report_failure(bot, chat_id, f"❌ 绘制图表失败: {exc}")
        case Command.UPTIME:
            try:
                await draw_uptime(bot, chat_id, db)
            except Exception as exc:
                await _report_failure(bot, chat_id, f"❌ 绘制过去二小时在线状态失败: {exc}")


async def _handle_logged(
    bot: Any, update: dict[str, Any], cfg: Config, db: Database, targets: Sequence[Target]
) -> None:
    try:
        await handle_update(bot, update, cfg, db, targets)
    except Exception:
        log.exception("handling update %s failed", update.get("update_id"))


async def dispatch(bot: Any, cfg: Config, db: Database, targets: Sequence[Target]) -> None:
    """Poll for updates forever, handling each one in its own task."""
    offset: int | None = None
    pending: set[asyncio.Task[None]] = set()
    targets = list(targets)
    try:
        while True:
            try:
                updates = await bot.get_updates(offset)
            except TelegramError as exc:
                log.warning("polling for updates failed: %s", exc)
                await asyncio.sleep(RETRY_DELAY)
                continue
            for update in updates:
                offset = int(update["update_id"]) + 1
                task = asyncio.create_task(_handle_logged(bot, update, cfg, db, targets))
                pending.add(task)
                task.add_done_callback(pending.discard)
    finally:
        for task in pending:
            task.cancel()