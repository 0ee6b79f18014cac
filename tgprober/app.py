"""Program entry point: configuration, logging, storage, monitor and bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sqlite3
import sys
from collections.abc import Sequence

from .botapi import Bot
from .config import ConfigError, load_config
from .db import Database
from .dispatcher import dispatch
from .monitor import Target, parse_address, spawn_monitor

log = logging.getLogger(__name__)

DEFAULT_CONFIG = "config.toml"
DEFAULT_DB = "db.db"
TRACE = 5
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "off": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}

_LEVEL_NAMES = {
    TRACE: "TRACE",
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "ERROR",
}


class _Formatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        stamp = self.formatTime(record, _DATE_FORMAT)
        name = _LEVEL_NAMES.get(record.levelno, record.levelname)
        text = f"[{stamp} {name:<5}] {record.getMessage()}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def setup_logging(level: str) -> int:
    """Install the log format on the root logger and return the numeric level."""
    try:
        value = _LEVELS[level.strip().lower()]
    except KeyError:
        raise ValueError(f"unknown log level: {level!r}") from None
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_tgprober", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(_Formatter())
    handler._tgprober = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(value)
    return value


async def run(
    config_path: str | os.PathLike[str] = DEFAULT_CONFIG,
    db_path: str | os.PathLike[str] = DEFAULT_DB,
) -> None:
    """Start the monitor and serve bot commands until cancelled."""
    cfg = load_config(config_path)
    setup_logging(cfg.level_name())
    log.info("日志级别 = %s", cfg.level_name())

    with Database(db_path) as db:
        log.info("Database Initialization Complete")
        targets = [Target(*parse_address(t.address), alias=t.alias) for t in cfg.targets]
        log.info("targets: %s", targets)

        monitor = spawn_monitor(cfg, db, targets)
        log.info("Spawning %d targets", len(targets))
        try:
            async with Bot(cfg.token) as bot:
                await dispatch(bot, cfg, db, targets)
        finally:
            monitor.cancel()
            log.info("Dispatcher stopped")


def main(argv: Sequence[str] | None = None) -> int:
    """Command-line entry point; returns the exit status."""
    parser = argparse.ArgumentParser(
        prog="tgprober", description="Probe TCP endpoints and report on Telegram."
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="configuration file")
    parser.add_argument("--db", default=DEFAULT_DB, help="SQLite database file")
    args = parser.parse_args(argv)
    try:
        asyncio.run(run(args.config, args.db))
    except KeyboardInterrupt:
        return 0
    except (ConfigError, ValueError, OSError, sqlite3.Error) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())