"""Telegram bot that probes TCP endpoints and reports latency, loss and uptime."""

__version__ = "0.0.1"