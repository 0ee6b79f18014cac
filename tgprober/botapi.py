"""Minimal asynchronous client for the Telegram Bot HTTP API."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import httpx

API_URL = "https://api.telegram.org"
REQUEST_TIMEOUT = 30.0


class TelegramError(Exception):
    """A failed Bot API request."""

    def __init__(self, description: str, error_code: int | None = None) -> None:
        super().__init__(description)
        self.description = description
        self.error_code = error_code


class Bot:
    """Sends Bot API requests over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        token: str,
        proxy: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base = f"{API_URL}/bot{token}"
        self._owns_client = client is None
        if client is None:
            options: dict[str, Any] = {"timeout": REQUEST_TIMEOUT}
            if proxy:
                options["proxy"] = proxy
            client = httpx.AsyncClient(**options)
        self._client = client

    async def __aenter__(self) -> Bot:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _call(
        self,
        method: str,
        params: dict[str, Any],
        *,
        files: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        url = f"{self._base}/{method}"
        params = {key: value for key, value in params.items() if value is not None}
        extra: dict[str, Any] = {} if timeout is None else {"timeout": timeout}
        try:
            if files:
                data = {key: str(value) for key, value in params.items()}
                response = await self._client.post(url, data=data, files=files, **extra)
            else:
                response = await self._client.post(url, json=params, **extra)
        except httpx.HTTPError as exc:
            raise TelegramError(f"request to {method} failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise TelegramError(
                f"unexpected response from {method}: HTTP {response.status_code}",
                response.status_code,
            ) from exc
        if not isinstance(payload, dict) or not payload.get("ok"):
            description = "unknown error"
            code = response.status_code
            if isinstance(payload, dict):
                description = payload.get("description", description)
                code = payload.get("error_code", code)
            raise TelegramError(description, code)
        return payload.get("result")

    async def send_message(self, chat_id: int, text: str) -> dict[str, Any]:
        """Send a text message and return the sent message."""
        return await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def edit_message_text(self, chat_id: int, message_id: int, text: str) -> Any:
        """Replace the text of an earlier message."""
        return await self._call(
            "editMessageText", {"chat_id": chat_id, "message_id": message_id, "text": text}
        )

    async def send_photo(self, chat_id: int, path: str | os.PathLike[str]) -> dict[str, Any]:
        """Upload a local image file as a photo."""
        photo = Path(path)
        files = {"photo": (photo.name, photo.read_bytes(), "application/octet-stream")}
        return await self._call("sendPhoto", {"chat_id": chat_id}, files=files)

    async def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict[str, Any]]:
        """Long-poll for updates newer than ``offset``."""
        result = await self._call(
            "getUpdates",
            {"offset": offset, "timeout": timeout},
            timeout=timeout + REQUEST_TIMEOUT,
        )
        return list(result or [])

    async def close(self) -> None:
        """Release the HTTP client if this bot created it."""
        if self._owns_client:
            await self._client.aclose()