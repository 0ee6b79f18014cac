import json

import httpx
import pytest
import respx

from tgprober.botapi import Bot, TelegramError

BASE = "https://api.telegram.org/bottoken"


def _ok(result):
    return httpx.Response(200, json={"ok": True, "result": result})


@pytest.mark.asyncio
async def test_send_message_posts_json():
    async with Bot("token") as bot:
        with respx.mock() as router:
            route = router.post(f"{BASE}/sendMessage").mock(
                return_value=_ok({"message_id": 5, "text": "hi"})
            )
            message = await bot.send_message(12, "hi")
    assert message == {"message_id": 5, "text": "hi"}
    assert json.loads(route.calls.last.request.content) == {"chat_id": 12, "text": "hi"}


@pytest.mark.asyncio
async def test_edit_message_text_sends_message_id():
    async with Bot("token") as bot:
        with respx.mock() as router:
            route = router.post(f"{BASE}/editMessageText").mock(return_value=_ok(True))
            result = await bot.edit_message_text(-3, 9, "done")
    assert result is True
    body = json.loads(route.calls.last.request.content)
    assert body == {"chat_id": -3, "message_id": 9, "text": "done"}


@pytest.mark.asyncio
async def test_get_updates_passes_offset():
    updates = [{"update_id": 11, "message": {"text": "/isonline"}}]
    async with Bot("token") as bot:
        with respx.mock() as router:
            route = router.post(f"{BASE}/getUpdates").mock(return_value=_ok(updates))
            result = await bot.get_updates(offset=11, timeout=0)
    assert result == updates
    assert json.loads(route.calls.last.request.content) == {"offset": 11, "timeout": 0}


@pytest.mark.asyncio
async def test_send_photo_uploads_file(tmp_path):
    image = tmp_path / "graph.jpg"
    image.write_bytes(b"\xff\xd8imagedata")
    async with Bot("token") as bot:
        with respx.mock() as router:
            route = router.post(f"{BASE}/sendPhoto").mock(return_value=_ok({"message_id": 1}))
            result = await bot.send_photo(77, image)
    assert result == {"message_id": 1}
    content = route.calls.last.request.content
    assert b'name="photo"' in content
    assert b"graph.jpg" in content
    assert b"\xff\xd8imagedata" in content
    assert b'name="chat_id"' in content


@pytest.mark.asyncio
async def test_api_error_raises_telegram_error():
    async with Bot("token") as bot:
        with respx.mock() as router:
            router.post(f"{BASE}/sendMessage").mock(
                return_value=httpx.Response(
                    400,
                    json={"ok": False, "error_code": 400, "description": "Bad Request: chat not found"},
                )
            )
            with pytest.raises(TelegramError) as info:
                await bot.send_message(1, "x")
    assert info.value.error_code == 400
    assert info.value.description == "Bad Request: chat not found"


@pytest.mark.asyncio
async def test_non_json_response_raises():
    async with Bot("token") as bot:
        with respx.mock() as router:
            router.post(f"{BASE}/sendMessage").mock(
                return_value=httpx.Response(502, text="bad gateway")
            )
            with pytest.raises(TelegramError) as info:
                await bot.send_message(1, "x")
    assert info.value.error_code == 502


@pytest.mark.asyncio
async def test_transport_error_raises():
    async with Bot("token") as bot:
        with respx.mock() as router:
            router.post(f"{BASE}/sendMessage").mock(side_effect=httpx.ConnectError("boom"))
            with pytest.raises(TelegramError, match="sendMessage"):
                await bot.send_message(1, "x")


@pytest.mark.asyncio
async def test_close_leaves_external_client_open():
    client = httpx.AsyncClient()
    bot = Bot("token", client=client)
    await bot.close()
    assert client.is_closed is False
    await client.aclose()
    assert client.is_closed is True