import re
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tgprober.db import Database, Metric
from tgprober.graph import build_series, graph_command, render_graph

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8"


def _at(hour, minute, second=0, micro=0):
    return datetime(2024, 5, 1, hour, minute, second, micro, tzinfo=timezone.utc)


class PhotoBot:
    def __init__(self):
        self.photos = []

    async def send_photo(self, chat_id, path):
        path = Path(path)
        self.photos.append((chat_id, path, path.read_bytes()))
        return {"message_id": 1}


@pytest.fixture
def database(tmp_path):
    db = Database(tmp_path / "graph.db")
    yield db
    db.close()


def test_build_series_points():
    rows = [
        Metric("a", _at(10, 0), 12.5, 0.0),
        Metric("b", _at(10, 15), 5.0, 0.0),
        Metric("a", _at(10, 30), 20.0, 0.0),
    ]
    series = build_series(rows, _at(10, 0))
    assert series == {"a": [(0.0, 12.5), (30.0, 20.0)], "b": [(15.0, 5.0)]}


def test_build_series_sorted_aliases():
    rows = [Metric(alias, _at(10, 5), 1.0, 0.0) for alias in ("zeta", "alpha", "mid")]
    assert list(build_series(rows, _at(10, 0))) == ["alpha", "mid", "zeta"]


def test_build_series_truncates_seconds():
    rows = [Metric("a", _at(10, 0, 30, 900000), 1.0, 0.0)]
    assert build_series(rows, _at(10, 0)) == {"a": [(0.5, 1.0)]}


def test_build_series_empty():
    assert build_series([], _at(10, 0)) == {}


def test_render_png(tmp_path):
    target = tmp_path / "chart.png"
    result = render_graph({"a": [(0.0, 1.0), (30.0, 3.0)]}, target)
    assert result == target
    assert target.read_bytes().startswith(PNG_MAGIC)


def test_render_jpeg(tmp_path):
    target = tmp_path / "chart.jpg"
    render_graph({"a": [(0.0, 1.0)], "b": [(10.0, 2.0)]}, target)
    assert target.read_bytes().startswith(JPEG_MAGIC)


def test_render_svg_empty_series(tmp_path):
    target = tmp_path / "chart.svg"
    render_graph({}, target)
    assert "<svg" in target.read_text(encoding="utf-8")


@pytest.mark.asyncio
async def test_graph_command_sends_jpeg(database):
    now = datetime.now(timezone.utc)
    database.insert_metric("web", now - timedelta(minutes=10), 25.0, 0.0)
    database.insert_metric("web", now - timedelta(minutes=5), 30.0, 0.0)
    bot = PhotoBot()
    await graph_command(bot, 9, database)
    assert len(bot.photos) == 1
    chat_id, path, data = bot.photos[0]
    assert chat_id == 9
    assert re.fullmatch(r"graph_\d+\.jpg", path.name)
    assert data.startswith(JPEG_MAGIC)
    assert not path.exists()


@pytest.mark.asyncio
async def test_graph_command_closed_database_still_sends(database):
    database.close()
    bot = PhotoBot()
    await graph_command(bot, 4, database)
    assert [chat for chat, _, _ in bot.photos] == [4]
    assert bot.photos[0][2].startswith(JPEG_MAGIC)