import asyncio
import logging
import time

import pytest
from PIL import Image

from core.background import (
    ASSET,
    FALLBACK,
    BackgroundLoadError,
    OneShotLatch,
    load_background_image,
    resolve_background,
)


def test_latch_accepts_first_commit_only():
    latch = OneShotLatch()
    assert not latch.committed

    assert latch.commit("asset") is True
    assert latch.commit("fallback") is False
    assert latch.committed
    assert latch.value == "asset"


def test_asset_wins_when_loaded_before_timeout(background_image):
    async def load():
        return background_image

    result = asyncio.run(resolve_background(load, timeout=5))

    assert result.source == ASSET
    assert result.image is background_image


def test_load_failure_falls_back_without_waiting_for_timeout(caplog):
    async def load():
        raise BackgroundLoadError("missing")

    started = time.monotonic()
    with caplog.at_level(logging.WARNING, logger="core.background"):
        result = asyncio.run(resolve_background(load, timeout=5))

    assert result.source == FALLBACK
    assert result.image is None
    assert time.monotonic() - started < 2
    assert "using default background" in caplog.text


def test_timeout_falls_back(background_image):
    async def load():
        await asyncio.sleep(1)
        return background_image

    result = asyncio.run(resolve_background(load, timeout=0.05))

    assert result.source == FALLBACK
    assert result.image is None


def test_late_asset_is_ignored(background_image, caplog):
    finished = []

    async def load():
        await asyncio.sleep(0.2)
        finished.append(True)
        return background_image

    async def scenario():
        result = await resolve_background(load, timeout=0.02)
        # Let the slow load finish inside the same loop.
        await asyncio.sleep(0.4)
        return result

    with caplog.at_level(logging.DEBUG, logger="core.background"):
        result = asyncio.run(scenario())

    assert finished == [True]
    assert result.source == FALLBACK
    assert result.image is None
    assert "arrived after the timeout" in caplog.text


def test_load_background_image_from_file(tmp_path):
    path = tmp_path / "bg.png"
    Image.new("RGB", (20, 10), (255, 0, 0)).save(path)

    img = asyncio.run(load_background_image(path))

    assert img.mode == "RGBA"
    assert img.size == (20, 10)


def test_load_background_image_missing(tmp_path):
    with pytest.raises(BackgroundLoadError):
        asyncio.run(load_background_image(tmp_path / "missing.png"))


def test_load_background_image_undecodable(tmp_path):
    path = tmp_path / "bg.png"
    path.write_bytes(b"definitely not a png")

    with pytest.raises(BackgroundLoadError):
        asyncio.run(load_background_image(path))
