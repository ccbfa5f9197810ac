"""Certificate background resolution.

The background asset is optional. Loading it races a fixed timeout; whichever
finishes first decides the background, and the other outcome is dropped:

- asset loaded in time        -> "asset"
- asset failed (any reason)   -> "fallback" straight away
- timeout fired first         -> "fallback"; a later successful load is ignored
"""

from __future__ import annotations

import asyncio
import io
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Set

import requests
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ASSET = "asset"
FALLBACK = "fallback"

# Background loads that lost the race are still running; hold a reference
# until they finish so they are not garbage collected mid-flight.
_pending_loads: Set[asyncio.Task] = set()

# Asset reads must not use the default executor; asyncio.run() joins it on exit.
_LOADER_POOL = ThreadPoolExecutor(max_workers=4, thread_name_prefix="certificate-bg")


class BackgroundLoadError(Exception):
    """The background asset is missing or could not be decoded."""


@dataclass(frozen=True)
class BackgroundResolution:
    source: str
    image: Optional[Image.Image] = None


class OneShotLatch:
    """Accepts exactly one value. Later commits are no-ops."""

    def __init__(self):
        self._committed = False
        self._value: Any = None

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def value(self) -> Any:
        return self._value

    def commit(self, value: Any) -> bool:
        if self._committed:
            return False
        self._committed = True
        self._value = value
        return True


def _read_image(source: str, timeout: float) -> Image.Image:
    if source.startswith(("http://", "https://")):
        try:
            resp = requests.get(source, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise BackgroundLoadError(f"Could not fetch background {source}: {exc}") from exc
        data = resp.content
    else:
        path = Path(source)
        if not path.exists():
            raise BackgroundLoadError(f"Background image not found: {path}")
        data = path.read_bytes()

    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise BackgroundLoadError(f"Could not decode background {source}: {exc}") from exc
    return img.convert("RGBA")


async def load_background_image(source: str | Path, *, timeout: float = 10.0) -> Image.Image:
    """Load and decode the background asset off the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_LOADER_POOL, _read_image, str(source), timeout)


async def resolve_background(
    load: Callable[[], Awaitable[Image.Image]],
    timeout: float,
) -> BackgroundResolution:
    """Race `load()` against `timeout` seconds. Never raises for load failures."""
    loop = asyncio.get_running_loop()
    latch = OneShotLatch()
    decided: asyncio.Future = loop.create_future()

    def _commit(resolution: BackgroundResolution) -> bool:
        if not latch.commit(resolution):
            return False
        if not decided.done():
            decided.set_result(resolution)
        return True

    async def _run_load() -> None:
        try:
            image = await load()
        except Exception as exc:
            logger.warning("Background image unavailable, using default background: %s", exc)
            _commit(BackgroundResolution(FALLBACK))
            return
        if not _commit(BackgroundResolution(ASSET, image)):
            logger.debug("Background image arrived after the timeout; ignoring it")

    def _on_timeout() -> None:
        if _commit(BackgroundResolution(FALLBACK)):
            logger.warning("Background image did not load within %.1fs; using default background", timeout)

    task = asyncio.create_task(_run_load())
    _pending_loads.add(task)
    task.add_done_callback(_pending_loads.discard)
    timer = loop.call_later(timeout, _on_timeout)
    try:
        return await decided
    finally:
        timer.cancel()
