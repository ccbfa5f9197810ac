from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from PIL import Image

from core.background import BackgroundResolution, load_background_image, resolve_background
from core.participants import ParticipantRecord
from core.settings_manager import CertificateSettings
from core.surface import RenderSurface

logger = logging.getLogger(__name__)

BackgroundLoader = Callable[[], Awaitable[Image.Image]]


class ExportError(Exception):
    """The finished certificate could not be encoded or saved."""


class RenderState(str, Enum):
    IDLE = "idle"
    BACKGROUND_RESOLVING = "background_resolving"
    TEXT_LAYOUT = "text_layout"
    EXPORTED = "exported"
    FAILED = "failed"


@dataclass(frozen=True)
class RenderRequest:
    record: ParticipantRecord
    width: int
    height: int


@dataclass(frozen=True)
class CertificateExport:
    filename: str
    data: bytes
    background: str


def certificate_filename(event_label: str, identifier: str) -> str:
    """Download name for a certificate; the Bib Number is used verbatim."""
    return f"{event_label}-Certificate-Bib-{identifier}.png"


def fit_font_size(
    measure: Callable[[str, int], float],
    text: str,
    max_width: float,
    max_font_size: int,
    min_font_size: int = 16,
    step: int = 2,
) -> int:
    """Largest size, stepping down from `max_font_size`, whose width fits.

    Stops at `min_font_size` even if the text still overflows there. The last
    step is clamped to the floor, so an odd start (35 -> ... -> 17 -> 16)
    never goes below it.
    """
    if step < 1:
        raise ValueError(f"Font step must be at least 1, got {step}")
    size = max_font_size
    while measure(text, size) > max_width and size > min_font_size:
        size = max(size - step, min_font_size)
    return size


def draw_auto_sized_text(
    surface: RenderSurface,
    text: str,
    x: float,
    y: float,
    max_width: float,
    max_font_size: int,
    *,
    min_font_size: int = 16,
    step: int = 2,
    color: str = "#1f2937",
) -> int:
    """Draw `text` centred at (x, y), shrunk until it fits `max_width`. Returns the size used."""
    size = fit_font_size(surface.measure_text, text, max_width, max_font_size, min_font_size, step)
    surface.draw_text(text, x, y, size, color)
    return size


class CertificateRenderer:
    """Draws and exports one certificate per call to `render`."""

    def __init__(
        self,
        surface: RenderSurface,
        settings: CertificateSettings,
        background_loader: Optional[BackgroundLoader] = None,
    ):
        self.surface = surface
        self.settings = settings
        self._background_loader = background_loader or self._load_configured_background
        self.state = RenderState.IDLE

    def _set_state(self, state: RenderState) -> None:
        logger.debug("Renderer state %s -> %s", self.state.value, state.value)
        self.state = state

    async def _load_configured_background(self) -> Image.Image:
        return await load_background_image(
            self.settings.background_source,
            timeout=self.settings.request_timeout,
        )

    async def render(self, record: ParticipantRecord) -> CertificateExport:
        request = RenderRequest(record=record, width=self.surface.width, height=self.surface.height)
        self._set_state(RenderState.IDLE)
        self.surface.clear()

        self._set_state(RenderState.BACKGROUND_RESOLVING)
        resolution = await resolve_background(self._background_loader, self.settings.background_timeout)

        self._set_state(RenderState.TEXT_LAYOUT)
        try:
            self._draw_background(request, resolution)
            self._draw_name(request)
            export = self._export(request, resolution.source)
        except Exception:
            self._set_state(RenderState.FAILED)
            raise

        self._set_state(RenderState.EXPORTED)
        return export

    def _draw_background(self, request: RenderRequest, resolution: BackgroundResolution) -> None:
        if resolution.image is not None:
            self.surface.draw_image(resolution.image, 0, 0, request.width, request.height)
            return

        s = self.settings
        self.surface.draw_gradient_rect(0, 0, request.width, request.height, s.gradient_start, s.gradient_end)
        inset = s.border_inset
        self.surface.draw_stroked_rect(
            inset,
            inset,
            request.width - 2 * inset,
            request.height - 2 * inset,
            s.border_color,
            s.border_width,
        )

    def _draw_name(self, request: RenderRequest) -> int:
        s = self.settings
        return draw_auto_sized_text(
            self.surface,
            request.record.display_name,
            request.width / 2,
            s.name_y,
            s.name_max_width,
            s.name_max_font_size,
            min_font_size=s.name_min_font_size,
            step=s.name_font_step,
            color=s.text_color,
        )

    def _export(self, request: RenderRequest, background: str) -> CertificateExport:
        filename = certificate_filename(self.settings.event_label, request.record.identifier)
        try:
            data = self.surface.encode()
        except Exception as exc:
            raise ExportError(f"Could not encode certificate {filename}") from exc
        if not data:
            raise ExportError(f"Encoding certificate {filename} produced no data")

        try:
            self.surface.trigger_save(data, filename)
        except Exception as exc:
            raise ExportError(f"Could not save certificate {filename}") from exc

        return CertificateExport(filename=filename, data=data, background=background)
