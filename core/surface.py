"""Raster surface the certificate is drawn on.

The renderer only talks to the `RenderSurface` protocol, so anything that can
clear, draw and encode can host it. `PillowSurface` is the real one.
"""

from __future__ import annotations

import io
import logging
from functools import lru_cache
from pathlib import Path
from typing import Callable, Protocol

from PIL import Image, ImageColor, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

FALLBACK_FONT = "DejaVuSans-Bold.ttf"

SaveSink = Callable[[bytes, str], None]


class RenderSurface(Protocol):
    width: int
    height: int

    def clear(self) -> None: ...

    def draw_image(self, image: Image.Image, x: int, y: int, width: int, height: int) -> None: ...

    def draw_gradient_rect(self, x: int, y: int, width: int, height: int, start: str, end: str) -> None: ...

    def draw_stroked_rect(self, x: int, y: int, width: int, height: int, color: str, line_width: int) -> None: ...

    def measure_text(self, text: str, font_size: int) -> float: ...

    def draw_text(self, text: str, x: float, y: float, font_size: int, color: str) -> None: ...

    def encode(self) -> bytes: ...

    def trigger_save(self, data: bytes, filename: str) -> None: ...


@lru_cache(maxsize=32)
def _get_bold_font(font_path: str, size: int) -> ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype(font_path, int(size))
    except OSError:
        pass
    try:
        return ImageFont.truetype(FALLBACK_FONT, int(size))
    except OSError:
        # Scalable built-in font, so text fitting still works without any TTF.
        return ImageFont.load_default(size=int(size))


def _rgba(color: str) -> tuple[int, int, int, int]:
    rgb = ImageColor.getrgb(color)
    if len(rgb) == 4:
        return rgb
    return (rgb[0], rgb[1], rgb[2], 255)


def directory_sink(directory: str | Path) -> SaveSink:
    """Save sink that writes each certificate into `directory`."""
    out_dir = Path(directory)

    def _save(data: bytes, filename: str) -> None:
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / filename
        target.write_bytes(data)
        logger.info("Saved certificate to %s", target)

    return _save


class PillowSurface:
    """RenderSurface backed by a Pillow RGBA image."""

    def __init__(self, width: int, height: int, sink: SaveSink, *, font_path: str = FALLBACK_FONT):
        self.width = int(width)
        self.height = int(height)
        self._sink = sink
        self._font_path = str(font_path)
        self.image = Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))

    def _font(self, size: int) -> ImageFont.FreeTypeFont:
        return _get_bold_font(self._font_path, int(size))

    def clear(self) -> None:
        self.image = Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))

    def draw_image(self, image: Image.Image, x: int, y: int, width: int, height: int) -> None:
        src = image.convert("RGBA")
        size = (int(width), int(height))
        if src.size != size:
            src = src.resize(size, Image.Resampling.LANCZOS)
        self.image.alpha_composite(src, (int(x), int(y)))

    def draw_gradient_rect(self, x: int, y: int, width: int, height: int, start: str, end: str) -> None:
        """Fill a rectangle with a linear gradient from its top-left to its bottom-right corner."""
        w, h = int(width), int(height)
        if w <= 0 or h <= 0:
            return

        # Position along the diagonal: t = (x*w + y*h) / (w^2 + h^2), i.e. a
        # weighted mix of a left-to-right and a top-to-bottom ramp.
        vertical = Image.linear_gradient("L").resize((w, h))
        horizontal = Image.linear_gradient("L").transpose(Image.Transpose.ROTATE_90).resize((w, h))
        weight = (h * h) / float(w * w + h * h)
        mask = Image.blend(horizontal, vertical, weight)

        start_fill = Image.new("RGBA", (w, h), _rgba(start))
        end_fill = Image.new("RGBA", (w, h), _rgba(end))
        self.image.alpha_composite(Image.composite(end_fill, start_fill, mask), (int(x), int(y)))

    def draw_stroked_rect(self, x: int, y: int, width: int, height: int, color: str, line_width: int) -> None:
        # The stroke is centred on the rectangle edge.
        half = line_width / 2.0
        box = [
            round(x - half),
            round(y - half),
            round(x + width + half) - 1,
            round(y + height + half) - 1,
        ]
        draw = ImageDraw.Draw(self.image)
        draw.rectangle(box, outline=_rgba(color), width=int(line_width))

    def measure_text(self, text: str, font_size: int) -> float:
        return float(self._font(font_size).getlength(text))

    def draw_text(self, text: str, x: float, y: float, font_size: int, color: str) -> None:
        draw = ImageDraw.Draw(self.image)
        # "ms": horizontally centred on x, alphabetic baseline on y.
        draw.text((x, y), text, font=self._font(font_size), fill=_rgba(color), anchor="ms")

    def encode(self) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()

    def trigger_save(self, data: bytes, filename: str) -> None:
        self._sink(data, filename)
