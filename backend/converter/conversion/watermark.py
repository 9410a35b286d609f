"""Tiled diagonal text watermark.

The overlay covers the whole canvas with brick-tiled copies of the text,
each rotated -45 degrees about its own anchor (baseline start). Tiling runs
from -dimension to 2 * dimension on both axes so the rotated pattern still
reaches every corner.

The overlay can be emitted as SVG markup or rasterized with Pillow into an
alpha mask; ``WatermarkOverlay.apply`` composites it centred over an image.
"""
import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional
from xml.sax.saxutils import escape, quoteattr

from PIL import Image, ImageChops, ImageDraw, ImageFont

from converter.config import WATERMARK_FONT, WATERMARK_OPACITY
from converter.conversion.models import WatermarkMode

logger = logging.getLogger("converter.watermark")

ROTATION = -45
COLORS = {
    WatermarkMode.LIGHT: (255, 255, 255),
    WatermarkMode.DARK: (0, 0, 0),
}


@lru_cache(maxsize=32)
def load_font(size: int) -> ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype(WATERMARK_FONT, size)
    except OSError:
        logger.debug("Font %s not available, using Pillow default", WATERMARK_FONT)
        return ImageFont.load_default(size=size)


@dataclass
class WatermarkOverlay:
    width: int
    height: int
    text: str
    color: tuple[int, int, int]
    font_size: int
    anchors: list[tuple[int, int]] = field(default_factory=list)
    opacity: float = WATERMARK_OPACITY
    angle: int = ROTATION
    gravity: str = "center"
    blend: str = "normal"

    @property
    def alpha(self) -> int:
        return round(255 * self.opacity)

    def to_svg(self) -> str:
        r, g, b = self.color
        fill = quoteattr(f"rgba({r},{g},{b},{self.opacity})")
        text = escape(self.text)
        parts = [f'<svg xmlns="http://www.w3.org/2000/svg" width="{self.width}" height="{self.height}">']
        for x, y in self.anchors:
            parts.append(
                f'<text x="{x}" y="{y}" fill={fill} font-size="{self.font_size}" '
                f'font-family="Arial" transform="rotate({self.angle} {x},{y})">{text}</text>'
            )
        parts.append("</svg>")
        return "".join(parts)

    def _text_tile(self, font) -> tuple[Image.Image, int]:
        """Rotated coverage tile with the text anchor at its centre."""
        left, top, right, bottom = font.getbbox(self.text, anchor="ls")
        radius = math.ceil(max(abs(left), abs(top), abs(right), abs(bottom))) + 1
        tile = Image.new("L", (radius * 2, radius * 2), 0)
        ImageDraw.Draw(tile).text((radius, radius), self.text, fill=255, font=font, anchor="ls")
        # Pillow rotates counter-clockwise for positive angles; SVG's y axis points down.
        tile = tile.rotate(-self.angle, resample=Image.Resampling.BICUBIC)
        return tile, radius

    def render_mask(self, font: Optional[ImageFont.FreeTypeFont] = None) -> Image.Image:
        """Rasterize the overlay to an L mask holding the per-pixel alpha."""
        font = font or load_font(self.font_size)
        tile, radius = self._text_tile(font)
        mask = Image.new("L", (self.width, self.height), 0)
        alpha = self.alpha
        tile = tile.point(lambda v: v * alpha // 255)
        for x, y in self.anchors:
            box = (x - radius, y - radius, x + radius, y + radius)
            if box[2] <= 0 or box[3] <= 0 or box[0] >= self.width or box[1] >= self.height:
                continue
            # screen is the alpha of one layer over another, so overlaps accumulate
            region = ImageChops.screen(mask.crop(box), tile)
            mask.paste(region, box[:2])
        return mask

    def apply(self, img: Image.Image) -> Image.Image:
        """Composite the overlay centred over img (normal blend). Returns RGB or RGBA."""
        if img.has_transparency_data:
            img = img.convert("RGBA")
        elif img.mode != "RGB":
            img = img.convert("RGB")
        else:
            img = img.copy()
        offset = ((img.width - self.width) // 2, (img.height - self.height) // 2)
        mask = self.render_mask()
        if img.mode == "RGBA":
            layer = Image.new("RGBA", mask.size, self.color + (0,))
            layer.putalpha(mask)
            img.alpha_composite(layer, offset)
        else:
            img.paste(self.color, offset, mask)
        return img


def tile_anchors(width: int, height: int, font_size: int) -> list[tuple[int, int]]:
    h_spacing = font_size * 4
    v_spacing = font_size * 6
    anchors = []
    for y in range(-height, height * 2, v_spacing):
        even_row = y % v_spacing == 0 and (y // v_spacing) % 2 == 0
        offset_x = 0 if even_row else h_spacing // 2
        for x in range(-width, width * 2, h_spacing):
            anchors.append((x + offset_x, y))
    return anchors


def compose_watermark(width: int, height: int, text: str, mode: WatermarkMode) -> WatermarkOverlay:
    """Build the tiled overlay for a width x height canvas. Caller skips mode none / empty text."""
    if not text or mode not in COLORS:
        raise ValueError("watermark needs non-empty text and a light or dark mode")
    font_size = max(1, width // 30)
    return WatermarkOverlay(
        width=width,
        height=height,
        text=text,
        color=COLORS[mode],
        font_size=font_size,
        anchors=tile_anchors(width, height, font_size),
    )
