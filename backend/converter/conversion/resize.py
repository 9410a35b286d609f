"""Bound oversized images to a maximum dimension, keeping aspect ratio."""
import logging
import math

from PIL import Image

logger = logging.getLogger("converter.resize")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def bound_dimensions(width: int, height: int, max_dimension: int) -> tuple[int, int, bool]:
    """
    Return (width, height, resized).
    If both sides fit, the input comes back unchanged with resized=False.
    Otherwise the larger side becomes max_dimension and the other follows the
    aspect ratio, rounded to the nearest pixel.
    """
    if width <= max_dimension and height <= max_dimension:
        return width, height, False
    aspect = width / height
    if width > height:
        new_w = max_dimension
        new_h = _round_half_up(max_dimension / aspect)
    else:
        new_h = max_dimension
        new_w = _round_half_up(max_dimension * aspect)
    return max(1, new_w), max(1, new_h), True


def fit_within(img: Image.Image, max_dimension: int) -> Image.Image:
    """Resample img down to max_dimension if either side exceeds it."""
    w, h = img.size
    new_w, new_h, resized = bound_dimensions(w, h, max_dimension)
    if not resized:
        return img
    logger.info("Resizing %sx%s -> %sx%s", w, h, new_w, new_h)
    return img.resize((new_w, new_h), Image.Resampling.LANCZOS)
