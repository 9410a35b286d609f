"""Per-image conversion: bound size, watermark, encode, report savings."""
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from PIL import Image

from converter.config import MAX_DIMENSION, MAX_IMAGE_PIXELS, OUTPUT_DIR, QUALITY, STRICT_FORMATS
from converter.conversion.models import (
    PIL_FORMATS,
    ConversionRequest,
    ConversionResult,
    TargetFormat,
    UploadedImage,
    WatermarkMode,
)
from converter.conversion.resize import fit_within
from converter.conversion.watermark import compose_watermark
from converter.errors import DecodeError, EncodeError, FilesystemError, ValidationError

logger = logging.getLogger("converter.service")

Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS

KB = 1024
MB = 1024 * 1024


def format_size(num_bytes: int) -> str:
    if num_bytes < MB:
        return f"{num_bytes / KB:.2f} KB"
    return f"{num_bytes / MB:.2f} MB"


def saved_percent(original_size: int, converted_size: int) -> str:
    """Signed: negative when the output is larger than the input."""
    return f"{(1 - converted_size / original_size) * 100:.2f}"


def _prepare_for_format(img: Image.Image, pil_format: str) -> Image.Image:
    if pil_format == "JPEG" and img.mode not in ("RGB", "L"):
        return img.convert("RGB")
    if pil_format == "WEBP" and img.mode not in ("RGB", "RGBA"):
        return img.convert("RGBA" if img.has_transparency_data else "RGB")
    if pil_format == "PNG" and img.mode == "CMYK":
        return img.convert("RGB")
    return img


class ConversionService:
    """Converts one uploaded image into the output directory."""

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        max_dimension: int = MAX_DIMENSION,
        strict_formats: bool = STRICT_FORMATS,
    ):
        self.output_dir = Path(output_dir or OUTPUT_DIR)
        self.max_dimension = max_dimension
        self.strict_formats = strict_formats

    def _encode(self, img: Image.Image, out_path: Path, target: TargetFormat, source_format: Optional[str]) -> int:
        """Encode img to out_path and return the written size in bytes."""
        if target is TargetFormat.PASSTHROUGH:
            if not source_format:
                raise EncodeError(f"Cannot determine a codec for {out_path.name}")
            # Content keeps the source codec while the name carries the requested extension.
            logger.warning("Unrecognised format for %s, encoding as %s", out_path.name, source_format)
            pil_format = source_format
        else:
            pil_format = PIL_FORMATS[target]
        save_kw: dict = {"format": pil_format, "quality": QUALITY}
        if pil_format == "JPEG":
            save_kw["optimize"] = True
        elif pil_format == "WEBP":
            save_kw["method"] = 4
        # Write beside the target and swap it in, so same-named outputs never interleave.
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.output_dir, prefix=f".{out_path.name}.", suffix=".part")
            os.close(fd)
        except OSError as e:
            raise FilesystemError(str(e)) from e
        tmp_path = Path(tmp_name)
        try:
            try:
                _prepare_for_format(img, pil_format).save(str(tmp_path), **save_kw)
            except (OSError, ValueError, KeyError) as e:
                raise EncodeError(f"Cannot encode {out_path.name} as {pil_format}: {e}") from e
            try:
                size = tmp_path.stat().st_size
                os.replace(tmp_path, out_path)
            except OSError as e:
                raise FilesystemError(str(e)) from e
        finally:
            tmp_path.unlink(missing_ok=True)
        return size

    def convert(self, upload: UploadedImage, request: ConversionRequest) -> ConversionResult:
        """Convert a single staged upload. The upload file is removed on success."""
        target = request.target_format
        if target is TargetFormat.PASSTHROUGH and self.strict_formats:
            raise ValidationError(f"Unsupported output format: {request.convert_to!r}")
        mode = request.mode_for(upload.base_name)
        out_path = self.output_dir / request.output_name(upload)

        try:
            src = Image.open(upload.path)
        except (OSError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Cannot read {upload.filename}: {e}") from e

        with src:
            source_format = src.format
            try:
                src.load()
            except (OSError, ValueError) as e:
                raise DecodeError(f"Cannot decode {upload.filename}: {e}") from e
            img = fit_within(src, self.max_dimension)
            width, height = img.size

            if mode is not WatermarkMode.NONE and request.watermark_text:
                overlay = compose_watermark(width, height, request.watermark_text, mode)
                logger.debug("Watermarking %s (%s, %s tiles)", upload.filename, mode.value, len(overlay.anchors))
                img = overlay.apply(img)

            converted_size = self._encode(img, out_path, target, source_format)

        original_size = upload.size
        try:
            upload.path.unlink()
        except OSError as e:
            raise FilesystemError(str(e)) from e

        result = ConversionResult(
            name=out_path.name,
            original_size=format_size(original_size),
            converted_size=format_size(converted_size),
            saved_percent=saved_percent(original_size, converted_size),
        )
        logger.info("Converted %s -> %s (%s%% saved)", upload.filename, result.name, result.saved_percent)
        return result

    def cleanup_upload(self, path: Path) -> None:
        """Remove a staged upload left behind by a failed batch."""
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove upload %s: %s", path, e)
