"""Conversion request/response models."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger("converter.models")


class WatermarkMode(str, Enum):
    NONE = "none"
    LIGHT = "light"
    DARK = "dark"

    @classmethod
    def parse(cls, value: Optional[str]) -> "WatermarkMode":
        value = (value or "").strip().lower()
        if not value:
            return cls.NONE
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unknown watermark mode %r, using none", value)
            return cls.NONE


class TargetFormat(str, Enum):
    WEBP = "webp"
    PNG = "png"
    JPEG = "jpeg"
    PASSTHROUGH = "passthrough"

    @classmethod
    def from_request(cls, value: str) -> "TargetFormat":
        value = (value or "").strip().lower()
        if value in ("jpg", "jpeg"):
            return cls.JPEG
        if value in ("webp", "png"):
            return cls(value)
        return cls.PASSTHROUGH


# Pillow format names for the encoders we drive explicitly
PIL_FORMATS = {
    TargetFormat.WEBP: "WEBP",
    TargetFormat.PNG: "PNG",
    TargetFormat.JPEG: "JPEG",
}


@dataclass
class UploadedImage:
    """A staged upload. Deleted once it has been converted."""

    path: Path
    filename: str
    size: int

    @property
    def base_name(self) -> str:
        return Path(self.filename).stem


@dataclass
class ConversionRequest:
    convert_to: str
    watermark_text: str = ""
    watermark_modes: dict[str, WatermarkMode] = field(default_factory=dict)

    def __post_init__(self):
        self.convert_to = (self.convert_to or "").strip().lower()
        self.watermark_text = (self.watermark_text or "").strip()

    @property
    def target_format(self) -> TargetFormat:
        return TargetFormat.from_request(self.convert_to)

    def mode_for(self, base_name: str) -> WatermarkMode:
        return WatermarkMode(self.watermark_modes.get(base_name, WatermarkMode.NONE))

    def output_name(self, upload: UploadedImage) -> str:
        return f"{upload.base_name}.{self.convert_to}"


@dataclass(frozen=True)
class ConversionResult:
    name: str
    original_size: str
    converted_size: str
    saved_percent: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "originalSize": self.original_size,
            "convertedSize": self.converted_size,
            "savedPercent": self.saved_percent,
        }
