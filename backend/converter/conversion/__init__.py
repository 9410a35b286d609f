from .service import ConversionService
from .models import ConversionRequest, ConversionResult, TargetFormat, UploadedImage, WatermarkMode

__all__ = [
    "ConversionService",
    "ConversionRequest",
    "ConversionResult",
    "TargetFormat",
    "UploadedImage",
    "WatermarkMode",
]
