"""
Upload Converter — convert uploaded images to WebP when it saves space.

    from upload_converter import ConversionConfig, UploadRequest, convert

    result = convert(
        UploadRequest(file="/srv/uploads/photo.jpg", type="image/jpeg", url="/uploads/photo.jpg"),
        ConversionConfig(enabled=True, max_width=1920, max_height=1080, quality=80),
    )
"""

from .content.convert import convert, convert_upload
from .models.upload import (
    ConversionConfig,
    ConversionOutcome,
    ConversionStatus,
    UploadRequest,
    UploadResult,
)

__version__ = "1.0.0"

__all__ = [
    "convert",
    "convert_upload",
    "ConversionConfig",
    "ConversionOutcome",
    "ConversionStatus",
    "UploadRequest",
    "UploadResult",
]
