"""
Upload Models — Pydantic schemas for the upload conversion pipeline.

The request and result mirror the upload hook payload ``{file, url, type}``
so a filter can hand back exactly what it was given when nothing changes.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator


class UploadRequest(BaseModel):
    """A freshly stored upload, as handed to the upload filter."""

    model_config = ConfigDict(frozen=True)

    file: str
    type: str
    url: str = ""

    @property
    def file_path(self) -> str:
        return self.file

    @property
    def mime_type(self) -> str:
        return self.type


class UploadResult(BaseModel):
    """What the upload pipeline should record for the upload."""

    model_config = ConfigDict(frozen=True)

    file: str
    type: str
    url: str = ""

    @classmethod
    def unchanged(cls, request: UploadRequest) -> "UploadResult":
        """Pass-through result: identical to the incoming request."""
        return cls(file=request.file, type=request.type, url=request.url)

    @property
    def file_path(self) -> str:
        return self.file

    @property
    def mime_type(self) -> str:
        return self.type


class ConversionConfig(BaseModel):
    """
    Conversion settings for a single call.

    Width and height are trusted as validated by the config provider;
    quality is clamped into 1..100 here.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    max_width: int = 1920
    max_height: int = 1080
    quality: int = 80

    @field_validator("quality", mode="before")
    @classmethod
    def _clamp_quality(cls, value):
        return max(1, min(100, int(value)))


class ConversionStatus(str, Enum):
    """How a conversion call ended."""

    CONVERTED = "converted"
    KEPT_ORIGINAL = "kept_original"
    DISABLED = "disabled"
    UNSUPPORTED_TYPE = "unsupported_type"
    CAPABILITY_MISSING = "capability_missing"
    FAILED = "failed"


class ConversionOutcome(BaseModel):
    """Full report of a conversion call, including the result to record."""

    result: UploadResult
    status: ConversionStatus
    original_size: Optional[int] = None
    converted_size: Optional[int] = None
    original_dimensions: Optional[Tuple[int, int]] = None
    final_dimensions: Optional[Tuple[int, int]] = None
    message: str = ""

    @property
    def replaced(self) -> bool:
        return self.status == ConversionStatus.CONVERTED

    @property
    def bytes_saved(self) -> int:
        if not self.replaced or self.original_size is None or self.converted_size is None:
            return 0
        return self.original_size - self.converted_size

    def to_dict(self) -> dict:
        return {
            "file": self.result.file,
            "type": self.result.type,
            "url": self.result.url,
            "status": self.status.value,
            "original_size": self.original_size,
            "converted_size": self.converted_size,
            "original_dimensions": list(self.original_dimensions) if self.original_dimensions else None,
            "final_dimensions": list(self.final_dimensions) if self.final_dimensions else None,
            "message": self.message,
        }
