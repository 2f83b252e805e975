"""
Conversion errors.

Raised inside the conversion pipeline and recovered by
``convert_upload``; none of them reach the upload pipeline.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class ConversionError(Exception):
    """Base class for failures while converting an upload."""

    stage = "convert"

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.message = message
        self.path = str(path) if path is not None else None
        super().__init__(message)


class CapabilityMissingError(ConversionError):
    """The runtime cannot decode the input or encode the target format."""

    stage = "capability"


class DecodeError(ConversionError):
    stage = "decode"


class ResizeError(ConversionError):
    stage = "resize"


class EncodeError(ConversionError):
    stage = "encode"


class WriteError(EncodeError):
    """The converted file could not be written; nothing is published."""

    stage = "write"


class CleanupError(ConversionError):
    """A superseded file could not be deleted. Never fatal."""

    stage = "cleanup"


class UnsupportedImageError(ConversionError):
    """The file decodes, but is not something we convert (e.g. animated)."""

    stage = "decode"
