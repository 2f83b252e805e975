"""
Codec capabilities — what the running Pillow build can decode and encode.

The converter never inspects the environment itself; it asks an injected
``CodecCapabilities``. ``PillowCapabilities`` checks the real build,
``StaticCapabilities`` lets tests and callers pin the answers.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

TARGET_FORMAT = "WEBP"
TARGET_MIME = "image/webp"
TARGET_EXTENSION = ".webp"

HEIC_MIME = "image/heic"

_heif_state: Dict[str, bool] = {}


def register_heif_opener() -> bool:
    """Register the HEIC/HEIF opener with Pillow, once per process.

    Returns True if HEIC files can be opened.
    """
    if "registered" in _heif_state:
        return _heif_state["registered"]

    try:
        import pillow_heif  # registers HEIC/HEIF opener with Pillow

        pillow_heif.register_heif_opener()
        _heif_state["registered"] = True
        logger.debug("pillow-heif opener registered")
    except ImportError:
        _heif_state["registered"] = False
        logger.debug("pillow-heif not installed — HEIC uploads cannot be decoded")

    return _heif_state["registered"]


class CodecCapabilities:
    """Interface: can this runtime handle a given conversion?"""

    def can_encode_target(self) -> bool:
        raise NotImplementedError

    def can_decode(self, mime_type: str) -> bool:
        raise NotImplementedError

    def supports(self, mime_type: str) -> bool:
        return self.can_encode_target() and self.can_decode(mime_type)

    def describe(self) -> Dict[str, bool]:
        return {
            "webp_encoder": self.can_encode_target(),
            "heic_decoder": self.can_decode(HEIC_MIME),
        }


class PillowCapabilities(CodecCapabilities):
    """Capabilities of the installed Pillow build."""

    def can_encode_target(self) -> bool:
        try:
            from PIL import features
        except ImportError:
            logger.warning("Pillow not installed — WebP conversion unavailable")
            return False
        return bool(features.check("webp"))

    def can_decode(self, mime_type: str) -> bool:
        if mime_type == HEIC_MIME:
            return register_heif_opener()
        return True


class StaticCapabilities(CodecCapabilities):
    """Fixed answers, for tests and for callers that already checked."""

    def __init__(self, encode_target: bool = True, decode_heic: Optional[bool] = None):
        self._encode_target = encode_target
        self._decode_heic = encode_target if decode_heic is None else decode_heic

    def can_encode_target(self) -> bool:
        return self._encode_target

    def can_decode(self, mime_type: str) -> bool:
        if mime_type == HEIC_MIME:
            return self._decode_heic
        return True


default_capabilities = PillowCapabilities()
