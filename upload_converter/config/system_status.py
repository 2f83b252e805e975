"""
System Status — is upload conversion active, and can it run?

Mirrors the notice shown on the media screens:
- codec missing → warning
- enabled / disabled → info, with a pointer to the setting

Used by:
- CLI: `upload-converter status`
- Web Admin: GET /api/media/status
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from ..content.capabilities import CodecCapabilities, default_capabilities
from .loader import ENV_VARS, ConverterSettings


@dataclass
class ConverterStatus:
    """Operator-facing converter status."""

    level: str  # "info" | "warning"
    state: str  # "enabled" | "disabled" | "codec_missing"
    message: str
    settings: Dict = field(default_factory=dict)
    capabilities: Dict[str, bool] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.level != "warning"

    def to_dict(self) -> Dict:
        return {
            "level": self.level,
            "state": self.state,
            "message": self.message,
            "settings": self.settings,
            "capabilities": self.capabilities,
        }


def get_converter_status(
    settings: ConverterSettings,
    capabilities: Optional[CodecCapabilities] = None,
) -> ConverterStatus:
    caps = capabilities or default_capabilities
    described = caps.describe()
    toggle = ENV_VARS["enabled"]

    if not caps.can_encode_target():
        return ConverterStatus(
            level="warning",
            state="codec_missing",
            message=(
                "Warning: the WebP encoder required for conversion is not available "
                "in this Pillow build. Install Pillow with WebP support."
            ),
            settings=settings.to_dict(),
            capabilities=described,
        )

    if settings.enabled:
        message = f"Enabled: WebP image conversion is active. Set {toggle}=0 to disable it."
        state = "enabled"
    else:
        message = f"Disabled: WebP image conversion is not active. Set {toggle}=1 to enable it."
        state = "disabled"

    return ConverterStatus(
        level="info",
        state=state,
        message=message,
        settings=settings.to_dict(),
        capabilities=described,
    )
