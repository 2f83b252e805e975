"""
Upload filters — named pipeline stages that transform an upload record.

The upload pipeline calls ``chain.apply(HANDLE_UPLOAD, request)`` after a
file has been stored; each registered filter receives the current record
and returns the record to pass on. The converter is wired in with
``register_converter``.

## Usage

    chain = UploadFilterChain()
    register_converter(chain, load_config)

    result = chain.apply(HANDLE_UPLOAD, UploadRequest(file=..., type=..., url=...))
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple

from ..config.loader import ConverterSettings
from ..models.upload import UploadRequest, UploadResult
from .capabilities import CodecCapabilities
from .convert import convert_upload

logger = logging.getLogger(__name__)

HANDLE_UPLOAD = "handle_upload"

DEFAULT_PRIORITY = 10

UploadFilter = Callable[[UploadRequest], UploadResult]


class UploadFilterChain:
    """Registry of filters per named stage, run in priority order."""

    def __init__(self) -> None:
        self._filters: Dict[str, List[Tuple[int, int, UploadFilter]]] = defaultdict(list)
        self._seq = 0

    def add_filter(self, stage: str, fn: UploadFilter, priority: int = DEFAULT_PRIORITY) -> None:
        """Register ``fn`` on ``stage``. Lower priority runs first; ties keep insertion order."""
        self._seq += 1
        self._filters[stage].append((priority, self._seq, fn))
        self._filters[stage].sort(key=lambda entry: (entry[0], entry[1]))

    def remove_filter(self, stage: str, fn: UploadFilter) -> bool:
        before = len(self._filters[stage])
        self._filters[stage] = [entry for entry in self._filters[stage] if entry[2] is not fn]
        return len(self._filters[stage]) < before

    def has_filters(self, stage: str) -> bool:
        return bool(self._filters.get(stage))

    def apply(self, stage: str, request: UploadRequest) -> UploadResult:
        """Run every filter on ``stage`` and return the final upload record."""
        result = UploadResult.unchanged(request)
        for _, _, fn in list(self._filters.get(stage, [])):
            result = fn(UploadRequest(file=result.file, type=result.type, url=result.url))
        return result


def make_converter_filter(
    settings_provider: Callable[[], ConverterSettings],
    capabilities: Optional[CodecCapabilities] = None,
) -> UploadFilter:
    """Build the conversion filter; settings are read on every upload."""

    def convert_filter(request: UploadRequest) -> UploadResult:
        settings = settings_provider()
        outcome = convert_upload(
            request,
            settings.conversion_config(),
            capabilities=capabilities,
            debug=settings.debug,
        )
        logger.debug(f"Upload filter: {request.file} → {outcome.status.value}")
        return outcome.result

    return convert_filter


def register_converter(
    chain: UploadFilterChain,
    settings_provider: Callable[[], ConverterSettings],
    capabilities: Optional[CodecCapabilities] = None,
    priority: int = DEFAULT_PRIORITY,
) -> UploadFilter:
    """Register the converter on the upload stage. Returns the filter."""
    fn = make_converter_filter(settings_provider, capabilities)
    chain.add_filter(HANDLE_UPLOAD, fn, priority)
    return fn
