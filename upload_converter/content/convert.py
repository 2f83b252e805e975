"""
Upload Converter — re-encode a freshly uploaded image as WebP.

Pipeline (one upload per call):
1. Skip unless enabled and the declared type is JPEG, PNG, GIF or HEIC
2. Skip if the runtime cannot decode the input or encode WebP
3. Decode, then rotate according to the EXIF orientation tag
4. Cap width, then height, preserving the aspect ratio (Lanczos)
5. Encode lossy WebP at the configured quality
6. Keep the WebP only if it is strictly smaller than the original

The original file is deleted only after the converted file is in place
and smaller; otherwise the converted bytes are discarded. Any failure
leaves the upload exactly as it was.
"""

from __future__ import annotations

import logging
import time
from contextlib import ExitStack
from pathlib import Path
from typing import Optional, Tuple

from ..models.upload import (
    ConversionConfig,
    ConversionOutcome,
    ConversionStatus,
    UploadRequest,
    UploadResult,
)
from ..observability.metrics import metrics
from . import storage
from .capabilities import (
    HEIC_MIME,
    TARGET_EXTENSION,
    TARGET_FORMAT,
    TARGET_MIME,
    CodecCapabilities,
    default_capabilities,
    register_heif_opener,
)
from .errors import (
    ConversionError,
    DecodeError,
    EncodeError,
    ResizeError,
    UnsupportedImageError,
)

logger = logging.getLogger(__name__)

ACCEPTED_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", HEIC_MIME})

# Containers whose extra frames are animation
ANIMATED_FORMATS = frozenset({"GIF", "PNG", "WEBP"})

# EXIF orientation
ORIENTATION_TAG = 0x0112
ORIENTATION_NORMAL = 1
ORIENTATION_UPSIDE_DOWN = 3   # rotate 180°
ORIENTATION_ROTATED_LEFT = 6  # rotate 90° clockwise
ORIENTATION_ROTATED_RIGHT = 8  # rotate 90° counter-clockwise

WEBP_METHOD = 4  # compression effort (0-6)

_ATTEMPTED = (
    ConversionStatus.CONVERTED,
    ConversionStatus.KEPT_ORIGINAL,
    ConversionStatus.FAILED,
)


# ── Public API ───────────────────────────────────────────────


def convert(
    request: UploadRequest,
    config: ConversionConfig,
    *,
    capabilities: Optional[CodecCapabilities] = None,
    debug: bool = False,
) -> UploadResult:
    """
    Convert an upload to WebP if enabled, supported and worthwhile.

    Returns the upload to record: the converted file, or the request
    unchanged. Never raises for conversion problems.
    """
    return convert_upload(request, config, capabilities=capabilities, debug=debug).result


def convert_upload(
    request: UploadRequest,
    config: ConversionConfig,
    *,
    capabilities: Optional[CodecCapabilities] = None,
    debug: bool = False,
) -> ConversionOutcome:
    """
    Same as ``convert`` but returns the full outcome.

    The outcome status tells the caller why nothing changed, including
    ``capability_missing`` so an operator notice can be shown.
    """
    caps = capabilities or default_capabilities
    started = time.monotonic()

    outcome = _run(request, config, caps, debug)

    metrics.increment("conversions_total", labels={"status": outcome.status.value})
    if outcome.status in _ATTEMPTED:
        metrics.timing(
            "conversion_duration_seconds",
            time.monotonic() - started,
            labels={"status": outcome.status.value},
        )
    if outcome.replaced:
        metrics.increment("bytes_saved_total", outcome.bytes_saved)

    return outcome


# ── Geometry ─────────────────────────────────────────────────


def compute_target_size(
    width: int,
    height: int,
    max_width: int,
    max_height: int,
) -> Tuple[int, int]:
    """
    Fit ``width`` x ``height`` within the maximums, keeping the aspect ratio.

    Width is capped first, then height is capped independently, so an
    image that is still too tall after the width pass is corrected by
    the height pass. Images already within bounds are returned as-is.
    """
    if width <= max_width and height <= max_height:
        return width, height

    aspect_ratio = width / height
    new_width: float = width
    new_height: float = height

    if new_width > max_width:
        new_width = max_width
        new_height = new_width / aspect_ratio

    if new_height > max_height:
        new_height = max_height
        new_width = new_height * aspect_ratio

    # Rounding can push the recomputed width past the cap by a pixel
    return (
        max(1, min(max_width, round(new_width))),
        max(1, min(max_height, round(new_height))),
    )


def normalize_orientation(img):
    """
    Rotate ``img`` upright according to its EXIF orientation tag.

    Returns the (possibly new) image with its stored orientation reset
    to normal, so viewers do not rotate it a second time.
    """
    from PIL import Image

    rotations = {
        ORIENTATION_UPSIDE_DOWN: Image.Transpose.ROTATE_180,
        ORIENTATION_ROTATED_LEFT: Image.Transpose.ROTATE_270,
        ORIENTATION_ROTATED_RIGHT: Image.Transpose.ROTATE_90,
    }

    orientation = img.getexif().get(ORIENTATION_TAG)
    transpose = rotations.get(orientation)
    if transpose is not None:
        img = img.transpose(transpose)
        logger.debug(f"Orientation {orientation}: applied {transpose.name}")

    if orientation is not None:
        exif = img.getexif()
        exif[ORIENTATION_TAG] = ORIENTATION_NORMAL
        img.info["exif"] = exif.tobytes()
    return img


def replace_url_basename(url: str, new_name: str) -> str:
    """Swap the last path segment of ``url`` for ``new_name``."""
    if not url:
        return url
    head, sep, _ = url.rpartition("/")
    return f"{head}{sep}{new_name}"


# ── Pipeline ─────────────────────────────────────────────────


def _run(
    request: UploadRequest,
    config: ConversionConfig,
    caps: CodecCapabilities,
    debug: bool,
) -> ConversionOutcome:
    unchanged = UploadResult.unchanged(request)

    if not config.enabled:
        return ConversionOutcome(result=unchanged, status=ConversionStatus.DISABLED)

    if request.type not in ACCEPTED_TYPES:
        return ConversionOutcome(
            result=unchanged,
            status=ConversionStatus.UNSUPPORTED_TYPE,
            message=f"{request.type} is not converted",
        )

    if not caps.supports(request.type):
        message = (
            f"WebP conversion cannot be performed: no codec for "
            f"{request.type} → {TARGET_MIME}"
        )
        if debug:
            logger.warning(message, extra={"file_path": request.file, "status": "capability_missing"})
        return ConversionOutcome(
            result=unchanged,
            status=ConversionStatus.CAPABILITY_MISSING,
            message=message,
        )

    try:
        return _convert_file(request, config)
    except UnsupportedImageError as e:
        return ConversionOutcome(
            result=unchanged,
            status=ConversionStatus.UNSUPPORTED_TYPE,
            message=e.message,
        )
    except ConversionError as e:
        logger.error(
            f"WebP conversion failed ({e.stage}): {e.message} — keeping original",
            extra={"file_path": request.file, "status": "failed"},
        )
        return ConversionOutcome(result=unchanged, status=ConversionStatus.FAILED, message=e.message)
    except Exception as e:
        # Conversion must never take down the upload
        logger.error(
            f"WebP conversion failed unexpectedly for {request.file} "
            f"({request.type}): {type(e).__name__}: {e} — keeping original",
            extra={"file_path": request.file, "status": "failed"},
        )
        logger.debug("Conversion traceback", exc_info=True)
        return ConversionOutcome(result=unchanged, status=ConversionStatus.FAILED, message=str(e))


def _convert_file(request: UploadRequest, config: ConversionConfig) -> ConversionOutcome:
    source = Path(request.file)
    target = storage.derived_path(source, TARGET_EXTENSION)

    try:
        original_size = storage.file_size(source)
    except OSError as e:
        raise DecodeError(f"Cannot read upload: {e}", source) from e

    with ExitStack() as stack:
        img = _decode(source, request.type, stack)
        original_dims = img.size

        img = _track(stack, normalize_orientation(img))
        img = _resize(img, config, stack)
        final_dims = img.size
        img = _prepare_mode(img, stack)

        with storage.staged_file(target) as staged:
            _encode(img, staged, config.quality)
            converted_size = storage.file_size(staged)

            if converted_size >= original_size:
                logger.info(
                    f"WebP not smaller ({original_size:,} → {converted_size:,} bytes), "
                    f"keeping {source.name}",
                    extra={"file_path": str(source), "status": "kept_original"},
                )
                return ConversionOutcome(
                    result=UploadResult.unchanged(request),
                    status=ConversionStatus.KEPT_ORIGINAL,
                    original_size=original_size,
                    converted_size=converted_size,
                    original_dimensions=original_dims,
                    final_dimensions=final_dims,
                )

            storage.publish(staged, target)

    if target != source:
        storage.remove_quietly(source)

    pct = converted_size / original_size * 100
    logger.info(
        f"Converted: {original_dims[0]}x{original_dims[1]} ({request.type}) → "
        f"{final_dims[0]}x{final_dims[1]} ({TARGET_MIME}): "
        f"{original_size:,} → {converted_size:,} bytes ({pct:.0f}%)",
        extra={"file_path": str(target), "status": "converted", "mime_type": TARGET_MIME},
    )

    return ConversionOutcome(
        result=UploadResult(
            file=str(target),
            type=TARGET_MIME,
            url=replace_url_basename(request.url, target.name),
        ),
        status=ConversionStatus.CONVERTED,
        original_size=original_size,
        converted_size=converted_size,
        original_dimensions=original_dims,
        final_dimensions=final_dims,
    )


def _track(stack: ExitStack, img):
    """Close ``img`` when the conversion ends, on every exit path."""
    stack.callback(img.close)
    return img


def _decode(source: Path, mime_type: str, stack: ExitStack):
    from PIL import Image

    if mime_type == HEIC_MIME:
        register_heif_opener()

    try:
        img = _track(stack, Image.open(source))
    except Exception as e:
        raise DecodeError(f"Cannot decode {source.name}: {e}", source) from e

    # Multi-picture JPEGs (MPO) carry previews, not animation: frame 0 is the photo
    if img.format in ANIMATED_FORMATS and getattr(img, "is_animated", False):
        raise UnsupportedImageError(f"Animated {mime_type} is not converted", source)

    try:
        img.load()
    except Exception as e:
        raise DecodeError(f"Cannot decode {source.name}: {e}", source) from e

    return img


def _resize(img, config: ConversionConfig, stack: ExitStack):
    from PIL import Image

    width, height = img.size
    new_size = compute_target_size(width, height, config.max_width, config.max_height)
    if new_size == (width, height):
        return img

    try:
        resized = _track(stack, img.resize(new_size, Image.LANCZOS))
    except Exception as e:
        raise ResizeError(f"Cannot resize {width}x{height} → {new_size}: {e}") from e

    logger.debug(
        f"Resized: {width}x{height} → {new_size[0]}x{new_size[1]} "
        f"(max={config.max_width}x{config.max_height})"
    )
    return resized


def _prepare_mode(img, stack: ExitStack):
    """Convert to a mode WebP stores directly, dropping unused alpha."""
    if img.mode == "P":
        img = _track(stack, img.convert("RGBA"))
    if img.mode == "RGBA":
        if _has_meaningful_alpha(img):
            return img
        return _track(stack, img.convert("RGB"))
    if img.mode != "RGB":
        img = _track(stack, img.convert("RGBA" if "A" in img.getbands() else "RGB"))
    return img


def _encode(img, path: Path, quality: int) -> None:
    """Write ``img`` as lossy WebP to ``path``."""
    save_kwargs = {
        "quality": quality,
        "lossless": False,
        "method": WEBP_METHOD,
    }
    exif = img.info.get("exif")
    if exif:
        save_kwargs["exif"] = exif

    try:
        with path.open("wb") as fh:
            img.save(fh, format=TARGET_FORMAT, **save_kwargs)
    except OSError as e:
        raise EncodeError(f"Cannot write WebP: {e}", path) from e
    except Exception as e:
        raise EncodeError(f"Cannot encode WebP: {e}", path) from e


def _has_meaningful_alpha(img) -> bool:
    """Check if an RGBA image actually uses transparency."""
    if img.mode != "RGBA":
        return False
    extrema = img.getchannel("A").getextrema()
    # min alpha of 255 means fully opaque
    return extrema[0] < 255
