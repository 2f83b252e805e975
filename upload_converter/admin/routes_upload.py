"""
Admin API — Media upload endpoints.

Blueprint: upload_bp
Prefix: /api/media
Routes:
    POST   /api/media/upload     # Store an upload, run the upload filters
    GET    /api/media/status     # Converter enabled/disabled/codec notice
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Tuple

from flask import Blueprint, current_app, jsonify, request
from werkzeug.utils import secure_filename

from ..config.system_status import get_converter_status
from ..content.capabilities import TARGET_EXTENSION
from ..content.hooks import HANDLE_UPLOAD
from ..content.storage import derived_path, remove_quietly
from ..models.upload import UploadRequest

upload_bp = Blueprint("upload", __name__)

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────────────────


def _settings():
    return current_app.config["CONVERTER_SETTINGS"]


def _upload_dir() -> Path:
    path = Path(_settings().upload_dir)
    if not path.is_absolute():
        path = current_app.config["PROJECT_ROOT"] / path
    return path


def _reserve_paths(directory: Path, filename: str) -> Tuple[Path, Path]:
    """
    Claim a free name for an upload: ``name.ext``, or ``name-1.ext``...

    A name is free only if neither it nor the WebP it converts to exists.
    Both are created empty with exclusive mode, so concurrent uploads and
    earlier conversions never share a target. Returns (stored, webp).
    """
    stem, suffix = Path(filename).stem, Path(filename).suffix
    n = 0
    while True:
        candidate = directory / (filename if n == 0 else f"{stem}-{n}{suffix}")
        webp = derived_path(candidate, TARGET_EXTENSION)
        n += 1
        if candidate.exists() or webp.exists():
            continue
        try:
            _create_exclusive(candidate)
        except FileExistsError:
            continue
        if webp != candidate:
            try:
                _create_exclusive(webp)
            except FileExistsError:
                candidate.unlink()
                continue
        return candidate, webp


def _create_exclusive(path: Path) -> None:
    with path.open("xb"):
        pass


# ── Routes ───────────────────────────────────────────────────────


@upload_bp.route("/upload", methods=["POST"])
def api_upload():
    """
    Store an uploaded file and run the upload filters on it.

    Accepts multipart/form-data:
        file: The file to upload (required)

    The response describes the stored upload: the converted WebP when
    conversion was worthwhile, otherwise the original file.
    """
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    file = request.files["file"]
    filename = secure_filename(file.filename or "")
    if not filename:
        return jsonify({"error": "Empty filename"}), 400

    mime_type = (
        file.mimetype
        if file.mimetype and file.mimetype != "application/octet-stream"
        else mimetypes.guess_type(filename)[0] or "application/octet-stream"
    )

    upload_dir = _upload_dir()
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored, webp = _reserve_paths(upload_dir, filename)
    result = None
    try:
        file.save(str(stored))

        if stored.stat().st_size == 0:
            stored.unlink()
            return jsonify({"error": "Empty file"}), 400

        original_size = stored.stat().st_size
        upload = UploadRequest(
            file=str(stored),
            type=mime_type,
            url=f"{_settings().base_url}/{stored.name}",
        )

        chain = current_app.extensions["upload_filters"]
        result = chain.apply(HANDLE_UPLOAD, upload)
    finally:
        # Release reservations nothing was written to
        if webp != stored and (result is None or Path(result.file) != webp):
            remove_quietly(webp)
        if result is None and stored.exists() and stored.stat().st_size == 0:
            remove_quietly(stored)

    size_bytes = Path(result.file).stat().st_size
    converted = result.file != upload.file
    logger.info(
        f"Upload stored: {Path(result.file).name} ({result.type}, {size_bytes:,} bytes"
        + (f", converted from {original_size:,})" if converted else ")")
    )

    return jsonify({
        "success": True,
        "file": Path(result.file).name,
        "url": result.url,
        "type": result.type,
        "size_bytes": size_bytes,
        "original_size_bytes": original_size,
        "converted": converted,
    }), 201


@upload_bp.route("/status", methods=["GET"])
def api_status():
    """Converter status notice."""
    status = get_converter_status(_settings(), current_app.extensions.get("codec_capabilities"))
    return jsonify(status.to_dict())
