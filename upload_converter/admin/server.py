"""
Local Admin Server — Flask-based upload endpoint.

Stores uploads under the configured upload directory and runs them
through the upload filters (WebP conversion).
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from flask import Flask, Response, jsonify, request, send_from_directory

from ..config.loader import ConverterSettings, load_config
from ..content.capabilities import CodecCapabilities
from ..content.hooks import UploadFilterChain, register_converter
from ..observability.metrics import metrics
from .routes_upload import upload_bp

logger = logging.getLogger(__name__)

# Max upload size: 64 MB
MAX_CONTENT_LENGTH = 64 * 1024 * 1024


def create_app(
    settings: Optional[ConverterSettings] = None,
    capabilities: Optional[CodecCapabilities] = None,
) -> Flask:
    """Create the Flask application."""

    app = Flask(__name__)

    app.config["PROJECT_ROOT"] = Path.cwd()
    app.config["CONVERTER_SETTINGS"] = settings or load_config()
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH

    # Settings are looked up per upload so tests/operators can swap them
    chain = UploadFilterChain()
    register_converter(chain, lambda: app.config["CONVERTER_SETTINGS"], capabilities)
    app.extensions["upload_filters"] = chain
    app.extensions["codec_capabilities"] = capabilities

    # ── Register Blueprints ───────────────────────────────────────
    app.register_blueprint(upload_bp, url_prefix="/api/media")   # /api/media/*

    @app.route("/metrics", methods=["GET"])
    def prometheus_metrics():
        return Response(metrics.export_prometheus(), mimetype="text/plain; version=0.0.4")

    @app.route("/uploads/<path:filename>", methods=["GET"])
    def serve_upload(filename: str):
        upload_dir = Path(app.config["CONVERTER_SETTINGS"].upload_dir)
        if not upload_dir.is_absolute():
            upload_dir = app.config["PROJECT_ROOT"] / upload_dir
        return send_from_directory(str(upload_dir), filename)

    # ── Error Handlers ────────────────────────────────────────────

    @app.errorhandler(413)
    def request_entity_too_large(e):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 0) / (1024 * 1024)
        return jsonify({
            "success": False,
            "error": f"File too large (max {max_mb:.0f} MB)",
        }), 413

    @app.errorhandler(500)
    def internal_server_error(e):
        """Return JSON for any unhandled 500 so clients never see raw HTML."""
        logger.error(f"Unhandled 500 on {request.method} {request.path}: {e}", exc_info=True)
        return jsonify({
            "success": False,
            "error": f"Internal server error: {e}",
        }), 500

    # ── Request Logging ───────────────────────────────────────────

    @app.before_request
    def log_request_start():
        request._start_time = time.time()

    @app.after_request
    def log_request_end(response):
        """Log API requests with duration."""
        duration_ms = 0
        if hasattr(request, "_start_time"):
            duration_ms = int((time.time() - request._start_time) * 1000)

        if request.path.startswith("/api/"):
            log_fn = logger.debug if request.path.endswith("/status") else logger.info
            log_fn(f"{request.method} {request.path} → {response.status_code} ({duration_ms}ms)")
        return response

    logger.debug(f"Upload server initialized (upload_dir={app.config['CONVERTER_SETTINGS'].upload_dir})")

    return app


def run_server(host: str = "127.0.0.1", port: int = 8000, debug: bool = False) -> None:
    """Run the admin server (development server)."""
    app = create_app()
    logger.info(f"Starting upload server on http://{host}:{port}")
    app.run(host=host, port=port, debug=debug, use_reloader=False)
