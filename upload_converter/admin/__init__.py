"""
Local Admin Server — HTTP upload endpoint with WebP conversion.

Usage:
    upload-converter serve
    # POST files to http://localhost:8000/api/media/upload

Features:
    - Store uploads and convert them to WebP when it saves space
    - Show converter status (enabled, codec availability)
    - Expose conversion metrics for Prometheus
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
