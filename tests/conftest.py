"""
Shared fixtures for converter tests.

Images are generated with Pillow inside ``tmp_path`` so every test works
on its own upload directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from upload_converter.config.loader import ConverterSettings
from upload_converter.content.capabilities import StaticCapabilities
from upload_converter.models.upload import ConversionConfig, UploadRequest
from upload_converter.observability.metrics import metrics


# ── Image helpers ────────────────────────────────────────────────


def noise_image(width: int, height: int, mode: str = "RGB"):
    """A noisy image: compresses badly as PNG, well as lossy WebP."""
    from PIL import Image

    bands = [Image.effect_noise((width, height), 64 + 16 * i) for i in range(3)]
    img = Image.merge("RGB", bands)
    if mode != "RGB":
        img = img.convert(mode)
    return img


def write_png(path: Path, width: int, height: int, mode: str = "RGB") -> Path:
    noise_image(width, height, mode).save(path, format="PNG")
    return path


def write_jpeg(path: Path, width: int, height: int, orientation: int | None = None, quality: int = 95) -> Path:
    from PIL import Image

    img = noise_image(width, height)
    kwargs = {"quality": quality}
    if orientation is not None:
        exif = Image.Exif()
        exif[0x0112] = orientation
        kwargs["exif"] = exif.tobytes()
    img.save(path, format="JPEG", **kwargs)
    return path


# ── Fixtures ─────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def reset_metrics():
    """Each test starts with empty counters."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def enabled_config() -> ConversionConfig:
    return ConversionConfig(enabled=True, max_width=1920, max_height=1080, quality=50)


@pytest.fixture
def webp_caps() -> StaticCapabilities:
    """Pretend WebP (and HEIC) codecs are present."""
    return StaticCapabilities(encode_target=True)


@pytest.fixture
def noisy_png(upload_dir: Path) -> Path:
    return write_png(upload_dir / "photo.png", 320, 240)


@pytest.fixture
def png_request(noisy_png: Path) -> UploadRequest:
    return UploadRequest(
        file=str(noisy_png),
        type="image/png",
        url="https://example.com/uploads/2024/05/photo.png",
    )


@pytest.fixture
def settings(upload_dir: Path) -> ConverterSettings:
    return ConverterSettings(
        enabled=True,
        max_width=1920,
        max_height=1080,
        quality=50,
        upload_dir=str(upload_dir),
        base_url="/uploads",
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove converter env vars so defaults apply."""
    from upload_converter.config.loader import ENV_VARS, MASTER_ENV_VAR

    for var in (MASTER_ENV_VAR, *ENV_VARS.values()):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
