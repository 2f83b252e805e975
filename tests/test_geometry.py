"""
Tests for resize geometry, orientation normalization and path helpers.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from upload_converter.content.convert import (
    ORIENTATION_TAG,
    compute_target_size,
    normalize_orientation,
    replace_url_basename,
)
from upload_converter.content.storage import derived_path


def _tagged(width: int, height: int, orientation: int):
    """Image with a red top-left pixel and an EXIF orientation tag."""
    img = Image.new("RGB", (width, height), (0, 0, 255))
    img.putpixel((0, 0), (255, 0, 0))
    exif = Image.Exif()
    exif[ORIENTATION_TAG] = orientation
    img.info["exif"] = exif.tobytes()
    return img


# ═══════════════════════════════════════════════════════════════════
# compute_target_size
# ═══════════════════════════════════════════════════════════════════


class TestComputeTargetSize:

    def test_within_bounds_unchanged(self):
        assert compute_target_size(800, 600, 1920, 1080) == (800, 600)

    def test_exactly_at_bounds_unchanged(self):
        assert compute_target_size(1920, 1080, 1920, 1080) == (1920, 1080)

    def test_width_only(self):
        assert compute_target_size(3000, 1000, 1920, 1080) == (1920, 640)

    def test_width_then_height(self):
        # Width pass gives 1920x1440, height pass corrects to 1440x1080
        assert compute_target_size(4000, 3000, 1920, 1080) == (1440, 1080)

    def test_height_only(self):
        assert compute_target_size(1000, 2000, 1920, 1080) == (540, 1080)

    def test_aspect_ratio_preserved(self):
        width, height = compute_target_size(5000, 2000, 1920, 1080)
        assert (width, height) == (1920, 768)
        assert width / height == pytest.approx(5000 / 2000)

    @pytest.mark.parametrize("width,height", [
        (100_000, 3),
        (3, 100_000),
        (9999, 1),
        (7, 9998),
    ])
    def test_extreme_aspect_ratios_stay_in_bounds(self, width, height):
        new_width, new_height = compute_target_size(width, height, 1920, 1080)
        assert 1 <= new_width <= 1920
        assert 1 <= new_height <= 1080

    def test_never_zero(self):
        assert compute_target_size(10_000, 1, 100, 100) == (100, 1)


# ═══════════════════════════════════════════════════════════════════
# normalize_orientation
# ═══════════════════════════════════════════════════════════════════


class TestNormalizeOrientation:

    def test_upside_down_rotates_180(self):
        original = _tagged(100, 50, 3)
        original_pixels = list(original.getdata())

        rotated = normalize_orientation(original)

        assert rotated.size == (100, 50)
        assert rotated.getexif()[ORIENTATION_TAG] == 1
        assert rotated.getpixel((99, 49)) == (255, 0, 0)
        # Another half-turn brings the pixels back
        assert list(rotated.transpose(Image.Transpose.ROTATE_180).getdata()) == original_pixels
        assert list(rotated.getdata()) != original_pixels

    def test_rotated_left_turns_clockwise(self):
        rotated = normalize_orientation(_tagged(100, 50, 6))

        assert rotated.size == (50, 100)
        assert rotated.getpixel((49, 0)) == (255, 0, 0)
        assert rotated.getexif()[ORIENTATION_TAG] == 1

    def test_rotated_right_turns_counter_clockwise(self):
        rotated = normalize_orientation(_tagged(100, 50, 8))

        assert rotated.size == (50, 100)
        assert rotated.getpixel((0, 99)) == (255, 0, 0)
        assert rotated.getexif()[ORIENTATION_TAG] == 1

    @pytest.mark.parametrize("orientation", [1, 2, 4, 5, 7])
    def test_other_tags_not_rotated(self, orientation):
        img = _tagged(100, 50, orientation)

        result = normalize_orientation(img)

        assert result.size == (100, 50)
        assert result.getpixel((0, 0)) == (255, 0, 0)
        assert result.getexif()[ORIENTATION_TAG] == 1

    def test_untagged_image_left_alone(self):
        img = Image.new("RGB", (10, 20))

        result = normalize_orientation(img)

        assert result is img
        assert ORIENTATION_TAG not in result.getexif()


# ═══════════════════════════════════════════════════════════════════
# Paths and URLs
# ═══════════════════════════════════════════════════════════════════


class TestPaths:

    def test_derived_path_keeps_directory_and_stem(self):
        assert derived_path("/srv/uploads/2024/photo.final.JPG", ".webp") == Path(
            "/srv/uploads/2024/photo.final.webp"
        )

    def test_replace_url_basename(self):
        url = "https://example.com/uploads/2024/05/photo.png"
        assert replace_url_basename(url, "photo.webp") == "https://example.com/uploads/2024/05/photo.webp"

    def test_replace_url_basename_only_touches_last_segment(self):
        url = "/photo.png/uploads/photo.png"
        assert replace_url_basename(url, "photo.webp") == "/photo.png/uploads/photo.webp"

    def test_replace_url_basename_bare_name(self):
        assert replace_url_basename("photo.png", "photo.webp") == "photo.webp"

    def test_replace_url_basename_empty(self):
        assert replace_url_basename("", "photo.webp") == ""
