"""
Pixel diff between two screenshots using Pillow.

A pixel differs when its largest per-channel difference exceeds
``threshold`` (0-1 of the channel range). Differing pixels are painted red
over a faded copy of the baseline in the diff image.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from PIL import Image, ImageChops, ImageOps

logger = logging.getLogger(__name__)

DIFF_COLOR = (255, 0, 0)


def _load_rgb(path: Union[str, Path]) -> Image.Image:
    with Image.open(path) as img:
        return img.convert("RGB")


def _difference_mask(baseline: Image.Image, actual: Image.Image, threshold: float) -> Image.Image:
    """Single-band mask: 255 where the pixels differ, 0 elsewhere."""
    red, green, blue = ImageChops.difference(baseline, actual).split()
    largest = ImageChops.lighter(ImageChops.lighter(red, green), blue)
    cutoff = int(threshold * 255)
    return largest.point(lambda value: 255 if value > cutoff else 0)


def compare_images(
    baseline_path: Union[str, Path],
    actual_path: Union[str, Path],
    diff_path: Optional[Union[str, Path]] = None,
    threshold: float = 0.1,
    max_diff_pixel_ratio: float = 0.1,
) -> Dict[str, Any]:
    """
    Compare two images of the same size.

    Args:
        baseline_path: Reference image
        actual_path: Image under test
        diff_path: Where to write the diff image when the images do not match
        threshold: Per-pixel colour tolerance, 0 to 1
        max_diff_pixel_ratio: Fraction of differing pixels still considered a match

    Returns:
        {"success": True, "match", "diffPercentage", "diffPath", ...} or
        {"success": False, "error"}
    """
    try:
        baseline = _load_rgb(baseline_path)
        actual = _load_rgb(actual_path)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read images for comparison: {e}")
        return {"success": False, "error": f"Failed to read image: {e}"}

    if baseline.size != actual.size:
        return {"success": False, "error": "Images must have the same dimensions"}

    width, height = baseline.size
    mask = _difference_mask(baseline, actual, threshold)
    diff_pixels = mask.histogram()[255]
    total_pixels = width * height
    diff_percentage = (diff_pixels / total_pixels) * 100 if total_pixels else 0.0
    match = diff_percentage <= max_diff_pixel_ratio * 100

    written_diff = None
    if not match and diff_path:
        faded = ImageOps.grayscale(baseline).point(lambda v: 128 + v // 2).convert("RGB")
        overlay = Image.new("RGB", baseline.size, DIFF_COLOR)
        diff_image = Image.composite(overlay, faded, mask)
        Path(diff_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            diff_image.save(diff_path, format="PNG")
        except OSError as e:
            logger.error(f"Failed to write diff image {diff_path}: {e}")
            return {"success": False, "error": f"Failed to write diff image: {e}"}
        written_diff = str(diff_path)

    logger.info(
        f"Compared {Path(actual_path).name} to {Path(baseline_path).name}: "
        f"{diff_pixels}/{total_pixels} pixels differ ({diff_percentage:.2f}%)"
    )
    return {
        "success": True,
        "match": match,
        "diffPercentage": diff_percentage,
        "diffPath": written_diff,
        "width": width,
        "height": height,
        "diffPixels": diff_pixels,
        "totalPixels": total_pixels,
        "threshold": threshold,
        "maxDiffPixelRatio": max_diff_pixel_ratio * 100,
    }
