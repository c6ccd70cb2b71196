"""Tile slicing for generated images.

Processing flow:
    1. Download the hosted image (`download_image`).
    2. Cut it into a row-major grid of `tile_size` x `tile_size` tiles
       (`slice_image`); right and bottom edge tiles may be smaller.
    3. Save tiles as PNG files in a caller-owned directory
       (`slice_to_directory`) and return their paths in send order.

Temporary files:
    This module only writes into the directory it is given. Creating and
    removing per-request directories is the caller's responsibility.

Error handling strategy:
    - Non-positive tile sizes -> `ValueError`.
    - Undecodable image data -> `PIL.UnidentifiedImageError`.
    - HTTP failures propagate via `requests.raise_for_status()`.
"""

import io
import logging
import os

import requests
from PIL import Image

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 60
# Modes PNG can store directly; anything else (CMYK, YCbCr...) is converted.
_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}


def download_image(url: str) -> bytes:
    """Fetch raw image bytes from `url`."""
    response = requests.get(url, timeout=DOWNLOAD_TIMEOUT_SECONDS)
    response.raise_for_status()
    return response.content


def slice_image(image: Image.Image, tile_width: int, tile_height: int) -> list[Image.Image]:
    """Cut `image` into a row-major grid of tiles.

    An image no larger than one tile yields a single tile covering it.
    """
    if tile_width <= 0 or tile_height <= 0:
        raise ValueError("tile dimensions must be > 0")

    width, height = image.size
    tiles = []
    for top in range(0, height, tile_height):
        for left in range(0, width, tile_width):
            box = (left, top, min(left + tile_width, width), min(top + tile_height, height))
            tiles.append(image.crop(box))
    return tiles


def slice_to_directory(image_bytes: bytes, output_dir: str, tile_size: int = 512) -> list[str]:
    """Decode `image_bytes`, slice it, and save PNG tiles into `output_dir`.

    Args:
        image_bytes: Encoded source image.
        output_dir: Existing directory that receives the tiles.
        tile_size: Tile edge length in pixels.

    Returns:
        Tile file paths in row-major order.
    """
    with Image.open(io.BytesIO(image_bytes)) as source:
        image = source if source.mode in _PNG_MODES else source.convert("RGB")
        tiles = slice_image(image, tile_size, tile_size)

        paths = []
        for index, tile in enumerate(tiles):
            path = os.path.join(output_dir, f"tile-{index:03d}.png")
            tile.save(path, format="PNG")
            paths.append(path)

    logger.info("Sliced %dx%d image into %d tile(s)", image.width, image.height, len(paths))
    return paths
