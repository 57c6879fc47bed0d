"""
Image Loading - Imperative Shell

Turns a filesystem path or file:// URI into a SourceImage the pipeline
can upload. Decoding is done by Pillow; any failure is a DecodeError so the
pipeline refuses to proceed.
"""

import logging
from pathlib import Path
from typing import Union
from urllib.parse import urlparse
from urllib.request import url2pathname

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import DecodeError
from .quality_types import SourceImage

logger = logging.getLogger(__name__)


def resolve_image_path(uri: Union[str, Path]) -> Path:
    """Resolve a path or file:// URI to a local path

    Raises:
        DecodeError: For non-file URI schemes or missing files
    """
    if isinstance(uri, Path):
        path = uri
    else:
        parsed = urlparse(uri)
        if parsed.scheme == 'file':
            # url2pathname percent-decodes
            path = Path(url2pathname(parsed.path))
        elif parsed.scheme and len(parsed.scheme) > 1:
            # Single-letter schemes are Windows drive letters
            raise DecodeError(f"Unsupported image URI scheme: {parsed.scheme}")
        else:
            path = Path(uri)

    if not path.is_file():
        raise DecodeError(f"Image file not found: {uri}")
    return path


def load_source_image(uri: Union[str, Path]) -> SourceImage:
    """Decode an image file into RGBA8 pixels

    Imperative shell: performs file I/O.

    Applies EXIF orientation so camera photos are analyzed upright,
    then converts whatever mode the file has to RGBA.

    Args:
        uri: Filesystem path or file:// URI

    Returns:
        SourceImage with row 0 = top row of the image

    Raises:
        DecodeError: If the file is missing or cannot be decoded
    """
    path = resolve_image_path(uri)

    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            rgba = img.convert('RGBA')
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as e:
        raise DecodeError(f"Failed to decode image {path.name}: {e}") from e

    logger.debug("Decoded %s: %dx%d", path.name, rgba.width, rgba.height)
    return SourceImage(
        width=rgba.width,
        height=rgba.height,
        pixels=rgba.tobytes(),
        name=path.name
    )


def source_image_from_array(array: np.ndarray, name: str = "") -> SourceImage:
    """Wrap an in-memory uint8 array as a SourceImage

    Args:
        array: (H, W, 3) RGB or (H, W, 4) RGBA uint8 array, row 0 first
        name: Optional asset name

    Raises:
        DecodeError: If the array shape or dtype is unsupported
    """
    array = np.asarray(array)
    if array.dtype != np.uint8 or array.ndim != 3 or array.shape[2] not in (3, 4):
        raise DecodeError(
            f"Expected (H, W, 3|4) uint8 array, got {array.shape} {array.dtype}"
        )

    if array.shape[2] == 3:
        alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
        array = np.concatenate([array, alpha], axis=2)

    height, width = array.shape[:2]
    return SourceImage(
        width=width,
        height=height,
        pixels=np.ascontiguousarray(array).tobytes(),
        name=name
    )
