"""Turn an opaque image handle into raw bytes."""

import asyncio
import base64
import binascii
import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

from .base import ImageReadError

logger = logging.getLogger(__name__)

ImageHandle = bytes | bytearray | str | Path


def _decode_data_uri(uri: str) -> bytes:
    header, sep, payload = uri.partition(",")
    if not sep or ";base64" not in header:
        raise ImageReadError("Data URI image must be base64-encoded", provider="image")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageReadError(f"Invalid base64 image data: {e}", provider="image") from e


def _handle_to_path(handle: str | Path) -> Path:
    if isinstance(handle, Path):
        return handle
    if handle.startswith("file://"):
        return Path(unquote(urlparse(handle).path))
    return Path(handle)


async def read_image_bytes(handle: ImageHandle) -> bytes:
    """
    Read the image behind a handle as binary content.

    Args:
        handle: Raw bytes, a base64 `data:` URI, a `file://` URI, or a path

    Returns:
        Image bytes (never empty)

    Raises:
        ImageReadError: If the handle cannot be read or is empty
    """
    if isinstance(handle, (bytes, bytearray)):
        content = bytes(handle)
    elif isinstance(handle, str) and handle.startswith("data:"):
        content = _decode_data_uri(handle)
    elif isinstance(handle, (str, Path)):
        path = _handle_to_path(handle)
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise ImageReadError(
                f"Could not read image at {path}: {e}",
                provider="image",
                details={"path": str(path)},
            ) from e
    else:
        raise ImageReadError(
            f"Unsupported image handle type: {type(handle).__name__}", provider="image"
        )

    if not content:
        raise ImageReadError("Image is empty", provider="image")

    logger.debug(f"Read image ({len(content)} bytes)")
    return content
