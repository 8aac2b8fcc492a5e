"""
Cover image download and normalization.

Both YouTube thumbnails (often WebP) and Cover Art Archive images (often
several megabytes) are converted to a baseline RGB JPEG of at most
1000x1000 before being embedded, so every file carries the same kind of
picture.
"""

from io import BytesIO

import aiohttp
from PIL import Image, UnidentifiedImageError

from ytplaylist.core.exceptions import RemoteAccessError
from ytplaylist.core.logger import get_logger

logger = get_logger(__name__)


COVER_MIME = "image/jpeg"
MAX_COVER_SIZE = 1000
JPEG_QUALITY = 90


def detect_image_mime(data: bytes) -> str | None:
    """Guess the MIME type from magic bytes."""
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def prepare_cover(data: bytes) -> tuple[bytes, str]:
    """
    Convert image bytes to an embeddable JPEG.

    Returns:
        (image bytes, mime type). If Pillow can't decode the data, the
        original bytes are returned with their detected MIME type.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            if img.mode != "RGB":
                img = img.convert("RGB")
            if img.width > MAX_COVER_SIZE or img.height > MAX_COVER_SIZE:
                img.thumbnail((MAX_COVER_SIZE, MAX_COVER_SIZE), Image.Resampling.LANCZOS)
            output = BytesIO()
            img.save(output, format="JPEG", quality=JPEG_QUALITY, optimize=True)
            return output.getvalue(), COVER_MIME
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Cover kept as downloaded, conversion failed: {e}")
        return data, detect_image_mime(data) or COVER_MIME


async def fetch_image(session: aiohttp.ClientSession, url: str) -> bytes:
    """
    Download an image.

    Raises:
        RemoteAccessError: On HTTP errors (403/429 are retried by the job)
                           or connection failures.
    """
    try:
        async with session.get(url) as response:
            if response.status >= 400:
                raise RemoteAccessError(
                    f"Image request failed with HTTP {response.status}",
                    details={"url": url},
                    status_code=response.status
                )
            return await response.read()
    except aiohttp.ClientError as e:
        raise RemoteAccessError(
            f"Image request failed: {e}",
            details={"url": url}
        ) from e
