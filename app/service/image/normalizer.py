import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from app.config.setting import settings

logger = logging.getLogger(__name__)

START_QUALITY = 90
QUALITY_STEP = 10
QUALITY_FLOOR = 40


class ImageDecodeError(Exception):
    pass


@dataclass
class NormalizedImage:
    data: bytes
    width: int
    height: int
    quality: int

    content_type: str = "image/jpeg"


def _fit_within(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Scale so the longer side is *max_dimension*, keeping the aspect ratio."""
    longer = max(width, height)
    if longer <= max_dimension:
        return width, height
    scale = max_dimension / longer
    return max(1, round(width * scale)), max(1, round(height * scale))


def _flatten(image: Image.Image) -> Image.Image:
    # JPEG has no alpha channel
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, (255, 255, 255))
        canvas.paste(rgba, mask=rgba.split()[-1])
        return canvas
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def _encode(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def normalize_image(
    data: bytes,
    max_bytes: int = settings.IMAGE_MAX_BYTES,
    max_dimension: int = settings.IMAGE_MAX_DIMENSION,
) -> NormalizedImage:
    """
    Turn an arbitrary image into a JPEG no larger than *max_dimension* on its
    longer side, lowering the quality step by step until it fits in
    *max_bytes*. The byte budget is best effort: once the quality floor is
    reached the last encoding is returned even if it is still too big.

    Raises:
        ImageDecodeError: the bytes are not a readable image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        # camera photos store rotation as an EXIF tag instead of in the pixels
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Cannot read image: {e}") from e

    width, height = _fit_within(image.width, image.height, max_dimension)
    if (width, height) != image.size:
        image = image.resize((width, height), Image.LANCZOS)
    image = _flatten(image)

    quality = START_QUALITY
    encoded = _encode(image, quality)
    while len(encoded) > max_bytes and quality > QUALITY_FLOOR:
        quality -= QUALITY_STEP
        encoded = _encode(image, quality)

    if len(encoded) > max_bytes:
        logger.warning(f"Image still {len(encoded)} bytes at quality floor {quality}")

    return NormalizedImage(data=encoded, width=width, height=height, quality=quality)


async def normalize_avatar(data: bytes) -> NormalizedImage:
    """Run :func:`normalize_image` off the event loop."""
    return await run_in_threadpool(normalize_image, data)
