"""Image normalization for vision model requests.

Re-encodes uploads into a format every vision vendor accepts (JPEG, or PNG
when the source is PNG so transparency survives) and shrinks images that are
still too large to send.
"""

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

JPEG_QUALITY = 90
COMPRESSED_QUALITY = 80

# Ceiling on the bytes sent to a vision model
MAX_VISION_BYTES = 4 * 1024 * 1024
MAX_VISION_WIDTH = 1280

THUMBNAIL_WIDTH = 500
THUMBNAIL_QUALITY = 80

PNG_MIME_TYPE = "image/png"
JPEG_MIME_TYPE = "image/jpeg"

# Failures that mean "not a usable image"; DecompressionBombError is not an OSError
IMAGE_ERRORS = (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError)


@dataclass(frozen=True)
class NormalizedImage:
    """Result of normalizing an image file.

    When `processed` is False the path and MIME type are the originals and
    `error` explains why re-encoding was skipped.
    """

    path: Path
    mime_type: str
    processed: bool
    error: str | None = None


def supports_transparency(mime_type: str) -> bool:
    """Whether the normalized output for `mime_type` keeps an alpha channel."""
    return _output_format(mime_type) == "PNG"


def _output_format(mime_type: str) -> str:
    return "PNG" if "png" in (mime_type or "").lower() else "JPEG"


def _encode(image: Image.Image, fmt: str, quality: int) -> bytes:
    """Encode a PIL image as PNG or JPEG."""
    buffer = io.BytesIO()
    if fmt == "PNG":
        if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
            image = image.convert("RGBA")
        image.save(buffer, format="PNG", optimize=True)
    else:
        # JPEG has no alpha or palette modes
        if image.mode != "RGB":
            image = image.convert("RGB")
        image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def normalize_image(input_path: str | Path, mime_type: str) -> NormalizedImage:
    """
    Re-encode an image file for vision model compatibility.

    PNG in gives PNG out; everything else becomes JPEG at quality 90. The
    output is written next to the input as `<input>.processed.<fmt>`.

    Args:
        input_path: Path to the validated upload
        mime_type: Resolved MIME type of the upload

    Returns:
        NormalizedImage; on failure it points back at the original file
    """
    input_path = Path(input_path)
    fmt = _output_format(mime_type)
    output_mime = PNG_MIME_TYPE if fmt == "PNG" else JPEG_MIME_TYPE
    output_path = input_path.with_name(f"{input_path.name}.processed.{fmt.lower()}")

    try:
        with Image.open(input_path) as image:
            image.load()
            data = _encode(image, fmt, JPEG_QUALITY)
        output_path.write_bytes(data)
    except IMAGE_ERRORS as e:
        logger.warning(f"Image processing failed for {input_path.name}: {e}")
        output_path.unlink(missing_ok=True)
        return NormalizedImage(
            path=input_path,
            mime_type=mime_type,
            processed=False,
            error=str(e),
        )

    logger.info(f"Processed image saved to {output_path.name} ({output_mime})")
    return NormalizedImage(path=output_path, mime_type=output_mime, processed=True)


def compress_for_vision(
    data: bytes,
    mime_type: str,
    max_bytes: int = MAX_VISION_BYTES,
    max_width: int = MAX_VISION_WIDTH,
) -> tuple[bytes, str]:
    """
    Shrink an image that exceeds the vision request ceiling.

    Images over `max_bytes` are resized to at most `max_width` pixels wide
    (aspect preserved, never enlarged) and re-encoded at quality 80. The
    result is used only if it is smaller than the input.

    Returns:
        Tuple of (image bytes, MIME type) to send
    """
    if len(data) <= max_bytes:
        return data, mime_type

    logger.info(f"Image too large ({len(data) / 1024 / 1024:.2f}MB), compressing...")

    fmt = _output_format(mime_type)
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            if image.width > max_width:
                height = max(1, round(image.height * max_width / image.width))
                image = image.resize((max_width, height), Image.Resampling.LANCZOS)
            compressed = _encode(image, fmt, COMPRESSED_QUALITY)
    except IMAGE_ERRORS as e:
        logger.warning(f"Compression failed, sending original image: {e}")
        return data, mime_type

    logger.info(
        f"Compressed from {len(data) / 1024:.2f}KB to {len(compressed) / 1024:.2f}KB"
    )
    if len(compressed) < len(data):
        return compressed, PNG_MIME_TYPE if fmt == "PNG" else JPEG_MIME_TYPE
    return data, mime_type


def make_thumbnail_data_url(data: bytes) -> str:
    """
    Build a small JPEG data URL suitable for storing on a meal record.

    Raises:
        One of IMAGE_ERRORS: If `data` is not a readable image
    """
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if image.width > THUMBNAIL_WIDTH:
            height = max(1, round(image.height * THUMBNAIL_WIDTH / image.width))
            image = image.resize((THUMBNAIL_WIDTH, height), Image.Resampling.LANCZOS)
        encoded = _encode(image, "JPEG", THUMBNAIL_QUALITY)

    return f"data:{JPEG_MIME_TYPE};base64,{base64.b64encode(encoded).decode('utf-8')}"
