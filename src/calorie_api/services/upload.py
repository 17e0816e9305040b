"""Upload service for meal image ingestion.

Validates uploaded image bytes, resolves their MIME type and writes them to a
scratch directory. Callers own the written files and must delete them, which
`ScratchFiles` makes a one-liner.
"""

import logging
import os
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from calorie_api.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Vision vendors cap images around 5 MB; stay under with some headroom
MAX_UPLOAD_BYTES = int(4.5 * 1024 * 1024)
MAX_UPLOAD_MB = MAX_UPLOAD_BYTES / (1024 * 1024)

DEFAULT_MIME_TYPE = "image/png"
DEFAULT_EXTENSION = ".png"
GENERIC_MIME_TYPES = frozenset({"", "application/octet-stream"})

EXTENSION_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
}


def mime_type_from_extension(filename: str | os.PathLike) -> str:
    """Look up a MIME type by file extension, defaulting to PNG."""
    ext = Path(filename).suffix.lower()
    return EXTENSION_MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def resolve_mime_type(declared: str | None, filename: str | os.PathLike) -> str:
    """
    Pick the MIME type for an upload.

    The declared type wins unless it is missing or generic
    (`application/octet-stream`), in which case the extension decides.
    """
    declared = (declared or "").split(";")[0].strip().lower()
    if declared in GENERIC_MIME_TYPES:
        return mime_type_from_extension(filename)
    return declared


@dataclass(frozen=True)
class StoredUpload:
    """A validated upload written to the scratch directory."""

    path: Path
    mime_type: str
    size: int

    @property
    def size_mb(self) -> float:
        return self.size / (1024 * 1024)


class UploadService:
    """
    Service for handling meal image uploads.

    Rejects empty and oversized images, then writes the bytes to a uniquely
    named file under `upload_dir`.
    """

    def __init__(self, upload_dir: Path, max_bytes: int = MAX_UPLOAD_BYTES):
        """
        Initialize upload service.

        Args:
            upload_dir: Scratch directory for uploaded files
            max_bytes: Size ceiling for a single upload
        """
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    def validate(self, file_content: bytes) -> None:
        """
        Check an upload is non-empty and within the size ceiling.

        Raises:
            ValidationError: If the upload is empty or too large
        """
        size = len(file_content)
        if size == 0:
            raise ValidationError("Invalid image: Image file is empty.")
        if size > self.max_bytes:
            size_mb = size / (1024 * 1024)
            max_mb = self.max_bytes / (1024 * 1024)
            raise ValidationError(
                f"Invalid image: Image too large ({size_mb:.2f}MB). "
                f"Maximum size is {max_mb:g}MB.",
                details={"size": size, "max_size": self.max_bytes},
            )

    def save(
        self,
        file_content: bytes,
        filename: str | None,
        content_type: str | None,
    ) -> StoredUpload:
        """
        Validate and write an uploaded image.

        Args:
            file_content: Raw file bytes
            filename: Original filename (used for the extension only)
            content_type: Declared MIME type, possibly missing or generic

        Returns:
            StoredUpload pointing at the written file

        Raises:
            ValidationError: If the upload is empty or too large
        """
        self.validate(file_content)

        ext = Path(filename).suffix.lower() if filename else ""
        ext = ext or DEFAULT_EXTENSION
        stored_name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{ext}"

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / stored_name
        path.write_bytes(file_content)

        mime_type = resolve_mime_type(content_type, path)
        stored = StoredUpload(path=path, mime_type=mime_type, size=len(file_content))

        logger.info(
            f"Saved upload {filename or 'unnamed'} as {path.name} "
            f"({stored.size_mb:.2f}MB, {mime_type})"
        )
        return stored


class ScratchFiles:
    """
    Tracks temporary files and deletes them on exit.

    Usage:
        with ScratchFiles() as scratch:
            scratch.track(path)
            ...  # files are removed even if this raises
    """

    def __init__(self) -> None:
        self._paths: list[Path] = []

    def track(self, path: str | os.PathLike) -> Path:
        path = Path(path)
        if path not in self._paths:
            self._paths.append(path)
        return path

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def cleanup(self) -> None:
        """Delete every tracked file; failures are logged, never raised."""
        while self._paths:
            path = self._paths.pop()
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to delete temporary file {path}: {e}")

    def __enter__(self) -> "ScratchFiles":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
