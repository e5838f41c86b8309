"""Upload limit checks: file type and streamed size."""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Final, final

from server.apps.image_upload.exceptions import (
    FileTooLargeError,
    UnsupportedTypeError,
)

# Mimetype prefix accepted when no extension allow-list is configured
_IMAGE_MIME_PREFIX: Final = 'image/'

logger = logging.getLogger(__name__)


def normalize_extension(extension: str) -> str:
    """Normalize an extension for comparison.

    Args:
        extension: Extension with or without leading dot (e.g., '.PNG').

    Returns:
        Lowercase extension without dot (e.g., 'png').
    """
    return extension.strip().lstrip('.').lower()


def get_file_extension(filename: str) -> str:
    """Get normalized extension from filename.

    Args:
        filename: Filename (e.g., 'photo.JPG').

    Returns:
        Extension without dot, lowercase (e.g., 'jpg').
        Returns empty string if no extension.
    """
    return normalize_extension(Path(filename).suffix)


@final
class LimitPolicy:
    """Decides whether an incoming file may be stored.

    Two independent checks:
    - type: extension allow-list, or any ``image/*`` mimetype when the
      allow-list is empty
    - size: cumulative byte count of one file, checked per chunk
    """

    def __init__(
        self,
        allowed_extensions: Iterable[str] = (),
        max_file_size: int | None = None,
    ) -> None:
        """Initialize limit policy.

        Args:
            allowed_extensions: Extensions to accept. Empty accepts images
                by mimetype.
            max_file_size: Maximum bytes per file, None for unlimited.
        """
        self._allowed_extensions = frozenset(
            normalize_extension(extension)
            for extension in allowed_extensions
            if normalize_extension(extension)
        )
        self._max_file_size = max_file_size

    @property
    def allowed_extensions(self) -> frozenset[str]:
        """Get normalized extension allow-list."""
        return self._allowed_extensions

    @property
    def max_file_size(self) -> int | None:
        """Get maximum file size in bytes."""
        return self._max_file_size

    def is_type_allowed(self, filename: str, content_type: str) -> bool:
        """Check file type against the allow-list.

        Args:
            filename: Original filename.
            content_type: Declared mimetype of the file.

        Returns:
            True if the file type is accepted.
        """
        if self._allowed_extensions:
            return get_file_extension(filename) in self._allowed_extensions
        return content_type.strip().lower().startswith(_IMAGE_MIME_PREFIX)

    def check_type(self, filename: str, content_type: str) -> None:
        """Reject a file whose type is not allowed.

        Args:
            filename: Original filename.
            content_type: Declared mimetype of the file.

        Raises:
            UnsupportedTypeError: If the type is not allowed.
        """
        if not self.is_type_allowed(filename, content_type):
            logger.warning(
                'Rejected file type: %s (%s)',
                filename,
                content_type,
            )
            raise UnsupportedTypeError(filename, content_type)

    def check_size(self, received_bytes: int) -> None:
        """Reject a file that has grown past the size limit.

        Called with the running total before each chunk is stored,
        so an oversized file is stopped mid-stream.

        Args:
            received_bytes: Cumulative bytes received for one file.

        Raises:
            FileTooLargeError: If the total exceeds the maximum size.
        """
        if self._max_file_size is None:
            return
        if received_bytes > self._max_file_size:
            logger.warning(
                'File size limit exceeded: %d > %d bytes',
                received_bytes,
                self._max_file_size,
            )
            raise FileTooLargeError(self._max_file_size, received_bytes)
