"""Exceptions for image upload app."""

from http import HTTPStatus
from typing import Any, ClassVar


class UploadError(Exception):
    """Base class for errors that end an upload session.

    Every subclass knows how it is reported to the client:
    a short ``error_type`` tag and the HTTP status code.
    """

    error_type: ClassVar[str] = 'upload'
    status_code: ClassVar[int] = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        """Initialize UploadError.

        Args:
            message: Human readable description sent to the client.
        """
        self.message = message
        super().__init__(message)

    def as_dict(self) -> dict[str, Any]:
        """Serialize the error for a JSON response body.

        Returns:
            Dictionary with message, type and statusCode keys.
        """
        return {
            'message': self.message,
            'type': self.error_type,
            'statusCode': int(self.status_code),
        }


class UnsupportedTypeError(UploadError):
    """Raised when the file extension or mimetype is not allowed."""

    error_type = 'fileType'
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, filename: str, content_type: str) -> None:
        """Initialize UnsupportedTypeError.

        Args:
            filename: Original filename sent by the client.
            content_type: Declared mimetype of the file part.
        """
        self.filename = filename
        self.content_type = content_type
        super().__init__(
            f'File type is not allowed: {filename} ({content_type or "unknown"})',
        )


class FileTooLargeError(UploadError):
    """Raised as soon as a streamed file grows past the size limit."""

    error_type = 'fileSize'
    status_code = HTTPStatus.FORBIDDEN

    def __init__(self, max_bytes: int, received_bytes: int) -> None:
        """Initialize FileTooLargeError.

        Args:
            max_bytes: Configured maximum file size in bytes.
            received_bytes: Bytes received when the limit tripped.
        """
        self.max_bytes = max_bytes
        self.received_bytes = received_bytes
        super().__init__('File is too large')


class StorageFailureError(UploadError):
    """Raised when the storage backend fails to write the file."""

    error_type = 'storage'
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class MalformedRequestError(UploadError):
    """Raised when the multipart body cannot be parsed."""

    error_type = 'request'
    status_code = HTTPStatus.BAD_REQUEST


class TransportError(UploadError):
    """Raised when the client connection drops mid-request.

    The client is gone, so the response built from this error is
    never delivered. It only ends the session and gets logged.
    """

    error_type = 'transport'
    status_code = HTTPStatus.BAD_REQUEST
