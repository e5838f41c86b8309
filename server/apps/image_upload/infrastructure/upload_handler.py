"""Django upload handler streaming multipart file parts into a session."""

import logging
from typing import Any, override

from django.conf import settings
from django.core.files.uploadhandler import (
    FileUploadHandler,
    SkipFile,
    StopUpload,
)
from django.http import HttpRequest

from server.apps.image_upload.exceptions import UploadError
from server.apps.image_upload.logic.session import (
    IncomingFilePart,
    UploadSession,
)

logger = logging.getLogger(__name__)


class StreamingUploadHandler(FileUploadHandler):
    """Upload handler that never buffers the file.

    Every chunk read by Django's multipart parser goes straight to the
    upload session. When the session fails, the handler stops the
    parser with ``StopUpload(connection_reset=False)``, which makes
    Django drain and discard the rest of the request body.

    Nothing is added to ``request.FILES``, the session holds the result.
    """

    def __init__(
        self,
        session: UploadSession,
        request: HttpRequest | None = None,
    ) -> None:
        """Initialize upload handler.

        Args:
            session: Upload session receiving the file parts.
            request: Current request.
        """
        super().__init__(request)
        self._session = session
        self.chunk_size = getattr(
            settings,
            'IMAGE_UPLOAD_CHUNK_SIZE',
            self.chunk_size,
        )

    @override
    def new_file(  # noqa: WPS211
        self,
        field_name: str,
        file_name: str,
        content_type: str,
        content_length: int | None,
        charset: str | None = None,
        content_type_extra: dict[str, Any] | None = None,
    ) -> None:
        """Start a new file part.

        Args:
            field_name: Form field name.
            file_name: Sanitized original filename.
            content_type: Declared mimetype.
            content_length: Declared part length, usually None.
            charset: Declared charset.
            content_type_extra: Extra content type parameters.

        Raises:
            StopUpload: If the session is resolved or rejects the part.
            SkipFile: If the part is an extra file to ignore.
        """
        super().new_file(
            field_name,
            file_name,
            content_type,
            content_length,
            charset,
            content_type_extra,
        )
        if self._session.is_resolved:
            raise StopUpload(connection_reset=False)

        part = IncomingFilePart(
            field_name=field_name,
            filename=file_name,
            content_type=content_type,
            charset=charset,
        )
        try:
            accepted = self._session.begin_part(part)
        except UploadError as exc:
            raise StopUpload(connection_reset=False) from exc

        if not accepted:
            raise SkipFile

    @override
    def receive_data_chunk(self, raw_data: bytes, start: int) -> None:
        """Stream a chunk into the session.

        Args:
            raw_data: Chunk read from the request body.
            start: Offset of the chunk within the file.

        Raises:
            StopUpload: If the session failed on this chunk.
        """
        try:
            self._session.feed(raw_data)
        except UploadError as exc:
            logger.debug(
                'Stopping upload at offset %d: %s',
                start,
                exc.message,
            )
            raise StopUpload(connection_reset=False) from exc

    @override
    def file_complete(self, file_size: int) -> None:
        """Persist the file once the parser reached its end.

        Args:
            file_size: Total bytes of the file part.

        Raises:
            StopUpload: If storage could not persist the file.
        """
        try:
            self._session.finish_part()
        except UploadError as exc:
            raise StopUpload(connection_reset=False) from exc
