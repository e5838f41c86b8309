"""Streaming storage backends for uploaded images.

Both backends accept a file as a sequence of chunks through
``begin_upload`` and never hold the whole file in memory.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, BinaryIO, Final, Protocol, final

from botocore.exceptions import BotoCoreError, ClientError
from django.core.files.storage import FileSystemStorage
from storages.backends.s3 import S3Storage
from storages.utils import clean_name

from server.apps.image_upload.exceptions import StorageFailureError

# S3 rejects multipart parts smaller than 5 MiB (except the last one)
_S3_PART_SIZE: Final = 5 * 1024 * 1024

_STORAGE_ERRORS: Final = (BotoCoreError, ClientError)

logger = logging.getLogger(__name__)


class PartialUpload(Protocol):
    """File being streamed into storage."""

    def write(self, chunk: bytes) -> None:
        """Append a chunk to the file."""

    def finish(self) -> str | None:
        """Persist the file, returning the URL if the backend reports one."""

    def discard(self) -> None:
        """Delete everything written so far (best-effort, never raises)."""


class StorageBackend(Protocol):
    """Storage capability used by upload sessions."""

    def begin_upload(self, name: str, content_type: str) -> PartialUpload:
        """Start streaming a new file to ``name``."""

    def rollback_upload(self, name: str) -> None:
        """Delete a finished upload (best-effort, never raises)."""

    def remove_pad(self, pad_id: str) -> None:
        """Clean up uploads of a removed pad."""


class _DeletingStorage(Protocol):
    """Anything with Django's ``Storage.delete``."""

    def delete(self, name: str) -> None:
        """Delete the file stored under ``name``."""


class _RollbackMixin:
    """Best-effort rollback shared by storage backends."""

    def rollback_upload(self: _DeletingStorage, name: str) -> None:
        """Remove a finished upload whose request failed afterwards.

        The URL was never sent to the client, so the file is
        unreachable. Errors are logged, the request outcome is
        already decided.

        Args:
            name: Storage path of the finished upload.
        """
        logger.warning('Removing upload of failed request: %s', name)
        try:
            self.delete(name)
        except Exception:
            logger.exception('Upload left behind in storage: %s', name)
            return
        logger.info('Removed upload of failed request: %s', name)


@final
class MultipartObjectUpload:
    """Object streamed to S3 with the multipart upload API.

    Chunks are buffered only until a full part is collected,
    so memory use is bounded by the part size.
    """

    def __init__(
        self,
        client: Any,
        bucket_name: str,
        key: str,
        upload_id: str,
    ) -> None:
        """Initialize multipart upload.

        Args:
            client: boto3 S3 client.
            bucket_name: Destination bucket.
            key: Destination object key.
            upload_id: ID returned by create_multipart_upload.
        """
        self._client = client
        self._bucket_name = bucket_name
        self._key = key
        self._upload_id = upload_id
        self._buffer = bytearray()
        self._parts: list[dict[str, Any]] = []

    @property
    def key(self) -> str:
        """Get destination object key."""
        return self._key

    def write(self, chunk: bytes) -> None:
        """Buffer a chunk and upload a part when the buffer is full.

        Args:
            chunk: Next bytes of the file.

        Raises:
            StorageFailureError: If a part upload fails.
        """
        self._buffer.extend(chunk)
        if len(self._buffer) >= _S3_PART_SIZE:
            self._upload_part()

    def finish(self) -> str:
        """Upload the last part and complete the multipart upload.

        Returns:
            Object URL as reported by S3.

        Raises:
            StorageFailureError: If the upload cannot be completed.
        """
        if self._buffer or not self._parts:
            self._upload_part()

        try:
            response = self._client.complete_multipart_upload(
                Bucket=self._bucket_name,
                Key=self._key,
                UploadId=self._upload_id,
                MultipartUpload={'Parts': self._parts},
            )
        except _STORAGE_ERRORS as exc:
            logger.exception('Failed to complete upload: %s', self._key)
            raise StorageFailureError('Failed to store file') from exc

        logger.info(
            'Completed upload of %s in %d parts',
            self._key,
            len(self._parts),
        )
        return response['Location']

    def discard(self) -> None:
        """Abort the multipart upload so S3 drops the stored parts."""
        self._buffer.clear()
        try:
            self._client.abort_multipart_upload(
                Bucket=self._bucket_name,
                Key=self._key,
                UploadId=self._upload_id,
            )
            logger.info('Aborted partial upload: %s', self._key)
        except _STORAGE_ERRORS:
            # Incomplete multipart uploads are invisible to readers,
            # a bucket lifecycle rule can expire them
            logger.exception('Failed to abort partial upload: %s', self._key)

    def _upload_part(self) -> None:
        part_number = len(self._parts) + 1
        try:
            response = self._client.upload_part(
                Bucket=self._bucket_name,
                Key=self._key,
                UploadId=self._upload_id,
                PartNumber=part_number,
                Body=bytes(self._buffer),
            )
        except _STORAGE_ERRORS as exc:
            logger.exception(
                'Failed to upload part %d of %s',
                part_number,
                self._key,
            )
            raise StorageFailureError('Failed to store file') from exc

        self._parts.append({
            'ETag': response['ETag'],
            'PartNumber': part_number,
        })
        self._buffer.clear()


@final
class ObjectStorage(_RollbackMixin, S3Storage):
    """S3 storage backend for pad images.

    Streams new objects with the multipart API, so a failed upload
    is aborted instead of leaving a partial object behind.
    """

    def begin_upload(
        self,
        name: str,
        content_type: str,
    ) -> MultipartObjectUpload:
        """Start a multipart upload for a new object.

        Args:
            name: Storage path relative to the base folder.
            content_type: MIME type stored with the object.

        Returns:
            Multipart upload accepting the file chunks.

        Raises:
            StorageFailureError: If the upload cannot be started.
        """
        key = self._normalize_name(clean_name(name))
        params = self.get_object_parameters(name)
        params['ContentType'] = content_type or 'application/octet-stream'
        if self.default_acl:
            params['ACL'] = self.default_acl

        client = self.connection.meta.client
        try:
            logger.info('Starting upload to bucket %s: %s', self.bucket_name, key)
            response = client.create_multipart_upload(
                Bucket=self.bucket_name,
                Key=key,
                **params,
            )
        except _STORAGE_ERRORS as exc:
            logger.exception('Failed to start upload: %s', key)
            raise StorageFailureError('Failed to store file') from exc

        return MultipartObjectUpload(
            client,
            self.bucket_name,
            key,
            response['UploadId'],
        )

    def remove_pad(self, pad_id: str) -> None:
        """Keep objects of removed pads in the bucket.

        Args:
            pad_id: ID of the removed pad.
        """
        logger.debug('Keeping object storage uploads of pad: %s', pad_id)


@final
class LocalFileUpload:
    """File streamed to the local filesystem."""

    def __init__(self, path: Path, handle: BinaryIO) -> None:
        """Initialize local upload.

        Args:
            path: Absolute destination path.
            handle: File opened for writing at ``path``.
        """
        self._path = path
        self._handle = handle

    @property
    def path(self) -> Path:
        """Get destination path."""
        return self._path

    def write(self, chunk: bytes) -> None:
        """Write a chunk to disk.

        Args:
            chunk: Next bytes of the file.

        Raises:
            StorageFailureError: If the write fails.
        """
        try:
            self._handle.write(chunk)
        except OSError as exc:
            logger.exception('Failed to write file: %s', self._path)
            raise StorageFailureError('Failed to store file') from exc

    def finish(self) -> None:
        """Flush and close the file.

        The local backend does not know its public URL, the caller
        builds it from the configured base URL.

        Raises:
            StorageFailureError: If the file cannot be flushed.
        """
        try:
            self._handle.close()
        except OSError as exc:
            logger.exception('Failed to close file: %s', self._path)
            raise StorageFailureError('Failed to store file') from exc
        logger.info('Stored file: %s', self._path)

    def discard(self) -> None:
        """Close and delete the partially written file."""
        try:
            self._handle.close()
        except OSError:
            logger.exception('Failed to close partial file: %s', self._path)
        try:
            self._path.unlink(missing_ok=True)
            logger.info('Deleted partial file: %s', self._path)
        except OSError:
            logger.exception('Failed to delete partial file: %s', self._path)


@final
class LocalStorage(_RollbackMixin, FileSystemStorage):
    """Filesystem storage backend for pad images.

    Files live under ``<location>/<pad_id>/``.
    """

    def begin_upload(self, name: str, content_type: str) -> LocalFileUpload:
        """Create a new file on disk for streaming.

        Args:
            name: Storage path relative to the base folder.
            content_type: MIME type (not stored on disk).

        Returns:
            Local upload accepting the file chunks.

        Raises:
            StorageFailureError: If the file cannot be created.
        """
        path = Path(self.path(name))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Exclusive create, generated names never overwrite a file
            handle = path.open('xb')
        except OSError as exc:
            logger.exception('Failed to create file: %s', path)
            raise StorageFailureError('Failed to store file') from exc

        logger.info('Starting upload to %s (%s)', path, content_type)
        return LocalFileUpload(path, handle)

    def remove_pad(self, pad_id: str) -> None:
        """Recursively delete the upload folder of a removed pad.

        Args:
            pad_id: ID of the removed pad.
        """
        pad_folder = Path(self.path(pad_id))
        try:
            shutil.rmtree(pad_folder)
        except FileNotFoundError:
            logger.debug('No uploads to remove for pad: %s', pad_id)
            return
        logger.info('Removed uploads of pad %s: %s', pad_id, pad_folder)
