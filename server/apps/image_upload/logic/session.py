"""Upload session: one request's journey from multipart body to storage.

The session receives events from the multipart parser (file part
started, chunk received, part finished, parser failed) and resolves
to exactly one outcome. Streamed I/O is racy: an error may be reported
after the outcome was already decided (e.g., the connection drops while
the rest of an oversized body is being drained). The outcome is kept in
a set-once cell, so the first decision wins and later events are no-ops.
"""

import enum
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, final

from server.apps.image_upload.exceptions import (
    MalformedRequestError,
    UploadError,
)
from server.apps.image_upload.infrastructure.storage import PartialUpload
from server.apps.image_upload.logic.configuration import UploadConfiguration

# Characters that may not appear in a pad ID used as a folder name
_FORBIDDEN_PAD_ID_CHARS: Final = frozenset('/\\\x00')
_RESERVED_PAD_IDS: Final = frozenset(('.', '..'))

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    """Lifecycle of an upload session."""

    AWAITING_PART = 'awaiting_part'
    STREAMING = 'streaming'
    STORED = 'stored'
    RESOLVED = 'resolved'


@final
@dataclass(frozen=True, slots=True)
class IncomingFilePart:
    """File part announced by the multipart parser."""

    field_name: str
    filename: str
    content_type: str
    charset: str | None = None


@final
@dataclass(frozen=True, slots=True)
class StoredObject:
    """Where an uploaded file now lives."""

    name: str
    url: str

    def as_dict(self) -> dict[str, Any]:
        """Serialize for a JSON response body."""
        return {'url': self.url}


@final
@dataclass(frozen=True, slots=True)
class UploadSuccess:
    """Upload stored successfully."""

    stored_object: StoredObject


@final
@dataclass(frozen=True, slots=True)
class UploadFailure:
    """Upload rejected or failed."""

    error: UploadError


UploadOutcome = UploadSuccess | UploadFailure


@final
class OutcomeCell:
    """Single-assignment holder for the session outcome."""

    def __init__(self) -> None:
        """Initialize empty cell."""
        self._outcome: UploadOutcome | None = None

    @property
    def is_set(self) -> bool:
        """Check if the outcome was decided."""
        return self._outcome is not None

    @property
    def outcome(self) -> UploadOutcome | None:
        """Get decided outcome, None while undecided."""
        return self._outcome

    def set(self, outcome: UploadOutcome) -> bool:
        """Store the outcome unless one is already stored.

        Args:
            outcome: Outcome to record.

        Returns:
            True if recorded, False if the cell was already set.
        """
        if self._outcome is not None:
            return False
        self._outcome = outcome
        return True


def validate_pad_id(pad_id: str) -> None:
    """Validate pad ID before it is used as a storage folder.

    Args:
        pad_id: Pad ID from the request path.

    Raises:
        MalformedRequestError: If the pad ID is empty or path-like.
    """
    if not pad_id or pad_id in _RESERVED_PAD_IDS:
        raise MalformedRequestError(f'Invalid pad ID: {pad_id!r}')
    if _FORBIDDEN_PAD_ID_CHARS.intersection(pad_id):
        raise MalformedRequestError(f'Invalid pad ID: {pad_id!r}')


def build_object_name(
    pad_id: str,
    filename: str,
    id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
) -> str:
    """Build storage path for a new upload.

    Only the extension of the original filename is kept, the rest
    is a freshly generated random ID.

    Args:
        pad_id: ID of the pad the image belongs to.
        filename: Original filename sent by the client.
        id_factory: Unique ID generator.

    Returns:
        Storage path: {pad_id}/{uuid}{.ext}, the extension without
        surrounding whitespace.
    """
    suffix = Path(filename).suffix.strip()
    return f'{pad_id}/{id_factory()}{suffix}'


@final
class UploadSession:
    """Drives a single upload request to one terminal outcome.

    States: AWAITING_PART -> STREAMING -> STORED -> RESOLVED.
    Any failure jumps straight to RESOLVED. Only the first file part
    of a request is stored, later parts are skipped.
    """

    def __init__(
        self,
        pad_id: str,
        configuration: UploadConfiguration,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ) -> None:
        """Initialize upload session.

        An invalid pad ID resolves the session immediately, so the
        request body is drained without storing anything.

        Args:
            pad_id: ID of the pad from the request path.
            configuration: Resolved upload configuration.
            id_factory: Unique ID generator for storage names.
        """
        self._pad_id = pad_id
        self._configuration = configuration
        self._id_factory = id_factory
        self._cell = OutcomeCell()
        self._state = SessionState.AWAITING_PART
        self._upload: PartialUpload | None = None
        self._name: str | None = None
        self._received_bytes = 0
        self._stored_object: StoredObject | None = None

        try:
            validate_pad_id(pad_id)
        except MalformedRequestError as exc:
            self._resolve(UploadFailure(exc))

    @property
    def state(self) -> SessionState:
        """Get current session state."""
        return self._state

    @property
    def is_resolved(self) -> bool:
        """Check if the outcome was decided."""
        return self._cell.is_set

    @property
    def outcome(self) -> UploadOutcome | None:
        """Get decided outcome, None while the upload is in progress."""
        return self._cell.outcome

    @property
    def received_bytes(self) -> int:
        """Get bytes received for the current file part."""
        return self._received_bytes

    def begin_part(self, part: IncomingFilePart) -> bool:
        """Handle a new file part.

        Checks the file type and opens the storage upload. Nothing is
        sent to storage for a rejected part.

        Args:
            part: File part announced by the parser.

        Returns:
            True if the part is streamed, False if it should be skipped.

        Raises:
            UploadError: If the part was rejected or storage failed.
                The session is already resolved when this is raised.
        """
        if self._state is not SessionState.AWAITING_PART:
            logger.info(
                'Skipping extra file part %s (%s) for pad %s',
                part.field_name,
                part.filename,
                self._pad_id,
            )
            return False

        limits = self._configuration.limits
        name = build_object_name(self._pad_id, part.filename, self._id_factory)
        try:
            limits.check_type(part.filename, part.content_type)
            self._upload = self._configuration.storage.begin_upload(
                name,
                part.content_type,
            )
        except UploadError as exc:
            self._resolve(UploadFailure(exc))
            raise

        logger.info(
            'Receiving %s for pad %s as %s',
            part.filename,
            self._pad_id,
            name,
        )
        self._name = name
        self._state = SessionState.STREAMING
        return True

    def feed(self, chunk: bytes) -> None:
        """Stream the next chunk of the current part into storage.

        The size limit is checked before the chunk is written, so the
        stored data never exceeds the limit.

        Args:
            chunk: Next bytes of the file.

        Raises:
            UploadError: If the size limit tripped or storage failed.
                The partial upload is discarded and the session resolved.
        """
        if self._state is not SessionState.STREAMING:
            return

        self._received_bytes += len(chunk)
        try:
            self._configuration.limits.check_size(self._received_bytes)
            self._partial_upload().write(chunk)
        except UploadError as exc:
            self._abort(exc)
            raise

    def finish_part(self) -> None:
        """Persist the current part after its last chunk.

        The success outcome is only recorded by ``conclude`` once the
        parser has consumed the whole body.

        Raises:
            StorageFailureError: If storage could not persist the file.
        """
        if self._state is not SessionState.STREAMING:
            return

        try:
            reported_url = self._partial_upload().finish()
        except UploadError as exc:
            self._abort(exc)
            raise

        name = self._stored_name()
        if reported_url is None:
            reported_url = self._configuration.build_access_url(name)
        self._stored_object = StoredObject(name=name, url=reported_url)
        self._upload = None
        self._state = SessionState.STORED
        logger.info(
            'Stored %d bytes for pad %s: %s',
            self._received_bytes,
            self._pad_id,
            name,
        )

    def fail(self, error: UploadError) -> bool:
        """Record a failure reported outside the part stream.

        Used for parser and transport errors. Anything already written
        to storage is removed. Ignored when the session is resolved.

        Args:
            error: Failure to record.

        Returns:
            True if the failure became the outcome.
        """
        if self._cell.is_set:
            logger.info(
                'Dropping late %s error for pad %s: %s',
                error.error_type,
                self._pad_id,
                error.message,
            )
            return False

        if self._state is SessionState.STORED:
            self._configuration.storage.rollback_upload(self._stored_name())
            self._stored_object = None
        return self._abort(error)

    def conclude(self) -> UploadOutcome:
        """Resolve the session after the parser is done.

        Returns:
            The single outcome of this session.
        """
        if not self._cell.is_set:
            if self._state is SessionState.STORED and self._stored_object:
                self._resolve(UploadSuccess(self._stored_object))
            elif self._state is SessionState.STREAMING:
                self.fail(MalformedRequestError('File upload was incomplete'))
            else:
                self.fail(MalformedRequestError('No file found in request'))

        outcome = self._cell.outcome
        if outcome is None:  # pragma: no cover
            raise RuntimeError('Upload session concluded without outcome')
        return outcome

    def _abort(self, error: UploadError) -> bool:
        if self._upload is not None:
            self._upload.discard()
            self._upload = None
        return self._resolve(UploadFailure(error))

    def _resolve(self, outcome: UploadOutcome) -> bool:
        if not self._cell.set(outcome):
            return False

        self._state = SessionState.RESOLVED
        match outcome:
            case UploadSuccess(stored_object=stored_object):
                logger.info(
                    'Upload for pad %s succeeded: %s',
                    self._pad_id,
                    stored_object.url,
                )
            case UploadFailure(error=error):
                logger.warning(
                    'Upload for pad %s failed (%s): %s',
                    self._pad_id,
                    error.error_type,
                    error.message,
                )
        return True

    def _partial_upload(self) -> PartialUpload:
        if self._upload is None:  # pragma: no cover
            raise RuntimeError('No upload in progress')
        return self._upload

    def _stored_name(self) -> str:
        if self._name is None:  # pragma: no cover
            raise RuntimeError('No file was stored')
        return self._name
