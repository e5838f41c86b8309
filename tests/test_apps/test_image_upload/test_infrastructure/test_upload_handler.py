"""Tests for the streaming upload handler."""

import pytest
from django.core.files.uploadhandler import SkipFile, StopUpload

from server.apps.image_upload.infrastructure.upload_handler import (
    StreamingUploadHandler,
)
from server.apps.image_upload.logic.session import (
    SessionState,
    UploadSession,
    UploadSuccess,
)


@pytest.fixture
def session(configuration):
    """Create session for pad1.

    Returns:
        UploadSession awaiting its first file part.
    """
    return UploadSession('pad1', configuration)


@pytest.fixture
def handler(session):
    """Create handler feeding the session.

    Returns:
        StreamingUploadHandler without request.
    """
    return StreamingUploadHandler(session)


def test_chunk_size_from_settings(settings, session):
    """Test parser chunk size is configurable."""
    settings.IMAGE_UPLOAD_CHUNK_SIZE = 1024

    assert StreamingUploadHandler(session).chunk_size == 1024


def test_streams_file_into_session(handler, session, recording_storage):
    """Test parser events drive the session to a stored file."""
    handler.new_file('file', 'photo.png', 'image/png', None)

    assert handler.receive_data_chunk(b'abc', 0) is None
    assert handler.receive_data_chunk(b'def', 3) is None
    assert handler.file_complete(6) is None

    assert session.state is SessionState.STORED
    assert recording_storage.uploads[0].data == b'abcdef'
    assert isinstance(session.conclude(), UploadSuccess)


def test_rejected_type_stops_upload(handler, session):
    """Test rejected part stops parsing without resetting connection."""
    with pytest.raises(StopUpload) as exc_info:
        handler.new_file('file', 'photo.gif', 'image/gif', None)

    assert not exc_info.value.connection_reset
    assert session.is_resolved


def test_oversized_chunk_stops_upload(handler, session):
    """Test size limit stops parsing and keeps draining the body."""
    handler.new_file('file', 'photo.png', 'image/png', None)

    with pytest.raises(StopUpload) as exc_info:
        handler.receive_data_chunk(b'a' * 1001, 0)

    assert not exc_info.value.connection_reset
    assert session.conclude().error.error_type == 'fileSize'


def test_extra_file_part_is_skipped(handler):
    """Test second file part is skipped."""
    handler.new_file('file', 'photo.png', 'image/png', None)
    handler.file_complete(0)

    with pytest.raises(SkipFile):
        handler.new_file('other', 'second.png', 'image/png', None)


def test_resolved_session_stops_upload(configuration):
    """Test nothing is parsed for an already failed session."""
    handler = StreamingUploadHandler(UploadSession('..', configuration))

    with pytest.raises(StopUpload):
        handler.new_file('file', 'photo.png', 'image/png', None)


def test_storage_failure_on_complete_stops_upload(
    handler,
    session,
    recording_storage,
):
    """Test storage failure while persisting stops parsing."""
    recording_storage.fail_on_finish = True
    handler.new_file('file', 'photo.png', 'image/png', None)

    with pytest.raises(StopUpload):
        handler.file_complete(0)

    assert session.conclude().error.error_type == 'storage'
