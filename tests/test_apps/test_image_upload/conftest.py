"""Shared fixtures for image upload app tests."""

from pathlib import Path
from typing import Final

import boto3
import pytest
from moto import mock_aws

from server.apps.image_upload.exceptions import StorageFailureError
from server.apps.image_upload.logic.configuration import UploadConfiguration
from server.apps.image_upload.logic.limits import LimitPolicy

TEST_BUCKET: Final = 'pad-images'
TEST_BASE_URL: Final = 'http://x/files/'


class RecordingUpload:
    """In-memory partial upload that remembers what happened to it."""

    def __init__(self, storage: 'RecordingStorage', name: str) -> None:
        self.storage = storage
        self.name = name
        self.chunks: list[bytes] = []
        self.finished = False
        self.discarded = False

    @property
    def data(self) -> bytes:
        """Get all bytes written so far."""
        return b''.join(self.chunks)

    def write(self, chunk: bytes) -> None:
        if self.storage.fail_on_write:
            raise StorageFailureError('Failed to store file')
        self.chunks.append(chunk)

    def finish(self) -> str | None:
        if self.storage.fail_on_finish:
            raise StorageFailureError('Failed to store file')
        self.finished = True
        return self.storage.reported_url

    def discard(self) -> None:
        self.discarded = True


class RecordingStorage:
    """Storage backend fake recording every call."""

    def __init__(
        self,
        reported_url: str | None = None,
        fail_on_begin: bool = False,
        fail_on_write: bool = False,
        fail_on_finish: bool = False,
    ) -> None:
        self.reported_url = reported_url
        self.fail_on_begin = fail_on_begin
        self.fail_on_write = fail_on_write
        self.fail_on_finish = fail_on_finish
        self.uploads: list[RecordingUpload] = []
        self.rolled_back: list[str] = []
        self.removed_pads: list[str] = []

    def begin_upload(self, name: str, content_type: str) -> RecordingUpload:
        if self.fail_on_begin:
            raise StorageFailureError('Failed to store file')
        upload = RecordingUpload(self, name)
        self.uploads.append(upload)
        return upload

    def rollback_upload(self, name: str) -> None:
        self.rolled_back.append(name)

    def remove_pad(self, pad_id: str) -> None:
        self.removed_pads.append(pad_id)


@pytest.fixture
def recording_storage():
    """Create storage fake.

    Returns:
        RecordingStorage with no failures configured.
    """
    return RecordingStorage()


@pytest.fixture
def configuration(recording_storage):
    """Create configuration allowing png files up to 1000 bytes.

    Returns:
        UploadConfiguration backed by the storage fake.
    """
    return UploadConfiguration(
        limits=LimitPolicy(allowed_extensions=['png'], max_file_size=1000),
        storage=recording_storage,
        base_url=TEST_BASE_URL,
    )


@pytest.fixture
def upload_folder(tmp_path) -> Path:
    """Get base folder for local storage tests.

    Returns:
        Path that does not exist yet.
    """
    return tmp_path / 'uploads'


@pytest.fixture
def local_upload_settings(settings, upload_folder):
    """Configure local storage with a png allow-list and 1000 byte limit.

    Returns:
        Base folder of the local storage.
    """
    settings.EP_IMAGE_UPLOAD = {
        'fileTypes': ['png'],
        'maxFileSize': 1000,
        'storage': {
            'type': 'local',
            'baseFolder': str(upload_folder),
            'baseURL': 'http://x/files',
        },
    }
    return upload_folder


@pytest.fixture
def mock_s3():
    """Mock S3 service with pad-images bucket.

    Yields:
        boto3 S3 resource with pad-images bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=TEST_BUCKET)
        yield conn


@pytest.fixture
def s3_storage_settings():
    """Get storage settings for the mocked bucket.

    Returns:
        Plugin storage settings block.
    """
    return {
        'type': 's3',
        'accessKeyId': 'testing',
        'secretAccessKey': 'testing',
        'region': 'us-east-1',
        'bucket': TEST_BUCKET,
        'baseFolder': 'images',
    }


@pytest.fixture
def s3_upload_settings(settings, mock_s3, s3_storage_settings):
    """Configure S3 storage with a png allow-list and 1000 byte limit.

    Returns:
        boto3 S3 resource of the mocked service.
    """
    settings.EP_IMAGE_UPLOAD = {
        'fileTypes': ['png'],
        'maxFileSize': 1000,
        'storage': s3_storage_settings,
    }
    return mock_s3
