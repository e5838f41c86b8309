"""Tests for image upload signal handlers."""

import pytest

from server.apps.image_upload.signals import pad_removed


@pytest.fixture
def pad_uploads(local_upload_settings):
    """Create uploaded files for two pads.

    Returns:
        Base folder of the local storage.
    """
    for name in ('pad1/a.png', 'pad1/b.png', 'pad2/c.png'):
        path = local_upload_settings / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b'data')
    return local_upload_settings


def test_pad_removed_deletes_local_uploads(pad_uploads):
    """Test uploads of a removed pad are deleted, others kept."""
    pad_removed.send(sender=None, pad_id='pad1')

    assert not (pad_uploads / 'pad1').exists()
    assert (pad_uploads / 'pad2' / 'c.png').exists()


def test_pad_removed_without_uploads(local_upload_settings):
    """Test removing a pad that never had uploads."""
    pad_removed.send(sender=None, pad_id='pad1')

    assert not (local_upload_settings / 'pad1').exists()


def test_pad_removed_keeps_object_storage_uploads(s3_upload_settings):
    """Test object storage uploads survive pad removal."""
    s3_upload_settings.Object('pad-images', 'images/pad1/a.png').put(
        Body=b'data',
    )

    pad_removed.send(sender=None, pad_id='pad1')

    assert len(list(s3_upload_settings.Bucket('pad-images').objects.all())) == 1


def test_pad_removed_without_storage(settings):
    """Test nothing happens when uploads are not configured."""
    settings.EP_IMAGE_UPLOAD = {}

    pad_removed.send(sender=None, pad_id='pad1')


def test_pad_removed_with_broken_storage(settings):
    """Test configuration errors do not break pad removal."""
    settings.EP_IMAGE_UPLOAD = {'storage': {'type': 'local'}}

    pad_removed.send(sender=None, pad_id='pad1')
