"""Tests for remove_pad_uploads management command."""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError


def _create_upload(folder, name):
    path = folder / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b'data')
    return path


def test_remove_pad_uploads(local_upload_settings):
    """Test command removes uploads of the given pads."""
    _create_upload(local_upload_settings, 'pad1/a.png')
    _create_upload(local_upload_settings, 'pad2/b.png')
    kept = _create_upload(local_upload_settings, 'pad3/c.png')
    out = StringIO()

    call_command('remove_pad_uploads', 'pad1', 'pad2', stdout=out)

    assert not (local_upload_settings / 'pad1').exists()
    assert not (local_upload_settings / 'pad2').exists()
    assert kept.exists()
    assert 'Removed uploads of pad pad1' in out.getvalue()
    assert 'Processed 2 pads' in out.getvalue()


def test_remove_pad_uploads_rejects_invalid_pad_id(local_upload_settings):
    """Test no pad is processed when one ID is invalid."""
    kept = _create_upload(local_upload_settings, 'pad1/a.png')

    with pytest.raises(CommandError, match='Invalid pad ID'):
        call_command('remove_pad_uploads', 'pad1', '..', stdout=StringIO())

    assert kept.exists()


def test_remove_pad_uploads_requires_pad_id():
    """Test command needs at least one pad ID."""
    with pytest.raises(CommandError):
        call_command('remove_pad_uploads')
