"""Tests for settings exposed to the pad editor."""

from server.apps.image_upload.logic.client_settings import (
    build_client_settings,
    build_mime_type_table,
)


def test_mime_type_table_lists_extensions():
    """Test known image types map to their extensions."""
    table = build_mime_type_table()

    assert 'png' in table['image/png']['extensions']
    assert 'jpg' in table['image/jpeg']['extensions']
    assert all(
        not extension.startswith('.')
        for entry in table.values()
        for extension in entry['extensions']
    )


def test_client_settings_hide_storage(s3_storage_settings):
    """Test storage credentials never reach clients."""
    raw = {
        'fileTypes': ['png'],
        'maxFileSize': 1000,
        'storage': s3_storage_settings,
    }

    client_settings = build_client_settings(raw)

    assert 'storage' not in client_settings
    assert 'testing' not in str(client_settings)
    assert client_settings['fileTypes'] == ['png']
    assert client_settings['maxFileSize'] == 1000
    assert client_settings['storageType'] == 's3'
    assert 'image/png' in client_settings['mimeTypes']


def test_client_settings_keep_unknown_keys():
    """Test extra plugin settings pass through unchanged."""
    raw = {'storage': {'type': 'local'}, 'maxWidth': 640}

    client_settings = build_client_settings(raw)

    assert client_settings['maxWidth'] == 640
    assert client_settings['storageType'] == 'local'


def test_client_settings_without_storage_fall_back_to_base64():
    """Test images are embedded when no storage is configured."""
    assert build_client_settings({})['storageType'] == 'base64'
    assert build_client_settings({'storage': {}})['storageType'] == 'base64'


def test_client_settings_read_django_settings(settings):
    """Test EP_IMAGE_UPLOAD is used when no settings are passed."""
    settings.EP_IMAGE_UPLOAD = {'fileTypes': ['gif']}

    client_settings = build_client_settings()

    assert client_settings['fileTypes'] == ['gif']
    assert client_settings['storageType'] == 'base64'
