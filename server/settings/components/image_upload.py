"""Pad image upload settings.

``EP_IMAGE_UPLOAD`` keeps the plugin settings shape, so a settings
block can be copied between deployments as is. Storage can be:
- S3-compatible object storage (AWS S3, MinIO, Cloudflare R2)
- Local filesystem served from ``baseURL``
"""

from typing import Any, Final

from decouple import Csv

from server.settings.components import BASE_DIR, config


def _optional_int(raw_value: str) -> int | None:
    """Cast empty env values to None instead of failing."""
    if not raw_value:
        return None
    return int(raw_value)


_STORAGE_TYPE: Final = config('IMAGE_UPLOAD_STORAGE_TYPE', default='local')

if _STORAGE_TYPE == 's3':
    _STORAGE: dict[str, Any] = {
        'type': 's3',
        'accessKeyId': config('IMAGE_UPLOAD_S3_ACCESS_KEY_ID', default=None),
        'secretAccessKey': config(
            'IMAGE_UPLOAD_S3_SECRET_ACCESS_KEY',
            default=None,
        ),
        'region': config('IMAGE_UPLOAD_S3_REGION', default='us-east-1'),
        'bucket': config('IMAGE_UPLOAD_S3_BUCKET', default='pad-images'),
        'baseFolder': config('IMAGE_UPLOAD_BASE_FOLDER', default=''),
        'endpointUrl': config('IMAGE_UPLOAD_S3_ENDPOINT_URL', default=None),
    }
else:
    _STORAGE = {
        'type': _STORAGE_TYPE,
        'baseFolder': config(
            'IMAGE_UPLOAD_BASE_FOLDER',
            default=str(BASE_DIR.joinpath('uploads')),
        ),
        'baseURL': config(
            'IMAGE_UPLOAD_BASE_URL',
            default='http://localhost:8000/uploads/',
        ),
    }

EP_IMAGE_UPLOAD: dict[str, Any] = {
    'fileTypes': config('IMAGE_UPLOAD_FILE_TYPES', cast=Csv(), default=''),
    'maxFileSize': config(
        'IMAGE_UPLOAD_MAX_FILE_SIZE',
        cast=_optional_int,
        default='',
    ),
    'storage': _STORAGE,
}

# Bytes read from the request body per parser step
IMAGE_UPLOAD_CHUNK_SIZE: Final = config(
    'IMAGE_UPLOAD_CHUNK_SIZE',
    cast=int,
    default=64 * 1024,
)
