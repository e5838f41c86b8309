"""Upload configuration resolved from Django settings.

The ``EP_IMAGE_UPLOAD`` setting keeps the plugin settings shape::

    {
        'fileTypes': ['png', 'jpg'],
        'maxFileSize': 1000000,
        'storage': {'type': 'local', 'baseFolder': '...', 'baseURL': '...'},
    }
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final, final

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from server.apps.image_upload.infrastructure.storage import (
    LocalStorage,
    ObjectStorage,
    StorageBackend,
)
from server.apps.image_upload.logic.limits import LimitPolicy

STORAGE_TYPE_S3: Final = 's3'
STORAGE_TYPE_LOCAL: Final = 'local'

_STORAGE_KEY: Final = 'storage'
_URL_SEPARATOR: Final = '/'


def get_plugin_settings() -> Mapping[str, Any]:
    """Get raw plugin settings.

    Returns:
        The EP_IMAGE_UPLOAD setting, or empty mapping when unset.
    """
    return getattr(settings, 'EP_IMAGE_UPLOAD', None) or {}


def get_storage_type(raw: Mapping[str, Any] | None = None) -> str | None:
    """Get configured storage type.

    Args:
        raw: Plugin settings, defaults to EP_IMAGE_UPLOAD.

    Returns:
        Storage type string or None when no storage is configured.
    """
    if raw is None:
        raw = get_plugin_settings()
    storage_settings = raw.get(_STORAGE_KEY) or {}
    return storage_settings.get('type')


def normalize_base_url(base_url: str) -> str:
    """Make sure base URL ends with a slash.

    Args:
        base_url: Configured base URL (e.g., 'http://x/files').

    Returns:
        Base URL ending with '/' (e.g., 'http://x/files/').
    """
    if base_url.endswith(_URL_SEPARATOR):
        return base_url
    return base_url + _URL_SEPARATOR


def _parse_max_file_size(max_file_size: Any) -> int | None:
    if max_file_size is None or max_file_size == '':
        return None
    try:
        parsed = int(max_file_size)
    except (TypeError, ValueError) as error:
        raise ImproperlyConfigured(
            f'EP_IMAGE_UPLOAD maxFileSize must be an integer, got {max_file_size!r}',
        ) from error
    if parsed < 0:
        raise ImproperlyConfigured('EP_IMAGE_UPLOAD maxFileSize must be >= 0')
    return parsed


def _require(storage_settings: Mapping[str, Any], key: str) -> Any:
    value = storage_settings.get(key)
    if not value:
        raise ImproperlyConfigured(
            f'EP_IMAGE_UPLOAD storage.{key} is required for '
            f'{storage_settings.get("type")} storage',
        )
    return value


def _build_object_storage(storage_settings: Mapping[str, Any]) -> ObjectStorage:
    return ObjectStorage(
        bucket_name=_require(storage_settings, 'bucket'),
        access_key=storage_settings.get('accessKeyId'),
        secret_key=storage_settings.get('secretAccessKey'),
        region_name=storage_settings.get('region'),
        endpoint_url=storage_settings.get('endpointUrl'),
        location=(storage_settings.get('baseFolder') or '').strip(_URL_SEPARATOR),
        file_overwrite=False,
        default_acl=None,
    )


def _build_local_storage(storage_settings: Mapping[str, Any]) -> LocalStorage:
    return LocalStorage(location=_require(storage_settings, 'baseFolder'))


@final
@dataclass(frozen=True, slots=True)
class UploadConfiguration:
    """Immutable per-request view of the upload settings.

    The storage backend is selected here once, upload code only
    talks to the StorageBackend protocol.
    """

    limits: LimitPolicy
    storage: StorageBackend
    base_url: str | None = None

    @classmethod
    def from_settings(
        cls,
        raw: Mapping[str, Any] | None = None,
    ) -> 'UploadConfiguration':
        """Resolve configuration from plugin settings.

        Args:
            raw: Plugin settings, defaults to EP_IMAGE_UPLOAD.

        Returns:
            Resolved UploadConfiguration.

        Raises:
            ImproperlyConfigured: If storage settings are missing or invalid.
        """
        if raw is None:
            raw = get_plugin_settings()

        limits = LimitPolicy(
            allowed_extensions=raw.get('fileTypes') or (),
            max_file_size=_parse_max_file_size(raw.get('maxFileSize')),
        )
        storage_settings = raw.get(_STORAGE_KEY) or {}
        storage_type = storage_settings.get('type')

        if storage_type == STORAGE_TYPE_S3:
            return cls(
                limits=limits,
                storage=_build_object_storage(storage_settings),
            )
        if storage_type == STORAGE_TYPE_LOCAL:
            return cls(
                limits=limits,
                storage=_build_local_storage(storage_settings),
                base_url=normalize_base_url(
                    _require(storage_settings, 'baseURL'),
                ),
            )
        raise ImproperlyConfigured(
            'EP_IMAGE_UPLOAD storage.type must be "s3" or "local", '
            f'got {storage_type!r}',
        )

    def build_access_url(self, name: str) -> str:
        """Build public URL of a locally stored file.

        Args:
            name: Storage path (e.g., 'pad1/<id>.png').

        Returns:
            Base URL joined with storage path.

        Raises:
            ImproperlyConfigured: If no base URL is configured.
        """
        if self.base_url is None:
            raise ImproperlyConfigured(
                'EP_IMAGE_UPLOAD storage.baseURL is required to build file URLs',
            )
        return self.base_url + name.lstrip(_URL_SEPARATOR)
