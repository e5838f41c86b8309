"""Plugin settings exposed to the pad editor.

The client uses them for validation hints only, the server checks
every upload again.
"""

import logging
import mimetypes
from collections.abc import Mapping
from typing import Any, Final

from server.apps.image_upload.logic.configuration import (
    get_plugin_settings,
    get_storage_type,
)

# Storage type meaning "embed images in the pad, no server upload"
STORAGE_TYPE_BASE64: Final = 'base64'

# Keys never sent to clients (credentials live here)
_PRIVATE_KEYS: Final = frozenset(('storage',))

logger = logging.getLogger(__name__)


def build_mime_type_table() -> dict[str, dict[str, list[str]]]:
    """Build mimetype table from the mimetypes registry.

    Returns:
        Mapping of mimetype to its known extensions, e.g.
        {'image/png': {'extensions': ['png']}}.
    """
    if not mimetypes.inited:
        mimetypes.init()

    table: dict[str, dict[str, list[str]]] = {}
    for extension, mime_type in sorted(mimetypes.types_map.items()):
        entry = table.setdefault(mime_type, {'extensions': []})
        entry['extensions'].append(extension.lstrip('.'))
    return table


def build_client_settings(
    raw: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the sanitized settings payload for clients.

    Args:
        raw: Plugin settings, defaults to EP_IMAGE_UPLOAD.

    Returns:
        Plugin settings without storage details, plus storageType and
        mimeTypes.
    """
    if raw is None:
        raw = get_plugin_settings()
    if not raw:
        logger.warning(
            'EP_IMAGE_UPLOAD settings not found, images will be embedded',
        )

    client_settings: dict[str, Any] = {
        key: value
        for key, value in raw.items()
        if key not in _PRIVATE_KEYS
    }
    client_settings['storageType'] = (
        get_storage_type(raw) or STORAGE_TYPE_BASE64
    )
    client_settings['mimeTypes'] = build_mime_type_table()
    return client_settings
