"""Signals and handlers for image upload app."""

import logging

from django.dispatch import Signal, receiver

from server.apps.image_upload.logic.configuration import (
    UploadConfiguration,
    get_storage_type,
)

logger = logging.getLogger(__name__)

# Sent when a pad is deleted. Arguments: pad_id
pad_removed = Signal()


@receiver(pad_removed)
def delete_pad_uploads(
    sender: object,
    pad_id: str,
    **kwargs: object,
) -> None:
    """Delete uploaded images when their pad is removed.

    Only the local backend removes anything: the pad folder
    ``<baseFolder>/<pad_id>`` is deleted recursively.

    Args:
        sender: Signal sender.
        pad_id: ID of the removed pad.
        **kwargs: Additional signal arguments.
    """
    if get_storage_type() is None:
        logger.debug('No upload storage configured, nothing to remove')
        return

    logger.info('Removing uploads of deleted pad: %s', pad_id)
    try:
        UploadConfiguration.from_settings().storage.remove_pad(pad_id)
    except Exception:
        # Log error but don't raise - the pad itself is already gone
        logger.exception('Failed to remove uploads of pad: %s', pad_id)
