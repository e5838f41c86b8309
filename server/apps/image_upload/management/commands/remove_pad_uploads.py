"""Management command to clean up uploads of removed pads."""

import logging
from typing import Any, override

from django.core.management.base import BaseCommand, CommandError

from server.apps.image_upload.exceptions import MalformedRequestError
from server.apps.image_upload.logic.session import validate_pad_id
from server.apps.image_upload.signals import pad_removed

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Send pad_removed for pads deleted outside this process."""

    help = 'Remove uploaded images of deleted pads'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            'pad_ids',
            nargs='+',
            help='IDs of the removed pads',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If a pad ID is invalid.
        """
        pad_ids = options['pad_ids']

        for pad_id in pad_ids:
            try:
                validate_pad_id(pad_id)
            except MalformedRequestError as exc:
                raise CommandError(exc.message) from exc

        for pad_id in pad_ids:
            logger.info('Removing uploads of pad: %s', pad_id)
            pad_removed.send(sender=self.__class__, pad_id=pad_id)
            self.stdout.write(f'Removed uploads of pad {pad_id}')

        self.stdout.write(
            self.style.SUCCESS(f'Processed {len(pad_ids)} pads'),
        )
