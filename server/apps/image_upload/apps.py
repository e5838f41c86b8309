"""Django app configuration for image upload app."""

from typing import override

from django.apps import AppConfig


class ImageUploadConfig(AppConfig):
    """Configuration for image upload app."""

    name = 'server.apps.image_upload'
    verbose_name = 'Pad image upload'

    @override
    def ready(self) -> None:
        """Import signal handlers when app is ready."""
        from server.apps.image_upload import signals  # noqa: F401
