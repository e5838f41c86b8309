"""URL routes for image upload app."""

from django.urls import path

from server.apps.image_upload import views

app_name = 'image_upload'

urlpatterns = [
    path(
        'p/<str:pad_id>/pluginfw/ep_image_upload/upload',
        views.upload_image,
        name='upload',
    ),
    path(
        'pluginfw/ep_image_upload/settings',
        views.client_settings,
        name='client_settings',
    ),
]
