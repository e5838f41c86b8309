"""HTTP endpoints for pad image uploads."""

import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured, SuspiciousOperation
from django.core.files.uploadhandler import FileUploadHandler
from django.http import (
    HttpRequest,
    JsonResponse,
    UnreadablePostError,
)
from django.http.multipartparser import (
    ChunkIter,
    MultiPartParserError,
    exhaust,
)
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from server.apps.image_upload.exceptions import (
    MalformedRequestError,
    StorageFailureError,
    TransportError,
)
from server.apps.image_upload.infrastructure.upload_handler import (
    StreamingUploadHandler,
)
from server.apps.image_upload.logic.client_settings import (
    build_client_settings,
)
from server.apps.image_upload.logic.configuration import UploadConfiguration
from server.apps.image_upload.logic.session import (
    UploadFailure,
    UploadOutcome,
    UploadSession,
    UploadSuccess,
)

logger = logging.getLogger(__name__)


def render_outcome(outcome: UploadOutcome) -> JsonResponse:
    """Map a session outcome to the HTTP response.

    Args:
        outcome: Terminal outcome of an upload session.

    Returns:
        201 with the file URL, or the error status with error details.
    """
    match outcome:
        case UploadSuccess(stored_object=stored_object):
            return JsonResponse(stored_object.as_dict(), status=201)
        case UploadFailure(error=error):
            return JsonResponse(error.as_dict(), status=error.status_code)


def discard_request_body(request: HttpRequest, pad_id: str) -> None:
    """Read and drop whatever is left of the request body.

    A lost connection while draining is logged and ignored, the
    outcome of the request is already decided.

    Args:
        request: Request whose body was not fully read.
        pad_id: ID of the pad, for logging.
    """
    chunk_size = getattr(
        settings,
        'IMAGE_UPLOAD_CHUNK_SIZE',
        FileUploadHandler.chunk_size,
    )
    try:
        exhaust(ChunkIter(request, chunk_size))
    except UnreadablePostError:
        logger.info(
            'Connection lost while discarding upload body for pad %s',
            pad_id,
        )


@csrf_exempt
@require_POST
def upload_image(request: HttpRequest, pad_id: str) -> JsonResponse:
    """Stream an image from a multipart body into storage.

    Args:
        request: Multipart POST request with one file field.
        pad_id: ID of the pad the image is inserted into.

    Returns:
        JSON response describing the single upload outcome.
    """
    try:
        configuration = UploadConfiguration.from_settings()
    except ImproperlyConfigured:
        logger.exception('Upload storage is not configured')
        discard_request_body(request, pad_id)
        return render_outcome(UploadFailure(
            StorageFailureError('Upload storage is not configured'),
        ))

    session = UploadSession(pad_id, configuration)
    # Must be set before anything touches request.POST or request.FILES
    request.upload_handlers = [StreamingUploadHandler(session, request)]

    try:
        request.FILES  # noqa: B018, WPS428
    except (MultiPartParserError, SuspiciousOperation) as exc:
        logger.info('Malformed upload request for pad %s: %s', pad_id, exc)
        session.fail(MalformedRequestError(f'Malformed request body: {exc}'))
        discard_request_body(request, pad_id)
    except UnreadablePostError as exc:
        logger.warning('Connection lost during upload for pad %s', pad_id)
        session.fail(TransportError(f'Connection lost: {exc}'))

    return render_outcome(session.conclude())


@require_GET
def client_settings(request: HttpRequest) -> JsonResponse:
    """Expose sanitized plugin settings to the editor.

    Args:
        request: GET request.

    Returns:
        JSON object with the ep_image_upload client settings.
    """
    return JsonResponse({'ep_image_upload': build_client_settings()})
