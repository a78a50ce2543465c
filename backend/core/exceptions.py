"""DRF exception handler that turns unhandled errors into JSON 500 responses"""
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def error_payload(message, exc=None):
    """Build the error body; the exception text is only exposed in DEBUG"""
    payload = {'message': message}
    if exc is not None and settings.DEBUG:
        payload['error'] = str(exc)
    return payload


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.error(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {str(exc)}", exc_info=True)
    return Response(error_payload('Internal server error', exc), status=status.HTTP_500_INTERNAL_SERVER_ERROR)
