"""
DRF exception handler: every API error leaves as a JSON body with an
`error` key, and nothing raised by a view escapes as an HTML traceback.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    request = context.get('request')
    path = request.path if request is not None else '?'

    response = exception_handler(exc, context)
    if response is None:
        logger.error("Unhandled error on %s", path, exc_info=exc)
        return Response(
            {'error': 'Internal server error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(exc, ValidationError):
        response.data = {'error': 'Invalid data', 'details': response.data}
    elif isinstance(response.data, dict) and 'detail' in response.data:
        response.data = {'error': response.data['detail']}
    else:
        response.data = {'error': response.data}

    if response.status_code >= 500:
        logger.error("API error %s on %s: %s", response.status_code, path, exc)
    else:
        logger.warning("API error %s on %s: %s", response.status_code, path, exc)
    return response
