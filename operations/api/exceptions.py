from __future__ import annotations

import logging
from typing import Any

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail: Any) -> str:
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def _not_found_message(context: dict) -> str:
    view = context.get('view')
    label = getattr(view, 'resource_label', None)
    return f"{label} not found" if label else 'Not found'


def envelope_exception_handler(exc, context):
    """Render every API error as ``{statusCode, message, success: false[, errors]}``."""
    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, 'message_dict') else exc.messages
        exc = exceptions.ValidationError(detail)
    elif isinstance(exc, Http404):
        exc = exceptions.NotFound(_not_found_message(context))
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)
    if response is None:
        logger.exception('Unhandled error in %s', context.get('view').__class__.__name__, exc_info=exc)
        return Response(
            {
                'statusCode': status.HTTP_500_INTERNAL_SERVER_ERROR,
                'message': 'Internal server error',
                'success': False,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    detail = response.data
    payload = {
        'statusCode': response.status_code,
        'message': _first_message(detail),
        'success': False,
    }
    if isinstance(detail, dict) and set(detail) != {'detail'}:
        payload['errors'] = detail
    response.data = payload
    return response
