from __future__ import annotations

from typing import Any

from rest_framework import status as http_status
from rest_framework.response import Response


def envelope(data: Any = None, message: str = '', status: int = http_status.HTTP_200_OK) -> Response:
    return Response(
        {
            'statusCode': status,
            'data': data,
            'message': message,
            'success': status < 400,
        },
        status=status,
    )
