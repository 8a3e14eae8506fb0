"""
Shared response helpers: map settlement errors onto HTTP responses.
"""

from typing import Any

from rest_framework import status
from rest_framework.response import Response

from apps.common.exceptions import SettlementError, ValidationError


def error_response(error: SettlementError) -> Response:
    """{"success": false, "error", "code"} with the error's HTTP status"""
    return Response(error.to_dict(), status=error.http_status)


def invalid_input_response(errors: Any) -> Response:
    payload = ValidationError("Invalid input").to_dict()
    payload["details"] = errors
    return Response(payload, status=status.HTTP_400_BAD_REQUEST)
