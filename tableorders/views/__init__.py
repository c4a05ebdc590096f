"""
tableorders.views

Public surface: JSON endpoints for customers (create / track orders, table
status), staff (complete / cancel) and the payment gateway (webhook).

Envelope
- success: {"ok": true,  "ver": VER, "data": {...}}
- failure: {"ok": false, "ver": VER, "code": <ErrorKind>, "error": {...}}
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from django.http import HttpRequest, JsonResponse

from tableorders.errors import OrderError

log = logging.getLogger(__name__)

VER = "tableorders.v1"


def _json_response(data: Optional[Dict[str, Any]] = None, status: int = 200) -> JsonResponse:
    return JsonResponse({"ok": True, "ver": VER, "data": data or {}}, status=status)


def _json_error(code: str, message: str, status: int, **details: Any) -> JsonResponse:
    return JsonResponse(
        {"ok": False, "ver": VER, "code": code, "error": {"code": code, "message": message, **details}},
        status=status,
    )


def _order_error_response(exc: OrderError) -> JsonResponse:
    body = exc.as_dict()
    code = body.pop("code")
    message = body.pop("message")
    return _json_error(code, message, exc.http_status, **body)


def _internal_error(message: str) -> JsonResponse:
    return _json_error("INTERNAL_ERROR", message, 500)


def _parse_json(request: HttpRequest) -> Optional[Dict[str, Any]]:
    try:
        payload = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None
