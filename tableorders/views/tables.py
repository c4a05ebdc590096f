"""
tableorders.views.tables

GET /api/tables/<id>/status/ -> {exists, isOccupied, tableNumber, activeOrder?}

Advisory only: order creation re-checks under the table row lock.
"""

from __future__ import annotations

from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET

from tableorders.serializers import ActiveOrderSerializer
from tableorders.services.table_lock import check_table_status

from . import _json_response


@require_GET
def table_status(request: HttpRequest, table_id: int) -> JsonResponse:
    status = check_table_status(table_id)
    data = {
        "exists": status.exists,
        "isOccupied": status.is_occupied,
        "tableNumber": status.table_number,
        "activeOrder": ActiveOrderSerializer(status.active_order).data if status.active_order else None,
    }
    return _json_response(data)
