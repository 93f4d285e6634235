"""
JSON envelopes shared by the routers and the exception handlers in main.

Errors carry the request id so a customer quoting it to support can be
matched to the server logs.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime


def _envelope(success: bool, message: str, **fields: Any) -> Dict[str, Any]:
    body = {"success": success, "message": message}
    body.update(fields)
    body["timestamp"] = datetime.utcnow().isoformat()
    return body


def success_response(data: Any = None, message: str = "Operation successful") -> Dict[str, Any]:
    return _envelope(True, message, data=data)


def error_response(
    message: str,
    error_code: str,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    return _envelope(False, message, error_code=error_code, details=details, request_id=request_id)


def paginated_response(
    data: List[Any],
    page: int,
    per_page: int,
    total_items: int,
    filters: Optional[Dict[str, Any]] = None,
    message: str = "Data retrieved successfully"
) -> Dict[str, Any]:
    """One page of a listing plus what the client needs to fetch the next one."""
    total_pages = max(1, -(-total_items // per_page))
    return _envelope(
        True,
        message,
        data=data,
        filters={k: v for k, v in (filters or {}).items() if v is not None},
        pagination={
            "page": page,
            "per_page": per_page,
            "total_items": total_items,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1
        }
    )
