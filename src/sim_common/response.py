"""Unified API response envelope.

{
    "code": 0,           // 0=success, otherwise AppError.code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."  // same id as the X-Request-ID response header
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def request_id_of(request: Request) -> str | None:
    """Id assigned by RequestLogMiddleware, if it ran."""
    return getattr(request.state, "request_id", None)


def _envelope(code: int, message: str, data: Any, request_id: str | None) -> ApiResponse:
    fields: dict[str, Any] = {"code": code, "message": message, "data": data}
    if request_id is not None:
        fields["request_id"] = request_id
    return ApiResponse(**fields)


def success_response(data: Any = None, request_id: str | None = None) -> ApiResponse:
    return _envelope(0, "success", data, request_id)


def error_response(code: int, message: str, request_id: str | None = None) -> ApiResponse:
    return _envelope(code, message, None, request_id)
