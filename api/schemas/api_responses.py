from __future__ import annotations

from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ApiError(BaseModel):
    """Error payload: a stable machine `code` plus a human message."""

    code: str = Field(default="error")
    message: str
    details: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")


class ApiMeta(BaseModel):
    """Optional metadata; paging fields are set by list endpoints only."""

    request_id: Optional[str] = None
    total: Optional[int] = None
    offset: Optional[int] = None
    limit: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by every /api/v1 response."""

    ok: bool
    data: Optional[T] = None
    error: Optional[ApiError] = None
    meta: ApiMeta = Field(default_factory=ApiMeta)

    model_config = ConfigDict(extra="ignore")


def ok(data: T = None, *, meta: Optional[ApiMeta] = None) -> Dict[str, Any]:
    payload = ApiResponse[Any](ok=True, data=data, meta=meta or ApiMeta())
    return payload.model_dump(mode="json")


def fail(
    message: str,
    *,
    code: str = "error",
    details: Optional[Any] = None,
    meta: Optional[ApiMeta] = None,
) -> Dict[str, Any]:
    payload = ApiResponse[None](
        ok=False,
        error=ApiError(code=code, message=message, details=details),
        meta=meta or ApiMeta(),
    )
    return payload.model_dump(mode="json")
