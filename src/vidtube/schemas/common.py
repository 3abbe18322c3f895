"""Response envelope shared by every endpoint.

Learn: Success bodies look like {"success": true, "data": ..., "message": ...};
failures are rendered by the exception handlers in main.py as
{"success": false, "status_kind": ..., "message": ...}.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: str = "OK"


class ErrorResponse(BaseModel):
    success: bool = False
    status_kind: str
    message: str
