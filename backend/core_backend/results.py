"""
Typed service results.

Services return a ``ServiceResult`` for every expected outcome, including
validation and policy failures. Exceptions are kept for conditions nobody
can handle locally (database down, programming errors) and are turned into a
generic 500 at the request boundary.

Example:
    result = DeliveryFeeResolver.resolve("Online", "Cairo", "Nasr City", subtotal)
    if not result.success:
        return Response(result.as_body(), status=result.status_code)
    fee = result.data.fee
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    POLICY = "policy"
    CONFLICT = "conflict"
    METHOD_DISABLED = "method_disabled"
    GATEWAY_NOT_CONFIGURED = "gateway_not_configured"
    UNSUPPORTED_METHOD = "unsupported_method"
    GATEWAY = "gateway"
    SIGNATURE = "signature"
    INTERNAL = "internal"

    @property
    def default_status(self) -> int:
        return _DEFAULT_STATUS[self]


_DEFAULT_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.POLICY: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.METHOD_DISABLED: 400,
    ErrorKind.GATEWAY_NOT_CONFIGURED: 503,
    ErrorKind.UNSUPPORTED_METHOD: 400,
    ErrorKind.GATEWAY: 502,
    ErrorKind.SIGNATURE: 400,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    success: bool
    message: str = ""
    data: Optional[T] = None
    error: Optional[ErrorKind] = None
    status_code: int = 200

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "", status_code: int = 200) -> "ServiceResult[T]":
        return cls(success=True, message=message, data=data, status_code=status_code)

    @classmethod
    def fail(
        cls,
        error: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        data: Any = None,
    ) -> "ServiceResult[T]":
        return cls(
            success=False,
            message=message,
            data=data,
            error=error,
            status_code=status_code or error.default_status,
        )

    def __bool__(self) -> bool:
        return self.success

    def as_body(self) -> Dict[str, Any]:
        """Client envelope: ``{success, message, data?}``."""
        body: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None and isinstance(self.data, (dict, list, str, int, float)):
            body["data"] = self.data
        if self.error is not None:
            body["error"] = self.error.value
        return body
