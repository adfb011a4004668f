"""
Uniform success/error envelope returned by every service operation.
"""

import functools
import inspect
import logging
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, Field

from dishes_api.core.errors import ErrorCode, ErrorKind, InternalError, ServiceError

logger = logging.getLogger(__name__)


class ServiceResult(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            out: Dict[str, Any] = {"success": True}
            if self.message:
                out["message"] = self.message
            out.update(self.data)
            return out
        return {
            "success": False,
            "error": self.error,
            "message": self.message or "Unable to process request",
            "kind": self.kind.value if self.kind else ErrorKind.INTERNAL.value,
        }


def handle_success(data: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> ServiceResult:
    return ServiceResult(success=True, message=message, data=data or {})


def handle_error(
    error: ServiceError,
    log: Optional[logging.Logger] = None,
    log_context: Optional[Dict[str, Any]] = None,
) -> ServiceResult:
    context = {**(log_context or {}), **error.context}
    (log or logger).error(
        "%s: %s", error.code, error.message,
        extra={"event": "operation_failed", "error_kind": error.kind.value, "context": context},
    )
    return ServiceResult(success=False, error=error.code, message=error.message, kind=error.kind)


def service_operation(default_code: str = ErrorCode.INTERNAL_ERROR, log_fields: Iterable[str] = ()):
    """Catch-and-wrap boundary for an async service method.

    ``ServiceError`` keeps its own kind and code; anything else becomes an
    ``InternalError`` with ``default_code``. ``log_fields`` names the call
    arguments copied into the failure log record.
    """
    fields = tuple(log_fields)

    def decorator(func):
        signature = inspect.signature(func)
        op_logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> ServiceResult:
            try:
                return await func(*args, **kwargs)
            except ServiceError as e:
                return handle_error(e, op_logger, _bound_fields(signature, fields, args, kwargs))
            except Exception as e:
                wrapped = InternalError(str(e) or "Unable to process request", code=default_code)
                return handle_error(wrapped, op_logger, _bound_fields(signature, fields, args, kwargs))

        return wrapper

    return decorator


def _bound_fields(signature: inspect.Signature, fields: tuple, args: tuple, kwargs: dict) -> Dict[str, Any]:
    if not fields:
        return {}
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return {}
    return {name: bound.arguments.get(name) for name in fields if name in bound.arguments}
