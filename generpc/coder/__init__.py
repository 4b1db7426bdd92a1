"""Framework for implementing generpc data coders."""

from generpc.coder.errors import (
    EXCEPTION_ERROR_CODE,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    MULTIPLE_RESPONSES_ERROR_CODE,
    PARSE_ERROR,
    Error,
    exception_error,
    multiple_responses_error,
    server_error,
)
from generpc.coder.messages import Number, Request, RequestID, Response, new_result
from generpc.coder.registry import (
    Coder,
    CoderFactory,
    CoderRegistry,
    default_registry,
    new,
    register,
    replace_with,
    unregister,
)

__all__ = [
    "EXCEPTION_ERROR_CODE",
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "MULTIPLE_RESPONSES_ERROR_CODE",
    "PARSE_ERROR",
    "Coder",
    "CoderFactory",
    "CoderRegistry",
    "Error",
    "Number",
    "Request",
    "RequestID",
    "Response",
    "default_registry",
    "exception_error",
    "multiple_responses_error",
    "new",
    "new_result",
    "register",
    "replace_with",
    "server_error",
    "unregister",
]
