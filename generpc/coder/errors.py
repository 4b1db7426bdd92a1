"""RPC error taxonomy: protocol error codes and the reserved server-error range."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from generpc.coder.messages import Request, Response


@dataclass(frozen=True, slots=True)
class Error:
    """
    An error that occurred while handling a RPC request.

    Error values are protocol errors: they are always encoded into a response
    and never abort the exchange. A method may return an Error from
    ``Method.invoke`` to answer with an error response.
    """

    code: int
    message: str
    data: Any = None

    def with_data(self, data: Any) -> Error:
        """Return a copy of the error carrying data."""
        return replace(self, data=data)

    def with_error(self, exc: BaseException) -> Error:
        """Return a copy of the error with the exception description as data."""
        return self.with_data(str(exc))

    def response(self, request: Request | None = None) -> Response:
        """Build an error response. The request id is used when a request is given."""
        from generpc.coder.messages import Response

        return Response(error=self, id=request.id if request is not None else None)


# JSON-RPC 2.0: Invalid JSON was received by the server, or an error occurred
# on the server while parsing the JSON text.
PARSE_ERROR = Error(code=-32700, message="Parse error")

# JSON-RPC 2.0: The JSON sent is not a valid Request object.
INVALID_REQUEST = Error(code=-32600, message="Invalid Request")

# JSON-RPC 2.0: The method does not exist / is not available.
METHOD_NOT_FOUND = Error(code=-32601, message="Method not found")

# JSON-RPC 2.0: Invalid method parameter(s).
INVALID_PARAMS = Error(code=-32602, message="Invalid params")

# JSON-RPC 2.0: Internal JSON-RPC error.
INTERNAL_ERROR = Error(code=-32603, message="Internal error")

SERVER_ERROR_CODE_BEGIN = -32000
SERVER_ERROR_CODE_BEGIN_RESERVED = -32090
SERVER_ERROR_CODE_END = -32099

# Reserved for situations that cannot be handled with a regular RPC response,
# see Coder.write_exception.
EXCEPTION_ERROR_CODE = -32090

# Reserved for a single request that produced more than one response.
MULTIPLE_RESPONSES_ERROR_CODE = -32091


def _server_error(code: int) -> Error:
    return Error(code=code, message="Server error")


def server_error(code: int) -> Error:
    """
    Return a "Server error" with a particular code.

    Codes must lie in [-32099, -32000]; codes in [-32099, -32090] are reserved
    for generpc itself. Both violations are programmer errors and raise
    ValueError.
    """
    if not SERVER_ERROR_CODE_END <= code <= SERVER_ERROR_CODE_BEGIN:
        raise ValueError(f"error code {code} is not valid for use as server error")
    if SERVER_ERROR_CODE_END <= code <= SERVER_ERROR_CODE_BEGIN_RESERVED:
        raise ValueError(f"use of reserved server error code {code}")
    return _server_error(code)


def exception_error(exc: BaseException) -> Error:
    """Wrap an internal failure as the reserved exception error."""
    return _server_error(EXCEPTION_ERROR_CODE).with_error(exc)


def multiple_responses_error() -> Error:
    return _server_error(MULTIPLE_RESPONSES_ERROR_CODE).with_data("multiple responses")
