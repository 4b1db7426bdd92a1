"""RPC server: method registry and the request/response lifecycle of one exchange."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Sequence

from loguru import logger

from generpc import coder
from generpc.coder import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    Error,
    Request,
    Response,
    multiple_responses_error,
    new_result,
)
from generpc.config import Settings, get_settings
from generpc.transport import HttpRequest, ResponseWriter, http_error
from generpc.utils.exceptions import RegistrationError, sanitize_error_message

RESERVED_METHOD_PREFIX = "rpc."
WRITE_METHOD = "POST"


class Method(ABC):
    """
    A RPC method.

    ``invoke`` always receives by-position parameters; ``parse_named_params``
    converts by-name parameters into that order. ``invoke`` returns the result
    value, or an ``Error`` to answer with an error response.
    """

    @abstractmethod
    def parse_named_params(self, params: dict[str, Any]) -> list[Any]:
        """Return the by-position form of params; raise if a parameter is missing."""

    @abstractmethod
    def invoke(self, params: list[Any]) -> Any:
        """Run the method with by-position params."""


class FuncMethod(Method):
    """
    Method backed by a plain function.

    ``param_names`` lists the parameter names in positional order; when not
    given they are read from the function signature. Parameters with a
    default may be left out of by-name calls and from the end of by-position
    calls.
    """

    def __init__(self, func: Callable[..., Any], param_names: Sequence[str] | None = None) -> None:
        if not callable(func):
            raise RegistrationError("method function is not callable")
        self.func = func
        self._signature = _signature_or_none(func)
        if param_names is not None:
            self.param_names = list(param_names)
        elif self._signature is not None:
            self.param_names = _positional_names(self._signature)
        else:
            raise RegistrationError("param_names are required for a function without a signature")
        self._defaults = _defaults(self._signature, self.param_names)

    def parse_named_params(self, params: dict[str, Any]) -> list[Any]:
        values = []
        for name in self.param_names:
            if name in params:
                values.append(params[name])
            elif name in self._defaults:
                values.append(self._defaults[name])
            else:
                raise ValueError(f'Parameter "{name}" not provided')
        return values

    def invoke(self, params: list[Any]) -> Any:
        if self._signature is not None:
            try:
                self._signature.bind(*params)
            except TypeError as exc:
                return INVALID_PARAMS.with_error(exc)
        elif len(params) != len(self.param_names):
            return INVALID_PARAMS.with_data(f"expected {len(self.param_names)} params, got {len(params)}")
        return self.func(*params)


def _signature_or_none(func: Callable[..., Any]) -> inspect.Signature | None:
    try:
        return inspect.signature(func)
    except (TypeError, ValueError):
        return None


def _positional_names(signature: inspect.Signature) -> list[str]:
    kinds = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    return [p.name for p in signature.parameters.values() if p.kind in kinds]


def _defaults(signature: inspect.Signature | None, names: list[str]) -> dict[str, Any]:
    if signature is None:
        return {}
    return {
        name: p.default
        for name, p in signature.parameters.items()
        if name in names and p.default is not inspect.Parameter.empty
    }


class Server:
    """
    RPC HTTP handler.

    Methods must be registered before the server handles requests: the method
    registry is not locked, so registering while serving is a programmer error.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._methods: dict[str, Method | None] = {}

    def register(self, name: str, method: Method | None) -> None:
        """Register a method. Empty names, empty methods and duplicates raise RegistrationError."""
        if not name:
            raise RegistrationError("method name is empty")
        if method is None:
            raise RegistrationError(f"method is empty: {name}", name=name)
        if name in self._methods:
            raise RegistrationError(f"method already exists: {name}", name=name)
        self._methods[name] = method

    def register_function(
        self,
        name: str,
        func: Callable[..., Any],
        param_names: Sequence[str] | None = None,
    ) -> None:
        self.register(name, FuncMethod(func, param_names))

    def method_names(self) -> list[str]:
        return sorted(self._methods)

    def serve(self, writer: ResponseWriter, request: HttpRequest) -> None:
        """Handle one HTTP exchange."""
        c = coder.new(writer, request)
        if c is None:
            content_type = request.content_type
            logger.warning("RPC request with unsupported media type {!r}", content_type)
            http_error(writer, f'media type "{content_type}" is not supported', 415)
            return

        c.write_content_type()

        if request.method != WRITE_METHOD:
            writer.headers["Allow"] = WRITE_METHOD
            writer.write_header(405)
            self._write(c, lambda: c.write_response(PARSE_ERROR.with_data("invalid HTTP method").response()))
            return

        if request.content_length == 0:
            self._write(c, lambda: c.write_response(PARSE_ERROR.with_data("empty POST body").response()))
            return

        requests, batch, error = c.read_requests()
        if error is not None:
            logger.debug("RPC request rejected: [{}] {}", error.code, error.data)
            self._write(c, lambda: c.write_response(error.response()))
            return

        responses: list[Response] = []
        for req in requests:
            if req is None:
                responses.append(INVALID_REQUEST.response())
                continue
            resp = self.invoke_request(req)
            if resp is None:
                # Notifications never get a response.
                continue
            responses.append(resp)

        if batch:
            if responses:
                self._write(c, lambda: c.write_responses(responses))
        elif len(responses) == 1:
            self._write(c, lambda: c.write_response(responses[0]))
        elif len(responses) > 1:
            logger.warning("RPC coder produced {} responses for a single request", len(responses))
            self._write(c, lambda: c.write_response(multiple_responses_error().response()))

    def _write(self, c: coder.Coder, write: Callable[[], None]) -> None:
        try:
            write()
        except Exception as exc:
            logger.warning("RPC response write failed: {}", exc)
            try:
                c.write_exception(None, exc)
            except Exception as exc2:
                logger.error("RPC exception write failed: {}", exc2)
                http_error(c.writer, f"error: {exc2}", 500)

    def invoke_request(self, request: Request) -> Response | None:
        """Resolve, bind and invoke one request. Returns None for notifications."""
        response = self._invoke(request)
        if request.is_notification:
            return None
        return response

    def _invoke(self, request: Request) -> Response:
        name = request.method
        if not name or name.startswith(RESERVED_METHOD_PREFIX):
            return METHOD_NOT_FOUND.response(request)

        method = self._methods.get(name)
        if method is None:
            return METHOD_NOT_FOUND.response(request)

        params = request.params
        if isinstance(params, dict):
            try:
                params = method.parse_named_params(params)
            except Exception as exc:
                return INVALID_PARAMS.with_error(exc).response(request)
        elif not isinstance(params, list):
            info = "params should be by-position (array) or by-name (object)"
            return INVALID_PARAMS.with_data(info).response(request)

        logger.debug("RPC invoke method={} params={}", name, len(params))
        try:
            result = method.invoke(list(params))
        except Exception as exc:
            sanitized = sanitize_error_message(str(exc))
            logger.exception("RPC method {} failed: {}", name, sanitized)
            error = INTERNAL_ERROR
            if self.settings.expose_internal_errors:
                error = error.with_data(sanitized)
            return error.response(request)

        if isinstance(result, Error):
            return result.response(request)
        return new_result(request, result)
