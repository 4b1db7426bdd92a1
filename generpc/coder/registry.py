"""
Coder capability and the process-wide coder registry.

Coders register a factory for a Content-Type, normally at import time. For
every exchange the server asks the registry for a fresh coder bound to that
exchange's request and response writer; coders are never reused.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Callable, Sequence

from generpc.coder.errors import Error
from generpc.coder.messages import Request, RequestID, Response
from generpc.transport import HttpRequest, ResponseWriter
from generpc.utils.exceptions import RegistrationError


class Coder(ABC):
    """Decodes and encodes RPC message data for one exchange."""

    def __init__(self, writer: ResponseWriter, request: HttpRequest) -> None:
        self.writer = writer
        self.request = request

    @abstractmethod
    def read_requests(self) -> tuple[list[Request | None], bool, Error | None]:
        """
        Decode the request body.

        Returns ``(requests, batch, error)``. A None entry in ``requests``
        marks a batch member whose data was malformed; the server answers it
        with an Invalid Request error at the same position.
        """

    @abstractmethod
    def write_response(self, response: Response) -> None:
        """Encode a single response and write it to the client."""

    @abstractmethod
    def write_responses(self, responses: Sequence[Response]) -> None:
        """Encode a batch response and write it to the client."""

    @abstractmethod
    def write_exception(self, id: RequestID | None, exc: BaseException) -> None:
        """
        Report a failure that cannot be handled with a RPC error.

        Raises if the exception itself cannot be written.
        """

    @abstractmethod
    def write_content_type(self) -> None:
        """Set the outgoing Content-Type header."""


CoderFactory = Callable[[ResponseWriter, HttpRequest], Coder]


def _media_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


class CoderRegistry:
    """
    Content-Type to coder factory mapping.

    Lookup and insertion share one lock, so coders may register at any time.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._factories: dict[str, CoderFactory] = {}

    def register(self, content_type: str, factory: CoderFactory) -> None:
        """Register a factory. Registering a type twice is a programmer error."""
        if not factory:
            raise RegistrationError("coder factory is empty", name=content_type)
        with self._lock:
            if content_type in self._factories:
                raise RegistrationError(f"coder registered twice for type {content_type}", name=content_type)
            self._factories[content_type] = factory

    def replace_with(self, content_type: str, factory: CoderFactory) -> None:
        """Register a factory, replacing any existing one for the type."""
        if not factory:
            raise RegistrationError("coder factory is empty", name=content_type)
        with self._lock:
            self._factories[content_type] = factory

    def unregister(self, content_type: str) -> None:
        with self._lock:
            self._factories.pop(content_type, None)

    def lookup(self, content_type: str) -> CoderFactory | None:
        """Find the factory for the exact type, falling back to the bare media type."""
        with self._lock:
            factory = self._factories.get(content_type)
            if factory is None:
                factory = self._factories.get(_media_type(content_type))
            return factory

    def content_types(self) -> list[str]:
        with self._lock:
            return sorted(self._factories)

    def new(self, writer: ResponseWriter, request: HttpRequest) -> Coder | None:
        """Return a coder for the request's Content-Type, or None if unsupported."""
        factory = self.lookup(request.content_type)
        if factory is None:
            return None
        return factory(writer, request)


_registry = CoderRegistry()


def default_registry() -> CoderRegistry:
    return _registry


def register(content_type: str, factory: CoderFactory) -> None:
    _registry.register(content_type, factory)


def replace_with(content_type: str, factory: CoderFactory) -> None:
    _registry.replace_with(content_type, factory)


def unregister(content_type: str) -> None:
    _registry.unregister(content_type)


def new(writer: ResponseWriter, request: HttpRequest) -> Coder | None:
    return _registry.new(writer, request)
