"""Wire-format independent request/response values."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from generpc.coder.errors import Error


@dataclass(frozen=True, slots=True)
class RequestID:
    """
    Opaque RPC request id.

    ``raw`` holds the undecoded wire token exactly as received, so a coder can
    emit it again byte for byte. Parsing and validation belong to the coder.
    """

    raw: str

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True, slots=True)
class Request:
    """
    A decoded RPC request.

    ``params`` is a list (by-position) or a dict (by-name) for well formed
    requests; any other value is rejected at dispatch. ``id`` is None for a
    notification.
    """

    method: str
    params: Any = None
    id: RequestID | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


@dataclass(frozen=True, slots=True)
class Response:
    """A RPC response. The coder emits ``error`` when set and ``result`` otherwise."""

    result: Any = None
    error: Error | None = None
    id: RequestID | None = None


def new_result(request: Request | None, value: Any) -> Response:
    """Return a success response for the request. ``request`` may be None."""
    return Response(result=value, id=request.id if request is not None else None)


class Number(ABC):
    """
    A numeric value in a particular wire encoding.

    Casts never raise: each returns ``(value, ok)`` and ``ok`` is False for a
    non-integral value, an out of range value or a sign mismatch.
    """

    @abstractmethod
    def cast_float(self) -> tuple[float, bool]:
        """Cast to a 64-bit float."""

    @abstractmethod
    def cast_int(self) -> tuple[int, bool]:
        """Cast to a signed 64-bit integer."""

    @abstractmethod
    def cast_uint(self) -> tuple[int, bool]:
        """Cast to an unsigned integer."""
