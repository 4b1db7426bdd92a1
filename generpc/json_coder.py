"""
GeneRPC/JSON data format: JSON-RPC 2.0 over ``application/json``.

Every JSON number in a request is decoded as a JsonNumber that keeps its
literal, so methods decide how to cast it. A JsonNumber returned as a result
is written as a plain int or float (see ``JsonNumber.to_python``), not as its
original text. Request ids are kept as the raw token and written back
unchanged (``1`` stays ``1``, ``1.0`` stays ``1.0``).
"""

from __future__ import annotations

import functools
import json
import math
import re
from typing import Any, Iterator, Sequence

from loguru import logger
from pydantic import BaseModel

from generpc.coder import (
    INVALID_REQUEST,
    PARSE_ERROR,
    Coder,
    Error,
    Number,
    Request,
    RequestID,
    Response,
    exception_error,
    register,
)

CONTENT_TYPE = "application/json"
RESPONSE_CONTENT_TYPE = "application/json; charset=utf-8"
JSONRPC_VERSION = "2.0"

_WHITESPACE = " \t\n\r"
_NUMBER_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")
_INT_RE = re.compile(r"-?(?:0|[1-9][0-9]*)")
_INT_EXP_RE = re.compile(r"(-?(?:0|[1-9][0-9]*))[eE]\+?([0-9]+)")
_MAX_INT_EXP = 308
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


class JsonNumber(Number):
    """A JSON number literal."""

    __slots__ = ("literal",)

    def __init__(self, literal: str) -> None:
        self.literal = literal

    def __repr__(self) -> str:
        return f"JsonNumber({self.literal!r})"

    def __str__(self) -> str:
        return self.literal

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JsonNumber):
            return NotImplemented
        return self.literal == other.literal

    def __hash__(self) -> int:
        return hash(self.literal)

    def cast_float(self) -> tuple[float, bool]:
        if not _NUMBER_RE.fullmatch(self.literal):
            return 0.0, False
        value = float(self.literal)
        if math.isinf(value):
            return 0.0, False
        return value, True

    def cast_int(self) -> tuple[int, bool]:
        if not _INT_RE.fullmatch(self.literal):
            return 0, False
        value = int(self.literal)
        if not _INT64_MIN <= value <= _INT64_MAX:
            return 0, False
        return value, True

    def cast_uint(self) -> tuple[int, bool]:
        value, ok = self.cast_int()
        if not ok or value < 0:
            return 0, False
        return value, True

    def to_python(self) -> int | float:
        """
        Plain int for integral literals (including ``1E2``), float otherwise.

        Literals with a fraction go through float, so ``1.50`` is written back
        as ``1.5`` and digits beyond double precision are lost.
        """
        if _INT_RE.fullmatch(self.literal):
            return int(self.literal)
        match = _INT_EXP_RE.fullmatch(self.literal)
        if match and int(match.group(2)) <= _MAX_INT_EXP:
            return int(match.group(1)) * 10 ** int(match.group(2))
        return float(self.literal)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid number literal {name}")


_decoder = json.JSONDecoder(
    parse_float=JsonNumber,
    parse_int=JsonNumber,
    parse_constant=_reject_constant,
)


class _StructuralError(Exception):
    """Data could not be decoded into a request object at all."""


class _ValidationError(Exception):
    """Request object decoded but is not a valid request."""

    def __init__(self, error: Error) -> None:
        super().__init__(error.data)
        self.error = error


def _skip_whitespace(text: str, idx: int) -> int:
    while idx < len(text) and text[idx] in _WHITESPACE:
        idx += 1
    return idx


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, JsonNumber):
        return "number"
    if isinstance(value, list):
        return "array"
    return "object"


def _object_members(text: str, idx: int) -> Iterator[tuple[str, str]]:
    """Yield (key, raw value text) for the well formed JSON object at idx."""
    idx = _skip_whitespace(text, idx + 1)
    if text[idx] == "}":
        return
    while True:
        key, idx = _decoder.raw_decode(text, idx)
        idx = _skip_whitespace(text, idx)
        start = _skip_whitespace(text, idx + 1)
        _, idx = _decoder.raw_decode(text, start)
        yield key, text[start:idx]
        idx = _skip_whitespace(text, idx)
        if text[idx] == "}":
            return
        idx = _skip_whitespace(text, idx + 1)


def _array_elements(text: str, idx: int) -> list[str]:
    """Return the raw text of every element of the well formed JSON array at idx."""
    elements: list[str] = []
    idx = _skip_whitespace(text, idx + 1)
    if text[idx] == "]":
        return elements
    while True:
        _, end = _decoder.raw_decode(text, idx)
        elements.append(text[idx:end])
        idx = _skip_whitespace(text, end)
        if text[idx] == "]":
            return elements
        idx = _skip_whitespace(text, idx + 1)


def _raw_id(text: str, idx: int) -> str:
    raw = "null"
    for key, value in _object_members(text, idx):
        if key == "id":
            raw = value
    return raw


def decode_request(text: str, idx: int = 0) -> Request:
    """
    Decode the JSON request object at idx. Data after the object is ignored.

    Raises _StructuralError when the text is not a request object and
    _ValidationError when the object is not a valid JSON-RPC 2.0 request.
    """
    try:
        value, _ = _decoder.raw_decode(text, idx)
    except (ValueError, RecursionError) as exc:
        raise _StructuralError(str(exc)) from exc

    if not isinstance(value, dict):
        raise _StructuralError(f"cannot decode JSON {_json_type(value)} as a request object")
    for name in ("jsonrpc", "method"):
        member = value.get(name)
        if member is not None and not isinstance(member, str):
            raise _StructuralError(f'request member "{name}" must be a string, not {_json_type(member)}')

    if value.get("jsonrpc") != JSONRPC_VERSION:
        raise _ValidationError(INVALID_REQUEST.with_data("invalid version"))

    request_id = None
    if "id" in value:
        if value["id"] is not None and not isinstance(value["id"], (str, JsonNumber)):
            raise _ValidationError(INVALID_REQUEST.with_data("invalid id type"))
        request_id = RequestID(_raw_id(text, idx))

    return Request(method=value.get("method") or "", params=value.get("params"), id=request_id)


def _encode_default(value: Any) -> Any:
    if isinstance(value, JsonNumber):
        return value.to_python()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


_dumps = functools.partial(
    json.dumps,
    separators=(",", ":"),
    ensure_ascii=False,
    allow_nan=False,
    default=_encode_default,
)


def encode_response(response: Response) -> str:
    """Encode a response; member order is jsonrpc, result or error, id."""
    if response.error is not None:
        error = response.error
        payload: dict[str, Any] = {"code": error.code, "message": error.message}
        if error.data is not None:
            payload["data"] = error.data
        member = '"error":' + _dumps(payload)
    else:
        member = '"result":' + _dumps(response.result)
    raw_id = response.id.raw if response.id is not None else "null"
    return '{"jsonrpc":"' + JSONRPC_VERSION + '",' + member + ',"id":' + raw_id + "}"


class JsonCoder(Coder):
    """Coder for JSON-RPC 2.0 request and response bodies."""

    def read_requests(self) -> tuple[list[Request | None], bool, Error | None]:
        text = self.request.body.read().decode("utf-8", errors="replace")
        idx = _skip_whitespace(text, 0)
        if idx >= len(text):
            return [], False, PARSE_ERROR.with_data("unexpected end of JSON input")

        if text[idx] == "[":
            requests, error = self._read_batch(text, idx)
            return requests, True, error

        try:
            return [decode_request(text, idx)], False, None
        except _StructuralError as exc:
            return [], False, INVALID_REQUEST.with_data(str(exc))
        except _ValidationError as exc:
            return [], False, exc.error

    def _read_batch(self, text: str, idx: int) -> tuple[list[Request | None], Error | None]:
        try:
            _decoder.raw_decode(text, idx)
        except (ValueError, RecursionError) as exc:
            return [], PARSE_ERROR.with_data(str(exc))

        elements = _array_elements(text, idx)
        if not elements:
            return [], INVALID_REQUEST

        requests: list[Request | None] = []
        for raw in elements:
            try:
                requests.append(decode_request(raw))
            except _StructuralError:
                requests.append(None)
            except _ValidationError as exc:
                # Malformed members of a batch are ignored.
                logger.debug("Dropping batch member: {}", exc.error.data)
        return requests, None

    def write_content_type(self) -> None:
        self.writer.headers["Content-Type"] = RESPONSE_CONTENT_TYPE

    def write_response(self, response: Response) -> None:
        self._write(encode_response(response))

    def write_responses(self, responses: Sequence[Response]) -> None:
        self._write("[" + ",".join(encode_response(r) for r in responses) + "]")

    def write_exception(self, id: RequestID | None, exc: BaseException) -> None:
        self._write(encode_response(Response(error=exception_error(exc), id=id)))

    def _write(self, text: str) -> None:
        self.writer.write((text + "\n").encode("utf-8"))


register(CONTENT_TYPE, JsonCoder)
