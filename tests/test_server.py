import json

import pytest

from generpc import FuncMethod, Server, Settings
from generpc import server as server_module
from generpc.coder import (
    INVALID_PARAMS,
    Coder,
    Error,
    Request,
    RequestID,
    Response,
    replace_with,
    unregister,
)
from generpc.json_coder import JsonNumber, encode_response
from generpc.utils.exceptions import RegistrationError

STUB_TYPE = "application/x-generpc-stub"


class _StubCoder(Coder):
    """Coder returning preset requests and recording what the server writes."""

    requests: list = []
    batch = False
    fail_writes = False
    fail_exception = False

    def read_requests(self):
        return list(self.requests), self.batch, None

    def write_content_type(self):
        self.writer.headers["Content-Type"] = STUB_TYPE

    def write_response(self, response):
        if self.fail_writes:
            raise RuntimeError("response stream broken")
        self.writer.write(encode_response(response).encode())

    def write_responses(self, responses):
        if self.fail_writes:
            raise RuntimeError("response stream broken")
        self.writer.write(json.dumps([json.loads(encode_response(r)) for r in responses]).encode())

    def write_exception(self, id, exc):
        if self.fail_exception:
            raise RuntimeError("exception stream broken")
        self.writer.write(f"exception: {exc}".encode())


@pytest.fixture
def stub_coder():
    class Stub(_StubCoder):
        pass

    replace_with(STUB_TYPE, Stub)
    yield Stub
    unregister(STUB_TYPE)


def _req(method, params=None, id='1'):
    return Request(method=method, params=params, id=RequestID(id) if id is not None else None)


# --- registration ---


def test_register_rejects_empty_name(server):
    with pytest.raises(RegistrationError):
        server.register("", FuncMethod(lambda: None))


def test_register_rejects_empty_method(server):
    with pytest.raises(RegistrationError):
        server.register("nil", None)


def test_register_rejects_duplicate(server):
    with pytest.raises(RegistrationError, match="method already exists: subtract"):
        server.register("subtract", FuncMethod(lambda a, b: a))


def test_registration_error_is_value_error():
    with pytest.raises(ValueError):
        FuncMethod("not callable")


def test_method_names(server):
    server.register_function("add", lambda a, b: a + b)
    assert server.method_names() == ["add", "error", "subtract"]


# --- invoke_request ---


def test_invoke_by_position(server):
    resp = server.invoke_request(_req("subtract", [JsonNumber("42"), JsonNumber("23")]))
    assert resp == Response(result=19, id=RequestID("1"))


def test_positional_and_named_params_give_same_result(server):
    by_pos = server.invoke_request(_req("subtract", [JsonNumber("42"), JsonNumber("23")]))
    by_name = server.invoke_request(_req("subtract", {"minuend": JsonNumber("42"), "subtrahend": JsonNumber("23")}))
    assert by_pos == by_name


def test_invoke_reserved_and_empty_method_names(server):
    assert server.invoke_request(_req("", [])).error.code == -32601
    assert server.invoke_request(_req("rpc.discover", [])).error.code == -32601


def test_invoke_empty_method_slot(server):
    server._methods["ghost"] = None
    assert server.invoke_request(_req("ghost", [])).error.code == -32601


def test_invoke_params_of_other_shape(server):
    resp = server.invoke_request(_req("subtract", "bar"))
    assert resp.error == INVALID_PARAMS.with_data("params should be by-position (array) or by-name (object)")


def test_invoke_notification_suppresses_every_outcome(server):
    assert server.invoke_request(_req("subtract", [JsonNumber("1"), JsonNumber("2")], id=None)) is None
    assert server.invoke_request(_req("missing", [], id=None)) is None
    assert server.invoke_request(_req("subtract", None, id=None)) is None
    assert server.invoke_request(_req("error", [], id=None)) is None


def test_invoke_error_result(server):
    resp = server.invoke_request(_req("error", []))
    assert resp.error == Error(code=1, message="Test error")
    assert resp.id == RequestID("1")


def test_invoke_method_exception_becomes_internal_error(server):
    def boom():
        raise RuntimeError("db password=hunter2 rejected")

    server.register_function("boom", boom)
    resp = server.invoke_request(_req("boom", []))
    assert resp.error.code == -32603
    assert resp.error.message == "Internal error"
    assert "hunter2" not in resp.error.data
    assert "[REDACTED]" in resp.error.data


def test_invoke_method_exception_without_detail():
    server = Server(settings=Settings(expose_internal_errors=False))
    server.register_function("boom", lambda: 1 / 0)
    resp = server.invoke_request(_req("boom", []))
    assert resp.error.code == -32603
    assert resp.error.data is None


def test_func_method_reads_names_from_signature(server):
    def divide(dividend, divisor=1):
        return dividend.cast_float()[0] / divisor.cast_float()[0]

    server.register_function("divide", divide)
    resp = server.invoke_request(_req("divide", {"divisor": JsonNumber("4"), "dividend": JsonNumber("10")}))
    assert resp.result == 2.5


def test_func_method_missing_named_param(server):
    server.register_function("pair", lambda left, right: [left, right])
    resp = server.invoke_request(_req("pair", {"left": 1}))
    assert resp.error == INVALID_PARAMS.with_data('Parameter "right" not provided')


def test_func_method_ignores_unknown_named_param(server):
    server.register_function("pair", lambda left, right: [left, right])
    resp = server.invoke_request(_req("pair", {"right": 2, "left": 1, "extra": 3}))
    assert resp.result == [1, 2]


def test_func_method_wrong_arity(server):
    server.register_function("pair", lambda left, right: [left, right])
    resp = server.invoke_request(_req("pair", [1]))
    assert resp.error == INVALID_PARAMS.with_data("missing a required argument: 'right'")
    resp = server.invoke_request(_req("pair", [1, 2, 3]))
    assert resp.error == INVALID_PARAMS.with_data("too many positional arguments")


def test_func_method_default_filled_by_position(server):
    server.register_function("scale", lambda value, factor=2: value * factor)
    assert server.invoke_request(_req("scale", [3])).result == 6
    assert server.invoke_request(_req("scale", [3, 5])).result == 15


def test_func_method_default_filled_by_name(server):
    server.register_function("scale", lambda value, factor=2: value * factor)
    assert server.invoke_request(_req("scale", {"value": 3})).result == 6
    assert server.invoke_request(_req("scale", {"factor": 4, "value": 3})).result == 12


def test_func_method_without_params_rejects_arguments(server):
    server.register_function("ping", lambda: "pong")
    assert server.invoke_request(_req("ping", [])).result == "pong"
    resp = server.invoke_request(_req("ping", [1]))
    assert resp.error.code == -32602
    assert resp.error.message == "Invalid params"


def test_func_method_without_signature_checks_count(server, monkeypatch):
    monkeypatch.setattr(server_module, "_signature_or_none", lambda func: None)
    server.register_function("maximum", lambda a, b: max(a, b), param_names=["a", "b"])
    assert server.invoke_request(_req("maximum", [1, 7])).result == 7
    resp = server.invoke_request(_req("maximum", [1]))
    assert resp.error == INVALID_PARAMS.with_data("expected 2 params, got 1")


def test_func_method_explicit_param_names(server):
    server.register_function("concat", lambda *parts: "".join(parts), param_names=["a", "b"])
    resp = server.invoke_request(_req("concat", {"b": "y", "a": "x"}))
    assert resp.result == "xy"


# --- serve ---


def test_unsupported_media_type(call):
    w = call("invalid request", content_type="invalid/type")
    assert w.status_code == 415
    assert w.headers["Content-Type"] == "text/plain; charset=utf-8"
    assert w.getvalue() == b'media type "invalid/type" is not supported\n'


def test_content_type_parameters_are_ignored(call):
    w = call('{"jsonrpc":"2.0","method":"subtract","params":[3,1],"id":1}', content_type="Application/JSON; charset=UTF-8")
    assert w.getvalue() == b'{"jsonrpc":"2.0","result":2,"id":1}\n'


def test_unserializable_result_is_written_as_exception(call, server):
    server.register_function("opaque", lambda: object())
    w = call('{"jsonrpc":"2.0","method":"opaque","params":[],"id":1}')
    want = (
        '{"jsonrpc":"2.0","error":{"code":-32090,"message":"Server error",'
        '"data":"Object of type object is not JSON serializable"},"id":null}\n'
    )
    assert w.getvalue().decode() == want


def test_multiple_responses_for_single_request(call, stub_coder):
    stub_coder.requests = [_req("subtract", [JsonNumber("2"), JsonNumber("1")], id="1"), _req("error", [], id="2")]
    w = call("ignored", content_type=STUB_TYPE)
    assert w.getvalue() == b'{"jsonrpc":"2.0","error":{"code":-32091,"message":"Server error","data":"multiple responses"},"id":null}'


def test_null_member_becomes_invalid_request(call, stub_coder):
    stub_coder.batch = True
    stub_coder.requests = [None, _req("error", [], id='"e"')]
    payload = json.loads(call("ignored", content_type=STUB_TYPE).getvalue())
    assert payload == [
        {"jsonrpc": "2.0", "error": {"code": -32600, "message": "Invalid Request"}, "id": None},
        {"jsonrpc": "2.0", "error": {"code": 1, "message": "Test error"}, "id": "e"},
    ]


def test_write_failure_falls_back_to_exception(call, stub_coder):
    stub_coder.fail_writes = True
    stub_coder.requests = [_req("error", [])]
    w = call("ignored", content_type=STUB_TYPE)
    assert w.status_code == 200
    assert w.getvalue() == b"exception: response stream broken"


def test_exception_failure_falls_back_to_http_error(call, stub_coder):
    stub_coder.fail_writes = True
    stub_coder.fail_exception = True
    stub_coder.batch = True
    stub_coder.requests = [_req("error", [])]
    w = call("ignored", content_type=STUB_TYPE)
    assert w.status_code == 500
    assert w.headers["Content-Type"] == "text/plain; charset=utf-8"
    assert w.getvalue() == b"error: exception stream broken\n"
