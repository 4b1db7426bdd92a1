import pytest

from generpc import HttpRequest, ResponseWriter
from generpc.coder import CoderRegistry, default_registry
from generpc.json_coder import JsonCoder
from generpc.utils.exceptions import RegistrationError


def _request(content_type: str) -> HttpRequest:
    return HttpRequest.from_bytes(b"{}", content_type=content_type)


def test_default_registry_has_json_coder():
    assert "application/json" in default_registry().content_types()
    assert isinstance(default_registry().new(ResponseWriter(), _request("application/json")), JsonCoder)


def test_register_twice_raises():
    registry = CoderRegistry()
    registry.register("application/json", JsonCoder)
    with pytest.raises(RegistrationError, match="registered twice"):
        registry.register("application/json", JsonCoder)


def test_register_empty_factory_raises():
    registry = CoderRegistry()
    with pytest.raises(RegistrationError):
        registry.register("application/json", None)
    with pytest.raises(RegistrationError):
        registry.replace_with("application/json", None)


def test_replace_with_overwrites():
    calls = []

    def _factory(writer, request):
        calls.append(request.content_type)
        return JsonCoder(writer, request)

    registry = CoderRegistry()
    registry.register("application/json", JsonCoder)
    registry.replace_with("application/json", _factory)
    registry.new(ResponseWriter(), _request("application/json"))
    assert calls == ["application/json"]


def test_new_returns_fresh_coder_per_exchange():
    registry = CoderRegistry()
    registry.register("application/json", JsonCoder)
    first = registry.new(ResponseWriter(), _request("application/json"))
    second = registry.new(ResponseWriter(), _request("application/json"))
    assert first is not second


def test_lookup_falls_back_to_media_type():
    registry = CoderRegistry()
    registry.register("application/json", JsonCoder)
    assert registry.lookup("application/json; charset=utf-8") is JsonCoder
    assert registry.lookup("text/plain") is None


def test_exact_type_wins_over_media_type():
    registry = CoderRegistry()
    registry.register("application/json", JsonCoder)
    marker = lambda w, r: None  # noqa: E731
    registry.register("application/json; profile=x", marker)
    assert registry.lookup("application/json; profile=x") is marker


def test_new_unknown_type_returns_none():
    registry = CoderRegistry()
    assert registry.new(ResponseWriter(), _request("invalid/type")) is None
    assert registry.new(ResponseWriter(), HttpRequest.from_bytes(b"{}")) is None


def test_unregister_is_noop_for_unknown_type():
    registry = CoderRegistry()
    registry.unregister("application/json")
    registry.register("application/json", JsonCoder)
    registry.unregister("application/json")
    assert registry.content_types() == []
