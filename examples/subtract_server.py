"""
Minimal JSON-RPC server.

    python examples/subtract_server.py
    curl -s -H 'Content-Type: application/json' \
        -d '{"jsonrpc":"2.0","method":"subtract","params":[42,23],"id":1}' \
        http://127.0.0.1:8765/rpc
"""

from generpc import Server, get_settings
from generpc.asgi import run_server
from generpc.coder import INVALID_PARAMS
from generpc.config import configure_logging


def subtract(minuend, subtrahend):
    a, ok_a = minuend.cast_int()
    b, ok_b = subtrahend.cast_int()
    if not (ok_a and ok_b):
        return INVALID_PARAMS.with_data("minuend and subtrahend must be integers")
    return a - b


if __name__ == "__main__":
    settings = get_settings()
    configure_logging(settings)
    server = Server(settings=settings)
    server.register_function("subtract", subtract)
    run_server(server, settings)
