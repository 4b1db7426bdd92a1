"""
generpc implements a generalized JSON-RPC 2.0 HTTP server handler.

The RPC layer follows the JSON-RPC 2.0 specification but is decoupled from
the wire data format: coders (see ``generpc.coder``) decode requests and
encode responses, and any wire format can be plugged in per Content-Type.
A JSON coder for ``application/json`` is registered on import.
"""

from generpc import json_coder
from generpc.config import Settings, get_settings
from generpc.server import FuncMethod, Method, Server
from generpc.transport import HttpRequest, ResponseWriter

__version__ = "0.1.0"

__all__ = [
    "FuncMethod",
    "HttpRequest",
    "Method",
    "ResponseWriter",
    "Server",
    "Settings",
    "get_settings",
    "json_coder",
]
