"""
TimeMint JSON-RPC API
"""

from timemint.api.server import APIServer
from timemint.api.methods import METHOD_REGISTRY, RPCError

__all__ = [
    "APIServer",
    "METHOD_REGISTRY",
    "RPCError",
]
