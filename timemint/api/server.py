"""
TimeMint JSON-RPC Server

HTTP JSON-RPC 2.0 server for node interaction.
"""

from __future__ import annotations
import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, TYPE_CHECKING

from aiohttp import web

from timemint.api.methods import (
    METHOD_REGISTRY,
    RPCError,
    ERROR_PARSE,
    ERROR_INVALID_REQUEST,
    ERROR_METHOD_NOT_FOUND,
    ERROR_INVALID_PARAMS,
    ERROR_INTERNAL,
)

if TYPE_CHECKING:
    from timemint.node.node import Node

logger = logging.getLogger(__name__)


@dataclass
class RPCRequest:
    """JSON-RPC request."""
    jsonrpc: str
    method: str
    params: Any
    id: Any


@dataclass
class RPCResponse:
    """JSON-RPC response."""
    jsonrpc: str = "2.0"
    result: Any = None
    error: Optional[dict] = None
    id: Any = None

    def to_dict(self) -> dict:
        d = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error:
            d["error"] = self.error
        else:
            d["result"] = self.result
        return d


@dataclass
class APIServer:
    """
    JSON-RPC API Server.

    Provides HTTP interface for interacting with the TimeMint node.
    """
    node: "Node"
    host: str = "127.0.0.1"
    port: int = 8547
    cors_origins: List[str] = field(default_factory=list)
    max_batch_size: int = 100

    _runner: Any = None
    _server: Any = None
    _running: bool = False

    def __post_init__(self):
        if not self.cors_origins:
            self.cors_origins = ["*"]

    def create_app(self) -> web.Application:
        """Build the aiohttp application with routes and middleware."""
        app = web.Application(middlewares=[self._cors_middleware])

        # Routes
        app.router.add_post("/", self._handle_rpc)
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/methods", self._handle_methods)

        return app

    async def start(self) -> None:
        """Start the API server."""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()

        self._server = web.TCPSite(self._runner, self.host, self.port)
        await self._server.start()

        self._running = True
        logger.info(f"API server started on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop the API server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._server = None
            self._running = False
            logger.info("API server stopped")

    def _allowed_origin(self, request: web.Request) -> str:
        if "*" in self.cors_origins:
            return "*"
        origin = request.headers.get("Origin", "")
        return origin if origin in self.cors_origins else ""

    @web.middleware
    async def _cors_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        """CORS middleware."""
        origin = self._allowed_origin(request)

        if request.method == "OPTIONS":
            headers = {
                "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type",
            }
            if origin:
                headers["Access-Control-Allow-Origin"] = origin
            return web.Response(status=200, headers=headers)

        response = await handler(request)
        if origin:
            response.headers["Access-Control-Allow-Origin"] = origin
        return response

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Handle health check."""
        status = self.node.get_status()
        return web.json_response({
            "status": "ok",
            "contract": status.get("contract"),
            "total_supply": status.get("total_supply", 0),
        })

    async def _handle_methods(self, request: web.Request) -> web.Response:
        """Handle methods listing."""
        methods = list(METHOD_REGISTRY.keys())
        return web.json_response({"methods": methods})

    async def _handle_rpc(self, request: web.Request) -> web.Response:
        """Handle JSON-RPC request."""
        try:
            body = await request.text()
            data = json.loads(body)
        except json.JSONDecodeError as e:
            return web.json_response(
                RPCResponse(
                    error={"code": ERROR_PARSE, "message": f"Parse error: {e}"}
                ).to_dict(),
                status=400
            )

        # Handle batch request
        if isinstance(data, list):
            if not data or len(data) > self.max_batch_size:
                return web.json_response(
                    RPCResponse(
                        error={
                            "code": ERROR_INVALID_REQUEST,
                            "message": f"Batch size must be 1..{self.max_batch_size}"
                        }
                    ).to_dict(),
                    status=400
                )

            # Sequential: calls in a batch observe each other's effects in order
            responses = []
            for req in data:
                responses.append(await self._process_request(req))
            return web.json_response([r.to_dict() for r in responses])

        # Handle single request
        response = await self._process_request(data)
        return web.json_response(response.to_dict())

    async def _process_request(self, data: Any) -> RPCResponse:
        """Process a single JSON-RPC request."""
        # Validate request structure
        if not isinstance(data, dict):
            return RPCResponse(
                error={"code": ERROR_INVALID_REQUEST, "message": "Invalid request"}
            )

        jsonrpc = data.get("jsonrpc")
        if jsonrpc != "2.0":
            return RPCResponse(
                error={"code": ERROR_INVALID_REQUEST, "message": "Invalid JSON-RPC version"},
                id=data.get("id")
            )

        method = data.get("method")
        if not method or not isinstance(method, str):
            return RPCResponse(
                error={"code": ERROR_INVALID_REQUEST, "message": "Missing method"},
                id=data.get("id")
            )

        params = data.get("params", [])
        req_id = data.get("id")

        # Execute method
        try:
            result = await self._execute_method(method, params)
            return RPCResponse(result=result, id=req_id)

        except RPCError as e:
            return RPCResponse(
                error={"code": e.code, "message": e.message, "data": e.data},
                id=req_id
            )

        except Exception as e:
            logger.error(f"RPC error: {e}", exc_info=True)
            return RPCResponse(
                error={"code": ERROR_INTERNAL, "message": str(e)},
                id=req_id
            )

    async def _execute_method(self, method: str, params: Any) -> Any:
        """Execute an RPC method."""
        handler = METHOD_REGISTRY.get(method)

        if handler is None:
            raise RPCError(ERROR_METHOD_NOT_FOUND, f"Method not found: {method}")

        if params is None:
            params = []
        if not isinstance(params, (list, dict)):
            raise RPCError(ERROR_INVALID_PARAMS, "Invalid params format")

        signature = inspect.signature(handler)
        try:
            if isinstance(params, list):
                signature.bind(self.node, *params)
            else:
                signature.bind(self.node, **params)
        except TypeError as e:
            raise RPCError(ERROR_INVALID_PARAMS, f"Invalid params for {method}: {e}")

        if isinstance(params, list):
            # Positional params
            return await handler(self.node, *params)
        # Named params
        return await handler(self.node, **params)


def get_api_info() -> dict:
    """Get information about API server."""
    return {
        "protocol": "JSON-RPC 2.0",
        "default_port": 8547,
        "methods_count": len(METHOD_REGISTRY),
        "batch_support": True,
    }
