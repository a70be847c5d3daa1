"""
Minimal asynchronous JSON-RPC 2.0 server over stdio.
Used to drive the bot locally without a chat platform webhook.
"""

import asyncio
import inspect
import json
import logging
import sys
from typing import Any, Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)

# JSON-RPC 2.0 constants
JSONRPC_VERSION = "2.0"
ERROR_PARSE = -32700
ERROR_INVALID_REQUEST = -32600
ERROR_METHOD_NOT_FOUND = -32601
ERROR_INVALID_PARAMS = -32602
ERROR_INTERNAL = -32603


class JsonRpcRequest:
    """JSON-RPC 2.0 Request"""

    def __init__(self, data: dict):
        if not isinstance(data, dict):
            raise ValueError("Request must be a JSON object")
        self.jsonrpc = data.get("jsonrpc", JSONRPC_VERSION)
        self.method = data.get("method")
        self.params = data.get("params", {})
        self.id = data.get("id")

        # Validate
        if self.jsonrpc != JSONRPC_VERSION:
            raise ValueError(f"Invalid JSON-RPC version: {self.jsonrpc}")
        if not self.method:
            raise ValueError("Missing method")


class JsonRpcError:
    """JSON-RPC 2.0 Error"""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict:
        d = {"code": self.code, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d


class InvalidParamsError(ValueError):
    """Raised by handlers when required params are missing or malformed."""


class JsonRpcServer:
    """
    An asyncio JSON-RPC 2.0 server reading one request per stdin line.
    Requests are handled concurrently; responses are written as they finish.
    """

    def __init__(self, server_name: str):
        self.server_name = server_name
        self._handlers: Dict[str, Callable] = {}
        self._running = False
        self._tasks: Set[asyncio.Task] = set()

    def register_handler(self, method: str, handler: Callable):
        """Register a handler for a JSON-RPC method."""
        logger.info(f"Registering handler for method: {method}")
        self._handlers[method] = handler

    async def _read_message(self) -> Optional[str]:
        """Read a single line from stdin without blocking the event loop."""
        try:
            line = await asyncio.get_running_loop().run_in_executor(None, sys.stdin.readline)
            if not line:
                return None
            return line.strip()
        except (OSError, ValueError) as e:
            logger.error(f"Error reading from stdin: {e}")
            return None

    def write_message(self, message: dict):
        """Write a JSON message to stdout."""
        try:
            print(json.dumps(message, ensure_ascii=False), flush=True)
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error writing to stdout: {e}")

    async def process_request(self, request_str: str) -> Optional[dict]:
        """Process a single JSON-RPC request."""
        request_id = None

        try:
            request_data = json.loads(request_str)
        except json.JSONDecodeError as e:
            return create_error_response(None, ERROR_PARSE, f"Parse error: {e}")

        try:
            request = JsonRpcRequest(request_data)
            request_id = request.id
        except ValueError as e:
            return create_error_response(request_id, ERROR_INVALID_REQUEST, str(e))

        handler = self._handlers.get(request.method)
        if not handler:
            return create_error_response(
                request_id, ERROR_METHOD_NOT_FOUND, f"Method not found: {request.method}"
            )

        try:
            result = handler(request_id, request.params)
            if inspect.isawaitable(result):
                result = await result
            # Handler returns a complete response dict
            return result
        except InvalidParamsError as e:
            return create_error_response(request_id, ERROR_INVALID_PARAMS, str(e))
        except Exception as e:
            logger.error(f"Handler error for {request.method}: {e}", exc_info=True)
            return create_error_response(request_id, ERROR_INTERNAL, f"Internal error: {e}")

    async def _handle_line(self, line: str):
        response = await self.process_request(line)
        if response:
            self.write_message(response)

    async def run(self):
        """Run the server until EOF on stdin."""
        logger.info(f"Starting JSON-RPC server '{self.server_name}'...")
        self._running = True

        while self._running:
            line = await self._read_message()
            if line is None:
                logger.info("EOF reached, shutting down")
                break
            if not line:
                continue

            task = asyncio.create_task(self._handle_line(line))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("Server stopped")

    def stop(self):
        """Stop the server."""
        self._running = False


def create_error_response(request_id: Any, code: int, message: str) -> dict:
    """Create an error response."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": JsonRpcError(code, message).to_dict(),
    }


def create_result_response(request_id: Any, result: Any) -> dict:
    """Create a result response."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def create_notification(method: str, params: Any) -> dict:
    """Create a server-initiated notification (no id)."""
    return {"jsonrpc": JSONRPC_VERSION, "method": method, "params": params}
