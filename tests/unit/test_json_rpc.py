"""
Tests for the asyncio JSON-RPC 2.0 server.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from coachbot.json_rpc import (
    ERROR_INTERNAL,
    ERROR_INVALID_PARAMS,
    ERROR_INVALID_REQUEST,
    ERROR_METHOD_NOT_FOUND,
    ERROR_PARSE,
    InvalidParamsError,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcServer,
    create_error_response,
    create_notification,
    create_result_response,
)


class TestJsonRpcRequest:
    """Test the JsonRpcRequest class."""

    def test_valid_request(self):
        data = {"jsonrpc": "2.0", "method": "message/text", "params": {"text": "hi"}, "id": 1}
        request = JsonRpcRequest(data)
        assert request.method == "message/text"
        assert request.params == {"text": "hi"}
        assert request.id == 1

    def test_request_without_params(self):
        request = JsonRpcRequest({"jsonrpc": "2.0", "method": "usage/status", "id": 1})
        assert request.params == {}

    def test_invalid_jsonrpc_version(self):
        with pytest.raises(ValueError, match="Invalid JSON-RPC version"):
            JsonRpcRequest({"jsonrpc": "1.0", "method": "m", "id": 1})

    def test_missing_method(self):
        with pytest.raises(ValueError, match="Missing method"):
            JsonRpcRequest({"jsonrpc": "2.0", "id": 1})

    def test_not_an_object(self):
        with pytest.raises(ValueError, match="JSON object"):
            JsonRpcRequest([1, 2])


class TestJsonRpcError:
    def test_error_without_data(self):
        assert JsonRpcError(-32600, "Invalid").to_dict() == {"code": -32600, "message": "Invalid"}

    def test_error_with_data(self):
        error = JsonRpcError(-32603, "Internal", {"detail": "x"})
        assert error.to_dict()["data"] == {"detail": "x"}


class TestJsonRpcServer:
    """Test the JsonRpcServer class."""

    def test_register_handler(self):
        server = JsonRpcServer("test")
        handler = MagicMock()
        server.register_handler("m", handler)
        assert server._handlers["m"] is handler

    @pytest.mark.asyncio
    @patch("sys.stdin")
    async def test_read_message(self, mock_stdin):
        mock_stdin.readline.return_value = '{"test": "data"}\n'
        assert await JsonRpcServer("test")._read_message() == '{"test": "data"}'

    @pytest.mark.asyncio
    @patch("sys.stdin")
    async def test_read_message_eof(self, mock_stdin):
        mock_stdin.readline.return_value = ""
        assert await JsonRpcServer("test")._read_message() is None

    @patch("builtins.print")
    def test_write_message_keeps_unicode(self, mock_print):
        JsonRpcServer("test").write_message({"text": "課表"})
        mock_print.assert_called_once_with('{"text": "課表"}', flush=True)

    @pytest.mark.asyncio
    async def test_parse_error(self):
        response = await JsonRpcServer("test").process_request("not json")
        assert response["error"]["code"] == ERROR_PARSE
        assert response["id"] is None

    @pytest.mark.asyncio
    async def test_invalid_request(self):
        response = await JsonRpcServer("test").process_request('{"jsonrpc": "2.0", "id": 3}')
        assert response["error"]["code"] == ERROR_INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_method_not_found(self):
        response = await JsonRpcServer("test").process_request(
            '{"jsonrpc": "2.0", "method": "nope", "id": 1}'
        )
        assert response["error"]["code"] == ERROR_METHOD_NOT_FOUND
        assert "nope" in response["error"]["message"]

    @pytest.mark.asyncio
    async def test_sync_handler(self):
        server = JsonRpcServer("test")
        server.register_handler("ping", lambda rid, params: create_result_response(rid, "pong"))

        response = await server.process_request('{"jsonrpc": "2.0", "method": "ping", "id": 7}')
        assert response == {"jsonrpc": "2.0", "id": 7, "result": "pong"}

    @pytest.mark.asyncio
    async def test_async_handler(self):
        async def echo(request_id, params):
            return create_result_response(request_id, params)

        server = JsonRpcServer("test")
        server.register_handler("echo", echo)
        response = await server.process_request(
            json.dumps({"jsonrpc": "2.0", "method": "echo", "params": {"a": 1}, "id": "x"})
        )
        assert response["result"] == {"a": 1}

    @pytest.mark.asyncio
    async def test_invalid_params(self):
        def handler(request_id, params):
            raise InvalidParamsError("Missing required parameter: identity")

        server = JsonRpcServer("test")
        server.register_handler("m", handler)
        response = await server.process_request('{"jsonrpc": "2.0", "method": "m", "id": 1}')
        assert response["error"]["code"] == ERROR_INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_handler_exception(self):
        def handler(request_id, params):
            raise RuntimeError("kaput")

        server = JsonRpcServer("test")
        server.register_handler("m", handler)
        response = await server.process_request('{"jsonrpc": "2.0", "method": "m", "id": 1}')
        assert response["error"]["code"] == ERROR_INTERNAL
        assert "kaput" in response["error"]["message"]

    @pytest.mark.asyncio
    @patch("sys.stdin")
    @patch("builtins.print")
    async def test_run_until_eof(self, mock_print, mock_stdin):
        mock_stdin.readline.side_effect = [
            '{"jsonrpc": "2.0", "method": "ping", "id": 1}\n',
            "\n",
            "",
        ]
        server = JsonRpcServer("test")
        server.register_handler("ping", lambda rid, params: create_result_response(rid, "pong"))

        await server.run()

        mock_print.assert_called_once()
        written = json.loads(mock_print.call_args.args[0])
        assert written == {"jsonrpc": "2.0", "id": 1, "result": "pong"}

    def test_stop(self):
        server = JsonRpcServer("test")
        server._running = True
        server.stop()
        assert server._running is False


class TestHelperFunctions:
    def test_create_error_response(self):
        assert create_error_response(1, -32600, "bad") == {
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": -32600, "message": "bad"},
        }

    def test_create_notification(self):
        notification = create_notification("message/push", {"to": "U1"})
        assert notification == {"jsonrpc": "2.0", "method": "message/push", "params": {"to": "U1"}}
        assert "id" not in notification
