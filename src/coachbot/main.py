"""
Local stdio front end wiring configuration, the bot and the JSON-RPC server.
"""

import asyncio
import base64
import binascii
import logging
import os
import sys
from dataclasses import asdict
from typing import Any, Dict, Optional

from . import __version__
from .bot import CoachBot, build_bot
from .config import BotConfig, ConfigError, load_config
from .json_rpc import (
    InvalidParamsError,
    JsonRpcServer,
    create_notification,
    create_result_response,
)
from .models.reply import BotReply

logger = logging.getLogger(__name__)


def reply_to_dict(reply: BotReply) -> Dict[str, Any]:
    """Serialise a BotReply for the wire."""
    return {
        "text": reply.text,
        "structured": asdict(reply.structured) if reply.structured else None,
        "quick_replies": [{"label": label, "text": text} for label, text in reply.quick_replies],
    }


def _require(params: Dict[str, Any], key: str) -> Any:
    value = params.get(key)
    if value in (None, ""):
        raise InvalidParamsError(f"Missing required parameter: {key}")
    return value


class CoachBotServer:
    """JSON-RPC server exposing the bot's message handlers."""

    def __init__(self, config: BotConfig):
        self.config = config
        self.server = JsonRpcServer("coachbot")
        self.bot: CoachBot = build_bot(config, push=self.push)
        self._setup_handlers()

    def _setup_handlers(self):
        self.server.register_handler("message/text", self.handle_text)
        self.server.register_handler("message/location", self.handle_location)
        self.server.register_handler("message/sticker", self.handle_sticker)
        self.server.register_handler("message/image", self.handle_image)
        self.server.register_handler("usage/status", self.handle_usage_status)
        self.server.register_handler("memory/clear", self.handle_memory_clear)
        self.server.register_handler("stats", self.handle_stats)

    async def push(self, target_id: str, reply: BotReply) -> None:
        """Deliver a reply produced outside a request, e.g. an image batch."""
        self.server.write_message(
            create_notification("message/push", {"to": target_id, **reply_to_dict(reply)})
        )

    async def handle_text(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        reply = await self.bot.handle_text(
            params.get("text"),
            identity=params.get("identity"),
            source_id=params.get("source_id"),
            display_name=params.get("display_name"),
        )
        return create_result_response(request_id, reply_to_dict(reply))

    async def handle_location(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        reply = await self.bot.handle_location(
            params.get("title"),
            params.get("address"),
            identity=params.get("identity"),
            display_name=params.get("display_name"),
        )
        return create_result_response(request_id, reply_to_dict(reply))

    def handle_sticker(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        return create_result_response(request_id, reply_to_dict(self.bot.handle_sticker()))

    async def handle_image(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        identity = _require(params, "identity")
        encoded = _require(params, "image")
        try:
            image = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidParamsError(f"Image is not valid base64: {e}") from e

        pending = await self.bot.handle_image(
            image,
            identity,
            target_id=params.get("target_id"),
            text=params.get("text"),
            display_name=params.get("display_name"),
            is_group_chat=bool(params.get("is_group_chat", False)),
        )
        return create_result_response(request_id, {"queued": True, "pending": pending})

    def handle_usage_status(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        return create_result_response(
            request_id, {"text": self.bot.orchestrator.usage.status_report()}
        )

    def handle_memory_clear(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        self.bot.orchestrator.memory.clear(params.get("identity"))
        return create_result_response(request_id, {"cleared": True})

    def handle_stats(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        stats = self.bot.orchestrator.get_stats()
        stats["schedules"] = self.bot.schedules.get_stats()
        return create_result_response(request_id, stats)

    async def run(self):
        logger.info(f"Starting coachbot v{__version__}")
        try:
            await self.server.run()
        finally:
            self.bot.batcher.cancel_all()


def main(argv: Optional[list] = None):
    """Main entry point."""
    logging.basicConfig(
        level=os.getenv("COACHBOT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    argv = sys.argv[1:] if argv is None else argv
    env_file = argv[0] if argv else None

    try:
        config = load_config(env_file)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    try:
        asyncio.run(CoachBotServer(config).run())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    main()
