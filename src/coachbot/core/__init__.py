"""Core response pipeline of the coach bot."""

from .gateway import ProviderGateway
from .orchestrator import DEGRADED_REPLY, NO_MESSAGE_REPLY, ResponseOrchestrator
from .prompt import compose_prompt
from .reconciler import reconcile, sanitize_map_url

__all__ = [
    "DEGRADED_REPLY",
    "NO_MESSAGE_REPLY",
    "ProviderGateway",
    "ResponseOrchestrator",
    "compose_prompt",
    "reconcile",
    "sanitize_map_url",
]
