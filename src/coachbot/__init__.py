"""Coach bot - chat replies, venue cards and interval schedules for a running club"""

__version__ = "1.0.0"

from .bot import CoachBot, build_bot
from .config import BotConfig, load_config

__all__ = ["BotConfig", "CoachBot", "build_bot", "load_config"]
