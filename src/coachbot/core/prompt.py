"""Prompt composition: time, identity, history, message and grounding."""

from datetime import datetime
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from ..models.memory import USER_ROLE, ConversationTurn

WEEKDAYS = ("一", "二", "三", "四", "五", "六", "日")  # datetime.weekday() order
DEFAULT_DISPLAY_NAME = "朋友"

HISTORY_HEADER = "[先前的相關對話]"
MESSAGE_HEADER = "用戶訊息："
GROUNDING_HEADER = "[以下為系統查詢到的參考資料，僅供回答本次訊息使用]"
GROUNDING_FOOTER = "[參考資料結束]"


def render_time_header(now: datetime, display_name: str) -> str:
    weekday = WEEKDAYS[now.weekday()]
    return (
        f"[系統提示] 目前現實時間為：{now.strftime('%Y/%m/%d %H:%M:%S')} (星期{weekday})。"
        f"正在與你對話的是「{display_name}」。請根據此時間回答。"
    )


def render_history(history: Sequence[ConversationTurn]) -> str:
    """Transcript with the user as 我 and the model as 你, oldest first."""
    lines = [HISTORY_HEADER]
    for turn in history:
        speaker = "我" if turn.role == USER_ROLE else "你"
        lines.append(f"{speaker}：{turn.content}")
    return "\n".join(lines)


def compose_prompt(
    user_message: str,
    identity: Optional[str],
    display_name: Optional[str],
    history: Sequence[ConversationTurn],
    grounding_context: Optional[str] = None,
    now: Optional[datetime] = None,
    timezone: str = "Asia/Taipei",
) -> str:
    """Build the final prompt sent to the providers.

    The identity only keys the history upstream and is not rendered. The
    grounding block is appended last and never becomes part of the stored
    dialogue.
    """
    tz = ZoneInfo(timezone)
    now = now.astimezone(tz) if now is not None and now.tzinfo else (now or datetime.now(tz))

    sections = [render_time_header(now, display_name or DEFAULT_DISPLAY_NAME)]
    if history:
        sections.append(render_history(history))
    sections.append(f"{MESSAGE_HEADER}\n{user_message.strip()}")
    if grounding_context and grounding_context.strip():
        sections.append(f"{GROUNDING_HEADER}\n{grounding_context.strip()}\n{GROUNDING_FOOTER}")
    return "\n\n".join(sections)
