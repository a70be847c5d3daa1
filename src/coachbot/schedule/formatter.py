"""Plain-text renderings of parsed schedules."""

from typing import List, Optional, Tuple

from ..models.schedule import ScheduleDocument, ScheduleGroup

DIVIDER = "━━━━━━━━━━━━━━"


def _lap_range(group: ScheduleGroup) -> str:
    if not group.lap_times:
        return "?"
    if len(group.lap_times) > 1:
        return f"{group.lap_times[0]} ~ {group.lap_times[-1]} 秒"
    return f"{group.lap_times[0]} 秒"


def _pace_range(group: ScheduleGroup) -> str:
    if not group.paces:
        return "?"
    if len(group.paces) > 1:
        return f"@{group.paces[0]} ~ {group.paces[-1]}/km"
    return f"@{group.paces[0]}/km"


def format_group(document: ScheduleDocument, name: str) -> Optional[str]:
    """Render one group's interval session, or None if the group is absent."""
    group = document.get_group(name)
    if group is None:
        return None

    lines = [
        f"🏃 {document.week_label} 全馬{group.name}組",
        f"🎯 {group.target}",
        DIVIDER,
        f"📋 間歇：{group.distance}m × {group.reps}",
        f"⏱ 配速：{_pace_range(group)}",
        f"🔄 200m：{_lap_range(group)}",
        f"😮‍💨 恢復：{group.rest}",
        DIVIDER,
        f"📐 {group.distance}m = {group.laps_per_rep} 圈",
        "💡 配速(秒/km) ÷ 5 = 200m 秒數",
    ]
    return "\n".join(lines)


def format_document_summary(document: ScheduleDocument) -> str:
    """One line per group; used as hidden grounding for schedule questions."""
    lines = [f"[本週全馬組週四間歇課表] {document.week_label} {document.period_str or ''}".rstrip()]
    for group in document.groups:
        lines.append(
            f"{group.name}組 ({group.target})：{group.distance}m × {group.reps} "
            f"{_pace_range(group)}，200m {_lap_range(group)}，恢復 {group.rest}"
        )
    return "\n".join(lines)


def group_choices(document: ScheduleDocument) -> List[Tuple[str, str]]:
    """(button label, command text) pairs for picking a group."""
    return [(f"{g.name}組 {g.target}", f"課表{g.name}組") for g in document.groups]
