"""Training schedule parsing and formatting."""

from .formatter import format_document_summary, format_group, group_choices
from .parser import (
    is_date_within_period,
    is_group_selection,
    is_schedule_like,
    pace_to_lap_time,
    pace_to_seconds,
    parse_schedule,
)

__all__ = [
    "format_document_summary",
    "format_group",
    "group_choices",
    "is_date_within_period",
    "is_group_selection",
    "is_schedule_like",
    "pace_to_lap_time",
    "pace_to_seconds",
    "parse_schedule",
]
