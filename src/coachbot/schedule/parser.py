"""Parser for pasted weekly training schedules.

Club schedules are pasted as loosely formatted text. Only the full-marathon
section matters here: each group header (``A SUB 3:00``) is followed by the
week's Thursday interval session, e.g. ``1200 x 6~8 @03:50~03:45/km R: 90"``.
Every extraction step is a small pure function over a text slice so the
grammar edge cases can be tested in isolation.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Tuple, Union

from ..models.schedule import ScheduleDocument, ScheduleGroup

logger = logging.getLogger(__name__)

MIN_SCHEDULE_LENGTH = 100
MIN_KEYWORD_HITS = 3
SCHEDULE_KEYWORDS = ("訓練週期", "全馬組", "SUB", "週四", "warm up", "freejog")

DEFAULT_WEEK_LABEL = "本週"
UNKNOWN_REST = "?"

FULL_MARATHON_MARKER = "全馬組"
HALF_MARATHON_MARKER = "半馬組"

_WEEK_RE = re.compile(r"(Week\s*\d+)\s+([\d/]+\s*[~-]\s*[\d/]+)", re.IGNORECASE)
_GROUP_HEADER_RE = re.compile(r"^([A-IＡ-Ｉ])\s*SUB\s*([\d:~]+)", re.MULTILINE)
_S_GROUP_HEADER_RE = re.compile(r"^S\s+SUB\s*([\d:~]+)", re.MULTILINE)
_INTERVAL_RE = re.compile(
    r"(1200|800)\s*[xX×]\s*(\d+)(?:\s*~\s*(\d+))?\s*@\s*([\d:~!]+)/km"
)
_REST_RE = re.compile(r"R\s*[:：]\s*([\d'’\"”]+)")
_GROUP_SELECTION_RE = re.compile(r"課表\s*([A-IS])\s*組", re.IGNORECASE)
_PERIOD_SPLIT_RE = re.compile(r"[\s~-]+")


@dataclass
class GroupHeader:
    name: str
    target: str
    position: int


@dataclass
class IntervalSpec:
    distance: int
    reps: str
    paces: List[str]
    lap_times: List[int]


def is_schedule_like(text: Optional[str]) -> bool:
    """Long enough and hitting at least three schedule keywords."""
    if not text or len(text) <= MIN_SCHEDULE_LENGTH:
        return False
    hits = sum(1 for keyword in SCHEDULE_KEYWORDS if keyword in text)
    return hits >= MIN_KEYWORD_HITS


def to_half_width(text: str) -> str:
    """Convert full-width Latin letters (Ａ-Ｚ, ａ-ｚ) to ASCII."""
    return "".join(
        chr(ord(c) - 0xFEE0) if "Ａ" <= c <= "Ｚ" or "ａ" <= c <= "ｚ" else c for c in text
    )


def extract_week(text: str) -> Tuple[str, Optional[str]]:
    """Return (week label, period string) such as ("Week9", "02/23-03/01")."""
    match = _WEEK_RE.search(text)
    if not match:
        return DEFAULT_WEEK_LABEL, None
    label = re.sub(r"\s+", "", match.group(1))
    period = re.sub(r"\s+", "", match.group(2))
    return label, period


def extract_full_marathon_block(text: str) -> Optional[str]:
    """Slice from the full-marathon marker up to the half-marathon marker."""
    start = text.find(FULL_MARATHON_MARKER)
    if start < 0:
        return None
    end = text.find(HALF_MARATHON_MARKER, start)
    return text[start:] if end < 0 else text[start:end]


def find_group_headers(block: str) -> List[GroupHeader]:
    """Group headers in order of appearance."""
    headers = [
        GroupHeader(
            name=to_half_width(match.group(1)),
            target=f"SUB {match.group(2)}",
            position=match.start(),
        )
        for match in _GROUP_HEADER_RE.finditer(block)
    ]

    # The S group sits above A and always has a space before SUB
    s_match = _S_GROUP_HEADER_RE.search(block)
    if s_match and not any(h.name == "S" for h in headers):
        headers.append(
            GroupHeader(name="S", target=f"SUB {s_match.group(1)}", position=s_match.start())
        )

    headers.sort(key=lambda h: h.position)
    return headers


def pace_to_seconds(pace: str) -> Optional[int]:
    """Convert an MM:SS pace to seconds per km, None if malformed."""
    cleaned = re.sub(r"[^\d:]", "", pace)
    parts = cleaned.split(":")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    minutes, seconds = int(parts[0]), int(parts[1])
    if seconds >= 60:
        return None
    return minutes * 60 + seconds


def pace_to_lap_time(pace_seconds: int) -> int:
    """Seconds per 200m: a fifth of the per-km pace."""
    return round(pace_seconds / 5)


def parse_paces(raw: str) -> Tuple[List[str], List[int]]:
    """Split a pace or pace range into display strings and 200m lap times.

    ``!`` is a frequent typo for ``1`` (``04:!5``). Tokens that still do not
    parse are dropped.
    """
    paces: List[str] = []
    lap_times: List[int] = []
    for token in raw.replace("!", "1").split("~"):
        token = token.strip()
        if ":" not in token:
            continue
        seconds = pace_to_seconds(token)
        if not seconds:
            continue
        paces.append(token)
        lap_times.append(pace_to_lap_time(seconds))
    return paces, lap_times


def parse_interval(span: str) -> Optional[IntervalSpec]:
    """Find the 800/1200 interval prescription inside one group's text."""
    match = _INTERVAL_RE.search(span)
    if not match:
        return None

    reps = match.group(2)
    if match.group(3):
        reps = f"{reps}~{match.group(3)}"

    paces, lap_times = parse_paces(match.group(4))
    return IntervalSpec(
        distance=int(match.group(1)), reps=reps, paces=paces, lap_times=lap_times
    )


def extract_rest(span: str) -> str:
    """Recovery between reps, e.g. ``90"`` or ``2'``."""
    match = _REST_RE.search(span)
    if not match:
        return UNKNOWN_REST
    return match.group(1).replace("’", "'").replace("”", '"')


def parse_schedule(text: str) -> Optional[ScheduleDocument]:
    """Parse pasted schedule text; None when no group could be extracted."""
    if not text:
        return None

    week_label, period_str = extract_week(text)
    block = extract_full_marathon_block(text)
    if block is None:
        logger.debug("No full-marathon section found")
        return None

    headers = find_group_headers(block)
    groups: List[ScheduleGroup] = []
    for i, header in enumerate(headers):
        end = headers[i + 1].position if i + 1 < len(headers) else len(block)
        span = block[header.position : end]

        interval = parse_interval(span)
        if interval is None:
            logger.debug(f"Group {header.name} has no interval session this week")
            continue

        groups.append(
            ScheduleGroup(
                name=header.name,
                target=header.target,
                distance=interval.distance,
                reps=interval.reps,
                paces=interval.paces,
                lap_times=interval.lap_times,
                rest=extract_rest(span),
                laps_per_rep=6 if interval.distance == 1200 else 4,
            )
        )

    if not groups:
        logger.info(f"Schedule-like text for {week_label} yielded no groups")
        return None

    return ScheduleDocument(week_label=week_label, period_str=period_str, groups=groups)


def is_group_selection(text: Optional[str]) -> Optional[str]:
    """Return the group letter of a ``課表A組`` command, else None."""
    if not text:
        return None
    match = _GROUP_SELECTION_RE.search(to_half_width(text))
    return match.group(1).upper() if match else None


def is_date_within_period(
    period_str: Optional[str], reference: Optional[Union[date, datetime]] = None
) -> bool:
    """Whether ``MM/DD-MM/DD`` contains the reference date (both ends inclusive).

    The year is not part of the period. When the end month precedes the start
    month the range is assumed to cross New Year: in January or February the
    start is moved to last year, otherwise the end is moved to next year. This
    is a heuristic and can pick the wrong year for ranges evaluated far from
    the boundary.
    """
    if not period_str:
        return False

    parts = [p for p in _PERIOD_SPLIT_RE.split(period_str) if p]
    if len(parts) != 2:
        return False

    reference = reference or date.today()
    if isinstance(reference, datetime):
        reference = reference.date()
    year = reference.year

    try:
        start_month, start_day = (int(x) for x in parts[0].split("/"))
        end_month, end_day = (int(x) for x in parts[1].split("/"))
        start = date(year, start_month, start_day)
        end = date(year, end_month, end_day)
        if end < start:
            if reference.month <= 2:
                start = date(year - 1, start_month, start_day)
            else:
                end = date(year + 1, end_month, end_day)
    except ValueError:
        return False

    return start <= reference <= end
