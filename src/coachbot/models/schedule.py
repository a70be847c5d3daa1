"""Training schedule data models."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ScheduleGroup:
    """Interval prescription for one training group."""

    name: str
    target: str
    distance: int  # 800 or 1200 metres
    reps: str
    paces: List[str] = field(default_factory=list)
    lap_times: List[int] = field(default_factory=list)  # seconds per 200m
    rest: str = "?"
    laps_per_rep: int = 4

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleGroup":
        return cls(
            name=data["name"],
            target=data["target"],
            distance=int(data["distance"]),
            reps=str(data["reps"]),
            paces=list(data.get("paces", [])),
            lap_times=[int(t) for t in data.get("lap_times", [])],
            rest=data.get("rest", "?"),
            laps_per_rep=int(data.get("laps_per_rep", 4)),
        )


@dataclass
class ScheduleDocument:
    """A parsed weekly schedule (full-marathon section only)."""

    week_label: str
    period_str: Optional[str]
    groups: List[ScheduleGroup] = field(default_factory=list)

    def get_group(self, name: str) -> Optional[ScheduleGroup]:
        for group in self.groups:
            if group.name == name:
                return group
        return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleDocument":
        return cls(
            week_label=data["week_label"],
            period_str=data.get("period_str"),
            groups=[ScheduleGroup.from_dict(g) for g in data.get("groups", [])],
        )
