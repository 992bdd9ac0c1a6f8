from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Tuple


def _empty() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class MonthlyBucket:
    raised: int = 0
    resolved: int = 0

    def to_payload(self) -> Dict[str, int]:
        return {"raised": self.raised, "resolved": self.resolved}


@dataclass(frozen=True)
class VehicleMonthStats:
    count: int = 0
    vehicles: FrozenSet[str] = frozenset()

    def to_payload(self) -> Dict[str, Any]:
        return {"count": self.count, "vehicles": sorted(self.vehicles)}


@dataclass(frozen=True)
class MisalignmentAggregate:
    monthly: Mapping[str, MonthlyBucket] = field(default_factory=_empty)
    daily: Mapping[str, MonthlyBucket] = field(default_factory=_empty)
    client_stats: Mapping[str, Mapping[str, VehicleMonthStats]] = field(default_factory=_empty)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "monthly": {k: v.to_payload() for k, v in self.monthly.items()},
            "daily": {k: v.to_payload() for k, v in self.daily.items()},
            "client_stats": {
                client: {m: s.to_payload() for m, s in months.items()}
                for client, months in self.client_stats.items()
            },
        }


@dataclass(frozen=True)
class AlertAggregate:
    monthly: Mapping[str, int] = field(default_factory=_empty)
    client_stats: Mapping[str, Mapping[str, int]] = field(default_factory=_empty)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "monthly": dict(self.monthly),
            "client_stats": {client: dict(months) for client, months in self.client_stats.items()},
        }


@dataclass(frozen=True)
class IssueView:
    monthly: Mapping[str, MonthlyBucket] = field(default_factory=_empty)
    client_stats: Mapping[str, Mapping[str, MonthlyBucket]] = field(default_factory=_empty)
    # Positive resolved-minus-raised durations in milliseconds, in row order.
    response_times: Tuple[int, ...] = ()

    def to_payload(self) -> Dict[str, Any]:
        return {
            "monthly": {k: v.to_payload() for k, v in self.monthly.items()},
            "client_stats": {
                client: {m: b.to_payload() for m, b in months.items()}
                for client, months in self.client_stats.items()
            },
            "response_times": list(self.response_times),
        }


@dataclass(frozen=True)
class IssueAggregate:
    all_issues: IssueView = field(default_factory=IssueView)
    historical_videos: IssueView = field(default_factory=IssueView)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "all_issues": self.all_issues.to_payload(),
            "historical_videos": self.historical_videos.to_payload(),
        }
