from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class ResponseTimeSummary:
    fastest: str = NOT_AVAILABLE
    median: str = NOT_AVAILABLE
    slowest: str = NOT_AVAILABLE

    def to_payload(self) -> Dict[str, str]:
        return asdict(self)


def format_duration(milliseconds: float) -> str:
    """Render a duration with its two coarsest units, e.g. ``2d 5h`` or ``1m 30s``.

    Units are truncated, never rounded. The finer unit is dropped when it is
    zero (``9m`` rather than ``9m 0s``).
    """
    seconds = int(milliseconds // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    units = [(days, "d"), (hours % 24, "h"), (minutes % 60, "m"), (seconds % 60, "s")]
    for (value, unit), (finer, finer_unit) in zip(units, units[1:]):
        if value > 0:
            return f"{value}{unit} {finer}{finer_unit}" if finer else f"{value}{unit}"
    return f"{seconds % 60}s"


def summarize_response_times(samples: Iterable[float]) -> ResponseTimeSummary:
    ordered = sorted(samples)
    if not ordered:
        return ResponseTimeSummary()
    # Upper median: index len // 2, no averaging of the two central samples.
    return ResponseTimeSummary(
        fastest=format_duration(ordered[0]),
        median=format_duration(ordered[len(ordered) // 2]),
        slowest=format_duration(ordered[-1]),
    )
