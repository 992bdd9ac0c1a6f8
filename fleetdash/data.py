from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from fleetdash.config import UNKNOWN_CLIENT


RawRow = Sequence[object]
RawTable = Sequence[RawRow]

DATE_PATTERNS = (
    re.compile(r"^([0-9]{1,2})[/-]([0-9]{1,2})[/-]([0-9]{4})$"),
    re.compile(r"^([0-9]{1,2})[/-]([0-9]{1,2})[/-]([0-9]{2})$"),
)


# ---------------- Dates ----------------
def expand_year(token: str) -> int:
    """Two-digit years above 50 belong to the 1900s, the rest to the 2000s."""
    if len(token) == 2:
        yy = int(token)
        return 1900 + yy if yy > 50 else 2000 + yy
    return int(token)


def parse_date(value: object) -> Optional[date]:
    """Parse a day-first sheet date like ``05/06/24`` or ``5-6-2024 14:03:11``.

    Returns None for anything that is not a real calendar date.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    for pattern in DATE_PATTERNS:
        match = pattern.match(s)
        if not match:
            continue
        day, month, year = match.groups()
        try:
            return date(expand_year(year), int(month), int(day))
        except ValueError:
            return None
    if " " in s:
        return parse_date(s.split(" ", 1)[0])
    return None


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def day_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


# ---------------- Columns ----------------
@dataclass(frozen=True)
class ColumnIndex:
    """Resolved position per semantic role; None marks an absent column."""

    positions: Mapping[str, Optional[int]]

    def position(self, role: str) -> Optional[int]:
        return self.positions.get(role)

    def is_resolved(self, role: str) -> bool:
        return self.position(role) is not None

    def cell(self, row: RawRow, role: str) -> str:
        pos = self.position(role)
        if pos is None or pos >= len(row):
            return ""
        value = row[pos]
        if value is None:
            return ""
        return str(value)


def resolve_columns(headers: RawRow, roles: Mapping[str, str]) -> ColumnIndex:
    lowered = ["" if h is None else str(h).lower() for h in headers]
    positions: Dict[str, Optional[int]] = {}
    for role, needle in roles.items():
        needle = needle.lower()
        positions[role] = next((idx for idx, h in enumerate(lowered) if needle in h), None)
    return ColumnIndex(MappingProxyType(positions))


def table_frame(raw_table: Optional[RawTable], roles: Mapping[str, str]) -> pd.DataFrame:
    """Project the data rows of a raw sheet table onto one string column per role."""
    columns = list(roles)
    if not raw_table or len(raw_table) < 2:
        return pd.DataFrame(columns=columns, dtype=object)
    index = resolve_columns(raw_table[0], roles)
    records = [{role: index.cell(row or (), role) for role in columns} for row in raw_table[1:]]
    return pd.DataFrame.from_records(records, columns=columns)


def with_calendar_keys(df: pd.DataFrame, date_col: str) -> pd.DataFrame:
    """Parse ``date_col`` and add ``calendar_date``/``month_key``/``day_key``; drop unparseable rows."""
    if df.empty:
        return df.assign(calendar_date=None, month_key=None, day_key=None).iloc[0:0]
    parsed = pd.Series([parse_date(v) for v in df[date_col]], index=df.index, dtype=object)
    out = df.assign(calendar_date=parsed)
    out = out[out["calendar_date"].notna()].copy()
    out["month_key"] = [month_key(d) for d in out["calendar_date"]]
    out["day_key"] = [day_key(d) for d in out["calendar_date"]]
    return out


# ---------------- Cells ----------------
def client_label(value: object) -> str:
    if value is None:
        return UNKNOWN_CLIENT
    s = str(value)
    return s if s else UNKNOWN_CLIENT


def split_vehicles(value: object) -> List[str]:
    if value is None:
        return []
    return [v.strip() for v in str(value).split(",") if v.strip()]


def contains_any(value: object, phrases: Iterable[str]) -> bool:
    if value is None:
        return False
    s = str(value).lower()
    return any(p in s for p in phrases)


def freeze(mapping: Mapping) -> Mapping:
    """Read-only view over a key-sorted copy of ``mapping``."""
    return MappingProxyType({k: mapping[k] for k in sorted(mapping)})
