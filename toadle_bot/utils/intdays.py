"""International day calendar used by the daily reminder."""
from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

DEFAULT_DAYS = Path(__file__).resolve().parents[1] / "data" / "international_days.yaml"


def load_days(path: Optional[Path] = None) -> Dict[str, List[str]]:
    """Read a YAML mapping of `MM-DD` -> list of day names."""
    path = Path(path or DEFAULT_DAYS)
    if not path.exists():
        return {}
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    days = {}
    for key, names in raw.items():
        if isinstance(names, str):
            names = [names]
        days[str(key)] = [str(n) for n in names]
    return days


def todays(days: Dict[str, List[str]], date: dt.date) -> List[str]:
    return list(days.get(date.strftime("%m-%d"), []))


def upcoming(days: Dict[str, List[str]], date: dt.date, limit: int = 10) -> List[Tuple[dt.date, str]]:
    """The next `limit` observances after `date`, looking a year ahead."""
    found = []
    for offset in range(1, 366):
        day = date + dt.timedelta(days=offset)
        for name in days.get(day.strftime("%m-%d"), []):
            found.append((day, name))
            if len(found) >= limit:
                return found
    return found
