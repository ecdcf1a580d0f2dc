"""Task snapshots handed in by the task/category lookup.

The board that owns tasks lives outside TimeBank.  All we ever see is
the lookup result ``{id, priority, due_date, category: {hourly_rate}}``,
frozen into a :class:`TaskSnapshot` at the moment it is needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from .clock import parse_timestamp

PRIORITIES = ("low", "medium", "high", "urgent")

# Higher sorts first in recommendations.
PRIORITY_ORDER: dict[str, int] = {"urgent": 4, "high": 3, "medium": 2, "low": 1}


@dataclass(frozen=True)
class TaskSnapshot:
    id: str
    priority: str = "medium"
    due_date: datetime | None = None
    hourly_rate: Decimal | None = None
    title: str = ""

    @classmethod
    def from_lookup(cls, data: Mapping[str, Any]) -> "TaskSnapshot":
        """Build a snapshot from a lookup payload.

        Accepts both ``due_date``/``dueDate`` and ``hourly_rate``/
        ``hourly_rate_usd``/``hourlyRate`` spellings.  A zero or missing
        rate becomes ``None`` (no rate configured).
        """
        due = data.get("due_date", data.get("dueDate"))
        category = data.get("category") or {}
        rate = None
        for name in ("hourly_rate_usd", "hourly_rate", "hourlyRate"):
            if category.get(name) not in (None, ""):
                rate = category[name]
                break
        return cls(
            id=str(data["id"]),
            priority=str(data.get("priority") or "medium"),
            due_date=parse_timestamp(due) if due else None,
            hourly_rate=_to_rate(rate),
            title=str(data.get("title") or ""),
        )


def _to_rate(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        return None
    if rate <= 0:
        return None
    return rate
