"""
Typed views over rows returned by the data store.

Rows arrive as plain mappings (RealDictCursor or the in-memory test store);
the matching code only ever sees these narrowed records.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional


def _cohort(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class AlumniRecord:
    id: str
    name: str
    cohort: Optional[int]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AlumniRecord":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            cohort=_cohort(row.get("cohort")),
        )


@dataclass(frozen=True)
class MemberRecord:
    id: str
    name: str
    cohort: Optional[int]
    alumni_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MemberRecord":
        alumni_id = row.get("alumni_id")
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            cohort=_cohort(row.get("cohort")),
            alumni_id=str(alumni_id) if alumni_id is not None else None,
        )
