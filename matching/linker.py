"""
Writing member -> alumni links.

- confirm: operator-approved pairs from the preview
- auto_link_exact: link members whose trimmed, case-folded name equals an
  alumni name in the same cohort
- stats: alumni totals and how many are linked

A member that already has an alumni link is never re-linked, and an alumni
row claimed by one member is never given to another.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .access import Caller, require_manage
from .bulk_fetch import fetch_all
from .config import ALUMNI_TABLE, MEMBERS_TABLE
from .errors import InvalidRequestError, UpstreamReadError
from .name_normalization import exact_key
from .records import AlumniRecord, MemberRecord
from .store import eq, in_, is_null, neq, not_null

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkPair:
    member_id: str
    alumni_id: str


@dataclass
class LinkResult:
    linked: int = 0
    failed: int = 0
    failures: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"linked": self.linked, "failed": self.failed, "failures": self.failures}


@dataclass
class AutoLinkResult:
    matched: int = 0
    unmatched: int = 0
    unmatched_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched": self.matched,
            "unmatched": self.unmatched,
            "unmatched_names": self.unmatched_names,
        }


class AlumniLinker:

    def __init__(self, source, page_size: Optional[int] = None):
        self.source = source
        self.page_size = page_size

    # ---------- confirm ----------

    def confirm(self, caller: Caller, pairs: Iterable[LinkPair]) -> LinkResult:
        require_manage(caller)
        pairs = list(pairs)
        if not pairs:
            raise InvalidRequestError("pairs must contain at least one member/alumni pair")

        result = LinkResult()
        for pair in pairs:
            reason = self._link_one(str(pair.member_id), str(pair.alumni_id))
            if reason is None:
                result.linked += 1
            else:
                result.failed += 1
                result.failures.append({
                    "member_id": str(pair.member_id),
                    "alumni_id": str(pair.alumni_id),
                    "reason": reason,
                })
                logger.warning("Link %s -> %s refused: %s", pair.member_id, pair.alumni_id, reason)

        logger.info("Confirmed links by %s: linked=%d failed=%d",
                    caller.username, result.linked, result.failed)
        return result

    def _link_one(self, member_id: str, alumni_id: str) -> Optional[str]:
        """None on success, otherwise the reason the pair was refused."""
        member = self.source.get(MEMBERS_TABLE, member_id)
        if member is None:
            return "member not found"
        current = member.get("alumni_id")
        if current is not None:
            return None if str(current) == alumni_id else "member already linked"
        if self.source.count(ALUMNI_TABLE, [eq("id", alumni_id)]) == 0:
            return "alumni not found"
        if self.source.count(MEMBERS_TABLE, [eq("alumni_id", alumni_id), neq("id", member_id)]) > 0:
            return "alumni already linked to another member"

        updated = self.source.update(MEMBERS_TABLE, {"alumni_id": alumni_id},
                                     [eq("id", member_id), is_null("alumni_id")])
        return None if updated else "member already linked"

    # ---------- exact auto-link ----------

    def auto_link_exact(self, caller: Caller) -> AutoLinkResult:
        require_manage(caller)

        try:
            members = [MemberRecord.from_row(r) for r in fetch_all(
                self.source, MEMBERS_TABLE, ("id", "name", "cohort", "alumni_id"),
                where=[is_null("alumni_id")], page_size=self.page_size)]
            cohorts = sorted({m.cohort for m in members if m.cohort is not None})
            alumni = [AlumniRecord.from_row(r) for r in fetch_all(
                self.source, ALUMNI_TABLE, ("id", "name", "cohort"),
                where=[in_("cohort", cohorts)], page_size=self.page_size)] if cohorts else []
            claimed = self._claimed_alumni_ids()
        except Exception as exc:
            raise UpstreamReadError(str(exc)) from exc

        index: Dict[Tuple[str, Optional[int]], List[AlumniRecord]] = {}
        for record in alumni:
            index.setdefault((exact_key(record.name), record.cohort), []).append(record)

        result = AutoLinkResult()
        for member in members:
            target = next((a for a in index.get((exact_key(member.name), member.cohort), ())
                           if a.id not in claimed), None)
            linked = target is not None and self.source.update(
                MEMBERS_TABLE, {"alumni_id": target.id},
                [eq("id", member.id), is_null("alumni_id")]) > 0
            if linked:
                claimed.add(target.id)
                result.matched += 1
            else:
                result.unmatched += 1
                result.unmatched_names.append(f"{member.name} (cohort {member.cohort})")

        logger.info("Exact auto-link by %s: matched=%d unmatched=%d",
                    caller.username, result.matched, result.unmatched)
        return result

    # ---------- stats ----------

    def stats(self, caller: Caller) -> Dict[str, Any]:
        require_manage(caller)
        try:
            total = self.source.count(ALUMNI_TABLE)
            linked = self._claimed_alumni_ids()
            cohorts = Counter(
                r["cohort"] for r in fetch_all(self.source, ALUMNI_TABLE, ("id", "cohort"),
                                               page_size=self.page_size)
            )
        except Exception as exc:
            raise UpstreamReadError(str(exc)) from exc

        return {
            "total_alumni": total,
            "linked_alumni": len(linked),
            "alumni_by_cohort": {str(k): v for k, v in sorted(cohorts.items(), key=_cohort_order)},
        }

    def _claimed_alumni_ids(self) -> Set[str]:
        rows = fetch_all(self.source, MEMBERS_TABLE, ("id", "alumni_id"),
                         where=[not_null("alumni_id")], page_size=self.page_size)
        return {str(r["alumni_id"]) for r in rows}


def _cohort_order(item):
    cohort = item[0]
    return (cohort is None, cohort if cohort is not None else 0)
