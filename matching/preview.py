"""
Link preview: propose member -> alumni links for human review.

Read-only. Loads every unlinked member, the alumni of the cohorts those
members belong to, and the alumni ids already claimed by any member; runs
the CohortMatcher per member and returns the ranked candidates with summary
counts. Any failed read aborts the whole preview.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .access import Caller, require_manage
from .bulk_fetch import fetch_all
from .config import ALUMNI_TABLE, MEMBERS_TABLE, LinkConfig
from .errors import UpstreamReadError
from .matchers import CohortMatcher, MatchCandidate
from .records import AlumniRecord, MemberRecord
from .store import in_, is_null, not_null

logger = logging.getLogger(__name__)


@dataclass
class PreviewResult:
    candidates: List[MatchCandidate] = field(default_factory=list)
    total_unlinked: int = 0

    @property
    def total_certain(self) -> int:
        return sum(1 for c in self.candidates if c.is_certain)

    @property
    def total_uncertain(self) -> int:
        return len(self.candidates) - self.total_certain

    @property
    def total_no_match(self) -> int:
        return self.total_unlinked - len(self.candidates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidates": [c.to_dict() for c in self.candidates],
            "total_unlinked": self.total_unlinked,
            "total_certain": self.total_certain,
            "total_uncertain": self.total_uncertain,
            "total_no_match": self.total_no_match,
        }


class LinkPreviewService:

    def __init__(self, source, config: Optional[LinkConfig] = None,
                 page_size: Optional[int] = None):
        self.source = source
        self.matcher = CohortMatcher(config or LinkConfig.from_env())
        self.page_size = page_size

    def preview(self, caller: Caller) -> PreviewResult:
        require_manage(caller)

        try:
            members = self._unlinked_members()
            if not members:
                return PreviewResult()
            cohorts = sorted({m.cohort for m in members if m.cohort is not None})
            alumni = self._alumni_in(cohorts)
            claimed = self._claimed_alumni_ids()
        except Exception as exc:
            logger.warning("Link preview aborted: %s", exc)
            raise UpstreamReadError(str(exc)) from exc

        pools = group_by_cohort(a for a in alumni if a.id not in claimed)

        candidates = []
        for member in members:
            candidate = self.matcher.match(member, pools.get(member.cohort, ()))
            if candidate is not None:
                candidates.append(candidate)
        candidates.sort(key=lambda c: c.sort_key)

        result = PreviewResult(candidates=candidates, total_unlinked=len(members))
        logger.info(
            "Link preview: unlinked=%d certain=%d uncertain=%d no_match=%d (alumni pool=%d, claimed=%d)",
            result.total_unlinked, result.total_certain, result.total_uncertain,
            result.total_no_match, len(alumni), len(claimed),
        )
        return result

    def _unlinked_members(self) -> List[MemberRecord]:
        rows = fetch_all(self.source, MEMBERS_TABLE, ("id", "name", "cohort", "alumni_id"),
                         where=[is_null("alumni_id")], page_size=self.page_size)
        return [MemberRecord.from_row(r) for r in rows]

    def _alumni_in(self, cohorts: List[int]) -> List[AlumniRecord]:
        if not cohorts:
            return []
        rows = fetch_all(self.source, ALUMNI_TABLE, ("id", "name", "cohort"),
                         where=[in_("cohort", cohorts)], page_size=self.page_size)
        return [AlumniRecord.from_row(r) for r in rows]

    def _claimed_alumni_ids(self) -> Set[str]:
        rows = fetch_all(self.source, MEMBERS_TABLE, ("id", "alumni_id"),
                         where=[not_null("alumni_id")], page_size=self.page_size)
        return {str(r["alumni_id"]) for r in rows}


def group_by_cohort(alumni) -> Dict[Optional[int], List[AlumniRecord]]:
    pools: Dict[Optional[int], List[AlumniRecord]] = defaultdict(list)
    for record in alumni:
        pools[record.cohort].append(record)
    return pools
