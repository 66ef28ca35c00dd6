"""
Cohort-scoped member -> alumni candidate matcher.

Callers hand in the alumni pool already restricted to the member's cohort
and stripped of alumni that some member has claimed. Per member:

  1. normalized names identical -> take it (score 1.0), stop scanning
  2. otherwise score with abbreviation_match + bigram_similarity and let the
     SelectionPolicy fold the challenger into the running best
  3. classify the survivor as certain / uncertain
"""

from typing import Iterable, Optional

from ..config import LinkConfig
from ..name_normalization import normalize_person_name
from ..records import AlumniRecord, MemberRecord
from ..similarity import abbreviation_match, bigram_similarity
from .base import BestMatch, Challenger, MatchCandidate, SelectionPolicy


class CohortMatcher:
    """Finds the single best alumni candidate for a member."""

    def __init__(self, config: Optional[LinkConfig] = None, policy: Optional[SelectionPolicy] = None):
        self.config = config or LinkConfig()
        self.policy = policy or SelectionPolicy(self.config)

    def best_match(self, member: MemberRecord,
                   pool: Iterable[AlumniRecord]) -> Optional[BestMatch]:
        member_norm = normalize_person_name(member.name)
        best: Optional[BestMatch] = None

        for alumni in pool:
            alumni_norm = normalize_person_name(alumni.name)

            if member_norm == alumni_norm:
                return BestMatch(alumni=alumni, score=1.0, is_exact=True)

            challenger = Challenger(
                alumni=alumni,
                similarity=bigram_similarity(member_norm, alumni_norm),
                abbreviation=abbreviation_match(member_norm, alumni_norm),
            )
            best = self.policy.choose(best, challenger)

        return best

    def match(self, member: MemberRecord,
              pool: Iterable[AlumniRecord]) -> Optional[MatchCandidate]:
        """MatchCandidate for the member, or None when nothing qualifies."""
        best = self.best_match(member, pool)
        if best is None:
            return None

        return MatchCandidate(
            member_id=member.id,
            member_name=member.name,
            member_cohort=member.cohort,
            alumni_id=best.alumni.id,
            alumni_name=best.alumni.name,
            alumni_cohort=best.alumni.cohort,
            confidence=self.policy.confidence(best),
            similarity=_percent(best.score),
        )


def _percent(score: float) -> int:
    """Nearest integer percentage, halves rounding up."""
    return int(score * 100 + 0.5)
