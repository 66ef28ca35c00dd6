"""
Base data structures for member -> alumni matching.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import CONFIDENCE_CERTAIN, CONFIDENCE_RANK, CONFIDENCE_UNCERTAIN, LinkConfig
from ..records import AlumniRecord


@dataclass(frozen=True)
class MatchCandidate:
    """
    Proposed link between one unlinked member and one alumni record.

    Attributes:
        confidence: "certain" or "uncertain"
        similarity: score as an integer percentage 0-100
    """
    member_id: str
    member_name: str
    member_cohort: Optional[int]
    alumni_id: str
    alumni_name: str
    alumni_cohort: Optional[int]
    confidence: str
    similarity: int

    @property
    def sort_key(self):
        """Certain before uncertain, then highest similarity first."""
        return (CONFIDENCE_RANK.get(self.confidence, len(CONFIDENCE_RANK)), -self.similarity)

    @property
    def is_certain(self) -> bool:
        return self.confidence == CONFIDENCE_CERTAIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "member_id": self.member_id,
            "member_name": self.member_name,
            "member_cohort": self.member_cohort,
            "alumni_id": self.alumni_id,
            "alumni_name": self.alumni_name,
            "alumni_cohort": self.alumni_cohort,
            "confidence": self.confidence,
            "similarity": self.similarity,
        }


@dataclass(frozen=True)
class Challenger:
    """One scored alumni row competing for a member."""
    alumni: AlumniRecord
    similarity: float
    abbreviation: bool


@dataclass(frozen=True)
class BestMatch:
    alumni: AlumniRecord
    score: float
    is_exact: bool = False
    is_abbreviation: bool = False


class SelectionPolicy:
    """
    Decides whether a challenger replaces the current best candidate.

    Rules:
      1. similarity >= min_similarity and better than the current best
      2. abbreviation-compatible while the current best is below
         abbreviation_ceiling (or there is none)

    A winning abbreviation-compatible challenger scores at least
    abbreviation_floor.
    """

    def __init__(self, config: Optional[LinkConfig] = None):
        self.config = config or LinkConfig()

    def effective_score(self, challenger: Challenger) -> float:
        if challenger.abbreviation:
            return max(challenger.similarity, self.config.abbreviation_floor)
        return challenger.similarity

    def choose(self, current: Optional[BestMatch], challenger: Challenger) -> Optional[BestMatch]:
        cfg = self.config
        current_score = current.score if current else None

        beats_on_score = (
            challenger.similarity >= cfg.min_similarity
            and (current_score is None or challenger.similarity > current_score)
        )
        promoted_abbrev = (
            challenger.abbreviation
            and (current_score is None or current_score < cfg.abbreviation_ceiling)
        )

        if beats_on_score or promoted_abbrev:
            return BestMatch(
                alumni=challenger.alumni,
                score=self.effective_score(challenger),
                is_abbreviation=challenger.abbreviation,
            )
        return current

    def confidence(self, best: BestMatch) -> str:
        if best.is_exact or best.score >= self.config.certain_threshold:
            return CONFIDENCE_CERTAIN
        return CONFIDENCE_UNCERTAIN
