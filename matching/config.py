"""
Matching Configuration

Defines LinkConfig dataclass, confidence tiers, paging and the closed list
of member fields a merge may take from the losing record.
"""

import os
from dataclasses import dataclass
from typing import Dict, Tuple


# Confidence tiers
CONFIDENCE_CERTAIN = "certain"
CONFIDENCE_UNCERTAIN = "uncertain"

CONFIDENCE_RANK = {
    CONFIDENCE_CERTAIN: 0,
    CONFIDENCE_UNCERTAIN: 1,
}

# Defaults (each overridable via env, see LinkConfig.from_env)
DEFAULT_MIN_SIMILARITY = 0.5
DEFAULT_CERTAIN_THRESHOLD = 0.85
DEFAULT_ABBREVIATION_FLOOR = 0.75
DEFAULT_ABBREVIATION_CEILING = 0.8

# Hosted stores cap rows per request; bulk fetches page at this size
DEFAULT_PAGE_SIZE = 1000

# Tables
MEMBERS_TABLE = "members"
ALUMNI_TABLE = "alumni"
TARGETS_TABLE = "campaigner_targets"
ATTENDANCE_TABLE = "event_attendance"
REGISTRATIONS_TABLE = "event_registrations"

# Member columns a merge may copy from the loser onto the winner
MERGEABLE_FIELDS: Tuple[str, ...] = (
    "name",
    "cohort",
    "phone",
    "pic",
    "email",
    "domicile",
    "voter_registered",
    "contacted",
    "joined_group",
    "vote",
    "referral_name",
    "alumni_id",
)

CHOICE_WINNER = "winner"
CHOICE_LOSER = "loser"


def _env_ratio(var: str, default: float) -> float:
    """Read a 0..1 ratio from env with safe bounds."""
    raw = os.getenv(var)
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError:
        return default
    if val < 0.0 or val > 1.0:
        return default
    return val


def _env_positive_int(var: str, default: int) -> int:
    raw = os.getenv(var)
    if not raw:
        return default
    try:
        val = int(raw)
    except ValueError:
        return default
    return val if val > 0 else default


@dataclass(frozen=True)
class LinkConfig:
    """Thresholds for member -> alumni candidate selection."""
    # A bigram score must reach this to be considered on its own
    min_similarity: float = DEFAULT_MIN_SIMILARITY
    # Exact matches and scores at/above this are "certain"
    certain_threshold: float = DEFAULT_CERTAIN_THRESHOLD
    # Abbreviation-compatible names score at least this much
    abbreviation_floor: float = DEFAULT_ABBREVIATION_FLOOR
    # Abbreviation promotion only displaces a best score below this
    abbreviation_ceiling: float = DEFAULT_ABBREVIATION_CEILING

    @classmethod
    def from_env(cls) -> "LinkConfig":
        return cls(
            min_similarity=_env_ratio("LINK_MIN_SIMILARITY", DEFAULT_MIN_SIMILARITY),
            certain_threshold=_env_ratio("LINK_CERTAIN_THRESHOLD", DEFAULT_CERTAIN_THRESHOLD),
            abbreviation_floor=_env_ratio("LINK_ABBREVIATION_FLOOR", DEFAULT_ABBREVIATION_FLOOR),
            abbreviation_ceiling=_env_ratio("LINK_ABBREVIATION_CEILING", DEFAULT_ABBREVIATION_CEILING),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "min_similarity": self.min_similarity,
            "certain_threshold": self.certain_threshold,
            "abbreviation_floor": self.abbreviation_floor,
            "abbreviation_ceiling": self.abbreviation_ceiling,
        }


def fetch_page_size() -> int:
    """Rows per bulk-fetch request (LINK_FETCH_PAGE_SIZE)."""
    return _env_positive_int("LINK_FETCH_PAGE_SIZE", DEFAULT_PAGE_SIZE)
