"""
Pydantic models for request/response validation.

Request fields are Optional on purpose where the services check presence
themselves, so a missing value answers 400 like the CLI, not 422.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

Id = Union[int, str]


# ---------- Alumni links ----------

class LinkPairIn(BaseModel):
    member_id: Id
    alumni_id: Id


class LinkRequest(BaseModel):
    pairs: Optional[List[LinkPairIn]] = None


class MatchCandidateOut(BaseModel):
    member_id: str
    member_name: str
    member_cohort: Optional[int] = None
    alumni_id: str
    alumni_name: str
    alumni_cohort: Optional[int] = None
    confidence: str
    similarity: int


class LinkPreviewResponse(BaseModel):
    candidates: List[MatchCandidateOut]
    total_unlinked: int
    total_certain: int
    total_uncertain: int
    total_no_match: int


class LinkFailure(BaseModel):
    member_id: str
    alumni_id: str
    reason: str


class LinkResponse(BaseModel):
    linked: int
    failed: int
    failures: List[LinkFailure] = []


class AutoLinkResponse(BaseModel):
    matched: int
    unmatched: int
    unmatched_names: List[str] = []


class AlumniStatsResponse(BaseModel):
    total_alumni: int
    linked_alumni: int
    alumni_by_cohort: Dict[str, int]


# ---------- Member merge ----------

class MergeRequest(BaseModel):
    winner_id: Optional[Id] = None
    loser_id: Optional[Id] = None
    fields: Optional[Dict[str, Any]] = None


class MergeResponse(BaseModel):
    success: bool = True
    member: Dict[str, Any]
