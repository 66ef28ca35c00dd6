"""
Member endpoints: merge a duplicate record into the one that survives.
"""
import logging

from fastapi import APIRouter, Depends

from matching.access import Caller
from matching.merge import MemberMerger
from matching.store import PostgresSource

from ..database import get_db
from ..dependencies import get_caller
from ..models.schemas import MergeRequest, MergeResponse

router = APIRouter()
log = logging.getLogger("linkage_api.members")


@router.post("/api/members/merge", response_model=MergeResponse)
def merge_members(body: MergeRequest, caller: Caller = Depends(get_caller)):
    """Fold loser_id into winner_id. All steps commit together or not at all."""
    with get_db() as conn:
        member = MemberMerger(PostgresSource(conn)).merge(
            caller, body.winner_id, body.loser_id, body.fields
        )
    log.info("merge %s -> %s by %s", body.loser_id, body.winner_id, caller.username)
    return {"success": True, "member": member}
