"""
Alumni link endpoints: preview proposed links, write approved links (or run
the exact-name auto-link), and link coverage stats. Admin only.
"""
import logging

from fastapi import APIRouter, Depends

from matching.access import Caller
from matching.linker import AlumniLinker, LinkPair
from matching.preview import LinkPreviewService
from matching.store import PostgresSource

from ..database import get_db
from ..dependencies import get_caller
from ..models.schemas import (
    AlumniStatsResponse,
    AutoLinkResponse,
    LinkPreviewResponse,
    LinkRequest,
    LinkResponse,
)

router = APIRouter()
log = logging.getLogger("linkage_api.alumni")


@router.get("/api/alumni/link/preview", response_model=LinkPreviewResponse)
def preview_links(caller: Caller = Depends(get_caller)):
    """Ranked member -> alumni candidates for human review. Read-only."""
    with get_db() as conn:
        result = LinkPreviewService(PostgresSource(conn)).preview(caller)
    log.info("preview by %s: %d candidates", caller.username, len(result.candidates))
    return result.to_dict()


@router.post("/api/alumni/link", response_model=None)
def link_alumni(body: LinkRequest, caller: Caller = Depends(get_caller)):
    """Write approved pairs; with no `pairs` key, auto-link exact same-cohort names."""
    with get_db() as conn:
        linker = AlumniLinker(PostgresSource(conn))
        if body.pairs is None:
            result = linker.auto_link_exact(caller)
            return AutoLinkResponse(**result.to_dict())
        pairs = [LinkPair(str(p.member_id), str(p.alumni_id)) for p in body.pairs]
        result = linker.confirm(caller, pairs)
    return LinkResponse(**result.to_dict())


@router.get("/api/alumni/stats", response_model=AlumniStatsResponse)
def alumni_stats(caller: Caller = Depends(get_caller)):
    with get_db() as conn:
        return AlumniLinker(PostgresSource(conn)).stats(caller)
