"""
Member <-> Alumni Record Linkage

Proposes links between campaign members and the alumni directory, writes
approved links, and merges duplicate member records.

Usage:
    from matching import LinkPreviewService, MemberMerger, PostgresSource

    with get_db() as conn:
        result = LinkPreviewService(PostgresSource(conn)).preview(caller)

    python -m matching preview --limit 20
    python -m matching merge WINNER_ID LOSER_ID --take-loser phone,email
"""

from .access import Caller
from .config import LinkConfig
from .linker import AlumniLinker, LinkPair
from .merge import MemberMerger
from .preview import LinkPreviewService, PreviewResult
from .store import PostgresSource

__all__ = [
    'Caller',
    'LinkConfig',
    'AlumniLinker',
    'LinkPair',
    'MemberMerger',
    'LinkPreviewService',
    'PreviewResult',
    'PostgresSource',
]
