"""
Paginated full-table scan.

Hosted stores cap the rows a single request returns; fetch_all keeps asking
for fixed-size pages until a short or empty page signals the end. A failing
page propagates its error: a truncated result is never returned.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from .config import fetch_page_size
from .store import Condition

logger = logging.getLogger(__name__)


def fetch_all(source, table: str, columns: Sequence[str] = (),
              where: Sequence[Condition] = (), page_size: Optional[int] = None,
              order_by: str = "id") -> List[Dict[str, Any]]:
    """Every row of `table` matching `where`, projected to `columns`."""
    size = page_size or fetch_page_size()
    rows: List[Dict[str, Any]] = []
    offset = 0

    while True:
        page = source.select(table, columns, where=where, limit=size,
                             offset=offset, order_by=order_by)
        if not page:
            break
        rows.extend(page)
        logger.debug("fetch_all %s: offset=%d got=%d total=%d",
                     table, offset, len(page), len(rows))
        if len(page) < size:
            break
        offset += size

    return rows
