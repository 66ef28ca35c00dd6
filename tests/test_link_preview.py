"""
Tests for the link preview service against the in-memory store.
"""
import pytest

from matching.config import CONFIDENCE_CERTAIN, LinkConfig
from matching.errors import AuthorizationError, UpstreamReadError
from matching.preview import LinkPreviewService, group_by_cohort
from matching.records import AlumniRecord

from fakes import InMemorySource


def _member(member_id, name, cohort, alumni_id=None):
    return {"id": member_id, "name": name, "cohort": cohort, "alumni_id": alumni_id,
            "phone": None, "referred_by": None}


def _alumni(alumni_id, name, cohort):
    return {"id": alumni_id, "name": name, "cohort": cohort}


@pytest.fixture
def campaign():
    return InMemorySource({
        "members": [
            _member("m1", "Budi Santoso", 5),
            _member("m2", "Dr. M. Arief", 5),
            _member("m3", "Siti Aminah", 3),
            _member("m4", "Zulkifli", 5),
            _member("m5", "Rina Wati", 3, alumni_id="a6"),
            _member("m6", "Joko Susilo", 4),
        ],
        "alumni": [
            _alumni("a1", "Budi Santoso", 5),
            _alumni("a2", "Muhammad Arief", 5),
            _alumni("a3", "Siti Aminah Putri", 3),
            _alumni("a4", "Budi Santoso", 6),
            _alumni("a5", "Joko Susilo", 4),
            _alumni("a6", "Rina Wati", 3),
        ],
    })


def _service(source, **kwargs):
    return LinkPreviewService(source, config=LinkConfig(), **kwargs)


# ============================================================================
# Authorization
# ============================================================================

def test_requires_admin(campaign, campaigner, viewer):
    for caller in (campaigner, viewer):
        with pytest.raises(AuthorizationError):
            _service(campaign).preview(caller)
    assert campaign.calls == []


# ============================================================================
# Results
# ============================================================================

def test_summary_counts(campaign, admin):
    result = _service(campaign).preview(admin)
    assert result.total_unlinked == 5
    assert result.total_certain == 2
    assert result.total_uncertain == 2
    assert result.total_no_match == 1


def test_linked_members_are_not_proposed(campaign, admin):
    result = _service(campaign).preview(admin)
    assert "m5" not in {c.member_id for c in result.candidates}


def test_ordering(campaign, admin):
    candidates = _service(campaign).preview(admin).candidates
    tiers = [c.confidence for c in candidates]
    certain = [c for c in candidates if c.confidence == CONFIDENCE_CERTAIN]
    assert tiers == sorted(tiers, key=lambda t: t != CONFIDENCE_CERTAIN)
    assert len(certain) == 2
    for tier in (candidates[:len(certain)], candidates[len(certain):]):
        sims = [c.similarity for c in tier]
        assert sims == sorted(sims, reverse=True)


def test_cohort_isolation(admin):
    source = InMemorySource({
        "members": [_member("m1", "Budi Santoso", 5)],
        "alumni": [_alumni("a1", "Budi Santoso", 6)],
    })
    result = _service(source).preview(admin)
    assert result.candidates == []
    assert result.total_no_match == 1


def test_claimed_alumni_are_never_offered(admin):
    source = InMemorySource({
        "members": [
            _member("m1", "Siti Aminah", 3, alumni_id="a1"),
            _member("m2", "Siti Aminah", 3),
        ],
        "alumni": [_alumni("a1", "Siti Aminah", 3)],
    })
    result = _service(source).preview(admin)
    assert result.candidates == []
    assert result.total_unlinked == 1


def test_member_without_cohort_gets_no_candidate(admin):
    source = InMemorySource({
        "members": [_member("m1", "Budi Santoso", None)],
        "alumni": [_alumni("a1", "Budi Santoso", 5)],
    })
    result = _service(source).preview(admin)
    assert result.total_no_match == 1
    assert ("select", "alumni") not in source.calls


def test_nothing_unlinked_returns_early(admin):
    source = InMemorySource({
        "members": [_member("m1", "Budi", 5, alumni_id="a1")],
        "alumni": [_alumni("a1", "Budi", 5)],
    })
    result = _service(source).preview(admin)
    assert result.to_dict() == {
        "candidates": [],
        "total_unlinked": 0,
        "total_certain": 0,
        "total_uncertain": 0,
        "total_no_match": 0,
    }
    assert ("select", "alumni") not in source.calls


def test_preview_is_read_only(campaign, admin):
    _service(campaign).preview(admin)
    assert campaign.writes() == []


def test_small_pages_give_the_same_result(campaign, admin):
    assert (_service(campaign, page_size=2).preview(admin).to_dict()
            == _service(campaign).preview(admin).to_dict())


# ============================================================================
# Failures
# ============================================================================

@pytest.mark.parametrize("table,after", [("members", 0), ("alumni", 0), ("members", 1)])
def test_any_failed_read_aborts(campaign, admin, table, after):
    campaign.fail("select", table, exc=RuntimeError("upstream timed out"), after=after)
    with pytest.raises(UpstreamReadError, match="upstream timed out"):
        _service(campaign).preview(admin)


def test_group_by_cohort():
    pools = group_by_cohort([
        AlumniRecord("a1", "x", 1), AlumniRecord("a2", "y", 2), AlumniRecord("a3", "z", 1),
    ])
    assert [a.id for a in pools[1]] == ["a1", "a3"]
    assert [a.id for a in pools[2]] == ["a2"]
