"""
Tests for the duplicate member merge.

A (winner) and B (loser) are the same person entered twice. C was referred
by B. Canvasser u1 is assigned to both, u2 only to B.
"""
import pytest

from matching.access import Caller
from matching.errors import (
    AuthorizationError,
    InvalidRequestError,
    MergeStepError,
    NotFoundError,
)
from matching.merge import (
    MemberMerger,
    build_winner_update,
    loser_still_referenced,
    validate_merge_request,
)

from fakes import InMemorySource


def _member(member_id, name, **fields):
    row = {
        "id": member_id, "name": name, "cohort": 5, "phone": None, "email": None,
        "domicile": None, "contacted": False, "vote": None,
        "referred_by": None, "alumni_id": None,
    }
    row.update(fields)
    return row


@pytest.fixture
def campaign():
    return InMemorySource({
        "members": [
            _member("A", "Budi Santoso", email="budi@mail.id", contacted=True),
            _member("B", "Budi S.", phone="081234567890", email="b.s@mail.id",
                    domicile="Bandung", alumni_id="al9"),
            _member("C", "Citra Lestari", referred_by="B"),
        ],
        "campaigner_targets": [
            {"user_id": "u1", "member_id": "A"},
            {"user_id": "u1", "member_id": "B"},
            {"user_id": "u2", "member_id": "B"},
        ],
        "event_attendance": [
            {"id": "e1", "event_id": "ev1", "member_id": "A"},
            {"id": "e2", "event_id": "ev2", "member_id": "B"},
            {"id": "e3", "event_id": "ev3", "member_id": "B"},
        ],
        "event_registrations": [
            {"id": "r1", "event_id": "ev4", "member_id": "B"},
            {"id": "r2", "event_id": "ev5", "member_id": "C"},
        ],
    })


def _merge(source, caller, fields=None, winner="A", loser="B"):
    return MemberMerger(source).merge(caller, winner, loser, {} if fields is None else fields)


# ============================================================================
# Field selection
# ============================================================================

def test_loser_field_is_taken(campaign, campaigner):
    merged = _merge(campaign, campaigner, {"phone": "loser"})
    assert merged["phone"] == "081234567890"


def test_unspecified_fields_keep_winner_values(campaign, campaigner):
    merged = _merge(campaign, campaigner, {"phone": "loser", "email": "winner"})
    assert merged["name"] == "Budi Santoso"
    assert merged["email"] == "budi@mail.id"
    assert merged["domicile"] is None
    assert merged["contacted"] is True
    assert merged["alumni_id"] is None


def test_alumni_link_moves_to_winner(campaign, campaigner):
    merged = _merge(campaign, campaigner, {"alumni_id": "loser"})
    assert merged["alumni_id"] == "al9"
    assert [r["id"] for r in campaign.rows("members") if r["alumni_id"] == "al9"] == ["A"]


def test_empty_choice_map_skips_winner_update(campaign, campaigner):
    _merge(campaign, campaigner, {})
    assert campaign.writes()[0] == ("insert", "campaigner_targets")


def test_build_winner_update_only_loser_choices():
    loser = {"phone": "0812", "email": "x@y", "name": "B"}
    assert build_winner_update(loser, {"phone": "loser", "email": "winner"}) == {"phone": "0812"}


def test_empty_loser_link_never_clears_winner_link(campaign, campaigner):
    campaign.tables["members"][0]["alumni_id"] = "al1"
    campaign.tables["members"][1]["alumni_id"] = None
    merged = _merge(campaign, campaigner, {"alumni_id": "loser", "phone": "loser"})
    assert merged["alumni_id"] == "al1"
    assert merged["phone"] == "081234567890"


# ============================================================================
# Referential integrity
# ============================================================================

def test_nothing_references_loser(campaign, campaigner):
    _merge(campaign, campaigner, {"phone": "loser"})
    assert loser_still_referenced(campaign, "B") == {
        "members": 0,
        "referred_by": 0,
        "campaigner_targets": 0,
        "event_attendance": 0,
        "event_registrations": 0,
    }


def test_dependent_rows_move_to_winner(campaign, campaigner):
    _merge(campaign, campaigner)
    attendance = {r["id"]: r["member_id"] for r in campaign.rows("event_attendance")}
    assert attendance == {"e1": "A", "e2": "A", "e3": "A"}
    registrations = {r["id"]: r["member_id"] for r in campaign.rows("event_registrations")}
    assert registrations == {"r1": "A", "r2": "C"}


def test_referrals_repointed(campaign, campaigner):
    _merge(campaign, campaigner)
    citra = next(r for r in campaign.rows("members") if r["id"] == "C")
    assert citra["referred_by"] == "A"


def test_winner_never_refers_to_itself(campaign, campaigner):
    campaign.tables["members"][0]["referred_by"] = "B"
    merged = _merge(campaign, campaigner)
    assert merged["referred_by"] is None


def test_assignments_deduplicated(campaign, campaigner):
    _merge(campaign, campaigner)
    targets = sorted((r["user_id"], r["member_id"]) for r in campaign.rows("campaigner_targets"))
    assert targets == [("u1", "A"), ("u2", "A")]


def test_loser_is_deleted(campaign, campaigner):
    _merge(campaign, campaigner)
    assert sorted(r["id"] for r in campaign.rows("members")) == ["A", "C"]


# ============================================================================
# Preconditions
# ============================================================================

def test_identical_ids_rejected_before_any_read(campaign, campaigner):
    with pytest.raises(InvalidRequestError, match="itself"):
        _merge(campaign, campaigner, winner="A", loser="A")
    assert campaign.calls == []


@pytest.mark.parametrize("winner,loser,fields", [
    (None, "B", {}),
    ("A", "", {}),
    ("A", "B", None),
])
def test_missing_parameters(campaign, campaigner, winner, loser, fields):
    with pytest.raises(InvalidRequestError):
        MemberMerger(campaign).merge(campaigner, winner, loser, fields)
    assert campaign.calls == []


def test_invalid_choice_rejected(campaign, campaigner):
    with pytest.raises(InvalidRequestError, match="phone"):
        _merge(campaign, campaigner, {"phone": "both"})
    assert campaign.writes() == []


def test_unknown_fields_are_ignored():
    assert validate_merge_request("A", "B", {"favorite_color": "loser", "phone": "loser"}) == {
        "phone": "loser",
    }


def test_missing_member_is_not_found(campaign, campaigner):
    with pytest.raises(NotFoundError, match="Z"):
        _merge(campaign, campaigner, winner="A", loser="Z")
    with pytest.raises(NotFoundError, match="Z"):
        _merge(campaign, campaigner, winner="Z", loser="B")
    assert campaign.writes() == []


def test_viewer_may_not_merge(campaign, viewer):
    with pytest.raises(AuthorizationError):
        _merge(campaign, viewer)
    assert campaign.calls == []


def test_admin_may_merge(campaign, admin):
    assert _merge(campaign, admin)["id"] == "A"


def test_integer_ids_are_accepted():
    source = InMemorySource({"members": [_member("1", "Budi"), _member("2", "Budi")]})
    merged = MemberMerger(source).merge(Caller("ops", "admin"), 1, 2, {})
    assert merged["id"] == "1"


# ============================================================================
# Step failures and retry
# ============================================================================

def test_failed_step_is_named(campaign, campaigner):
    campaign.fail("update", "event_attendance", exc=RuntimeError("connection reset"))
    with pytest.raises(MergeStepError) as excinfo:
        _merge(campaign, campaigner)
    assert excinfo.value.step == "transfer_attendance"
    assert "connection reset" in excinfo.value.message
    assert excinfo.value.status_code == 500
    assert "B" in {r["id"] for r in campaign.rows("members")}


def test_failed_delete_is_reported(campaign, campaigner):
    campaign.fail("delete", "members")
    with pytest.raises(MergeStepError) as excinfo:
        _merge(campaign, campaigner)
    assert excinfo.value.step == "delete_loser"


def test_retry_after_partial_failure_converges(campaign, campaigner):
    campaign.fail("update", "event_registrations")
    with pytest.raises(MergeStepError):
        _merge(campaign, campaigner, {"phone": "loser"})

    campaign.heal("update", "event_registrations")
    merged = _merge(campaign, campaigner, {"phone": "loser"})

    assert merged["phone"] == "081234567890"
    assert not any(loser_still_referenced(campaign, "B").values())
    targets = sorted((r["user_id"], r["member_id"]) for r in campaign.rows("campaigner_targets"))
    assert targets == [("u1", "A"), ("u2", "A")]


def test_retry_keeps_alumni_link_taken_from_loser(campaign, campaigner):
    campaign.fail("update", "event_registrations")
    with pytest.raises(MergeStepError):
        _merge(campaign, campaigner, {"alumni_id": "loser"})

    campaign.heal("update", "event_registrations")
    merged = _merge(campaign, campaigner, {"alumni_id": "loser"})

    assert merged["alumni_id"] == "al9"
    assert [r["id"] for r in campaign.rows("members") if r["alumni_id"] == "al9"] == ["A"]


def test_retry_after_failed_link_release(campaign, campaigner):
    # First members update gives A the link, the second (releasing B) fails
    campaign.fail("update", "members", after=1)
    with pytest.raises(MergeStepError) as excinfo:
        _merge(campaign, campaigner, {"alumni_id": "loser"})
    assert excinfo.value.step == "transfer_alumni_link"

    campaign.heal("update", "members")
    merged = _merge(campaign, campaigner, {"alumni_id": "loser"})

    assert merged["alumni_id"] == "al9"
    assert not any(loser_still_referenced(campaign, "B").values())
