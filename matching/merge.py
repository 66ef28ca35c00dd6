"""
Duplicate member merger.

Collapses a "loser" member record into a "winner" believed to be the same
person, keeping every dependent row:

  1. build the winner update from fields chosen as "loser"
  2. apply it (skipped when empty); an alumni link taken from the loser is
     written to the winner before the loser lets go of it
  3. move canvasser assignments, skipping canvassers the winner already has
  4. move event attendance
  5. move event registrations
  6. re-point "referred_by" from the loser to the winner
  7. delete the loser's leftover assignments
  8. delete the loser
  9. return the fresh winner row

Preconditions (capability, ids, existence) are checked before any write.
Callers run merge() inside one transaction (api.database.get_db commits on
success and rolls back on error), and every step is a "move rows matching
old id to new id" so a re-run after a failure converges to the same state.
"""
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from .access import Caller, require_edit
from .bulk_fetch import fetch_all
from .config import (
    ATTENDANCE_TABLE,
    CHOICE_LOSER,
    CHOICE_WINNER,
    MEMBERS_TABLE,
    MERGEABLE_FIELDS,
    REGISTRATIONS_TABLE,
    TARGETS_TABLE,
)
from .errors import InvalidRequestError, MergeStepError, NotFoundError, UpstreamReadError
from .store import eq, neq

logger = logging.getLogger(__name__)


def validate_merge_request(winner_id: Any, loser_id: Any,
                           fields: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Check request shape; returns the field -> choice map (possibly empty)."""
    if not winner_id or not loser_id or fields is None:
        raise InvalidRequestError("winner_id, loser_id and fields are required")
    if str(winner_id) == str(loser_id):
        raise InvalidRequestError("Cannot merge a member with itself")
    if not isinstance(fields, Mapping):
        raise InvalidRequestError("fields must map field names to 'winner' or 'loser'")

    choices = {}
    for name, choice in fields.items():
        if choice not in (CHOICE_WINNER, CHOICE_LOSER):
            raise InvalidRequestError(
                f"Invalid choice {choice!r} for field {name!r}; expected 'winner' or 'loser'"
            )
        if name not in MERGEABLE_FIELDS:
            logger.warning("Ignoring non-mergeable field %r in merge request", name)
            continue
        choices[name] = choice
    return choices


def build_winner_update(loser: Mapping[str, Any], choices: Mapping[str, str]) -> Dict[str, Any]:
    """Only fields explicitly chosen as 'loser'; the winner's values stand otherwise.

    An alumni link is moved, never dropped: choosing the loser's empty
    alumni_id leaves the winner's link alone.
    """
    updates = {
        name: loser.get(name)
        for name in MERGEABLE_FIELDS
        if choices.get(name) == CHOICE_LOSER
    }
    if "alumni_id" in updates and updates["alumni_id"] is None:
        del updates["alumni_id"]
    return updates


class MemberMerger:

    def __init__(self, source):
        self.source = source

    def merge(self, caller: Caller, winner_id: Any, loser_id: Any,
              fields: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        require_edit(caller)
        choices = validate_merge_request(winner_id, loser_id, fields)
        winner_id, loser_id = str(winner_id), str(loser_id)

        winner = self._load(winner_id)
        if winner is None:
            raise NotFoundError(f"Winner member {winner_id} not found")
        loser = self._load(loser_id)
        if loser is None:
            raise NotFoundError(f"Loser member {loser_id} not found")

        logger.info("Merging member %s into %s (by %s)", loser_id, winner_id, caller.username)

        updates = build_winner_update(loser, choices)
        alumni_id = updates.pop("alumni_id", None)
        if updates:
            self._step("update_winner", lambda: self.source.update(
                MEMBERS_TABLE, updates, [eq("id", winner_id)]))
        if alumni_id is not None:
            self._step("transfer_alumni_link",
                       lambda: self._transfer_alumni_link(winner_id, loser_id, alumni_id))

        self._step("transfer_assignments", lambda: self._transfer_assignments(winner_id, loser_id))
        self._step("transfer_attendance", lambda: self.source.update(
            ATTENDANCE_TABLE, {"member_id": winner_id}, [eq("member_id", loser_id)]))
        self._step("transfer_registrations", lambda: self.source.update(
            REGISTRATIONS_TABLE, {"member_id": winner_id}, [eq("member_id", loser_id)]))
        self._step("repoint_referrals", lambda: self._repoint_referrals(winner_id, loser_id))
        self._step("delete_loser_assignments", lambda: self.source.delete(
            TARGETS_TABLE, [eq("member_id", loser_id)]))
        self._step("delete_loser", lambda: self._delete_loser(loser_id))

        merged = self._load(winner_id)
        if merged is None:
            raise NotFoundError(f"Winner member {winner_id} vanished during merge")
        return merged

    # ---------- steps ----------

    def _step(self, name: str, fn: Callable[[], Any]) -> Any:
        try:
            affected = fn()
        except Exception as exc:
            logger.warning("Merge step %s failed: %s", name, exc)
            raise MergeStepError(name, exc) from exc
        logger.info("  %s: %s rows", name, affected)
        return affected

    def _load(self, member_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.source.get(MEMBERS_TABLE, member_id)
        except Exception as exc:
            raise UpstreamReadError(str(exc)) from exc

    def _transfer_alumni_link(self, winner_id: str, loser_id: str, alumni_id: Any) -> int:
        # Winner first, then release the loser; a retry finds the link either
        # still on the loser or already held by the winner
        moved = self.source.update(MEMBERS_TABLE, {"alumni_id": alumni_id}, [eq("id", winner_id)])
        self.source.update(MEMBERS_TABLE, {"alumni_id": None}, [eq("id", loser_id)])
        return moved

    def _transfer_assignments(self, winner_id: str, loser_id: str) -> int:
        loser_users = [r["user_id"] for r in fetch_all(
            self.source, TARGETS_TABLE, ("user_id", "member_id"),
            where=[eq("member_id", loser_id)], order_by="user_id")]
        if not loser_users:
            return 0

        existing = {r["user_id"] for r in fetch_all(
            self.source, TARGETS_TABLE, ("user_id", "member_id"),
            where=[eq("member_id", winner_id)], order_by="user_id")}
        new_rows = [
            {"user_id": user_id, "member_id": winner_id}
            for user_id in dict.fromkeys(loser_users)
            if user_id not in existing
        ]
        return self.source.insert(TARGETS_TABLE, new_rows)

    def _repoint_referrals(self, winner_id: str, loser_id: str) -> int:
        moved = self.source.update(MEMBERS_TABLE, {"referred_by": winner_id},
                                   [eq("referred_by", loser_id), neq("id", winner_id)])
        # The winner cannot refer itself
        self.source.update(MEMBERS_TABLE, {"referred_by": None},
                           [eq("id", winner_id), eq("referred_by", loser_id)])
        return moved

    def _delete_loser(self, loser_id: str) -> int:
        deleted = self.source.delete(MEMBERS_TABLE, [eq("id", loser_id)])
        if deleted != 1:
            raise RuntimeError(f"expected to delete 1 member row, deleted {deleted}")
        return deleted


def loser_still_referenced(source, loser_id: str) -> Dict[str, int]:
    """Rows still pointing at loser_id per dependent table (all zero after a merge)."""
    return {
        MEMBERS_TABLE: source.count(MEMBERS_TABLE, [eq("id", loser_id)]),
        "referred_by": source.count(MEMBERS_TABLE, [eq("referred_by", loser_id)]),
        TARGETS_TABLE: source.count(TARGETS_TABLE, [eq("member_id", loser_id)]),
        ATTENDANCE_TABLE: source.count(ATTENDANCE_TABLE, [eq("member_id", loser_id)]),
        REGISTRATIONS_TABLE: source.count(REGISTRATIONS_TABLE, [eq("member_id", loser_id)]),
    }
