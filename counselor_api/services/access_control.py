# counselor_api/services/access_control.py
"""
Pure permission decisions over sessions, notes and share links.

Nothing here touches the database. Callers load the relevant assignment, grant and share
rows once per request, resolve the actor's role with resolve_session_access and pass the
result to the check functions below.
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from counselor_api.core.errors import ForbiddenError, NotFoundError
from counselor_api.models.database_models.counselor_assignment import (
    ASSIGNMENT_STATUS_ACTIVE,
    CounselorAssignment,
)
from counselor_api.models.database_models.coverage_grant import CounselorCoverageGrant
from counselor_api.models.database_models.session_note import SessionNote
from counselor_api.models.database_models.session_share import SessionShare

NOTE_ROLE_COUNSELOR = "counselor"
NOTE_ROLE_USER = "user"
NOTE_ROLE_VIEWER = "viewer"


class SessionRole(enum.Enum):
    ASSIGNED = "assigned"
    COVERAGE = "coverage"
    OWNER = "owner"
    NONE = "none"


@dataclass(frozen=True)
class SessionAccess:
    actor_id: Optional[int]
    role: SessionRole
    is_owner: bool

    @property
    def is_assigned_counselor(self) -> bool:
        return self.role is SessionRole.ASSIGNED

    @property
    def is_coverage_counselor(self) -> bool:
        return self.role is SessionRole.COVERAGE

    @property
    def is_counselor(self) -> bool:
        return self.role in (SessionRole.ASSIGNED, SessionRole.COVERAGE)


@dataclass(frozen=True)
class ShareDecision:
    share: SessionShare
    can_view: bool
    can_add_notes: bool
    is_owner: bool


def grant_is_valid(grant: CounselorCoverageGrant, now: datetime) -> bool:
    if grant.revoked_at is not None:
        return False
    return grant.expires_at is None or grant.expires_at >= now


def _in_organization(row_org: Optional[str], organization_id: Optional[str]) -> bool:
    return organization_id is None or row_org == organization_id


def resolve_session_access(
    actor_id: Optional[int],
    owner_id: Optional[int],
    assignments: Iterable[CounselorAssignment],
    grants: Iterable[CounselorCoverageGrant],
    now: datetime,
    organization_id: Optional[str] = None,
) -> SessionAccess:
    """
    Resolves the actor's relationship to the session owner.

    An active assignment wins over a coverage grant for the same counselor. Assignment and
    grant rows that do not pair actor with owner are ignored, so callers may pass a
    superset.
    """
    is_owner = actor_id is not None and owner_id is not None and actor_id == owner_id
    if actor_id is None or owner_id is None:
        return SessionAccess(actor_id=actor_id, role=SessionRole.NONE, is_owner=False)

    is_assigned = any(
        a.counselor_id == actor_id
        and a.member_id == owner_id
        and a.status == ASSIGNMENT_STATUS_ACTIVE
        and _in_organization(a.organization_id, organization_id)
        for a in assignments
    )
    if is_assigned:
        return SessionAccess(actor_id=actor_id, role=SessionRole.ASSIGNED, is_owner=is_owner)

    is_coverage = any(
        g.backup_counselor_id == actor_id
        and g.member_id == owner_id
        and grant_is_valid(g, now)
        and (g.organization_id is None or _in_organization(g.organization_id, organization_id))
        for g in grants
    )
    if is_coverage:
        return SessionAccess(actor_id=actor_id, role=SessionRole.COVERAGE, is_owner=is_owner)

    if is_owner:
        return SessionAccess(actor_id=actor_id, role=SessionRole.OWNER, is_owner=True)
    return SessionAccess(actor_id=actor_id, role=SessionRole.NONE, is_owner=False)


def visible_notes(access: SessionAccess, notes: Iterable[SessionNote]) -> List[SessionNote]:
    """
    Notes the actor may read. Coverage counselors never see private notes, their own
    included. Owners and assigned counselors see everything. Anyone else (a share holder)
    sees non-private notes and the notes they wrote.
    """
    notes = list(notes)
    if access.role is SessionRole.COVERAGE:
        return [n for n in notes if not n.is_private]
    if access.role in (SessionRole.ASSIGNED, SessionRole.OWNER):
        return notes
    return [n for n in notes if not n.is_private or n.author_id == access.actor_id]


def note_author_role(access: SessionAccess) -> str:
    if access.role is SessionRole.ASSIGNED:
        return NOTE_ROLE_COUNSELOR
    if access.is_owner:
        return NOTE_ROLE_USER
    return NOTE_ROLE_VIEWER


def check_can_read_session(access: SessionAccess, has_valid_share: bool = False) -> None:
    if access.is_owner or access.is_counselor or has_valid_share:
        return
    raise ForbiddenError("You do not have access to this session.")


def check_can_create_note(access: SessionAccess, is_private: bool, has_write_share: bool = False) -> None:
    if not (access.is_owner or access.is_counselor or has_write_share):
        raise ForbiddenError("You do not have permission to add notes to this session.")
    if is_private:
        if access.is_coverage_counselor:
            raise ForbiddenError("Coverage counselors cannot create private notes.")
        if not access.is_assigned_counselor:
            raise ForbiddenError("Only an assigned counselor can create private notes.")


def check_can_mutate_note(actor_id: Optional[int], note: SessionNote) -> None:
    if actor_id is None or note.author_id != actor_id:
        raise ForbiddenError("Only the author of a note can change or delete it.")


def check_can_make_private(access: SessionAccess, note: SessionNote) -> None:
    """Making an existing note private: its author, and only while assigned to the member."""
    check_can_mutate_note(access.actor_id, note)
    if access.is_coverage_counselor:
        raise ForbiddenError("Coverage counselors cannot create private notes.")
    if not access.is_assigned_counselor:
        raise ForbiddenError("Only an assigned counselor can make notes private.")


def check_can_share(actor_id: Optional[int], owner_id: Optional[int], is_entitled: bool) -> None:
    if actor_id is None or owner_id is None or actor_id != owner_id:
        raise ForbiddenError("Only the owner of a session can share it.")
    if not is_entitled:
        raise ForbiddenError("Sharing requires an active subscription.")


def _matches_recipient(share: SessionShare, actor_id: Optional[int], actor_email: Optional[str]) -> bool:
    if share.shared_with_user_id is not None and actor_id is not None and share.shared_with_user_id == actor_id:
        return True
    if share.shared_with and actor_email:
        return share.shared_with.strip().lower() == actor_email.strip().lower()
    return False


def evaluate_share(
    share: Optional[SessionShare],
    actor_id: Optional[int],
    actor_email: Optional[str],
    owner_id: Optional[int],
    now: datetime,
) -> ShareDecision:
    """
    Decides what a share token grants the actor. Unknown tokens are NotFound; an expired
    token or a recipient mismatch is Forbidden regardless of any other field.
    """
    if share is None:
        raise NotFoundError("Share not found.")
    if share.expires_at is not None and share.expires_at < now:
        raise ForbiddenError("This share link has expired.")

    is_owner = actor_id is not None and owner_id is not None and actor_id == owner_id
    is_restricted = share.shared_with_user_id is not None or bool(share.shared_with)
    if is_restricted and not is_owner and not _matches_recipient(share, actor_id, actor_email):
        raise ForbiddenError("This share is restricted to a different recipient.")

    return ShareDecision(
        share=share,
        can_view=True,
        can_add_notes=is_owner or bool(share.allow_notes_access),
        is_owner=is_owner,
    )


def check_can_revoke_share(actor_id: Optional[int], share: SessionShare, owner_id: Optional[int]) -> None:
    if actor_id is not None and (share.shared_by == actor_id or owner_id == actor_id):
        return
    raise ForbiddenError("Only the creator of a share or the session owner can revoke it.")
