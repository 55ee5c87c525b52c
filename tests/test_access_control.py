# tests/test_access_control.py
"""Tests for the pure permission decisions."""
from datetime import timedelta

import pytest

from counselor_api.core.errors import ForbiddenError, NotFoundError
from counselor_api.data.database import utcnow
from counselor_api.models.database_models.counselor_assignment import CounselorAssignment
from counselor_api.models.database_models.coverage_grant import CounselorCoverageGrant
from counselor_api.models.database_models.session_note import SessionNote
from counselor_api.models.database_models.session_share import SessionShare
from counselor_api.services.access_control import (
    SessionAccess,
    SessionRole,
    check_can_create_note,
    check_can_make_private,
    check_can_mutate_note,
    check_can_read_session,
    check_can_revoke_share,
    check_can_share,
    evaluate_share,
    note_author_role,
    resolve_session_access,
    visible_notes,
)

OWNER, COUNSELOR, BACKUP, STRANGER = 1, 2, 3, 4


def assignment(counselor_id=COUNSELOR, member_id=OWNER, status="active", organization_id="org-1"):
    return CounselorAssignment(
        counselor_id=counselor_id, member_id=member_id, status=status, organization_id=organization_id
    )


def grant(backup_id=BACKUP, member_id=OWNER, expires_at=None, revoked_at=None, organization_id=None):
    return CounselorCoverageGrant(
        backup_counselor_id=backup_id,
        member_id=member_id,
        expires_at=expires_at,
        revoked_at=revoked_at,
        organization_id=organization_id,
    )


def note(author_id, is_private=False, content="note"):
    return SessionNote(author_id=author_id, is_private=is_private, content=content)


def share(expires_at=None, shared_with=None, shared_with_user_id=None, allow_notes_access=False, shared_by=OWNER):
    return SessionShare(
        share_token="token",
        shared_by=shared_by,
        shared_with=shared_with,
        shared_with_user_id=shared_with_user_id,
        allow_notes_access=allow_notes_access,
        expires_at=expires_at,
    )


def access(actor_id, role, is_owner=False):
    return SessionAccess(actor_id=actor_id, role=role, is_owner=is_owner)


class TestResolveSessionAccess:
    def test_owner(self):
        result = resolve_session_access(OWNER, OWNER, [], [], utcnow())
        assert result.role is SessionRole.OWNER
        assert result.is_owner

    def test_assigned_counselor(self):
        result = resolve_session_access(COUNSELOR, OWNER, [assignment()], [], utcnow())
        assert result.role is SessionRole.ASSIGNED

    def test_inactive_assignment_does_not_count(self):
        result = resolve_session_access(COUNSELOR, OWNER, [assignment(status="inactive")], [], utcnow())
        assert result.role is SessionRole.NONE

    def test_organization_scoping(self):
        rows = [assignment(organization_id="org-1")]
        assert resolve_session_access(COUNSELOR, OWNER, rows, [], utcnow(), "org-2").role is SessionRole.NONE
        assert resolve_session_access(COUNSELOR, OWNER, rows, [], utcnow(), "org-1").role is SessionRole.ASSIGNED

    def test_coverage_counselor(self):
        result = resolve_session_access(BACKUP, OWNER, [], [grant()], utcnow())
        assert result.role is SessionRole.COVERAGE

    def test_assignment_wins_over_coverage(self):
        result = resolve_session_access(
            COUNSELOR, OWNER, [assignment()], [grant(backup_id=COUNSELOR)], utcnow()
        )
        assert result.role is SessionRole.ASSIGNED

    def test_expired_and_revoked_grants_do_not_count(self):
        now = utcnow()
        expired = grant(expires_at=now - timedelta(seconds=1))
        revoked = grant(revoked_at=now - timedelta(days=1))
        assert resolve_session_access(BACKUP, OWNER, [], [expired, revoked], now).role is SessionRole.NONE

    def test_rows_for_other_members_are_ignored(self):
        result = resolve_session_access(COUNSELOR, OWNER, [assignment(member_id=99)], [], utcnow())
        assert result.role is SessionRole.NONE


class TestNoteVisibility:
    notes = [note(OWNER), note(COUNSELOR, is_private=True), note(BACKUP, is_private=True), note(BACKUP)]

    def test_coverage_counselor_never_sees_private_notes(self):
        visible = visible_notes(access(BACKUP, SessionRole.COVERAGE), self.notes)
        assert visible
        assert not any(n.is_private for n in visible)

    def test_assigned_counselor_and_owner_see_everything(self):
        assert len(visible_notes(access(COUNSELOR, SessionRole.ASSIGNED), self.notes)) == 4
        assert len(visible_notes(access(OWNER, SessionRole.OWNER, is_owner=True), self.notes)) == 4

    def test_share_holder_sees_public_notes_and_their_own(self):
        notes = self.notes + [note(STRANGER, is_private=True)]
        visible = visible_notes(access(STRANGER, SessionRole.NONE), notes)
        assert [n.author_id for n in visible] == [OWNER, BACKUP, STRANGER]


class TestNoteAuthoring:
    def test_author_roles(self):
        assert note_author_role(access(COUNSELOR, SessionRole.ASSIGNED)) == "counselor"
        assert note_author_role(access(OWNER, SessionRole.OWNER, is_owner=True)) == "user"
        assert note_author_role(access(BACKUP, SessionRole.COVERAGE)) == "viewer"
        assert note_author_role(access(STRANGER, SessionRole.NONE)) == "viewer"

    def test_coverage_counselor_cannot_create_private_note(self):
        with pytest.raises(ForbiddenError):
            check_can_create_note(access(BACKUP, SessionRole.COVERAGE), is_private=True)

    def test_coverage_counselor_can_create_public_note(self):
        check_can_create_note(access(BACKUP, SessionRole.COVERAGE), is_private=False)

    def test_only_assigned_counselor_creates_private_notes(self):
        check_can_create_note(access(COUNSELOR, SessionRole.ASSIGNED), is_private=True)
        with pytest.raises(ForbiddenError):
            check_can_create_note(access(OWNER, SessionRole.OWNER, is_owner=True), is_private=True)

    def test_stranger_needs_a_writable_share(self):
        with pytest.raises(ForbiddenError):
            check_can_create_note(access(STRANGER, SessionRole.NONE), is_private=False)
        check_can_create_note(access(STRANGER, SessionRole.NONE), is_private=False, has_write_share=True)

    def test_only_author_mutates(self):
        check_can_mutate_note(COUNSELOR, note(COUNSELOR))
        with pytest.raises(ForbiddenError):
            check_can_mutate_note(OWNER, note(COUNSELOR))

    def test_make_private_rules(self):
        check_can_make_private(access(COUNSELOR, SessionRole.ASSIGNED), note(COUNSELOR))
        with pytest.raises(ForbiddenError):
            check_can_make_private(access(OWNER, SessionRole.OWNER, is_owner=True), note(OWNER))
        with pytest.raises(ForbiddenError):
            check_can_make_private(access(STRANGER, SessionRole.NONE), note(STRANGER))
        with pytest.raises(ForbiddenError):
            check_can_make_private(access(BACKUP, SessionRole.COVERAGE), note(BACKUP))
        with pytest.raises(ForbiddenError):
            check_can_make_private(access(COUNSELOR, SessionRole.ASSIGNED), note(OWNER))


class TestSessionAndShareChecks:
    def test_read_session(self):
        check_can_read_session(access(BACKUP, SessionRole.COVERAGE))
        check_can_read_session(access(STRANGER, SessionRole.NONE), has_valid_share=True)
        with pytest.raises(ForbiddenError):
            check_can_read_session(access(STRANGER, SessionRole.NONE))

    def test_share_requires_owner_and_entitlement(self):
        check_can_share(OWNER, OWNER, is_entitled=True)
        with pytest.raises(ForbiddenError):
            check_can_share(OWNER, OWNER, is_entitled=False)
        with pytest.raises(ForbiddenError):
            check_can_share(COUNSELOR, OWNER, is_entitled=True)

    def test_unknown_share_is_not_found(self):
        with pytest.raises(NotFoundError):
            evaluate_share(None, STRANGER, None, OWNER, utcnow())

    def test_share_expired_one_second_ago_is_rejected(self):
        now = utcnow()
        expired = share(expires_at=now - timedelta(seconds=1), allow_notes_access=True)
        with pytest.raises(ForbiddenError):
            evaluate_share(expired, OWNER, "owner@example.com", OWNER, now)

    def test_open_share(self):
        decision = evaluate_share(share(), STRANGER, None, OWNER, utcnow())
        assert decision.can_view
        assert not decision.can_add_notes
        assert not decision.is_owner

    def test_restricted_share(self):
        restricted = share(shared_with="friend@example.com", shared_with_user_id=STRANGER, allow_notes_access=True)
        assert evaluate_share(restricted, STRANGER, "friend@example.com", OWNER, utcnow()).can_add_notes
        assert evaluate_share(restricted, None, "FRIEND@example.com", OWNER, utcnow()).can_view
        assert evaluate_share(restricted, OWNER, "owner@example.com", OWNER, utcnow()).is_owner
        with pytest.raises(ForbiddenError):
            evaluate_share(restricted, COUNSELOR, "counselor@example.com", OWNER, utcnow())

    def test_revoke(self):
        check_can_revoke_share(OWNER, share(), OWNER)
        with pytest.raises(ForbiddenError):
            check_can_revoke_share(STRANGER, share(), OWNER)
