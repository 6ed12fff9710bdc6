"""Tests for the supervisor invitation protocol."""
from datetime import datetime

import pytest

from conftest import actor
from core.exceptions import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from models.supervising_faculty import SupervisingFacultyModel
from schemas.user import UserRole
from utils.supervision_manager import SupervisionManager, accepted_supervisors
from utils.thesis_manager import ThesisManager
from utils.user_manager import UserManager


@pytest.fixture
def manager(db_session):
    return SupervisionManager(db_session)


@pytest.fixture
def profs(make_user):
    """Three candidate co-supervisors: F2, F3, F4"""
    return [make_user(f'prof_{n}', UserRole.FACULTY) for n in ('f2', 'f3', 'f4')]


def _rows(db_session, thesis_id):
    return {
        row.faculty_id: row
        for row in db_session.query(SupervisingFacultyModel)
        .filter(SupervisingFacultyModel.thesis_id == thesis_id)
        .all()
    }


class TestInvite:
    def test_owner_invites(self, manager, faculty, assigned_thesis, profs):
        info = manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)

        assert info.status == 'PENDING'
        assert info.invited_by_id == faculty.id

    def test_assigned_student_invites(self, manager, db_session, student, assigned_thesis, profs):
        manager.invite_supervisor(actor(student), assigned_thesis.id, profs[0].id)

        row = _rows(db_session, assigned_thesis.id)[profs[0].id]
        assert row.invited_by_id == student.id

    def test_unrelated_actors_cannot_invite(self, manager, assigned_thesis, profs, make_user):
        bob = make_user('bob')
        with pytest.raises(AuthorizationError):
            manager.invite_supervisor(actor(bob), assigned_thesis.id, profs[0].id)
        with pytest.raises(AuthorizationError):
            manager.invite_supervisor(actor(profs[1]), assigned_thesis.id, profs[0].id)

    def test_target_must_be_faculty(self, manager, faculty, assigned_thesis, make_user):
        bob = make_user('bob')
        with pytest.raises(ValidationError):
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, bob.id)
        with pytest.raises(ValidationError):
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, 12345)

    def test_owner_cannot_invite_self(self, manager, faculty, assigned_thesis):
        with pytest.raises(ValidationError):
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, faculty.id)

    def test_duplicate_invitation(self, manager, faculty, student, assigned_thesis, profs):
        manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)
        with pytest.raises(ConflictError):
            manager.invite_supervisor(actor(student), assigned_thesis.id, profs[0].id)

    def test_duplicate_of_accepted_invitation(self, manager, faculty, assigned_thesis, profs):
        manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)
        manager.accept_invitation(actor(profs[0]), assigned_thesis.id)

        with pytest.raises(ConflictError):
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)

    def test_refused_when_two_supervisors_accepted(self, manager, faculty, assigned_thesis, profs):
        for prof in profs[:2]:
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, prof.id)
            manager.accept_invitation(actor(prof), assigned_thesis.id)

        with pytest.raises(CapacityError):
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[2].id)

    def test_refused_on_cancelled_thesis(self, manager, db_session, faculty, assigned_thesis, profs):
        ThesisManager(db_session).cancel_thesis(actor(faculty), assigned_thesis.id)
        with pytest.raises(InvalidStateError):
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)


class TestAccept:
    def test_scenario_acceptance_order_decides_slots(self, manager, db_session, faculty, assigned_thesis, profs):
        f2, f3, f4 = profs
        for prof in profs:
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, prof.id)

        assert manager.accept_invitation(actor(f3), assigned_thesis.id) == 1
        assert manager.accept_invitation(actor(f2), assigned_thesis.id) == 2

        rows = _rows(db_session, assigned_thesis.id)
        assert rows[f3.id].slot_index == 1
        assert rows[f2.id].slot_index == 2
        # F4 was still pending and is auto-rejected
        assert f4.id not in rows
        with pytest.raises(NotFoundError):
            manager.accept_invitation(actor(f4), assigned_thesis.id)

    def test_accepted_at_is_stamped(self, manager, db_session, faculty, assigned_thesis, profs):
        manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)
        manager.accept_invitation(actor(profs[0]), assigned_thesis.id)

        row = _rows(db_session, assigned_thesis.id)[profs[0].id]
        assert row.status == 'ACCEPTED'
        assert datetime.fromisoformat(row.accepted_at)

    def test_pending_kept_while_a_slot_is_free(self, manager, db_session, faculty, assigned_thesis, profs):
        for prof in profs:
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, prof.id)
        manager.accept_invitation(actor(profs[0]), assigned_thesis.id)

        rows = _rows(db_session, assigned_thesis.id)
        assert rows[profs[1].id].status == 'PENDING'
        assert rows[profs[2].id].status == 'PENDING'

    def test_capacity_error_removes_invitation(self, manager, db_session, faculty, assigned_thesis, profs):
        f2, f3, f4 = profs
        for prof in (f2, f3):
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, prof.id)
            manager.accept_invitation(actor(prof), assigned_thesis.id)
        # A pending row that slipped in alongside the second acceptance
        db_session.add(SupervisingFacultyModel(
            thesis_id=assigned_thesis.id,
            faculty_id=f4.id,
            invited_by_id=faculty.id,
            status='PENDING',
            created_at=datetime.now().isoformat(),
        ))
        db_session.commit()

        with pytest.raises(CapacityError):
            manager.accept_invitation(actor(f4), assigned_thesis.id)

        assert f4.id not in _rows(db_session, assigned_thesis.id)
        assert len(accepted_supervisors(db_session, assigned_thesis.id)) == 2

    def test_slot_freed_by_deleted_account_is_reused(self, manager, db_session, faculty, assigned_thesis, profs):
        f2, f3, f4 = profs
        for prof in (f2, f3):
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, prof.id)
            manager.accept_invitation(actor(prof), assigned_thesis.id)
        UserManager(db_session).delete_user(f2.id)
        assert len(accepted_supervisors(db_session, assigned_thesis.id)) == 1

        manager.invite_supervisor(actor(faculty), assigned_thesis.id, f4.id)
        assert manager.accept_invitation(actor(f4), assigned_thesis.id) == 1

        slots = {r.faculty_id: r.slot_index for r in accepted_supervisors(db_session, assigned_thesis.id)}
        assert slots == {f4.id: 1, f3.id: 2}

    def test_no_pending_invitation(self, manager, assigned_thesis, profs):
        with pytest.raises(NotFoundError):
            manager.accept_invitation(actor(profs[0]), assigned_thesis.id)

    def test_accepting_twice(self, manager, faculty, assigned_thesis, profs):
        manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)
        manager.accept_invitation(actor(profs[0]), assigned_thesis.id)

        with pytest.raises(NotFoundError):
            manager.accept_invitation(actor(profs[0]), assigned_thesis.id)

    def test_never_more_than_two_accepted(self, manager, db_session, faculty, assigned_thesis, make_user):
        candidates = [make_user(f'prof_c{i}', UserRole.FACULTY) for i in range(5)]
        for prof in candidates:
            manager.invite_supervisor(actor(faculty), assigned_thesis.id, prof.id)

        outcomes = []
        for prof in candidates:
            try:
                outcomes.append(manager.accept_invitation(actor(prof), assigned_thesis.id))
            except (CapacityError, NotFoundError):
                outcomes.append(None)

        assert outcomes == [1, 2, None, None, None]
        assert [r.slot_index for r in accepted_supervisors(db_session, assigned_thesis.id)] == [1, 2]


class TestReject:
    def test_reject_deletes_record(self, manager, db_session, faculty, assigned_thesis, profs):
        manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)
        manager.reject_invitation(actor(profs[0]), assigned_thesis.id)

        assert _rows(db_session, assigned_thesis.id) == {}
        # Rejected looks like never invited: a fresh invitation is allowed
        manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)

    def test_reject_without_pending(self, manager, assigned_thesis, profs):
        with pytest.raises(NotFoundError):
            manager.reject_invitation(actor(profs[0]), assigned_thesis.id)

    def test_cannot_reject_after_accepting(self, manager, faculty, assigned_thesis, profs):
        manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)
        manager.accept_invitation(actor(profs[0]), assigned_thesis.id)

        with pytest.raises(NotFoundError):
            manager.reject_invitation(actor(profs[0]), assigned_thesis.id)


def test_inbox_lists_pending_only(manager, faculty, assigned_thesis, profs):
    manager.invite_supervisor(actor(faculty), assigned_thesis.id, profs[0].id)

    inbox = manager.list_pending_for_faculty(profs[0].id)
    assert [(i.thesis_id, i.thesis_title) for i in inbox] == [(assigned_thesis.id, 'Distributed Ledgers')]

    manager.accept_invitation(actor(profs[0]), assigned_thesis.id)
    assert manager.list_pending_for_faculty(profs[0].id) == []
