"""Tests for account management."""
import pytest

from conftest import actor
from core.exceptions import ConflictError, ValidationError
from models.supervising_faculty import SupervisingFacultyModel
from models.thesis import ThesisModel
from models.thesis_selection import ThesisSelectionModel
from schemas.user import CreateUserRequest, UpdateProfileRequest, UserRole
from utils.supervision_manager import SupervisionManager
from utils.thesis_manager import ThesisManager
from utils.user_manager import UserAlreadyExistsError, UserManager, UserNotFoundError


@pytest.fixture
def manager(db_session):
    return UserManager(db_session)


def _request(username, **overrides):
    data = dict(
        username=username,
        password='secret',
        email=f'{username}@university.edu',
        full_name=username.title(),
        role=UserRole.STUDENT,
    )
    data.update(overrides)
    return CreateUserRequest(**data)


def test_password_is_hashed(manager, db_session):
    user = manager.create_user(_request('carol'))

    assert manager.authenticate('carol', 'secret').id == user.id
    assert manager.authenticate('carol', 'wrong') is None
    assert manager.authenticate('nobody', 'secret') is None


def test_duplicate_username(manager):
    manager.create_user(_request('carol'))
    with pytest.raises(UserAlreadyExistsError):
        manager.create_user(_request('carol', email='other@university.edu'))


def test_invalid_email(manager):
    with pytest.raises(ValidationError):
        manager.create_user(_request('carol', email='not-an-email'))


class TestBulkCreate:
    def test_creates_all(self, manager):
        users = manager.bulk_create_users([_request(f'user{i}') for i in range(3)])

        assert [u.username for u in users] == ['user0', 'user1', 'user2']
        assert len(manager.list_users(UserRole.STUDENT)) == 3

    def test_empty_batch(self, manager):
        with pytest.raises(ValidationError):
            manager.bulk_create_users([])

    def test_duplicates_inside_batch(self, manager):
        with pytest.raises(ValidationError):
            manager.bulk_create_users([_request('dup'), _request('dup', email='x@university.edu')])

    def test_all_or_nothing(self, manager):
        manager.create_user(_request('taken'))

        with pytest.raises(UserAlreadyExistsError):
            manager.bulk_create_users([_request('fresh'), _request('taken', email='t2@university.edu')])
        assert manager.get_user_by_username('fresh') is None


class TestUpdateProfile:
    def test_updates_fields(self, manager, student):
        user = manager.update_profile(
            student.id,
            UpdateProfileRequest(full_name='Alice A.', email='alice.a@university.edu', mobile_phone='555'),
        )

        assert user.full_name == 'Alice A.'
        assert user.mobile_phone == '555'

    def test_email_taken(self, manager, student, faculty):
        with pytest.raises(ConflictError):
            manager.update_profile(
                student.id, UpdateProfileRequest(full_name='Alice', email=faculty.email)
            )

    def test_unknown_user(self, manager):
        with pytest.raises(UserNotFoundError):
            manager.update_profile(404, UpdateProfileRequest(full_name='X', email='x@university.edu'))


class TestDeleteUser:
    def test_deleting_owner_removes_theses(self, manager, db_session, faculty, assigned_thesis, make_user):
        prof = make_user('prof_two', UserRole.FACULTY)
        SupervisionManager(db_session).invite_supervisor(actor(faculty), assigned_thesis.id, prof.id)

        manager.delete_user(faculty.id)

        assert manager.get_user(faculty.id) is None
        assert db_session.query(ThesisModel).count() == 0
        assert db_session.query(SupervisingFacultyModel).count() == 0

    def test_deleting_student_removes_selection(self, manager, db_session, faculty, student):
        thesis = ThesisManager(db_session).create_thesis(actor(faculty), 'X', 'Thesis X')
        ThesisManager(db_session).select_thesis(actor(student), thesis.id)

        manager.delete_user(student.id)

        assert db_session.query(ThesisSelectionModel).count() == 0
        assert db_session.query(ThesisModel).count() == 1

    def test_deleting_invitee_keeps_thesis(self, manager, db_session, faculty, assigned_thesis, make_user):
        prof = make_user('prof_two', UserRole.FACULTY)
        SupervisionManager(db_session).invite_supervisor(actor(faculty), assigned_thesis.id, prof.id)

        manager.delete_user(prof.id)

        assert db_session.query(SupervisingFacultyModel).count() == 0
        assert db_session.get(ThesisModel, assigned_thesis.id) is not None

    def test_unknown_user(self, manager):
        with pytest.raises(UserNotFoundError):
            manager.delete_user(404)
