"""Thesis lifecycle management.

This module owns the thesis status state machine:

    OPEN -> ASSIGNED -> COMPLETED
    OPEN | ASSIGNED -> CANCELLED

Selection and assignment happen here. The ASSIGNED -> COMPLETED transition is
made by the grading aggregator (see utils.grading_manager) once every
expected grader has submitted a mark.
"""

import logging
from datetime import datetime
from typing import List, Optional

import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from core.database import transaction
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from models.supervising_faculty import SupervisingFacultyModel
from models.thesis import ThesisModel
from models.thesis_selection import ThesisSelectionModel
from models.user import UserModel
from schemas.supervision import InvitationStatus
from schemas.thesis import TERMINAL_STATUS_VALUES, Thesis, ThesisStatus
from schemas.user import Actor, UserRole
from utils.converters import model_to_thesis

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(pytz.utc).isoformat()


class ThesisNotFoundError(NotFoundError):
    """Exception raised when a thesis is not found."""

    def __init__(self, thesis_id):
        super().__init__("Thesis", thesis_id)


def load_thesis(db: Session, thesis_id: int, for_update: bool = False) -> ThesisModel:
    """Fetch a thesis row, optionally with a row lock for read-modify-write.

    Raises:
        ThesisNotFoundError: If the thesis does not exist.
    """
    query = db.query(ThesisModel).filter(ThesisModel.id == thesis_id)
    if for_update:
        query = query.with_for_update()
    model = query.first()
    if model is None:
        raise ThesisNotFoundError(thesis_id)
    return model


class ThesisManager:
    """Manages thesis records and their status transitions."""

    def __init__(self, db: Session):
        self.db = db

    def _require_owner(self, actor: Actor, thesis: ThesisModel, action: str) -> None:
        if actor.role != UserRole.FACULTY or thesis.faculty_id != actor.user_id:
            raise AuthorizationError(f"Only the owning faculty member can {action} this thesis")

    def create_thesis(
        self,
        actor: Actor,
        title: Optional[str],
        description: Optional[str],
        pdf_url: Optional[str] = None,
    ) -> Thesis:
        """Create a new OPEN thesis owned by the acting faculty member.

        Raises:
            AuthorizationError: If the actor is not faculty.
            ValidationError: If title or description is missing.
        """
        if actor.role != UserRole.FACULTY:
            raise AuthorizationError("Only faculty members can create theses")
        if not title or not title.strip() or not description or not description.strip():
            raise ValidationError("Title and description are required")

        now = _now()
        model = ThesisModel(
            title=title.strip(),
            description=description.strip(),
            status=ThesisStatus.OPEN.value,
            faculty_id=actor.user_id,
            pdf_url=pdf_url or None,
            created_at=now,
            updated_at=now,
        )
        with transaction(self.db):
            self.db.add(model)
        self.db.refresh(model)
        logger.info("Faculty %s created thesis %s", actor.user_id, model.id)
        return model_to_thesis(model)

    def get_thesis(self, thesis_id: int) -> Thesis:
        return model_to_thesis(load_thesis(self.db, thesis_id))

    def list_theses(
        self,
        status: Optional[ThesisStatus] = None,
        faculty_id: Optional[int] = None,
        assigned_to_id: Optional[int] = None,
    ) -> List[Thesis]:
        """List theses, newest first, with optional filters."""
        query = self.db.query(ThesisModel).options(
            selectinload(ThesisModel.selections).selectinload(ThesisSelectionModel.student),
            selectinload(ThesisModel.supervising_faculty),
        )
        if status is not None:
            query = query.filter(ThesisModel.status == status.value)
        if faculty_id is not None:
            query = query.filter(ThesisModel.faculty_id == faculty_id)
        if assigned_to_id is not None:
            query = query.filter(ThesisModel.assigned_to_id == assigned_to_id)
        return [model_to_thesis(m) for m in query.order_by(ThesisModel.id.desc()).all()]

    def update_thesis(
        self,
        actor: Actor,
        thesis_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        pdf_url: Optional[str] = None,
    ) -> Thesis:
        """Edit title, description or PDF reference of a thesis.

        Fields left as None are unchanged; blank title or description is
        rejected.
        """
        with transaction(self.db):
            model = load_thesis(self.db, thesis_id, for_update=True)
            self._require_owner(actor, model, "edit")
            if model.status in TERMINAL_STATUS_VALUES:
                raise InvalidStateError(f"Thesis is {model.status} and can no longer be edited")
            if title is not None:
                if not title.strip():
                    raise ValidationError("Title cannot be empty")
                model.title = title.strip()
            if description is not None:
                if not description.strip():
                    raise ValidationError("Description cannot be empty")
                model.description = description.strip()
            if pdf_url is not None:
                model.pdf_url = pdf_url or None
            model.updated_at = _now()
        self.db.refresh(model)
        return model_to_thesis(model)

    def select_thesis(self, actor: Actor, thesis_id: int) -> Thesis:
        """Record a student's interest in an OPEN thesis.

        A student holds at most one selection system-wide. The student row is
        locked for the duration of the check, and the unique constraint on
        thesis_selections.student_id catches any concurrent insert that slips
        past it.

        Raises:
            AuthorizationError: If the actor is not a student.
            ThesisNotFoundError: If the thesis does not exist.
            InvalidStateError: If the thesis is not OPEN.
            ConflictError: If the student already holds a selection.
        """
        if actor.role != UserRole.STUDENT:
            raise AuthorizationError("Only students can select theses")

        with transaction(self.db):
            model = load_thesis(self.db, thesis_id)
            if model.status != ThesisStatus.OPEN.value:
                raise InvalidStateError("Thesis is not available for selection")

            (
                self.db.query(UserModel)
                .filter(UserModel.id == actor.user_id)
                .with_for_update()
                .first()
            )
            existing = (
                self.db.query(ThesisSelectionModel)
                .filter(ThesisSelectionModel.student_id == actor.user_id)
                .first()
            )
            if existing:
                raise ConflictError("You have already selected a thesis")

            self.db.add(
                ThesisSelectionModel(
                    thesis_id=thesis_id,
                    student_id=actor.user_id,
                    selected_at=_now(),
                )
            )
            try:
                self.db.flush()
            except IntegrityError:
                raise ConflictError("You have already selected a thesis")
        self.db.refresh(model)
        logger.info("Student %s selected thesis %s", actor.user_id, thesis_id)
        return model_to_thesis(model)

    def unselect_thesis(self, actor: Actor, thesis_id: int) -> None:
        """Withdraw the acting student's selection of a thesis.

        Raises:
            NotFoundError: If no such selection exists.
        """
        with transaction(self.db):
            selection = (
                self.db.query(ThesisSelectionModel)
                .filter(
                    ThesisSelectionModel.thesis_id == thesis_id,
                    ThesisSelectionModel.student_id == actor.user_id,
                )
                .first()
            )
            if selection is None:
                raise NotFoundError("Thesis selection")
            self.db.delete(selection)
        logger.info("Student %s unselected thesis %s", actor.user_id, thesis_id)

    def assign_thesis(self, actor: Actor, thesis_id: int, student_id: int) -> Thesis:
        """Assign a student to a thesis and move it to ASSIGNED.

        The student does not need to have selected the thesis. Once assigned,
        the thesis' selection pool and the student's own selection (wherever
        it is) are cleared. The assignee is set once: only OPEN theses can be
        assigned.

        Raises:
            ThesisNotFoundError: If the thesis does not exist.
            AuthorizationError: If the actor does not own the thesis.
            NotFoundError: If no student with that id exists.
            InvalidStateError: If the thesis is not OPEN.
        """
        with transaction(self.db):
            model = load_thesis(self.db, thesis_id, for_update=True)
            self._require_owner(actor, model, "assign")
            if model.status != ThesisStatus.OPEN.value:
                raise InvalidStateError(f"Cannot assign a {model.status} thesis")

            student = (
                self.db.query(UserModel)
                .filter(UserModel.id == student_id, UserModel.role == UserRole.STUDENT.value)
                .first()
            )
            if student is None:
                raise NotFoundError("Student", student_id)

            model.assigned_to_id = student_id
            model.status = ThesisStatus.ASSIGNED.value
            model.updated_at = _now()

            for selection in list(model.selections):
                self.db.delete(selection)
            self.db.query(ThesisSelectionModel).filter(
                ThesisSelectionModel.student_id == student_id,
                ThesisSelectionModel.thesis_id != thesis_id,
            ).delete(synchronize_session=False)
        self.db.refresh(model)
        logger.info("Thesis %s assigned to student %s", thesis_id, student_id)
        return model_to_thesis(model)

    def attach_student_pdf(self, actor: Actor, thesis_id: int, url: str) -> Thesis:
        """Store the reference to the assigned student's thesis document."""
        with transaction(self.db):
            model = load_thesis(self.db, thesis_id, for_update=True)
            if actor.role != UserRole.STUDENT or model.assigned_to_id != actor.user_id:
                raise AuthorizationError("Only the assigned student can upload the thesis document")
            if model.status != ThesisStatus.ASSIGNED.value:
                raise InvalidStateError("Thesis document can only be uploaded while ASSIGNED")
            model.student_pdf_url = url
            model.updated_at = _now()
        self.db.refresh(model)
        return model_to_thesis(model)

    def cancel_thesis(self, actor: Actor, thesis_id: int) -> Thesis:
        """Administratively move an OPEN or ASSIGNED thesis to CANCELLED.

        Pending invitations and selections are dropped; accepted supervisors
        and any marks already recorded are kept for the record.
        """
        with transaction(self.db):
            model = load_thesis(self.db, thesis_id, for_update=True)
            if actor.role != UserRole.SECRETARY:
                self._require_owner(actor, model, "cancel")
            if model.status in TERMINAL_STATUS_VALUES:
                raise InvalidStateError(f"Thesis is already {model.status}")

            model.status = ThesisStatus.CANCELLED.value
            model.updated_at = _now()
            for selection in list(model.selections):
                self.db.delete(selection)
            self.db.query(SupervisingFacultyModel).filter(
                SupervisingFacultyModel.thesis_id == thesis_id,
                SupervisingFacultyModel.status == InvitationStatus.PENDING.value,
            ).delete(synchronize_session=False)
        self.db.refresh(model)
        logger.info("Thesis %s cancelled by user %s", thesis_id, actor.user_id)
        return model_to_thesis(model)

    def delete_thesis(self, actor: Actor, thesis_id: int) -> None:
        """Delete a thesis together with its selections and invitations.

        Raises:
            ThesisNotFoundError: If the thesis does not exist.
            AuthorizationError: If the actor does not own the thesis.
        """
        with transaction(self.db):
            model = load_thesis(self.db, thesis_id, for_update=True)
            self._require_owner(actor, model, "delete")
            self.db.delete(model)
        logger.info("Thesis %s deleted by faculty %s", thesis_id, actor.user_id)
