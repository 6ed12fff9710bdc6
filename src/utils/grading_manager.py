"""Grade aggregation.

Each grader owns exactly one mark field on the thesis: the main faculty member
grades into main_faculty_mark, and accepted supervisors grade into the field
matching the slot they were given at acceptance. A thesis completes once the
main faculty member and every currently accepted supervisor have graded; the
final mark is the arithmetic mean of those marks. Only slots held by an
accepted invitation count, whichever of the two they are.
"""

import logging
import math
from datetime import datetime
from typing import List, Optional, Sequence

import pytz
from sqlalchemy.orm import Session

from config import MARK_MAX, MARK_MIN, MAX_SUPERVISORS
from core.database import transaction
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    ValidationError,
)
from models.supervising_faculty import SupervisingFacultyModel
from models.thesis import ThesisModel
from schemas.supervision import InvitationStatus
from schemas.thesis import GradeThesisResponse, ThesisStatus
from schemas.user import Actor, UserRole
from utils.converters import model_to_thesis
from utils.supervision_manager import accepted_supervisors, purge_pending
from utils.thesis_manager import load_thesis

logger = logging.getLogger(__name__)

MAIN_SLOT = "main"

# Grading slot name -> thesis column
SLOT_FIELDS = {
    MAIN_SLOT: "main_faculty_mark",
    "supervisor1": "supervisor1_mark",
    "supervisor2": "supervisor2_mark",
}


def supervisor_slot(slot_index: int) -> str:
    return f"supervisor{slot_index}"


def evaluate_completion(
    main_mark: Optional[float],
    supervisor_marks: Sequence[Optional[float]],
) -> Optional[float]:
    """Return the final mark if grading is complete, otherwise None.

    supervisor_marks holds the mark field of every slot an accepted
    supervisor currently occupies. With two accepted supervisors all three
    marks are required; with one, the main mark and that supervisor's mark.
    A thesis without accepted supervisors has no completion rule and never
    completes through grading.
    """
    if not supervisor_marks:
        return None
    marks = [main_mark, *supervisor_marks]
    if any(m is None for m in marks):
        return None
    return sum(marks) / len(marks)


def held_slot_marks(
    thesis: ThesisModel, supervisors: List[SupervisingFacultyModel]
) -> List[Optional[float]]:
    """Marks of the slots held by the given accepted invitations."""
    return [getattr(thesis, SLOT_FIELDS[supervisor_slot(s.slot_index)]) for s in supervisors]


def complete_if_graded(db: Session, thesis: ThesisModel) -> Optional[float]:
    """Move an ASSIGNED thesis to COMPLETED once every held slot has a mark.

    Returns the final mark when the thesis completed, otherwise None. Pending
    invitations of a completed thesis are purged.
    """
    supervisors = accepted_supervisors(db, thesis.id)
    final_mark = evaluate_completion(
        thesis.main_faculty_mark,
        held_slot_marks(thesis, supervisors),
    )
    if final_mark is not None:
        thesis.status = ThesisStatus.COMPLETED.value
        thesis.final_mark = final_mark
        purge_pending(db, thesis.id)
    return final_mark


class GradingManager:
    """Records marks and completes theses."""

    def __init__(self, db: Session):
        self.db = db

    def _resolve_slot(self, actor: Actor, thesis: ThesisModel) -> str:
        if actor.role != UserRole.FACULTY:
            raise AuthorizationError("Not permitted to grade this thesis")
        if thesis.faculty_id == actor.user_id:
            return MAIN_SLOT

        invitation = (
            self.db.query(SupervisingFacultyModel)
            .filter(
                SupervisingFacultyModel.thesis_id == thesis.id,
                SupervisingFacultyModel.faculty_id == actor.user_id,
                SupervisingFacultyModel.status == InvitationStatus.ACCEPTED.value,
            )
            .first()
        )
        if (
            invitation is None
            or invitation.slot_index is None
            or not 1 <= invitation.slot_index <= MAX_SUPERVISORS
        ):
            raise AuthorizationError("Not permitted to grade this thesis")
        return supervisor_slot(invitation.slot_index)

    def grade_thesis(self, actor: Actor, thesis_id: int, mark: float) -> GradeThesisResponse:
        """Record one grader's mark and complete the thesis when possible.

        Args:
            actor: The grading faculty member.
            thesis_id: Thesis being graded.
            mark: Mark in [MARK_MIN, MARK_MAX].

        Returns:
            The slot graded, whether the thesis completed and the final mark.

        Raises:
            ValidationError: If the mark is out of range.
            ThesisNotFoundError: If the thesis does not exist.
            AuthorizationError: If the actor holds no grading slot.
            ConflictError: If the actor's slot already holds a mark.
            InvalidStateError: If the thesis is not ASSIGNED.
        """
        if mark is None or math.isnan(mark) or not MARK_MIN <= mark <= MARK_MAX:
            raise ValidationError(f"Mark must be between {MARK_MIN:g} and {MARK_MAX:g}")

        with transaction(self.db):
            thesis = load_thesis(self.db, thesis_id, for_update=True)
            slot = self._resolve_slot(actor, thesis)
            field = SLOT_FIELDS[slot]

            if getattr(thesis, field) is not None:
                raise ConflictError("You have already graded this thesis")
            if thesis.status != ThesisStatus.ASSIGNED.value:
                raise InvalidStateError(f"Cannot grade a thesis that is {thesis.status}")

            column = getattr(ThesisModel, field)
            updated = (
                self.db.query(ThesisModel)
                .filter(ThesisModel.id == thesis_id, column.is_(None))
                .update(
                    {column: mark, ThesisModel.updated_at: datetime.now(pytz.utc).isoformat()},
                    synchronize_session=False,
                )
            )
            if updated == 0:
                raise ConflictError("You have already graded this thesis")
            self.db.refresh(thesis)

            final_mark = complete_if_graded(self.db, thesis)

        self.db.refresh(thesis)
        logger.info("Faculty %s graded thesis %s (%s): %s", actor.user_id, thesis_id, slot, mark)
        if final_mark is not None:
            logger.info("Thesis %s completed with final mark %.2f", thesis_id, final_mark)
        elif not accepted_supervisors(self.db, thesis_id):
            logger.warning(
                "Thesis %s has no accepted supervisors and cannot complete through grading",
                thesis_id,
            )
        return GradeThesisResponse(
            slot=slot,
            completed=final_mark is not None,
            final_mark=final_mark,
            thesis=model_to_thesis(thesis),
        )
