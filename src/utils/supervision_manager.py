"""Supervisor invitation protocol.

A thesis admits at most MAX_SUPERVISORS accepted co-supervisors. Invitations
are accepted first come, first served: each acceptance is given the lowest
free slot (1 or 2) and that slot decides which supervisor mark field the
faculty member grades into. Once the last slot is taken, every invitation
still pending for the thesis is deleted.

Rows only ever hold PENDING or ACCEPTED. Rejecting an invitation deletes it.
"""

import logging
from datetime import datetime
from typing import List

import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from config import MAX_SUPERVISORS
from core.database import transaction
from core.exceptions import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from models.supervising_faculty import SupervisingFacultyModel
from models.user import UserModel
from schemas.supervision import Invitation, InvitationStatus
from schemas.thesis import TERMINAL_STATUS_VALUES, SupervisorInfo
from schemas.user import Actor, UserRole
from utils.converters import model_to_invitation
from utils.thesis_manager import load_thesis

logger = logging.getLogger(__name__)


def accepted_supervisors(db: Session, thesis_id: int) -> List[SupervisingFacultyModel]:
    """Accepted invitations of a thesis in slot order."""
    return (
        db.query(SupervisingFacultyModel)
        .filter(
            SupervisingFacultyModel.thesis_id == thesis_id,
            SupervisingFacultyModel.status == InvitationStatus.ACCEPTED.value,
        )
        .order_by(SupervisingFacultyModel.slot_index)
        .all()
    )


def purge_pending(db: Session, thesis_id: int) -> int:
    """Delete every pending invitation of a thesis; returns how many."""
    return (
        db.query(SupervisingFacultyModel)
        .filter(
            SupervisingFacultyModel.thesis_id == thesis_id,
            SupervisingFacultyModel.status == InvitationStatus.PENDING.value,
        )
        .delete(synchronize_session=False)
    )


class InvitationNotFoundError(NotFoundError):
    """Exception raised when no pending invitation exists."""

    def __init__(self, thesis_id, faculty_id):
        self.thesis_id = thesis_id
        self.faculty_id = faculty_id
        super().__init__("Pending invitation", f"{thesis_id}/{faculty_id}")


class SlotTakenError(ConflictError):
    """Exception raised when a concurrent acceptance claimed the same slot."""

    def __init__(self, thesis_id, slot_index):
        self.thesis_id = thesis_id
        self.slot_index = slot_index
        super().__init__(f"Supervisor slot {slot_index} of thesis {thesis_id} was just taken")


class SupervisionManager:
    """Manages co-supervisor invitations."""

    def __init__(self, db: Session):
        self.db = db

    def _get_pending(self, thesis_id: int, faculty_id: int) -> SupervisingFacultyModel:
        invitation = (
            self.db.query(SupervisingFacultyModel)
            .filter(
                SupervisingFacultyModel.thesis_id == thesis_id,
                SupervisingFacultyModel.faculty_id == faculty_id,
                SupervisingFacultyModel.status == InvitationStatus.PENDING.value,
            )
            .first()
        )
        if invitation is None:
            raise InvitationNotFoundError(thesis_id, faculty_id)
        return invitation

    def invite_supervisor(self, actor: Actor, thesis_id: int, faculty_id: int) -> SupervisorInfo:
        """Invite a faculty member to co-supervise a thesis.

        Both the assigned student and the owning faculty member may invite.

        Args:
            actor: The inviter.
            thesis_id: Thesis to be co-supervised.
            faculty_id: The invited faculty member.

        Returns:
            The new PENDING invitation.

        Raises:
            ThesisNotFoundError: If the thesis does not exist.
            AuthorizationError: If the actor is neither the assigned student
                nor the owner.
            InvalidStateError: If the thesis is COMPLETED or CANCELLED.
            ValidationError: If the target is not a faculty member or is the
                owner.
            ConflictError: If the target already has an invitation.
            CapacityError: If the thesis already has two supervisors.
        """
        now = datetime.now(pytz.utc).isoformat()
        with transaction(self.db):
            thesis = load_thesis(self.db, thesis_id, for_update=True)

            is_owner = actor.role == UserRole.FACULTY and thesis.faculty_id == actor.user_id
            is_assignee = (
                actor.role == UserRole.STUDENT and thesis.assigned_to_id == actor.user_id
            )
            if not (is_owner or is_assignee):
                raise AuthorizationError(
                    "Only the assigned student or the owning faculty member can invite supervisors"
                )
            if thesis.status in TERMINAL_STATUS_VALUES:
                raise InvalidStateError(f"Cannot invite supervisors to a {thesis.status} thesis")

            target = self.db.get(UserModel, faculty_id)
            if target is None or target.role != UserRole.FACULTY.value:
                raise ValidationError("Invited user must be a faculty member")
            if faculty_id == thesis.faculty_id:
                raise ValidationError("The main faculty member cannot be invited as a supervisor")

            existing = (
                self.db.query(SupervisingFacultyModel)
                .filter(
                    SupervisingFacultyModel.thesis_id == thesis_id,
                    SupervisingFacultyModel.faculty_id == faculty_id,
                )
                .first()
            )
            if existing:
                raise ConflictError("Faculty member has already been invited")

            if len(accepted_supervisors(self.db, thesis_id)) >= MAX_SUPERVISORS:
                raise CapacityError(f"Thesis already has {MAX_SUPERVISORS} supervisors")

            invitation = SupervisingFacultyModel(
                thesis_id=thesis_id,
                faculty_id=faculty_id,
                invited_by_id=actor.user_id,
                status=InvitationStatus.PENDING.value,
                created_at=now,
            )
            self.db.add(invitation)
            try:
                self.db.flush()
            except IntegrityError:
                raise ConflictError("Faculty member has already been invited")
        logger.info(
            "User %s invited faculty %s to supervise thesis %s",
            actor.user_id,
            faculty_id,
            thesis_id,
        )
        return SupervisorInfo(
            faculty_id=faculty_id,
            status=InvitationStatus.PENDING.value,
            invited_by_id=actor.user_id,
            created_at=now,
        )

    def accept_invitation(self, actor: Actor, thesis_id: int) -> int:
        """Accept a pending invitation on a first-come basis.

        The acceptance takes the lowest supervisor slot no accepted
        invitation holds, so a slot freed by a deleted account is reused.
        The thesis row is locked while the slot is chosen and written. Where
        the backend ignores row locks, the unique (thesis_id, slot_index)
        constraint picks a single winner; the loser is rolled back and may
        re-issue the request. An acceptance that finds no free slot deletes
        the invitation.

        Returns:
            The supervisor slot taken (1 or 2), which decides the mark field
            the faculty member grades into.

        Raises:
            InvitationNotFoundError: If no pending invitation exists.
            InvalidStateError: If the thesis is COMPLETED or CANCELLED.
            CapacityError: If the thesis already has two supervisors.
            SlotTakenError: If a concurrent acceptance claimed the same slot.
        """
        try:
            with transaction(self.db):
                thesis = load_thesis(self.db, thesis_id, for_update=True)
                invitation = self._get_pending(thesis_id, actor.user_id)
                if thesis.status in TERMINAL_STATUS_VALUES:
                    raise InvalidStateError(f"Thesis is already {thesis.status}")

                taken = {row.slot_index for row in accepted_supervisors(self.db, thesis_id)}
                free = [s for s in range(1, MAX_SUPERVISORS + 1) if s not in taken]
                if not free:
                    raise CapacityError(f"Thesis already has {MAX_SUPERVISORS} supervisors")

                slot = free[0]
                invitation.status = InvitationStatus.ACCEPTED.value
                invitation.accepted_at = datetime.now(pytz.utc).isoformat()
                invitation.slot_index = slot
                try:
                    self.db.flush()
                except (IntegrityError, StaleDataError):
                    # Slot claimed, or invitation purged, by a concurrent acceptance
                    raise SlotTakenError(thesis_id, slot)

                purged = 0
                if len(taken) + 1 >= MAX_SUPERVISORS:
                    purged = purge_pending(self.db, thesis_id)
        except CapacityError:
            self._discard(thesis_id, actor.user_id)
            raise
        except SlotTakenError:
            logger.info("Faculty %s lost a slot race on thesis %s", actor.user_id, thesis_id)
            raise

        logger.info(
            "Faculty %s accepted supervision of thesis %s (slot %d)",
            actor.user_id,
            thesis_id,
            slot,
        )
        if purged:
            logger.info("Auto-rejected %d pending invitations for thesis %s", purged, thesis_id)
        return slot

    def _discard(self, thesis_id: int, faculty_id: int) -> None:
        with transaction(self.db):
            self.db.query(SupervisingFacultyModel).filter(
                SupervisingFacultyModel.thesis_id == thesis_id,
                SupervisingFacultyModel.faculty_id == faculty_id,
                SupervisingFacultyModel.status == InvitationStatus.PENDING.value,
            ).delete(synchronize_session=False)
        logger.warning(
            "Invitation of faculty %s for thesis %s removed: supervisor cap reached",
            faculty_id,
            thesis_id,
        )

    def reject_invitation(self, actor: Actor, thesis_id: int) -> None:
        """Decline a pending invitation; the record is deleted.

        Raises:
            InvitationNotFoundError: If no pending invitation exists.
        """
        with transaction(self.db):
            invitation = self._get_pending(thesis_id, actor.user_id)
            self.db.delete(invitation)
        logger.info("Faculty %s rejected supervision of thesis %s", actor.user_id, thesis_id)

    def list_invitations(self, thesis_id: int) -> List[SupervisorInfo]:
        load_thesis(self.db, thesis_id)
        models = (
            self.db.query(SupervisingFacultyModel)
            .filter(SupervisingFacultyModel.thesis_id == thesis_id)
            .order_by(SupervisingFacultyModel.id)
            .all()
        )
        return [
            SupervisorInfo(
                faculty_id=m.faculty_id,
                status=m.status,
                slot_index=m.slot_index,
                invited_by_id=m.invited_by_id,
                created_at=m.created_at,
                accepted_at=m.accepted_at,
            )
            for m in models
        ]

    def list_pending_for_faculty(self, faculty_id: int) -> List[Invitation]:
        """Pending invitations addressed to one faculty member."""
        models = (
            self.db.query(SupervisingFacultyModel)
            .filter(
                SupervisingFacultyModel.faculty_id == faculty_id,
                SupervisingFacultyModel.status == InvitationStatus.PENDING.value,
            )
            .order_by(SupervisingFacultyModel.created_at)
            .all()
        )
        return [model_to_invitation(m) for m in models]
