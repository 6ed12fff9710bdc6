"""User management utilities.

This module provides account administration: user storage, password hashing,
authentication, bulk import and cascading deletion.
"""

import logging
import re
from datetime import datetime
from typing import Iterable, List, Optional

import bcrypt
import pytz
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import BCRYPT_ROUNDS, MAX_BULK_USERS
from core.database import transaction
from core.exceptions import ConflictError, NotFoundError, ValidationError
from models.supervising_faculty import SupervisingFacultyModel
from models.thesis import ThesisModel
from models.thesis_selection import ThesisSelectionModel
from models.user import UserModel
from schemas.supervision import InvitationStatus
from schemas.thesis import ThesisStatus
from schemas.user import CreateUserRequest, UpdateProfileRequest, User, UserRole
from utils.converters import model_to_user
from utils.grading_manager import SLOT_FIELDS, complete_if_graded, supervisor_slot

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class UserNotFoundError(NotFoundError):
    """Exception raised when a user is not found."""

    def __init__(self, user_id):
        super().__init__("User", user_id)


class UserAlreadyExistsError(ConflictError):
    """Exception raised when trying to create a user that already exists."""

    pass


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        # bcrypt only looks at the first 72 bytes
        password_bytes = password.encode("utf-8")[:72]
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            plain_password: Plain text password to verify.
            hashed_password: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8")[:72],
                hashed_password.encode("utf-8"),
            )
        except ValueError as e:
            logger.error("Password verification error: %s", e)
            return False

    def _validate(self, req: CreateUserRequest) -> None:
        if not EMAIL_PATTERN.match(req.email):
            raise ValidationError(f"Invalid email format: {req.email}")

    def _ensure_unique(self, usernames: Iterable[str], emails: Iterable[str]) -> None:
        existing = (
            self.db.query(UserModel)
            .filter(
                or_(
                    UserModel.username.in_(list(usernames)),
                    UserModel.email.in_(list(emails)),
                )
            )
            .all()
        )
        if existing:
            taken = ", ".join(sorted({m.username for m in existing}))
            raise UserAlreadyExistsError(f"Username or email already registered: {taken}")

    def _build_model(self, req: CreateUserRequest) -> UserModel:
        now = datetime.now(pytz.utc).isoformat()
        return UserModel(
            username=req.username,
            email=req.email,
            full_name=req.full_name,
            password_hash=self.hash_password(req.password),
            role=req.role.value,
            student_id=req.student_id or None,
            postal_address=req.postal_address or None,
            mobile_phone=req.mobile_phone or None,
            landline_phone=req.landline_phone or None,
            created_at=now,
            updated_at=now,
        )

    def create_user(self, req: CreateUserRequest) -> User:
        """Create a new user.

        Args:
            req: Account data including the plain text password.

        Returns:
            Created User object.

        Raises:
            ValidationError: If the email is malformed.
            UserAlreadyExistsError: If username, email or student id is taken.
        """
        self._validate(req)
        with transaction(self.db):
            self._ensure_unique([req.username], [req.email])
            model = self._build_model(req)
            self.db.add(model)
            try:
                self.db.flush()
            except IntegrityError:
                raise UserAlreadyExistsError(
                    f"User '{req.username}' conflicts with an existing account"
                )
        self.db.refresh(model)
        logger.info("Created user: %s (role: %s)", model.username, model.role)
        return model_to_user(model)

    def bulk_create_users(self, requests: List[CreateUserRequest]) -> List[User]:
        """Create many users in a single transaction; all or nothing.

        Raises:
            ValidationError: On an empty or oversized batch, malformed emails
                or duplicates inside the batch.
            UserAlreadyExistsError: If any username or email is taken.
        """
        if not requests:
            raise ValidationError("Users array cannot be empty")
        if len(requests) > MAX_BULK_USERS:
            raise ValidationError(f"Cannot create more than {MAX_BULK_USERS} users at once")

        errors = []
        for index, req in enumerate(requests):
            if not EMAIL_PATTERN.match(req.email):
                errors.append(f"[{index}] invalid email format")
        if errors:
            raise ValidationError("Validation failed: " + "; ".join(errors))

        usernames = [r.username for r in requests]
        emails = [r.email for r in requests]
        dup_usernames = sorted({u for u in usernames if usernames.count(u) > 1})
        dup_emails = sorted({e for e in emails if emails.count(e) > 1})
        if dup_usernames:
            raise ValidationError(f"Duplicate usernames: {', '.join(dup_usernames)}")
        if dup_emails:
            raise ValidationError(f"Duplicate emails: {', '.join(dup_emails)}")

        with transaction(self.db):
            self._ensure_unique(usernames, emails)
            models = [self._build_model(req) for req in requests]
            self.db.add_all(models)
            try:
                self.db.flush()
            except IntegrityError:
                raise UserAlreadyExistsError("Batch conflicts with existing accounts")
        logger.info("Bulk created %d users", len(models))
        return [model_to_user(m) for m in models]

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user if the credentials are valid, otherwise None."""
        model = self.db.query(UserModel).filter(UserModel.username == username).first()
        if model is None or not self.verify_password(password, model.password_hash):
            logger.warning("Failed login attempt for username: %s", username)
            return None
        return model_to_user(model)

    def get_user(self, user_id: int) -> Optional[User]:
        model = self.db.get(UserModel, user_id)
        if model:
            return model_to_user(model)
        return None

    def get_user_by_username(self, username: str) -> Optional[User]:
        model = self.db.query(UserModel).filter(UserModel.username == username).first()
        if model:
            return model_to_user(model)
        return None

    def list_users(self, role: Optional[UserRole] = None) -> List[User]:
        """List users, optionally restricted to one role."""
        query = self.db.query(UserModel)
        if role is not None:
            query = query.filter(UserModel.role == role.value)
        return [model_to_user(m) for m in query.order_by(UserModel.id).all()]

    def update_profile(self, user_id: int, req: UpdateProfileRequest) -> User:
        """Update the editable profile fields of a user.

        Raises:
            UserNotFoundError: If the user does not exist.
            ValidationError: If the email is malformed.
            ConflictError: If email or student id belongs to another user.
        """
        if not EMAIL_PATTERN.match(req.email):
            raise ValidationError("Invalid email format")

        with transaction(self.db):
            model = self.db.get(UserModel, user_id)
            if model is None:
                raise UserNotFoundError(user_id)

            clash = (
                self.db.query(UserModel)
                .filter(UserModel.email == req.email, UserModel.id != user_id)
                .first()
            )
            if clash:
                raise ConflictError("Email is already taken by another user")
            if req.student_id:
                clash = (
                    self.db.query(UserModel)
                    .filter(UserModel.student_id == req.student_id, UserModel.id != user_id)
                    .first()
                )
                if clash:
                    raise ConflictError("Student ID is already taken by another user")

            model.full_name = req.full_name
            model.email = req.email
            model.student_id = req.student_id or None
            model.postal_address = req.postal_address or None
            model.mobile_phone = req.mobile_phone or None
            model.landline_phone = req.landline_phone or None
            model.updated_at = datetime.now(pytz.utc).isoformat()
        self.db.refresh(model)
        return model_to_user(model)

    def delete_user(self, user_id: int) -> None:
        """Delete a user and everything that references them.

        Marks the user recorded as an accepted supervisor on theses that are
        still ASSIGNED are cleared so the freed slot can be taken again.
        Invitations where the user is the invitee or the inviter, the user's
        selection, theses they own and theses assigned to them are removed in
        the same transaction.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        with transaction(self.db):
            model = self.db.get(UserModel, user_id)
            if model is None:
                raise UserNotFoundError(user_id)

            # A departed supervisor's slot is freed on theses still being graded
            supervised = (
                self.db.query(SupervisingFacultyModel)
                .filter(
                    SupervisingFacultyModel.faculty_id == user_id,
                    SupervisingFacultyModel.status == InvitationStatus.ACCEPTED.value,
                )
                .all()
            )
            in_progress = []
            for row in supervised:
                thesis = self.db.get(ThesisModel, row.thesis_id)
                if thesis is not None and thesis.status == ThesisStatus.ASSIGNED.value:
                    setattr(thesis, SLOT_FIELDS[supervisor_slot(row.slot_index)], None)
                    in_progress.append(thesis)

            self.db.query(SupervisingFacultyModel).filter(
                or_(
                    SupervisingFacultyModel.faculty_id == user_id,
                    SupervisingFacultyModel.invited_by_id == user_id,
                )
            ).delete(synchronize_session=False)
            self.db.query(ThesisSelectionModel).filter(
                ThesisSelectionModel.student_id == user_id
            ).delete(synchronize_session=False)

            # The remaining graders may already have submitted every mark
            for thesis in in_progress:
                if complete_if_graded(self.db, thesis) is not None:
                    logger.info(
                        "Thesis %s completed after supervisor %s was removed",
                        thesis.id,
                        user_id,
                    )

            # ORM delete so selections and invitations cascade with each thesis
            theses = (
                self.db.query(ThesisModel)
                .filter(
                    or_(
                        ThesisModel.faculty_id == user_id,
                        ThesisModel.assigned_to_id == user_id,
                    )
                )
                .all()
            )
            for thesis in theses:
                self.db.delete(thesis)

            self.db.delete(model)
        logger.info("Deleted user %s and %d related theses", user_id, len(theses))
