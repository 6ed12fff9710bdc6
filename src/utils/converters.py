"""Conversions between SQLAlchemy models and pydantic schemas."""

from models.supervising_faculty import SupervisingFacultyModel
from models.thesis import ThesisModel
from models.user import UserModel
from schemas.supervision import Invitation
from schemas.thesis import SelectedStudent, SupervisorInfo, Thesis
from schemas.user import User


def model_to_user(model: UserModel) -> User:
    return User(
        id=model.id,
        username=model.username,
        email=model.email,
        full_name=model.full_name,
        role=model.role,
        student_id=model.student_id,
        postal_address=model.postal_address,
        mobile_phone=model.mobile_phone,
        landline_phone=model.landline_phone,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def model_to_thesis(model: ThesisModel) -> Thesis:
    selected_by = [
        SelectedStudent(
            id=s.student.id,
            username=s.student.username,
            full_name=s.student.full_name,
            email=s.student.email,
        )
        for s in model.selections
        if s.student is not None
    ]
    supervisors = [
        SupervisorInfo(
            faculty_id=sf.faculty_id,
            status=sf.status,
            slot_index=sf.slot_index,
            invited_by_id=sf.invited_by_id,
            created_at=sf.created_at,
            accepted_at=sf.accepted_at,
        )
        for sf in model.supervising_faculty
    ]
    return Thesis(
        id=model.id,
        title=model.title,
        description=model.description,
        status=model.status,
        faculty_id=model.faculty_id,
        assigned_to_id=model.assigned_to_id,
        pdf_url=model.pdf_url,
        student_pdf_url=model.student_pdf_url,
        main_faculty_mark=model.main_faculty_mark,
        supervisor1_mark=model.supervisor1_mark,
        supervisor2_mark=model.supervisor2_mark,
        final_mark=model.final_mark,
        selected_by=selected_by,
        supervising_faculty=supervisors,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def model_to_invitation(model: SupervisingFacultyModel) -> Invitation:
    return Invitation(
        thesis_id=model.thesis_id,
        thesis_title=model.thesis.title,
        faculty_id=model.faculty_id,
        invited_by_id=model.invited_by_id,
        status=model.status,
        created_at=model.created_at,
    )
