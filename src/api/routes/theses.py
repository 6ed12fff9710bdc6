"""Thesis routes.

Lifecycle, supervisor invitation and grading endpoints. Domain errors raised
by the managers are translated with api.errors.to_http_exception.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from api.errors import to_http_exception
from api.routes.auth import get_current_actor
from core.dependencies import GradingManagerDep, SupervisionManagerDep, ThesisManagerDep
from core.exceptions import ThesisHubError
from schemas.supervision import AcceptInvitationResponse, InviteSupervisorRequest
from schemas.thesis import (
    AssignThesisRequest,
    CreateThesisRequest,
    GradeThesisRequest,
    GradeThesisResponse,
    StudentPdfRequest,
    SupervisorInfo,
    Thesis,
    ThesisStatus,
    UpdateThesisRequest,
)
from schemas.user import Actor

router = APIRouter(prefix="/api/theses", tags=["Thesis"])


@router.get("", response_model=List[Thesis], summary="List theses")
def list_theses(
    thesis_manager: ThesisManagerDep,
    status_filter: Optional[ThesisStatus] = Query(default=None, alias="status"),
    faculty_id: Optional[int] = None,
    assigned_to_id: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
) -> List[Thesis]:
    return thesis_manager.list_theses(
        status=status_filter,
        faculty_id=faculty_id,
        assigned_to_id=assigned_to_id,
    )


@router.post("", response_model=Thesis, status_code=status.HTTP_201_CREATED, summary="Create thesis")
def create_thesis(
    req: CreateThesisRequest,
    thesis_manager: ThesisManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> Thesis:
    try:
        return thesis_manager.create_thesis(actor, req.title, req.description, req.pdf_url)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.get("/{thesis_id}", response_model=Thesis, summary="Get thesis")
def get_thesis(
    thesis_id: int,
    thesis_manager: ThesisManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> Thesis:
    try:
        return thesis_manager.get_thesis(thesis_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.put("/{thesis_id}", response_model=Thesis, summary="Update thesis")
def update_thesis(
    thesis_id: int,
    req: UpdateThesisRequest,
    thesis_manager: ThesisManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> Thesis:
    try:
        return thesis_manager.update_thesis(
            actor, thesis_id, req.title, req.description, req.pdf_url
        )
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.delete("/{thesis_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete thesis")
def delete_thesis(
    thesis_id: int,
    thesis_manager: ThesisManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> Response:
    try:
        thesis_manager.delete_thesis(actor, thesis_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{thesis_id}/select", response_model=Thesis, summary="Select thesis")
def select_thesis(
    thesis_id: int,
    thesis_manager: ThesisManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> Thesis:
    try:
        return thesis_manager.select_thesis(actor, thesis_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.post("/{thesis_id}/unselect", summary="Unselect thesis")
def unselect_thesis(
    thesis_id: int,
    thesis_manager: ThesisManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> dict:
    try:
        thesis_manager.unselect_thesis(actor, thesis_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)
    return {"message": "Thesis unselected successfully"}


@router.post("/{thesis_id}/assign", response_model=Thesis, summary="Assign thesis to a student")
def assign_thesis(
    thesis_id: int,
    req: AssignThesisRequest,
    thesis_manager: ThesisManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> Thesis:
    try:
        return thesis_manager.assign_thesis(actor, thesis_id, req.student_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.post("/{thesis_id}/cancel", response_model=Thesis, summary="Cancel thesis")
def cancel_thesis(
    thesis_id: int,
    thesis_manager: ThesisManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> Thesis:
    try:
        return thesis_manager.cancel_thesis(actor, thesis_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.post("/{thesis_id}/student-pdf", response_model=Thesis, summary="Attach student thesis document")
def attach_student_pdf(
    thesis_id: int,
    req: StudentPdfRequest,
    thesis_manager: ThesisManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> Thesis:
    try:
        return thesis_manager.attach_student_pdf(actor, thesis_id, req.url)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.post(
    "/{thesis_id}/invite-supervisor",
    response_model=SupervisorInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a co-supervisor",
)
def invite_supervisor(
    thesis_id: int,
    req: InviteSupervisorRequest,
    supervision_manager: SupervisionManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> SupervisorInfo:
    try:
        return supervision_manager.invite_supervisor(actor, thesis_id, req.faculty_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.get("/{thesis_id}/supervisors", response_model=List[SupervisorInfo], summary="List invitations")
def list_supervisors(
    thesis_id: int,
    supervision_manager: SupervisionManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> List[SupervisorInfo]:
    try:
        return supervision_manager.list_invitations(thesis_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.post(
    "/{thesis_id}/invitation/accept",
    response_model=AcceptInvitationResponse,
    summary="Accept a supervision invitation",
)
def accept_invitation(
    thesis_id: int,
    supervision_manager: SupervisionManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> AcceptInvitationResponse:
    try:
        position = supervision_manager.accept_invitation(actor, thesis_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)
    return AcceptInvitationResponse(thesis_id=thesis_id, position=position)


@router.post("/{thesis_id}/invitation/reject", summary="Reject a supervision invitation")
def reject_invitation(
    thesis_id: int,
    supervision_manager: SupervisionManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> dict:
    try:
        supervision_manager.reject_invitation(actor, thesis_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)
    return {"message": "Invitation rejected"}


@router.post("/{thesis_id}/grade", response_model=GradeThesisResponse, summary="Grade thesis")
def grade_thesis(
    thesis_id: int,
    req: GradeThesisRequest,
    grading_manager: GradingManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> GradeThesisResponse:
    try:
        return grading_manager.grade_thesis(actor, thesis_id, req.mark)
    except ThesisHubError as exc:
        raise to_http_exception(exc)
