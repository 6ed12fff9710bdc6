"""Invitation inbox routes for faculty members."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from api.routes.auth import get_current_actor
from core.dependencies import SupervisionManagerDep
from schemas.supervision import Invitation
from schemas.user import Actor, UserRole

router = APIRouter(prefix="/api/invitations", tags=["Invitation"])


@router.get("", response_model=List[Invitation], summary="Pending supervision invitations")
def list_my_invitations(
    supervision_manager: SupervisionManagerDep,
    actor: Actor = Depends(get_current_actor),
) -> List[Invitation]:
    if actor.role != UserRole.FACULTY:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only faculty members receive supervision invitations.",
        )
    return supervision_manager.list_pending_for_faculty(actor.user_id)
