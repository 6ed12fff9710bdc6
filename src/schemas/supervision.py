"""Supervisor invitation schema definitions."""

from enum import Enum

from pydantic import BaseModel


class InvitationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"


class InviteSupervisorRequest(BaseModel):
    faculty_id: int


class Invitation(BaseModel):
    thesis_id: int
    thesis_title: str
    faculty_id: int
    invited_by_id: int
    status: str
    created_at: str


class AcceptInvitationResponse(BaseModel):
    thesis_id: int
    position: int
