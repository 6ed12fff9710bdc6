"""Thesis schema definitions."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ThesisStatus(str, Enum):
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = (ThesisStatus.COMPLETED, ThesisStatus.CANCELLED)

# Stored column values of the terminal statuses
TERMINAL_STATUS_VALUES = frozenset(s.value for s in TERMINAL_STATUSES)


class SelectedStudent(BaseModel):
    id: int
    username: str
    full_name: str
    email: str


class SupervisorInfo(BaseModel):
    faculty_id: int
    status: str
    slot_index: Optional[int] = None
    invited_by_id: int
    created_at: str
    accepted_at: Optional[str] = None


class Thesis(BaseModel):
    id: int
    title: str
    description: str
    status: ThesisStatus
    faculty_id: int
    assigned_to_id: Optional[int] = None
    pdf_url: Optional[str] = None
    student_pdf_url: Optional[str] = None
    main_faculty_mark: Optional[float] = None
    supervisor1_mark: Optional[float] = None
    supervisor2_mark: Optional[float] = None
    final_mark: Optional[float] = None
    selected_by: List[SelectedStudent] = Field(default_factory=list)
    supervising_faculty: List[SupervisorInfo] = Field(default_factory=list)
    created_at: str
    updated_at: str


class CreateThesisRequest(BaseModel):
    title: str
    description: str
    pdf_url: Optional[str] = None


class UpdateThesisRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    pdf_url: Optional[str] = None


class AssignThesisRequest(BaseModel):
    student_id: int


class StudentPdfRequest(BaseModel):
    url: str = Field(min_length=1)


class GradeThesisRequest(BaseModel):
    mark: float


class GradeThesisResponse(BaseModel):
    slot: str
    completed: bool
    final_mark: Optional[float] = None
    thesis: Thesis
