"""User schema definitions.

This module defines User, Actor and the request/response models used by the
authentication and account administration endpoints.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    STUDENT = "STUDENT"
    FACULTY = "FACULTY"
    SECRETARY = "SECRETARY"


class Actor(BaseModel):
    """The (actor id, role) pair every domain operation is performed by."""

    user_id: int
    role: UserRole


class User(BaseModel):
    """Public view of a user account (never carries the password hash)."""

    id: int
    username: str
    email: str
    full_name: str
    role: UserRole
    student_id: Optional[str] = None
    postal_address: Optional[str] = None
    mobile_phone: Optional[str] = None
    landline_phone: Optional[str] = None
    created_at: str
    updated_at: str

    def to_actor(self) -> Actor:
        return Actor(user_id=self.id, role=self.role)


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: User


class RegisterRequest(BaseModel):
    """Self-registration; always creates a STUDENT account."""

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    email: str
    full_name: str = Field(min_length=1)
    student_id: Optional[str] = None


class CreateUserRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    email: str
    full_name: str = Field(min_length=1)
    role: UserRole
    student_id: Optional[str] = None
    postal_address: Optional[str] = None
    mobile_phone: Optional[str] = None
    landline_phone: Optional[str] = None


class BulkCreateUsersResponse(BaseModel):
    message: str
    data: List[User]


class UpdateProfileRequest(BaseModel):
    full_name: str = Field(min_length=1)
    email: str
    student_id: Optional[str] = None
    postal_address: Optional[str] = None
    mobile_phone: Optional[str] = None
    landline_phone: Optional[str] = None
