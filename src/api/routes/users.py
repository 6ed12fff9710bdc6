"""User administration routes.

Secretaries create and delete accounts; every authenticated user may list
users and manage their own profile.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.errors import to_http_exception
from api.routes.auth import get_current_user
from core.dependencies import UserManagerDep
from core.exceptions import ThesisHubError
from schemas.user import (
    BulkCreateUsersResponse,
    CreateUserRequest,
    UpdateProfileRequest,
    User,
    UserRole,
)

router = APIRouter(prefix="/api/users", tags=["User"])


def _require_secretary(current_user: User, action: str) -> None:
    if current_user.role != UserRole.SECRETARY:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only secretaries can {action} users",
        )


@router.get("", response_model=List[User], summary="List users")
def list_users(
    user_manager: UserManagerDep,
    role: Optional[UserRole] = None,
    current_user: User = Depends(get_current_user),
) -> List[User]:
    return user_manager.list_users(role)


# Must be registered before /{user_id}
@router.get("/profile", response_model=User, summary="Get own profile")
def get_profile(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.put("/profile", response_model=User, summary="Update own profile")
def update_profile(
    req: UpdateProfileRequest,
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> User:
    """Update the current user's profile.

    Raises:
        HTTPException: 400 on malformed email, 409 if email or student id is
            taken by someone else.
    """
    try:
        return user_manager.update_profile(current_user.id, req)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.get("/{user_id}", response_model=User, summary="Get user")
def get_user(
    user_id: int,
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> User:
    user = user_manager.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED, summary="Create user")
def create_user(
    req: CreateUserRequest,
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> User:
    _require_secretary(current_user, "create")
    try:
        return user_manager.create_user(req)
    except ThesisHubError as exc:
        raise to_http_exception(exc)


@router.post(
    "/bulk",
    response_model=BulkCreateUsersResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create users in bulk",
)
def bulk_create_users(
    req: List[CreateUserRequest],
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> BulkCreateUsersResponse:
    """Create up to MAX_BULK_USERS accounts atomically.

    Raises:
        HTTPException: 403 for non-secretaries, 400 on validation failures,
            409 if any account already exists.
    """
    _require_secretary(current_user, "create")
    try:
        users = user_manager.bulk_create_users(req)
    except ThesisHubError as exc:
        raise to_http_exception(exc)
    return BulkCreateUsersResponse(
        message=f"Successfully created {len(users)} users",
        data=users,
    )


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete user")
def delete_user(
    user_id: int,
    user_manager: UserManagerDep,
    current_user: User = Depends(get_current_user),
) -> Response:
    _require_secretary(current_user, "delete")
    try:
        user_manager.delete_user(user_id)
    except ThesisHubError as exc:
        raise to_http_exception(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
