"""Authentication routes.

This module handles HTTP endpoints for login and student self-registration,
and resolves bearer tokens into the current user.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from api.errors import to_http_exception
from config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET_KEY
from core.dependencies import UserManagerDep
from core.exceptions import ThesisHubError
from schemas.user import (
    Actor,
    CreateUserRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# HTTP Bearer token security
security = HTTPBearer()


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token carrying the user id and role.

    Args:
        user: The authenticated user.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token string.
    """
    if expires_delta:
        expire = datetime.now(pytz.utc) + expires_delta
    else:
        expire = datetime.now(pytz.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"sub": str(user.id), "role": user.role.value, "exp": expire}
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    """Verify JWT token from Authorization header.

    Args:
        credentials: HTTP Bearer token credentials.

    Returns:
        Decoded token payload.

    Raises:
        HTTPException: If token is invalid or expired.
    """
    token = credentials.credentials
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    if payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    return payload


def get_current_user(
    user_manager: UserManagerDep,
    token_payload: dict = Depends(verify_token),
) -> User:
    """Get current authenticated user.

    Args:
        user_manager: Injected UserManager instance.
        token_payload: Decoded JWT token payload.

    Returns:
        Current User object.

    Raises:
        HTTPException: If the token subject is malformed or the user is gone.
    """
    try:
        user_id = int(token_payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    user = user_manager.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    """The (user id, role) pair domain operations are performed by."""
    return current_user.to_actor()


@router.post("/login", response_model=LoginResponse, summary="Log in")
def login(req: LoginRequest, user_manager: UserManagerDep) -> LoginResponse:
    """Exchange username and password for a bearer token.

    Raises:
        HTTPException: 401 on invalid credentials.
    """
    user = user_manager.authenticate(req.username, req.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    logger.info("User %s logged in", user.username)
    return LoginResponse(token=create_access_token(user), user=user)


@router.post(
    "/register",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register as a student",
)
def register(req: RegisterRequest, user_manager: UserManagerDep) -> LoginResponse:
    """Self-registration. Only student accounts can be created this way.

    Raises:
        HTTPException: 400 on malformed input, 409 if the account exists.
    """
    try:
        user = user_manager.create_user(
            CreateUserRequest(
                username=req.username,
                password=req.password,
                email=req.email,
                full_name=req.full_name,
                role=UserRole.STUDENT,
                student_id=req.student_id,
            )
        )
    except ThesisHubError as exc:
        raise to_http_exception(exc)
    return LoginResponse(token=create_access_token(user), user=user)


@router.get("/me", response_model=User, summary="Current user")
def me(current_user: User = Depends(get_current_user)) -> User:
    return current_user
