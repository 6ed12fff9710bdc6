"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes. Every
manager is constructed per request around the request-scoped DB session.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from utils import grading_manager
from utils import supervision_manager
from utils import thesis_manager
from utils import user_manager


def get_user_manager(db: Session = Depends(get_db)) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_thesis_manager(db: Session = Depends(get_db)) -> thesis_manager.ThesisManager:
    """Get ThesisManager instance with request-scoped DB session."""
    return thesis_manager.ThesisManager(db)


def get_supervision_manager(
    db: Session = Depends(get_db),
) -> supervision_manager.SupervisionManager:
    """Get SupervisionManager instance with request-scoped DB session."""
    return supervision_manager.SupervisionManager(db)


def get_grading_manager(
    db: Session = Depends(get_db),
) -> grading_manager.GradingManager:
    """Get GradingManager instance with request-scoped DB session."""
    return grading_manager.GradingManager(db)


# Type aliases for dependency injection
UserManagerDep = Annotated[
    user_manager.UserManager, Depends(get_user_manager)
]
ThesisManagerDep = Annotated[
    thesis_manager.ThesisManager, Depends(get_thesis_manager)
]
SupervisionManagerDep = Annotated[
    supervision_manager.SupervisionManager, Depends(get_supervision_manager)
]
GradingManagerDep = Annotated[
    grading_manager.GradingManager, Depends(get_grading_manager)
]
