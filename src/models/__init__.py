from .base import Base
from .user import UserModel
from .thesis import ThesisModel
from .thesis_selection import ThesisSelectionModel
from .supervising_faculty import SupervisingFacultyModel

__all__ = [
    "Base",
    "UserModel",
    "ThesisModel",
    "ThesisSelectionModel",
    "SupervisingFacultyModel",
]
