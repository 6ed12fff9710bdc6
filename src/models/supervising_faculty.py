"""Supervisor invitation database model.

A row exists only while an invitation is PENDING or ACCEPTED. Rejected or
purged invitations are deleted, so "rejected" looks the same as "never
invited".
"""

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base


class SupervisingFacultyModel(Base):
    __tablename__ = "supervising_faculty"
    __table_args__ = (
        UniqueConstraint(
            "thesis_id",
            "faculty_id",
            name="uq_supervising_faculty_thesis_faculty",
        ),
        # NULL for pending rows; 1 or 2 once accepted
        UniqueConstraint(
            "thesis_id",
            "slot_index",
            name="uq_supervising_faculty_thesis_slot",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    thesis_id = Column(
        Integer, ForeignKey("theses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    faculty_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    invited_by_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(String, nullable=False, default="PENDING")  # 'PENDING' or 'ACCEPTED'
    slot_index = Column(Integer, nullable=True)
    created_at = Column(String, nullable=False)
    accepted_at = Column(String, nullable=True)

    thesis = relationship("ThesisModel", back_populates="supervising_faculty")
    faculty = relationship("UserModel", foreign_keys=[faculty_id])
