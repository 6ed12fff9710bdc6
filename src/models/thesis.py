"""Thesis database model."""

from sqlalchemy import Column, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from .base import Base


class ThesisModel(Base):
    __tablename__ = "theses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="OPEN", index=True)
    faculty_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    assigned_to_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
    )
    pdf_url = Column(String, nullable=True)
    student_pdf_url = Column(String, nullable=True)

    main_faculty_mark = Column(Float, nullable=True)
    supervisor1_mark = Column(Float, nullable=True)
    supervisor2_mark = Column(Float, nullable=True)
    # Written only by the grading aggregator
    final_mark = Column(Float, nullable=True)

    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)

    selections = relationship(
        "ThesisSelectionModel",
        back_populates="thesis",
        cascade="all, delete-orphan",
    )
    supervising_faculty = relationship(
        "SupervisingFacultyModel",
        back_populates="thesis",
        cascade="all, delete-orphan",
        order_by="SupervisingFacultyModel.id",
    )
