from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base


class ThesisSelectionModel(Base):
    """A student's expression of interest in an OPEN thesis.

    student_id is unique table-wide: a student holds at most one selection.
    """

    __tablename__ = "thesis_selections"
    __table_args__ = (
        UniqueConstraint("student_id", name="uq_thesis_selections_student"),
    )

    id = Column(Integer, primary_key=True, index=True)
    thesis_id = Column(
        Integer, ForeignKey("theses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    student_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    selected_at = Column(String, nullable=False)

    thesis = relationship("ThesisModel", back_populates="selections")
    student = relationship("UserModel")
