from sqlalchemy import Column, Integer, String, Date, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from ..core.database import Base


class Exam(Base):
    __tablename__ = "exams"

    exam_id = Column(Integer, primary_key=True, autoincrement=True)
    exam_name = Column(String, nullable=False)
    course_id = Column(String, ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False)
    batch_id = Column(Integer, ForeignKey("batches.batch_id", ondelete="CASCADE"), nullable=False, index=True)
    instructor_id = Column(Integer, ForeignKey("instructors.instructor_id", ondelete="CASCADE"), nullable=False)
    max_score = Column(Integer, nullable=False)
    cutoff_score = Column(Integer, nullable=False)
    exam_date = Column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint("cutoff_score <= max_score", name="ck_exam_cutoff_within_max"),
    )

    course = relationship("Course", back_populates="exams")
    batch = relationship("Batch", back_populates="exams")
    instructor = relationship("Instructor", back_populates="exams")
    results = relationship("Result", back_populates="exam", cascade="all, delete-orphan", passive_deletes=True)
