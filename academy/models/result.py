from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from ..core.database import Base


class ResultStatus(str, enum.Enum):
    PASS = "Pass"
    FAIL = "Fail"
    ABSENT = "Absent"


class Result(Base):
    __tablename__ = "results"

    result_id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.reg_no", ondelete="CASCADE"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.exam_id", ondelete="CASCADE"), nullable=False, index=True)
    # NULL means the student was absent
    obtained_mark = Column(Integer, nullable=True)

    # Stored as plain string, values from ResultStatus
    status = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "exam_id", name="uq_result_student_exam"),
    )

    student = relationship("Student", back_populates="results")
    exam = relationship("Exam", back_populates="results")
