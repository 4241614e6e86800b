from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from ..core.database import Base


class Course(Base):
    __tablename__ = "courses"

    course_id = Column(String, primary_key=True)
    course_name = Column(String, nullable=False)

    exams = relationship("Exam", back_populates="course", cascade="all, delete-orphan", passive_deletes=True)
