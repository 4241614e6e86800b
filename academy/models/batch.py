from sqlalchemy import Column, Integer, String, Date
from sqlalchemy.orm import relationship
from ..core.database import Base


class Batch(Base):
    __tablename__ = "batches"

    batch_id = Column(Integer, primary_key=True, autoincrement=True)
    batch_name = Column(String, unique=True, nullable=False)
    start_date = Column(Date, nullable=True)

    # No cascade to students: a batch with students cannot be deleted
    students = relationship("Student", back_populates="batch", passive_deletes="all")
    exams = relationship("Exam", back_populates="batch", cascade="all, delete-orphan", passive_deletes=True)
