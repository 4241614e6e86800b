from sqlalchemy import Column, Integer, String, Date, ForeignKey
from sqlalchemy.orm import relationship
from ..core.database import Base


class Student(Base):
    __tablename__ = "students"

    # Registration numbers are assigned by the office, not generated
    reg_no = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False)
    batch_id = Column(Integer, ForeignKey("batches.batch_id"), nullable=False, index=True)
    join_date = Column(Date)
    gender = Column(String)
    phone = Column(String)
    address = Column(String)
    dob = Column(Date)
    blood_group = Column(String)
    father_name = Column(String)
    father_phone = Column(String)
    mother_name = Column(String)
    mother_phone = Column(String)
    education_qualification = Column(String)
    email = Column(String)
    documents_link = Column(String)
    total_classes = Column(Integer, default=0, server_default="0")
    attendance = Column(Integer, default=0, server_default="0")

    batch = relationship("Batch", back_populates="students")
    results = relationship("Result", back_populates="student", cascade="all, delete-orphan", passive_deletes=True)
    payments = relationship("Finance", back_populates="student", cascade="all, delete-orphan", passive_deletes=True)
