from sqlalchemy import Column, Integer, String, Date, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from ..core.database import Base


class Finance(Base):
    __tablename__ = "finance"

    # "<FY>/<seq>", e.g. "24-25/003"
    receipt_id = Column(String, primary_key=True)
    student_id = Column(Integer, ForeignKey("students.reg_no", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    type = Column(String, nullable=False)
    payment_method = Column(String, nullable=False)
    payment_date = Column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_finance_amount_positive"),
    )

    student = relationship("Student", back_populates="payments")
