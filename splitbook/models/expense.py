from sqlalchemy import Column, ForeignKey, String, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from splitbook.db.session import Base
from splitbook.models._ids import new_id

class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True, default=new_id)
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    paid_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String, nullable=False, server_default="")
    split_type = Column(String, nullable=False, server_default="equal")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    splits = relationship("ExpenseSplit", back_populates="expense", cascade="all, delete")
