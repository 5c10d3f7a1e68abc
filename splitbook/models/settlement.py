from sqlalchemy import Column, ForeignKey, String, Numeric, DateTime
from sqlalchemy.sql import func
from splitbook.db.session import Base
from splitbook.models._ids import new_id

class Settlement(Base):
    __tablename__ = "settlements"

    id = Column(String(36), primary_key=True, default=new_id)
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    from_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    to_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
