from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from splitbook.db.session import Base
from splitbook.models._ids import new_id

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
