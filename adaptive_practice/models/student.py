"""Student identity model."""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from adaptive_practice.db.base import Base


class Student(Base):
    """Internal numeric identity for an external student identifier."""

    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(128), nullable=False, unique=True, index=True)
    display_name = Column(String(255))
    grade = Column(Integer)  # 7-12, nullable until known
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
