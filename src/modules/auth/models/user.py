from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean
from enum import Enum as PyEnum
from datetime import datetime
from database import Base

class UserRole(PyEnum):
    ADMIN = "ADMIN"
    CASE_MANAGER = "CASE_MANAGER"
    VIEWER = "VIEWER"

class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
