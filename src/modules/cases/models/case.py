import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime

from database import Base


class Case(Base):
    __tablename__ = 'cases'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    case_number = Column(String(64), unique=True, nullable=False, index=True)
    client_name = Column(String, nullable=False)
    client_email = Column(String, nullable=True)
    client_phone = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

