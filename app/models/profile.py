"""
User profile model. Identity lives in the identity provider; the role lives here.
"""
from sqlalchemy import Column, String, DateTime
from datetime import datetime
from app.database import Base


class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)  # identity provider user id
    email = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False, default="user")  # admin, user
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
