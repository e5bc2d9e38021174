"""Profiles of people who have signed in at least once."""

from __future__ import annotations

from sqlalchemy import Column, String, Text

from ..db.session import Base
from ._columns import new_id, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(Text, nullable=False, unique=True, index=True)
    name = Column(Text, nullable=False)
    role = Column(String(16), nullable=False, default="user")
    created_at = Column(Text, nullable=False, default=utcnow)
    updated_at = Column(Text, nullable=False, default=utcnow)


__all__ = ["User"]
