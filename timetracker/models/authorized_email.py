"""Allow-list of emails permitted to sign in, managed outside the app."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, String, Text

from ..db.session import Base
from ._columns import new_id, utcnow


class AuthorizedEmail(Base):
    __tablename__ = "authorized_emails"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(Text, nullable=False, unique=True, index=True)
    role = Column(String(16), nullable=False, default="user")
    added_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(Text, nullable=False, default=utcnow)


__all__ = ["AuthorizedEmail"]
