"""
SQLAlchemy model for newsletter subscribers
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from ..database.core import Base

EMAIL_MAX_LENGTH = 255


class Subscriber(Base):
    """
    A verified newsletter subscriber.

    Rows are only written after the address has been confirmed, so
    ``verified`` is always true; existence implies verification.
    """
    __tablename__ = 'subscribers'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(
        String(EMAIL_MAX_LENGTH),
        nullable=False,
        unique=True,
        doc="Subscriber address, one row per email"
    )
    verified = Column(
        Boolean,
        nullable=False,
        default=True,
        server_default='true'
    )
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self):
        return f"<Subscriber(id={self.id}, email='{self.email}', verified={self.verified})>"
