"""SQLAlchemy model for invite-coded communities."""
from datetime import datetime

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from melodyshare.db.session import Base
from melodyshare.db.time import UTCDateTime, utcnow
from melodyshare.models.user import new_id


class Community(Base):
    """A named group sharing one song feed, joinable through its code."""

    __tablename__ = "community"
    __table_args__ = (CheckConstraint("members >= 1", name="ck_community_members_positive"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Stored upper-case; lookups fold the caller's input.
    code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    creation_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    # Only ever changed through relative UPDATE statements.
    members: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
