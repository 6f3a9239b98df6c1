"""
BookReview Backend: User SQLAlchemy Model
===========================================

What:  ORM model for the `users` table.
Who:   Written by registration, read by login and by every authenticated
       request (the auth dependency re-reads the row each time).

Lifecycle:
    Created once at registration with role 'user'. Never updated or deleted
    through the API; admins are promoted directly in the database.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from bookreview.constants import USER_EMAIL_CONSTRAINT, Roles
from bookreview.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Unbounded: escaping can lengthen the validated value
    name: Mapped[str] = mapped_column(Text, nullable=False)

    # Stored normalized (trimmed, lowercase) by the validation layer
    email: Mapped[str] = mapped_column(Text, nullable=False)

    # bcrypt hash; never serialized into a response
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Roles.USER,
        server_default=Roles.USER,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("email", name=USER_EMAIL_CONSTRAINT),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
