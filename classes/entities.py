# classes/entities.py
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from typing import TypeAlias
UUID: TypeAlias = str
Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Submission(Base):
    __tablename__ = "submission"

    id: Mapped[UUID] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # external auth subject, never reassigned
    user_id: Mapped[str] = mapped_column(String, nullable=False)

    name: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    email: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    address_line1: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    address_line2: Mapped[str | None] = mapped_column(String)
    city: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    state: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    zipcode: Mapped[str] = mapped_column(String(10), nullable=False, server_default=text("''"))

    is_studying: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    institution: Mapped[str | None] = mapped_column(String)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    projects: Mapped[list["SubmissionProject"]] = relationship(
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionProject.position",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_submission_user_id"),
    )


class SubmissionProject(Base):
    __tablename__ = "submission_project"

    submission_id: Mapped[UUID] = mapped_column(
        String(36),
        ForeignKey("submission.id", ondelete="CASCADE"),
        primary_key=True,
    )
    # assigned by the client before the first save
    id: Mapped[str] = mapped_column(String, primary_key=True)

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )

    submission: Mapped[Submission] = relationship(back_populates="projects")

    __table_args__ = (
        Index("ix_submission_project_submission_id", "submission_id"),
    )
