"""Tracked repository snapshot model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ghcrm.models.base import Base

if TYPE_CHECKING:
    from ghcrm.models.user import User


class Project(Base):
    """Point-in-time copy of a GitHub repository's metrics, owned by one user."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    stars: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    forks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    open_issues: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Creation time of the repository on GitHub, not of this row.
    created_at_unix: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped[User] = relationship(back_populates="projects")

    __table_args__ = (
        UniqueConstraint("user_id", "owner", "name", name="uq_projects_user_owner_name"),
        CheckConstraint("stars >= 0", name="ck_projects_stars_non_negative"),
        CheckConstraint("forks >= 0", name="ck_projects_forks_non_negative"),
        CheckConstraint("open_issues >= 0", name="ck_projects_open_issues_non_negative"),
        Index("idx_projects_user_id", "user_id"),
        Index("idx_projects_owner_name", "owner", "name"),
        {"sqlite_autoincrement": True},
    )
