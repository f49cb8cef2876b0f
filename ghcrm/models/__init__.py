"""SQLAlchemy ORM models for GitHub CRM."""

from ghcrm.models.base import Base
from ghcrm.models.project import Project
from ghcrm.models.user import User

__all__ = [
    "Base",
    "Project",
    "User",
]
