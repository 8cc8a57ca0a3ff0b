"""
Project model.

Projects own folder forests and test cases; every tree operation is scoped
to exactly one project.
"""

import uuid
from datetime import datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base, utcnow


class Project(Base):
    """
    SQLAlchemy model for projects.

    Attributes:
        id: Unique identifier for the project
        name: Human-readable name for the project
        key: Short project key, e.g. "PROJ001"
        created_at: Timestamp when the project was created
        updated_at: Timestamp when the project was last updated
    """
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255))
    key: Mapped[str] = mapped_column(String(50), unique=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)
