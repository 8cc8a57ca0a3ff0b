"""
Folder model for organizing test cases.

Folders form a per-project forest. Each folder stores its materialized
path ("/Suite/Login") and its depth level (root folders are level 0) so
that whole subtrees can be found with a single prefix scan.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base, utcnow


class Folder(Base):
    """
    SQLAlchemy model for folders.

    Attributes:
        id: Unique identifier for the folder
        project_id: Owning project; a folder never changes project
        parent_id: Optional reference to parent folder (None for root folders)
        name: Display name, unique among siblings
        description: Optional free-form description
        path: Materialized path, parent.path + "/" + name
        level: Depth in the tree, parent.level + 1 (0 at the project root)
        sort_order: Order within sibling folders (ties broken by name)
        created_at: Timestamp when the folder was created
        updated_at: Timestamp when the folder was last updated
        created_by: Actor that created the folder
        updated_by: Actor that last touched the folder, including cascades
    """
    __tablename__ = "folders"
    __table_args__ = (
        UniqueConstraint("project_id", "path", name="uq_folders_project_path"),
        Index("ix_folders_project_parent", "project_id", "parent_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        index=True,
    )
    parent_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("folders.id"),
        nullable=True
    )
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    path: Mapped[str] = mapped_column(Text)
    level: Mapped[int] = mapped_column(default=0)
    sort_order: Mapped[int] = mapped_column(default=0)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow)
    created_by: Mapped[str] = mapped_column(String(255))
    updated_by: Mapped[str] = mapped_column(String(255))

    def __repr__(self) -> str:
        return f"<Folder {self.id} {self.path!r} level={self.level}>"
