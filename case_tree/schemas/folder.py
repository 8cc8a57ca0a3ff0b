"""
Pydantic schemas for folders.

Defines schemas for creating, renaming, moving, reordering and deleting
folders, and for returning folder data.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ..services.tree_mutation import DeletePolicy


class FolderBase(BaseModel):
    """Base schema with common folder fields."""
    name: str


class FolderCreate(FolderBase):
    """Schema for creating a new folder."""
    project_id: str
    parent_id: str | None = None
    description: str | None = None


class FolderRename(FolderBase):
    """Schema for renaming a folder."""


class FolderMove(BaseModel):
    """Schema for moving a folder; a null parent moves it to the project root."""
    parent_id: str | None = None


class ReorderFoldersRequest(BaseModel):
    """Schema for reordering the children of one parent."""
    project_id: str
    parent_id: str | None = None
    folder_ids: list[str]


class FolderResponse(FolderBase):
    """Schema for folder response with all fields."""
    id: str
    project_id: str
    parent_id: str | None
    description: str | None = None
    path: str
    level: int
    sort_order: int = 0
    created_at: datetime
    updated_at: datetime
    created_by: str
    updated_by: str

    model_config = ConfigDict(from_attributes=True)


class DeleteFolderResponse(BaseModel):
    """Schema for the outcome of a folder delete."""
    folder_id: str
    policy: DeletePolicy
    folders_deleted: int
    test_cases_deleted: int
    folders_reparented: int
    test_cases_reparented: int

    model_config = ConfigDict(from_attributes=True)
