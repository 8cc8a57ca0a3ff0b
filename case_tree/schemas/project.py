"""
Pydantic schemas for projects.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""
    name: str
    key: str


class ProjectResponse(ProjectCreate):
    """Schema for project response with all fields."""
    id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
