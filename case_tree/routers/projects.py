"""
Project API routes.

Provides creation and lookup of projects plus the tree reads scoped to a
project.
"""

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_tree_reader, get_tree_store
from ..schemas.project import ProjectCreate, ProjectResponse
from ..schemas.tree import TreeNode
from ..services.projects import create_project as create_project_row
from ..services.tree_reader import TreeReader
from ..services.tree_store import TreeStore


router = APIRouter(prefix="/api/projects", tags=["projects"])

# Tree reads must reflect the latest mutation
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, max-age=0",
    "Pragma": "no-cache",
}


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(project_data: ProjectCreate, store: TreeStore = Depends(get_tree_store)):
    """Create a new project."""
    return create_project_row(store, project_data.name, project_data.key)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(project_id: str, reader: TreeReader = Depends(get_tree_reader)):
    """Get a project by ID."""
    return reader.get_project(project_id)


@router.get("/{project_id}/tree", response_model=list[TreeNode])
def get_tree(
    project_id: str,
    response: Response,
    root_folder_id: str | None = None,
    reader: TreeReader = Depends(get_tree_reader),
):
    """
    Get the folder tree of a project with nested folders and test cases.

    Returns the project's root-level nodes (including unfiled test cases),
    or the nodes below ``root_folder_id`` when given.
    """
    response.headers.update(NO_CACHE_HEADERS)
    return reader.build_tree(project_id, root_folder_id)


@router.get("/{project_id}/children", response_model=list[TreeNode])
def get_children(
    project_id: str,
    response: Response,
    parent_id: str | None = None,
    reader: TreeReader = Depends(get_tree_reader),
):
    """Get the direct children of a folder, or of the project root."""
    response.headers.update(NO_CACHE_HEADERS)
    return reader.list_children(project_id, parent_id)
