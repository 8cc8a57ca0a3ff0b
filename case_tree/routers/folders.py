"""
Folder management API routes.

Provides create, rename, move, reorder and delete operations for folders.
Renames and moves cascade to every descendant folder in one transaction.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_actor, get_mutation_service, get_tree_reader
from ..schemas.folder import (
    DeleteFolderResponse,
    FolderCreate,
    FolderMove,
    FolderRename,
    FolderResponse,
    ReorderFoldersRequest,
)
from ..services.tree_mutation import DeletePolicy, TreeMutationService
from ..services.tree_reader import TreeReader


router = APIRouter(prefix="/api/folders", tags=["folders"])


@router.post("/reorder", response_model=list[FolderResponse])
def reorder_folders(
    reorder_data: ReorderFoldersRequest,
    service: TreeMutationService = Depends(get_mutation_service),
    actor: str | None = Depends(get_actor),
):
    """Reorder the children of one parent by updating their sort_order."""
    return service.reorder_folders(
        reorder_data.project_id,
        reorder_data.parent_id,
        reorder_data.folder_ids,
        actor=actor,
    )


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
def create_folder(
    folder_data: FolderCreate,
    service: TreeMutationService = Depends(get_mutation_service),
    actor: str | None = Depends(get_actor),
):
    """Create a new folder at the project root or under a parent folder."""
    return service.create_folder(
        folder_data.project_id,
        folder_data.parent_id,
        folder_data.name,
        description=folder_data.description,
        actor=actor,
    )


@router.get("/{folder_id}", response_model=FolderResponse)
def get_folder(folder_id: str, reader: TreeReader = Depends(get_tree_reader)):
    """Get a folder by ID."""
    return reader.get_folder(folder_id)


@router.get("/{folder_id}/breadcrumb", response_model=list[FolderResponse])
def get_breadcrumb(folder_id: str, reader: TreeReader = Depends(get_tree_reader)):
    """Get the ancestor chain of a folder, root first, ending with the folder."""
    return reader.get_breadcrumb(folder_id)


@router.patch("/{folder_id}", response_model=FolderResponse)
def rename_folder(
    folder_id: str,
    rename_data: FolderRename,
    service: TreeMutationService = Depends(get_mutation_service),
    actor: str | None = Depends(get_actor),
):
    """Rename a folder and cascade the new path to all descendants."""
    return service.rename_folder(folder_id, rename_data.name, actor=actor)


@router.post("/{folder_id}/move", response_model=FolderResponse)
def move_folder(
    folder_id: str,
    move_data: FolderMove,
    service: TreeMutationService = Depends(get_mutation_service),
    actor: str | None = Depends(get_actor),
):
    """Move a folder under a new parent, or to the project root."""
    return service.move_folder(folder_id, move_data.parent_id, actor=actor)


@router.delete("/{folder_id}", response_model=DeleteFolderResponse)
def delete_folder(
    folder_id: str,
    policy: DeletePolicy = DeletePolicy.REJECT_IF_NONEMPTY,
    reparent_to: str | None = None,
    service: TreeMutationService = Depends(get_mutation_service),
    actor: str | None = Depends(get_actor),
):
    """
    Delete a folder.

    ``policy`` decides what happens to its contents: reject-if-nonempty
    (default), cascade-delete, or reparent-children (to ``reparent_to``,
    or the project root when omitted).
    """
    return service.delete_folder(folder_id, policy, reparent_to=reparent_to, actor=actor)
