"""
Pydantic schemas package.

Exports all schemas for API request/response validation.
"""

from .project import (
    ProjectCreate,
    ProjectResponse,
)

from .folder import (
    FolderBase,
    FolderCreate,
    FolderRename,
    FolderMove,
    ReorderFoldersRequest,
    FolderResponse,
    DeleteFolderResponse,
)

from .test_case import (
    Priority,
    Status,
    TestCaseCreate,
    TestCaseMove,
    TestCaseResponse,
)

from .tree import TreeNode

__all__ = [
    # Project schemas
    "ProjectCreate",
    "ProjectResponse",
    # Folder schemas
    "FolderBase",
    "FolderCreate",
    "FolderRename",
    "FolderMove",
    "ReorderFoldersRequest",
    "FolderResponse",
    "DeleteFolderResponse",
    # Test case schemas
    "Priority",
    "Status",
    "TestCaseCreate",
    "TestCaseMove",
    "TestCaseResponse",
    # Tree schemas
    "TreeNode",
]
