# Services package

from .path_codec import (
    compute_child_level,
    compute_child_path,
    normalize_name,
    rewrite_prefix,
)
from .tree_store import TreeStore, SqlAlchemyTreeStore
from .tree_mutation import DeletePolicy, DeleteSummary, TreeMutationService
from .tree_reader import TreeReader, build_tree
from .projects import create_project

__all__ = [
    "compute_child_level",
    "compute_child_path",
    "normalize_name",
    "rewrite_prefix",
    "TreeStore",
    "SqlAlchemyTreeStore",
    "DeletePolicy",
    "DeleteSummary",
    "TreeMutationService",
    "TreeReader",
    "build_tree",
    "create_project",
]
