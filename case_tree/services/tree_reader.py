"""
Tree service for building nested folder/test case structures.

Provides functions for:
- Building an ordered forest from flat folder and test case lists
- Reading a project's whole tree or the subtree below one folder
- Listing the direct children of one node
- Resolving breadcrumbs (the ancestor chain of a folder)

Tree reads are never cached here; callers must not cache them across
mutations either.
"""

import logging
from collections import defaultdict
from typing import Any, Iterable, Optional

from ..exceptions import MaxDepthExceededError, NotFoundError
from ..models import Folder, Project, TestCase
from .path_codec import ancestor_paths
from .tree_mutation import DEFAULT_MAX_FOLDER_DEPTH
from .tree_store import TreeStore, require_folder, require_project

logger = logging.getLogger(__name__)


def folder_node(folder: Folder, children: list[dict]) -> dict[str, Any]:
    return {
        "id": folder.id,
        "name": folder.name,
        "is_folder": True,
        "parent_id": folder.parent_id,
        "path": folder.path,
        "level": folder.level,
        "sort_order": folder.sort_order,
        "created_at": folder.created_at,
        "updated_at": folder.updated_at,
        "children": children,
    }


def case_node(test_case: TestCase) -> dict[str, Any]:
    return {
        "id": test_case.id,
        "name": test_case.name,
        "is_folder": False,
        "parent_id": test_case.folder_id,
        "path": None,
        "level": None,
        "sort_order": None,
        "created_at": test_case.created_at,
        "updated_at": test_case.updated_at,
        "children": [],
    }


def build_tree(
    folders: Iterable[Folder],
    test_cases: Iterable[TestCase],
    root_id: Optional[str] = None,
    max_depth: int = DEFAULT_MAX_FOLDER_DEPTH,
) -> list[dict]:
    """
    Build an ordered forest from flat lists of folders and test cases.

    Args:
        folders: Folders of one project (any order). Folders whose parent
            chain does not reach ``root_id`` are left out.
        test_cases: Test cases of the same project.
        root_id: Folder whose children form the forest; None for the
            project root (which includes unfiled test cases).
        max_depth: Maximum number of folder levels below ``root_id``.

    Returns:
        Folder nodes ordered by (sort_order, name) followed by test case
        nodes ordered by name, at every level.

    Raises:
        MaxDepthExceededError: If the folders nest deeper than ``max_depth``.
    """
    children_map: dict[Optional[str], list[Folder]] = defaultdict(list)
    for folder in folders:
        children_map[folder.parent_id].append(folder)

    for parent_id in children_map:
        children_map[parent_id].sort(key=lambda f: (f.sort_order, f.name, f.id))

    test_case_map: dict[Optional[str], list[TestCase]] = defaultdict(list)
    for test_case in test_cases:
        test_case_map[test_case.folder_id].append(test_case)

    for folder_id in test_case_map:
        test_case_map[folder_id].sort(key=lambda t: (t.name, t.id))

    def _build_subtree(parent_id: Optional[str], depth: int) -> list[dict]:
        child_folders = children_map.get(parent_id, [])
        if child_folders and depth > max_depth:
            raise MaxDepthExceededError(max_depth)
        result = [
            folder_node(folder, _build_subtree(folder.id, depth + 1))
            for folder in child_folders
        ]
        result.extend(case_node(tc) for tc in test_case_map.get(parent_id, []))
        return result

    return _build_subtree(root_id, 1)


class TreeReader:
    """Read side of the folder tree."""

    def __init__(self, store: TreeStore, max_depth: int = DEFAULT_MAX_FOLDER_DEPTH):
        self.store = store
        self.max_depth = max_depth

    def build_tree(self, project_id: str, root_folder_id: Optional[str] = None) -> list[dict]:
        """
        Nested tree of a project, or of the subtree below ``root_folder_id``.

        The whole subtree is fetched with one prefix scan for folders and one
        scan for test cases, inside a single transaction, so the result is a
        consistent snapshot.
        """
        def _read(store: TreeStore) -> list[dict]:
            require_project(store, project_id)
            if root_folder_id is None:
                folders = store.list_folders(project_id)
                test_cases = store.list_test_cases(project_id)
                return build_tree(folders, test_cases, None, self.max_depth)

            root = require_folder(store, root_folder_id, project_id)
            folders = store.list_descendant_folders_by_path_prefix(project_id, root.path)
            test_cases = store.list_test_cases_in_folders(project_id, [root.id] + [f.id for f in folders])
            return build_tree(folders, test_cases, root.id, self.max_depth)

        tree = self.store.run_in_transaction(_read)
        logger.debug("Built tree for project %s below %s", project_id, root_folder_id)
        return tree

    def list_children(self, project_id: str, parent_id: Optional[str] = None) -> list[dict]:
        """Direct children of one node, folders first; nodes carry no nested children."""
        def _read(store: TreeStore) -> list[dict]:
            require_project(store, project_id)
            if parent_id is not None:
                require_folder(store, parent_id, project_id)
            folders = store.list_child_folders(project_id, parent_id)
            test_cases = store.list_child_test_cases(project_id, parent_id)
            return [folder_node(f, []) for f in folders] + [case_node(tc) for tc in test_cases]

        return self.store.run_in_transaction(_read)

    def get_breadcrumb(self, folder_id: str) -> list[Folder]:
        """Ancestor chain of a folder, root first, ending with the folder itself."""
        def _read(store: TreeStore) -> list[Folder]:
            folder = require_folder(store, folder_id)
            paths = ancestor_paths(folder.path)
            by_path = {f.path: f for f in store.list_folders_by_paths(folder.project_id, paths)}
            chain = [by_path.get(path) for path in paths]
            if all(chain) and _is_parent_chain(chain + [folder]):
                return chain + [folder]

            logger.warning("Stored paths of folder %s disagree with its parents, walking parent ids", folder.id)
            return self._walk_parents(store, folder)

        return self.store.run_in_transaction(_read)

    def get_project(self, project_id: str) -> Project:
        return self.store.run_in_transaction(lambda store: require_project(store, project_id))

    def get_folder(self, folder_id: str) -> Folder:
        return self.store.run_in_transaction(lambda store: require_folder(store, folder_id))

    def get_test_case(self, test_case_id: str) -> TestCase:
        def _read(store: TreeStore) -> TestCase:
            test_case = store.get_test_case(test_case_id)
            if test_case is None:
                raise NotFoundError("Test case", test_case_id)
            return test_case

        return self.store.run_in_transaction(_read)

    def _walk_parents(self, store: TreeStore, folder: Folder) -> list[Folder]:
        chain = [folder]
        seen = {folder.id}
        current = folder
        while current.parent_id is not None:
            if len(chain) > self.max_depth:
                raise MaxDepthExceededError(self.max_depth)
            parent = require_folder(store, current.parent_id)
            if parent.id in seen:
                break
            seen.add(parent.id)
            chain.append(parent)
            current = parent
        chain.reverse()
        return chain


def _is_parent_chain(chain: list[Folder]) -> bool:
    if chain[0].parent_id is not None:
        return False
    return all(child.parent_id == parent.id for parent, child in zip(chain, chain[1:]))

