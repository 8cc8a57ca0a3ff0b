"""
Tree mutations: create, rename, move, reorder and delete folders, and
create or move test cases.

Each public operation validates everything it can before writing, then
performs all of its writes, including the descendant cascade, inside a
single store transaction. Either every affected row changes or none does.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..database import utcnow
from ..exceptions import (
    ConflictError,
    CycleError,
    FolderNotEmptyError,
    InvalidNameError,
    MaxDepthExceededError,
    NotFoundError,
    PrefixMismatchError,
)
from ..models import Folder, TestCase
from .path_codec import (
    compute_child_level,
    compute_child_path,
    is_descendant_path,
    normalize_name,
    rewrite_prefix,
)
from .tree_store import TreeStore, require_folder, require_project

logger = logging.getLogger(__name__)

DEFAULT_MAX_FOLDER_DEPTH = 32
DEFAULT_ACTOR = "system"

# Temporary path of a folder being deleted; stored paths always start with "/"
DELETING_PATH_PREFIX = "\x00deleting/"


class DeletePolicy(str, enum.Enum):
    """What happens to the contents of a deleted folder."""

    REJECT_IF_NONEMPTY = "reject-if-nonempty"
    CASCADE_DELETE = "cascade-delete"
    REPARENT_CHILDREN = "reparent-children"


@dataclass(frozen=True)
class DeleteSummary:
    """Row counts touched by a folder delete."""

    folder_id: str
    policy: DeletePolicy
    folders_deleted: int = 0
    test_cases_deleted: int = 0
    folders_reparented: int = 0
    test_cases_reparented: int = 0


class TreeMutationService:
    """
    Write side of the folder tree.

    Holds no state between calls besides its store and limits; build one
    per request.
    """

    def __init__(
        self,
        store: TreeStore,
        max_depth: int = DEFAULT_MAX_FOLDER_DEPTH,
        default_actor: str = DEFAULT_ACTOR,
    ):
        self.store = store
        self.max_depth = max_depth
        self.default_actor = default_actor

    # Folders

    def create_folder(
        self,
        project_id: str,
        parent_id: Optional[str],
        name: str,
        description: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Folder:
        """Create a folder at the project root (parent_id None) or under an existing folder."""
        name = normalize_name(name)
        actor = actor or self.default_actor

        def _create(store: TreeStore) -> Folder:
            require_project(store, project_id)
            parent = require_folder(store, parent_id, project_id) if parent_id is not None else None

            path = compute_child_path(parent.path if parent else None, name)
            level = compute_child_level(parent.level if parent else None)
            self._check_depth(level)
            _check_sibling_name(store, project_id, parent_id, name)

            max_sort_order = store.max_child_sort_order(project_id, parent_id)
            now = utcnow()
            folder = store.add_folder(
                Folder(
                    project_id=project_id,
                    parent_id=parent_id,
                    name=name,
                    description=description,
                    path=path,
                    level=level,
                    sort_order=(max_sort_order + 1) if max_sort_order is not None else 0,
                    created_at=now,
                    updated_at=now,
                    created_by=actor,
                    updated_by=actor,
                )
            )
            logger.info("Created folder %s at %r in project %s", folder.id, path, project_id)
            return folder

        return self.store.run_in_transaction(_create)

    def rename_folder(self, folder_id: str, new_name: str, actor: Optional[str] = None) -> Folder:
        """
        Rename a folder and rewrite the paths of all its descendants.

        Levels do not change; test cases are untouched since they reference
        folders by id.
        """
        new_name = normalize_name(new_name)
        actor = actor or self.default_actor

        def _rename(store: TreeStore) -> Folder:
            folder = require_folder(store, folder_id)
            if folder.name == new_name:
                return folder

            parent = _load_parent(store, folder)
            _check_sibling_name(store, folder.project_id, folder.parent_id, new_name, exclude_ids=(folder.id,))

            old_path = folder.path
            new_path = compute_child_path(parent.path if parent else None, new_name)
            descendants = store.list_descendant_folders_by_path_prefix(folder.project_id, old_path)

            now = utcnow()
            store.update_folder(
                folder.id,
                {"name": new_name, "path": new_path, "updated_at": now, "updated_by": actor},
            )
            _cascade(store, folder, descendants, old_path, new_path, 0, now, actor)
            logger.info(
                "Renamed folder %s: %r -> %r (%d descendants rewritten)",
                folder.id, old_path, new_path, len(descendants),
            )
            return folder

        return self.store.run_in_transaction(_rename)

    def move_folder(self, folder_id: str, new_parent_id: Optional[str], actor: Optional[str] = None) -> Folder:
        """
        Move a folder under a new parent (None for the project root).

        Paths and levels of the folder and every descendant are recomputed.
        Test cases keep their folder ids.

        Raises:
            CycleError: If the new parent is the folder itself or one of its descendants.
        """
        actor = actor or self.default_actor

        def _move(store: TreeStore) -> Folder:
            moving = require_folder(store, folder_id)
            if new_parent_id == moving.id:
                raise CycleError(moving.id, new_parent_id)

            new_parent = None
            if new_parent_id is not None:
                new_parent = require_folder(store, new_parent_id, moving.project_id)

            descendants = store.list_descendant_folders_by_path_prefix(moving.project_id, moving.path)
            if new_parent is not None and (
                is_descendant_path(new_parent.path, moving.path)
                or any(d.id == new_parent.id for d in descendants)
            ):
                raise CycleError(moving.id, new_parent.id)

            if moving.parent_id == new_parent_id:
                return moving

            _check_sibling_name(store, moving.project_id, new_parent_id, moving.name, exclude_ids=(moving.id,))
            self._relocate(store, moving, new_parent, descendants, utcnow(), actor)
            return moving

        return self.store.run_in_transaction(_move)

    def reorder_folders(
        self,
        project_id: str,
        parent_id: Optional[str],
        ordered_ids: Sequence[str],
        actor: Optional[str] = None,
    ) -> list[Folder]:
        """
        Set the display order of the children of one parent.

        Listed folders take positions 0..n-1 in list order; siblings left
        out keep their relative order after them.
        """
        actor = actor or self.default_actor
        if len(set(ordered_ids)) != len(ordered_ids):
            raise ConflictError("A folder id is listed more than once")

        def _reorder(store: TreeStore) -> list[Folder]:
            require_project(store, project_id)
            siblings = store.list_child_folders(project_id, parent_id)
            by_id = {folder.id: folder for folder in siblings}
            for folder_id in ordered_ids:
                if folder_id not in by_id:
                    require_folder(store, folder_id, project_id)
                    raise ConflictError(f"Folder {folder_id} is not a child of {parent_id or 'the project root'}")

            listed = set(ordered_ids)
            ordering = [by_id[i] for i in ordered_ids] + [f for f in siblings if f.id not in listed]
            now = utcnow()
            for index, folder in enumerate(ordering):
                if folder.sort_order != index:
                    store.update_folder(folder.id, {"sort_order": index, "updated_at": now, "updated_by": actor})
            logger.info("Reordered %d folders under %s in project %s", len(ordering), parent_id, project_id)
            return ordering

        return self.store.run_in_transaction(_reorder)

    def delete_folder(
        self,
        folder_id: str,
        policy: DeletePolicy = DeletePolicy.REJECT_IF_NONEMPTY,
        reparent_to: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> DeleteSummary:
        """
        Delete a folder, handling its contents according to ``policy``.

        - REJECT_IF_NONEMPTY: fail with FolderNotEmptyError unless the folder
          has no child folders and no test cases.
        - CASCADE_DELETE: delete every descendant folder and every test case
          they contain.
        - REPARENT_CHILDREN: move child folders (with their subtrees) and
          test cases under ``reparent_to`` (None for the project root), then
          delete the folder.
        """
        policy = DeletePolicy(policy)
        actor = actor or self.default_actor

        def _delete(store: TreeStore) -> DeleteSummary:
            folder = require_folder(store, folder_id)
            if policy is DeletePolicy.REJECT_IF_NONEMPTY:
                return _delete_if_empty(store, folder)
            if policy is DeletePolicy.CASCADE_DELETE:
                return _delete_cascade(store, folder)
            return self._delete_reparenting(store, folder, reparent_to, actor)

        return self.store.run_in_transaction(_delete)

    # Test cases

    def create_test_case(
        self,
        project_id: str,
        folder_id: Optional[str],
        name: str,
        description: str = "",
        priority: str = "medium",
        status: str = "draft",
        tags: Optional[list[str]] = None,
        actor: Optional[str] = None,
    ) -> TestCase:
        """Create a test case in a folder, or unfiled at the project root."""
        if not isinstance(name, str) or not name.strip():
            raise InvalidNameError(name, "name must not be empty")
        name = name.strip()
        actor = actor or self.default_actor

        def _create(store: TreeStore) -> TestCase:
            require_project(store, project_id)
            if folder_id is not None:
                require_folder(store, folder_id, project_id)
            now = utcnow()
            test_case = store.add_test_case(
                TestCase(
                    project_id=project_id,
                    folder_id=folder_id,
                    name=name,
                    description=description,
                    priority=priority,
                    status=status,
                    tags=list(tags or []),
                    created_at=now,
                    updated_at=now,
                    created_by=actor,
                    updated_by=actor,
                )
            )
            logger.info("Created test case %s in folder %s of project %s", test_case.id, folder_id, project_id)
            return test_case

        return self.store.run_in_transaction(_create)

    def move_test_case(
        self, test_case_id: str, new_folder_id: Optional[str], actor: Optional[str] = None
    ) -> TestCase:
        """Reassign a test case to another folder of its project (None: unfiled)."""
        actor = actor or self.default_actor

        def _move(store: TreeStore) -> TestCase:
            test_case = store.get_test_case(test_case_id)
            if test_case is None:
                raise NotFoundError("Test case", test_case_id)
            if new_folder_id is not None:
                require_folder(store, new_folder_id, test_case.project_id)
            if test_case.folder_id == new_folder_id:
                return test_case
            store.update_test_case(
                test_case.id,
                {"folder_id": new_folder_id, "updated_at": utcnow(), "updated_by": actor},
            )
            logger.info("Moved test case %s to folder %s", test_case.id, new_folder_id)
            return test_case

        return self.store.run_in_transaction(_move)

    # Internals

    def _check_depth(self, level: int) -> None:
        if level >= self.max_depth:
            raise MaxDepthExceededError(self.max_depth)

    def _relocate(
        self,
        store: TreeStore,
        moving: Folder,
        new_parent: Optional[Folder],
        descendants: list[Folder],
        now,
        actor: str,
    ) -> None:
        """Put ``moving`` under ``new_parent`` and cascade paths and levels to ``descendants``."""
        old_path = moving.path
        new_path = compute_child_path(new_parent.path if new_parent else None, moving.name)
        new_level = compute_child_level(new_parent.level if new_parent else None)
        level_delta = new_level - moving.level

        subtree_height = max((d.level for d in descendants), default=moving.level) - moving.level
        self._check_depth(new_level + subtree_height)

        new_parent_id = new_parent.id if new_parent else None
        max_sort_order = store.max_child_sort_order(moving.project_id, new_parent_id)
        store.update_folder(
            moving.id,
            {
                "parent_id": new_parent_id,
                "path": new_path,
                "level": new_level,
                "sort_order": (max_sort_order + 1) if max_sort_order is not None else 0,
                "updated_at": now,
                "updated_by": actor,
            },
        )
        _cascade(store, moving, descendants, old_path, new_path, level_delta, now, actor)
        logger.info(
            "Moved folder %s: %r -> %r (level %+d, %d descendants rewritten)",
            moving.id, old_path, new_path, level_delta, len(descendants),
        )

    def _delete_reparenting(
        self,
        store: TreeStore,
        folder: Folder,
        reparent_to: Optional[str],
        actor: str,
    ) -> DeleteSummary:
        target = None
        if reparent_to is not None:
            target = require_folder(store, reparent_to, folder.project_id)
            if target.id == folder.id or is_descendant_path(target.path, folder.path):
                raise CycleError(folder.id, target.id)

        child_folders = store.list_child_folders(folder.project_id, folder.id)
        test_cases = store.list_child_test_cases(folder.project_id, folder.id)
        target_id = target.id if target else None
        for child in child_folders:
            # The folder itself is gone once its children arrive at its parent
            _check_sibling_name(store, folder.project_id, target_id, child.name, exclude_ids=(child.id, folder.id))

        now = utcnow()
        if child_folders:
            # Release the folder's path so a same-named child can take it
            store.update_folder(folder.id, {"path": DELETING_PATH_PREFIX + folder.id})
        for child in child_folders:
            descendants = store.list_descendant_folders_by_path_prefix(child.project_id, child.path)
            self._relocate(store, child, target, descendants, now, actor)
        for test_case in test_cases:
            store.update_test_case(test_case.id, {"folder_id": target_id, "updated_at": now, "updated_by": actor})

        store.delete_folder(folder.id)
        logger.info(
            "Deleted folder %s, reparented %d folders and %d test cases to %s",
            folder.id, len(child_folders), len(test_cases), target_id,
        )
        return DeleteSummary(
            folder_id=folder.id,
            policy=DeletePolicy.REPARENT_CHILDREN,
            folders_deleted=1,
            folders_reparented=len(child_folders),
            test_cases_reparented=len(test_cases),
        )


def _load_parent(store: TreeStore, folder: Folder) -> Optional[Folder]:
    """Fresh parent row of ``folder``; paths are never derived from the child's own path."""
    if folder.parent_id is None:
        return None
    parent = store.get_folder(folder.parent_id)
    if parent is None:
        raise NotFoundError("Folder", folder.parent_id)
    return parent


def _check_sibling_name(
    store: TreeStore,
    project_id: str,
    parent_id: Optional[str],
    name: str,
    exclude_ids: Sequence[str] = (),
) -> None:
    existing = store.find_child_folder_by_name(project_id, parent_id, name)
    if existing is not None and existing.id not in exclude_ids:
        raise ConflictError(
            f"A folder named {name!r} already exists under {parent_id or 'the project root'}",
            error_code="DUPLICATE_NAME",
        )


def _cascade(
    store: TreeStore,
    ancestor: Folder,
    descendants: list[Folder],
    old_path: str,
    new_path: str,
    level_delta: int,
    now,
    actor: str,
) -> None:
    for descendant in descendants:
        try:
            path = rewrite_prefix(descendant.path, old_path, new_path)
        except PrefixMismatchError:
            logger.critical(
                "Consistency fault below folder %s: descendant %s has path %r outside %r",
                ancestor.id, descendant.id, descendant.path, old_path,
            )
            raise
        fields = {"path": path, "updated_at": now, "updated_by": actor}
        if level_delta:
            fields["level"] = descendant.level + level_delta
        logger.debug("Cascading folder %s: %r -> %r", descendant.id, descendant.path, path)
        store.update_folder(descendant.id, fields)


def _delete_if_empty(store: TreeStore, folder: Folder) -> DeleteSummary:
    child_folders = store.list_child_folders(folder.project_id, folder.id)
    test_cases = store.list_child_test_cases(folder.project_id, folder.id)
    if child_folders or test_cases:
        raise FolderNotEmptyError(folder.id, len(child_folders), len(test_cases))
    store.delete_folder(folder.id)
    logger.info("Deleted empty folder %s (%r)", folder.id, folder.path)
    return DeleteSummary(folder_id=folder.id, policy=DeletePolicy.REJECT_IF_NONEMPTY, folders_deleted=1)


def _delete_cascade(store: TreeStore, folder: Folder) -> DeleteSummary:
    descendants = store.list_descendant_folders_by_path_prefix(folder.project_id, folder.path)
    folder_ids = [folder.id] + [d.id for d in descendants]
    test_cases = store.list_test_cases_in_folders(folder.project_id, folder_ids)

    for test_case in test_cases:
        store.delete_test_case(test_case.id)
    # Deepest first so no row outlives its parent
    for descendant in sorted(descendants, key=lambda d: d.level, reverse=True):
        store.delete_folder(descendant.id)
    store.delete_folder(folder.id)

    logger.info(
        "Deleted folder %s (%r) with %d descendant folders and %d test cases",
        folder.id, folder.path, len(descendants), len(test_cases),
    )
    return DeleteSummary(
        folder_id=folder.id,
        policy=DeletePolicy.CASCADE_DELETE,
        folders_deleted=len(folder_ids),
        test_cases_deleted=len(test_cases),
    )
