"""
Migration: Rebuild materialized folder paths and levels from parent ids.

Walks every project's folder forest from its root folders and rewrites any
path or level that disagrees with the parent chain. Safe to run repeatedly;
rows that are already consistent are not touched.
"""

import logging
from collections import defaultdict
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from case_tree.database import SessionLocal, utcnow
from case_tree.exceptions import TreeError
from case_tree.models import Folder, Project
from case_tree.services.path_codec import compute_child_level, compute_child_path
from case_tree.services.tree_store import SqlAlchemyTreeStore, TreeStore

logger = logging.getLogger(__name__)

REPAIR_ACTOR = "path-rebuild"

# Parking path for rows between the two write passes; stored paths always start with "/"
REBUILD_PATH_PREFIX = "\x00rebuild/"


def rebuild_project_paths(store: TreeStore, project_id: str) -> int:
    """Recompute paths and levels of one project in a single transaction; returns rows fixed."""

    def _rebuild(store: TreeStore) -> int:
        folders = store.list_folders(project_id)
        children_map: dict[Optional[str], list[Folder]] = defaultdict(list)
        for folder in folders:
            children_map[folder.parent_id].append(folder)

        repairs: list[tuple[Folder, str, int]] = []
        reached = set()
        # Breadth-first from the roots, deriving each path from the parent's computed path
        frontier: list[tuple[Optional[str], Optional[int], Folder]] = [
            (None, None, f) for f in children_map[None]
        ]
        while frontier:
            next_frontier = []
            for parent_path, parent_level, folder in frontier:
                reached.add(folder.id)
                path = compute_child_path(parent_path, folder.name)
                level = compute_child_level(parent_level)
                if folder.path != path or folder.level != level:
                    logger.warning("Repairing folder %s: %r/%d -> %r/%d", folder.id, folder.path, folder.level, path, level)
                    repairs.append((folder, path, level))
                next_frontier.extend((path, level, child) for child in children_map[folder.id])
            frontier = next_frontier

        unreachable = [f.id for f in folders if f.id not in reached]
        if unreachable:
            logger.error("Project %s has folders outside its tree (cycle or missing parent): %s", project_id, unreachable)

        # Stale paths may be swapped between rows, so park every repaired row
        # first and only then write the final paths
        for folder, _, _ in repairs:
            store.update_folder(folder.id, {"path": REBUILD_PATH_PREFIX + folder.id})

        now = utcnow()
        for folder, path, level in repairs:
            store.update_folder(
                folder.id,
                {"path": path, "level": level, "updated_at": now, "updated_by": REPAIR_ACTOR},
            )
        return len(repairs)

    return store.run_in_transaction(_rebuild)


def migrate(session_factory: sessionmaker = SessionLocal) -> int:
    """
    Rebuild folder paths for every project; returns the number of rows fixed.

    A project whose repair fails is logged and skipped so the others still
    get repaired.
    """
    with session_factory() as session:
        project_ids = list(session.scalars(select(Project.id)))

    store = SqlAlchemyTreeStore(session_factory)
    fixed = 0
    for project_id in project_ids:
        try:
            fixed += rebuild_project_paths(store, project_id)
        except TreeError as exc:
            logger.error("Could not rebuild folder paths of project %s: %s", project_id, exc.detail)
    if fixed:
        logger.info("Migration complete: rebuilt %d folder paths.", fixed)
    else:
        logger.info("Migration skipped: all folder paths are consistent.")
    return fixed


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    migrate()
