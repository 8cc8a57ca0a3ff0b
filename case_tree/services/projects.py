"""Project registration; projects scope every folder tree."""

import logging

from ..database import utcnow
from ..exceptions import InvalidNameError
from ..models import Project
from .tree_store import TreeStore

logger = logging.getLogger(__name__)


def create_project(store: TreeStore, name: str, key: str) -> Project:
    """Create a project; a duplicate key surfaces as ConflictError from the store."""
    if not name or not name.strip():
        raise InvalidNameError(name, "name must not be empty")
    if not key or not key.strip():
        raise InvalidNameError(key, "key must not be empty")

    def _create(store: TreeStore) -> Project:
        now = utcnow()
        project = store.add_project(
            Project(name=name.strip(), key=key.strip(), created_at=now, updated_at=now)
        )
        logger.info("Created project %s (%s)", project.id, project.key)
        return project

    return store.run_in_transaction(_create)
