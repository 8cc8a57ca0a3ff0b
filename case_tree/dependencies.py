"""
FastAPI dependencies wiring the tree services to a request.

Every request gets its own store and services; nothing is shared between
requests except the session factory.
"""

from fastapi import Depends, Header
from sqlalchemy.orm import sessionmaker

from .config import Settings, get_settings
from .database import get_session_factory
from .services.tree_mutation import TreeMutationService
from .services.tree_reader import TreeReader
from .services.tree_store import SqlAlchemyTreeStore, TreeStore


def get_tree_store(session_factory: sessionmaker = Depends(get_session_factory)) -> TreeStore:
    return SqlAlchemyTreeStore(session_factory)


def get_mutation_service(
    store: TreeStore = Depends(get_tree_store),
    settings: Settings = Depends(get_settings),
) -> TreeMutationService:
    return TreeMutationService(
        store,
        max_depth=settings.max_folder_depth,
        default_actor=settings.default_actor,
    )


def get_tree_reader(
    store: TreeStore = Depends(get_tree_store),
    settings: Settings = Depends(get_settings),
) -> TreeReader:
    return TreeReader(store, max_depth=settings.max_folder_depth)


def get_actor(x_actor: str | None = Header(default=None)) -> str | None:
    """Caller-supplied actor id for audit columns; identity is verified upstream."""
    return x_actor
