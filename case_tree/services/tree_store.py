"""
Persistence boundary for the folder tree.

``TreeStore`` is the row-level contract the tree services depend on: point
lookups, scans by parent, project and path prefix, row writes, and a
transaction scope. ``SqlAlchemyTreeStore`` implements it on top of a
SQLAlchemy session factory; each ``run_in_transaction`` call owns exactly
one session and one database transaction.
"""

import abc
import logging
from typing import Any, Callable, Iterable, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from ..exceptions import ConflictError, CrossProjectError, NotFoundError, TransientStoreError
from ..models import Folder, Project, TestCase
from .path_codec import descendant_prefix

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Postgres serialization_failure and deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}
_RETRYABLE_MESSAGES = ("database is locked", "database is busy", "could not serialize")


class TreeStore(abc.ABC):
    """Contract for the storage the tree services run against."""

    @abc.abstractmethod
    def run_in_transaction(self, fn: Callable[["TreeStore"], T]) -> T:
        """
        Run ``fn(store)`` inside one transaction and return its result.

        Every row read or written by ``fn`` through this store belongs to
        that transaction. The transaction commits when ``fn`` returns and
        rolls back entirely when it raises. Nested calls join the
        enclosing transaction.
        """

    # Point lookups

    @abc.abstractmethod
    def get_project(self, project_id: str) -> Optional[Project]:
        ...

    @abc.abstractmethod
    def get_folder(self, folder_id: str) -> Optional[Folder]:
        ...

    @abc.abstractmethod
    def get_test_case(self, test_case_id: str) -> Optional[TestCase]:
        ...

    # Scans

    @abc.abstractmethod
    def list_child_folders(self, project_id: str, parent_id: Optional[str]) -> list[Folder]:
        """Direct child folders ordered by (sort_order, name); parent_id None means root level."""

    @abc.abstractmethod
    def list_child_test_cases(self, project_id: str, folder_id: Optional[str]) -> list[TestCase]:
        """Test cases directly in a folder ordered by name; folder_id None means unfiled."""

    @abc.abstractmethod
    def list_descendant_folders_by_path_prefix(self, project_id: str, path_prefix: str) -> list[Folder]:
        """All folders whose path starts with ``path_prefix + "/"``, shallowest first."""

    @abc.abstractmethod
    def list_folders_by_paths(self, project_id: str, paths: Iterable[str]) -> list[Folder]:
        ...

    @abc.abstractmethod
    def list_folders(self, project_id: str) -> list[Folder]:
        ...

    @abc.abstractmethod
    def list_test_cases(self, project_id: str) -> list[TestCase]:
        ...

    @abc.abstractmethod
    def list_test_cases_in_folders(self, project_id: str, folder_ids: Iterable[str]) -> list[TestCase]:
        ...

    @abc.abstractmethod
    def find_child_folder_by_name(
        self, project_id: str, parent_id: Optional[str], name: str
    ) -> Optional[Folder]:
        ...

    @abc.abstractmethod
    def max_child_sort_order(self, project_id: str, parent_id: Optional[str]) -> Optional[int]:
        ...

    # Writes

    @abc.abstractmethod
    def add_project(self, project: Project) -> Project:
        ...

    @abc.abstractmethod
    def add_folder(self, folder: Folder) -> Folder:
        ...

    @abc.abstractmethod
    def add_test_case(self, test_case: TestCase) -> TestCase:
        ...

    @abc.abstractmethod
    def update_folder(self, folder_id: str, fields: dict[str, Any]) -> Folder:
        ...

    @abc.abstractmethod
    def update_test_case(self, test_case_id: str, fields: dict[str, Any]) -> TestCase:
        ...

    @abc.abstractmethod
    def delete_folder(self, folder_id: str) -> None:
        ...

    @abc.abstractmethod
    def delete_test_case(self, test_case_id: str) -> None:
        ...


def _is_retryable(exc: OperationalError) -> bool:
    """Whether a store failure is a lock, serialization or connection problem."""
    if exc.connection_invalidated:
        return True
    sqlstate = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _RETRYABLE_MESSAGES)


class SqlAlchemyTreeStore(TreeStore):
    """
    TreeStore backed by SQLAlchemy ORM sessions.

    A store instance is meant for one caller at a time (one request, one
    worker thread); concurrent callers each build their own store from a
    shared session factory.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._session: Optional[Session] = None

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("TreeStore used outside run_in_transaction()")
        return self._session

    def run_in_transaction(self, fn: Callable[[TreeStore], T]) -> T:
        if self._session is not None:
            return fn(self)

        session = self._session_factory()
        self._session = session
        try:
            with session.begin():
                return fn(self)
        except OperationalError as exc:
            if _is_retryable(exc):
                logger.warning("Transaction aborted by the store, caller may retry: %s", exc.orig)
                raise TransientStoreError(f"Transaction aborted by the store: {exc.orig}") from exc
            raise
        except IntegrityError as exc:
            logger.warning("Transaction rejected by a store constraint: %s", exc.orig)
            raise ConflictError(f"Write conflicts with existing data: {exc.orig}") from exc
        finally:
            self._session = None
            session.close()

    # Point lookups

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.session.get(Project, project_id)

    def get_folder(self, folder_id: str) -> Optional[Folder]:
        return self.session.get(Folder, folder_id)

    def get_test_case(self, test_case_id: str) -> Optional[TestCase]:
        return self.session.get(TestCase, test_case_id)

    # Scans

    def list_child_folders(self, project_id: str, parent_id: Optional[str]) -> list[Folder]:
        stmt = (
            select(Folder)
            .where(Folder.project_id == project_id, _parent_clause(parent_id))
            .order_by(Folder.sort_order, Folder.name, Folder.id)
        )
        return list(self.session.scalars(stmt))

    def list_child_test_cases(self, project_id: str, folder_id: Optional[str]) -> list[TestCase]:
        folder_clause = TestCase.folder_id.is_(None) if folder_id is None else TestCase.folder_id == folder_id
        stmt = (
            select(TestCase)
            .where(TestCase.project_id == project_id, folder_clause)
            .order_by(TestCase.name, TestCase.id)
        )
        return list(self.session.scalars(stmt))

    def list_descendant_folders_by_path_prefix(self, project_id: str, path_prefix: str) -> list[Folder]:
        stmt = (
            select(Folder)
            .where(
                Folder.project_id == project_id,
                Folder.path.startswith(descendant_prefix(path_prefix), autoescape=True),
            )
            .order_by(Folder.level, Folder.path)
        )
        return list(self.session.scalars(stmt))

    def list_folders_by_paths(self, project_id: str, paths: Iterable[str]) -> list[Folder]:
        paths = list(paths)
        if not paths:
            return []
        stmt = (
            select(Folder)
            .where(Folder.project_id == project_id, Folder.path.in_(paths))
            .order_by(Folder.level)
        )
        return list(self.session.scalars(stmt))

    def list_folders(self, project_id: str) -> list[Folder]:
        stmt = select(Folder).where(Folder.project_id == project_id).order_by(Folder.level, Folder.path)
        return list(self.session.scalars(stmt))

    def list_test_cases(self, project_id: str) -> list[TestCase]:
        stmt = select(TestCase).where(TestCase.project_id == project_id).order_by(TestCase.name, TestCase.id)
        return list(self.session.scalars(stmt))

    def list_test_cases_in_folders(self, project_id: str, folder_ids: Iterable[str]) -> list[TestCase]:
        folder_ids = list(folder_ids)
        if not folder_ids:
            return []
        stmt = (
            select(TestCase)
            .where(TestCase.project_id == project_id, TestCase.folder_id.in_(folder_ids))
            .order_by(TestCase.name, TestCase.id)
        )
        return list(self.session.scalars(stmt))

    def find_child_folder_by_name(
        self, project_id: str, parent_id: Optional[str], name: str
    ) -> Optional[Folder]:
        stmt = select(Folder).where(
            Folder.project_id == project_id,
            _parent_clause(parent_id),
            Folder.name == name,
        )
        return self.session.scalars(stmt).first()

    def max_child_sort_order(self, project_id: str, parent_id: Optional[str]) -> Optional[int]:
        stmt = select(func.max(Folder.sort_order)).where(
            Folder.project_id == project_id,
            _parent_clause(parent_id),
        )
        return self.session.scalar(stmt)

    # Writes

    def add_project(self, project: Project) -> Project:
        self.session.add(project)
        self.session.flush()
        return project

    def add_folder(self, folder: Folder) -> Folder:
        self.session.add(folder)
        self.session.flush()
        return folder

    def add_test_case(self, test_case: TestCase) -> TestCase:
        self.session.add(test_case)
        self.session.flush()
        return test_case

    def update_folder(self, folder_id: str, fields: dict[str, Any]) -> Folder:
        folder = self.session.get(Folder, folder_id)
        if folder is None:
            raise NotFoundError("Folder", folder_id)
        for field, value in fields.items():
            setattr(folder, field, value)
        self.session.flush()
        return folder

    def update_test_case(self, test_case_id: str, fields: dict[str, Any]) -> TestCase:
        test_case = self.session.get(TestCase, test_case_id)
        if test_case is None:
            raise NotFoundError("Test case", test_case_id)
        for field, value in fields.items():
            setattr(test_case, field, value)
        self.session.flush()
        return test_case

    def delete_folder(self, folder_id: str) -> None:
        folder = self.session.get(Folder, folder_id)
        if folder is not None:
            self.session.delete(folder)
            # One statement per row keeps child-before-parent order for the FK
            self.session.flush()

    def delete_test_case(self, test_case_id: str) -> None:
        test_case = self.session.get(TestCase, test_case_id)
        if test_case is not None:
            self.session.delete(test_case)
            self.session.flush()


def _parent_clause(parent_id: Optional[str]):
    if parent_id is None:
        return Folder.parent_id.is_(None)
    return Folder.parent_id == parent_id


def require_project(store: TreeStore, project_id: str) -> Project:
    project = store.get_project(project_id)
    if project is None:
        raise NotFoundError("Project", project_id)
    return project


def require_folder(store: TreeStore, folder_id: str, project_id: Optional[str] = None) -> Folder:
    """Load a folder, optionally checking that it belongs to ``project_id``."""
    folder = store.get_folder(folder_id)
    if folder is None:
        raise NotFoundError("Folder", folder_id)
    if project_id is not None and folder.project_id != project_id:
        raise CrossProjectError("Folder", folder_id, project_id)
    return folder
