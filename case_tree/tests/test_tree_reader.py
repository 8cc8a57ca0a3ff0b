"""
Unit tests for the tree read side.

Tests cover:
- build_tree: nesting, ordering of folders and test cases, depth guard
- TreeReader.build_tree: whole project and subtree reads
- TreeReader.list_children
- TreeReader.get_breadcrumb, including the parent-id fallback
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytest
from sqlalchemy import update

from case_tree.database import Base, create_db_engine, create_session_factory
from case_tree.exceptions import CrossProjectError, MaxDepthExceededError, NotFoundError
from case_tree.models import Folder
from case_tree.services.projects import create_project
from case_tree.services.tree_mutation import TreeMutationService
from case_tree.services.tree_reader import TreeReader, build_tree
from case_tree.services.tree_store import SqlAlchemyTreeStore


# Test database setup
TEST_DATABASE_URL = "sqlite:///./test_tree_reader.db"
test_engine = create_db_engine(TEST_DATABASE_URL)
TestSessionLocal = create_session_factory(test_engine)

NOW = datetime(2024, 1, 1)


@dataclass
class FakeFolder:
    id: str
    name: str
    parent_id: Optional[str] = None
    sort_order: int = 0
    path: str = ""
    level: int = 0
    created_at: datetime = NOW
    updated_at: datetime = NOW


@dataclass
class FakeTestCase:
    id: str
    name: str
    folder_id: Optional[str] = None
    created_at: datetime = NOW
    updated_at: datetime = NOW


@pytest.fixture(scope="function")
def store():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    try:
        yield SqlAlchemyTreeStore(TestSessionLocal)
    finally:
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def service(store):
    return TreeMutationService(store)


@pytest.fixture
def reader(store):
    return TreeReader(store)


@pytest.fixture
def project(store):
    return create_project(store, "Project", f"P-{uuid.uuid4().hex[:8]}")


def _names(nodes):
    return [n["name"] for n in nodes]


# ============== build_tree Tests ==============


class TestBuildTree:
    def test_empty(self):
        assert build_tree([], []) == []

    def test_nesting(self):
        folders = [
            FakeFolder("child", "Child", parent_id="root", path="/Root/Child", level=1),
            FakeFolder("root", "Root", path="/Root"),
        ]
        cases = [FakeTestCase("t1", "T1", folder_id="child")]

        tree = build_tree(folders, cases)

        assert _names(tree) == ["Root"]
        child = tree[0]["children"][0]
        assert (child["id"], child["path"], child["level"]) == ("child", "/Root/Child", 1)
        assert child["children"][0]["is_folder"] is False
        assert child["children"][0]["parent_id"] == "child"

    def test_folders_ordered_by_sort_order_then_name(self):
        folders = [
            FakeFolder("c", "C", sort_order=0),
            FakeFolder("b", "B", sort_order=1),
            FakeFolder("a", "A", sort_order=1),
        ]
        assert _names(build_tree(folders, [])) == ["C", "A", "B"]

    def test_folders_before_test_cases(self):
        folders = [FakeFolder("z", "Zeta")]
        cases = [FakeTestCase("t2", "beta"), FakeTestCase("t1", "alpha")]
        assert _names(build_tree(folders, cases)) == ["Zeta", "alpha", "beta"]

    def test_subtree_root(self):
        folders = [
            FakeFolder("a", "A"),
            FakeFolder("b", "B", parent_id="a", level=1),
            FakeFolder("c", "C", parent_id="b", level=2),
        ]
        tree = build_tree(folders, [], root_id="a")
        assert _names(tree) == ["B"]
        assert _names(tree[0]["children"]) == ["C"]

    def test_depth_guard(self):
        folders = [FakeFolder(str(i), f"F{i}", parent_id=str(i - 1) if i else None, level=i) for i in range(4)]
        assert len(build_tree(folders, [], max_depth=4)) == 1
        with pytest.raises(MaxDepthExceededError):
            build_tree(folders, [], max_depth=3)

    def test_orphans_are_left_out(self):
        folders = [FakeFolder("a", "A"), FakeFolder("x", "X", parent_id="missing", level=1)]
        assert _names(build_tree(folders, [])) == ["A"]


# ============== TreeReader.build_tree Tests ==============


class TestReadTree:
    def test_whole_project_includes_unfiled_cases(self, service, reader, project):
        suite = service.create_folder(project.id, None, "Suite")
        service.create_test_case(project.id, suite.id, "Filed")
        service.create_test_case(project.id, None, "Unfiled")

        tree = reader.build_tree(project.id)

        assert _names(tree) == ["Suite", "Unfiled"]
        assert _names(tree[0]["children"]) == ["Filed"]

    def test_subtree(self, service, reader, project):
        a = service.create_folder(project.id, None, "A")
        b = service.create_folder(project.id, a.id, "B")
        service.create_folder(project.id, b.id, "C")
        service.create_test_case(project.id, b.id, "in B")
        service.create_test_case(project.id, a.id, "in A")
        service.create_folder(project.id, None, "Other")

        tree = reader.build_tree(project.id, b.id)

        assert _names(tree) == ["C", "in B"]

    def test_subtree_does_not_include_similar_prefixes(self, service, reader, project):
        suite = service.create_folder(project.id, None, "Suite")
        suite2 = service.create_folder(project.id, None, "Suite2")
        service.create_folder(project.id, suite2.id, "Child")

        assert reader.build_tree(project.id, suite.id) == []

    def test_only_own_project(self, store, service, reader, project):
        other = create_project(store, "Other", "OTHER")
        service.create_folder(other.id, None, "Theirs")
        service.create_folder(project.id, None, "Mine")

        assert _names(reader.build_tree(project.id)) == ["Mine"]

    def test_missing_project(self, reader):
        with pytest.raises(NotFoundError):
            reader.build_tree("missing")

    def test_root_from_other_project(self, store, service, reader, project):
        other = create_project(store, "Other", "OTHER")
        theirs = service.create_folder(other.id, None, "Theirs")
        with pytest.raises(CrossProjectError):
            reader.build_tree(project.id, theirs.id)

    def test_reflects_latest_mutation(self, service, reader, project):
        folder = service.create_folder(project.id, None, "Before")
        assert _names(reader.build_tree(project.id)) == ["Before"]
        service.rename_folder(folder.id, "After")
        assert _names(reader.build_tree(project.id)) == ["After"]


# ============== list_children Tests ==============


class TestListChildren:
    def test_root_children(self, service, reader, project):
        a = service.create_folder(project.id, None, "A")
        service.create_folder(project.id, a.id, "Nested")
        service.create_test_case(project.id, None, "Loose")

        children = reader.list_children(project.id)

        assert _names(children) == ["A", "Loose"]
        assert all(n["children"] == [] for n in children)

    def test_folder_children(self, service, reader, project):
        a = service.create_folder(project.id, None, "A")
        service.create_folder(project.id, a.id, "Nested")
        service.create_test_case(project.id, a.id, "T1")
        assert _names(reader.list_children(project.id, a.id)) == ["Nested", "T1"]

    def test_missing_parent(self, reader, project):
        with pytest.raises(NotFoundError):
            reader.list_children(project.id, "missing")


# ============== get_breadcrumb Tests ==============


class TestBreadcrumb:
    def test_root_folder(self, service, reader, project):
        a = service.create_folder(project.id, None, "A")
        assert [f.id for f in reader.get_breadcrumb(a.id)] == [a.id]

    def test_nested_folder(self, service, reader, project):
        a = service.create_folder(project.id, None, "A")
        b = service.create_folder(project.id, a.id, "B")
        c = service.create_folder(project.id, b.id, "C")
        assert [f.name for f in reader.get_breadcrumb(c.id)] == ["A", "B", "C"]

    def test_falls_back_to_parent_ids(self, service, reader, project, caplog):
        a = service.create_folder(project.id, None, "A")
        b = service.create_folder(project.id, a.id, "B")
        with TestSessionLocal.begin() as session:
            session.execute(update(Folder).where(Folder.id == b.id).values(path="/Elsewhere/B"))

        assert [f.id for f in reader.get_breadcrumb(b.id)] == [a.id, b.id]
        assert "walking parent ids" in caplog.text

    def test_missing_folder(self, reader):
        with pytest.raises(NotFoundError):
            reader.get_breadcrumb("missing")
