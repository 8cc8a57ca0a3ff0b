"""
Models package for the test case tree service.

Exports all SQLAlchemy models for database operations.
"""

from .project import Project
from .folder import Folder
from .test_case import TestCase

__all__ = [
    "Project",
    "Folder",
    "TestCase",
]
