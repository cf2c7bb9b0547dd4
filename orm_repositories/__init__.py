"""
Repository pattern for SQLAlchemy models.

Subclass Repository, return the model from take_model() and get CRUD,
lookups, filtering, pagination and eager loading without writing
queries by hand.
"""

from orm_repositories.core.container import Container, get_container, set_container
from orm_repositories.exceptions import (
    InvalidRepositoryModel,
    RelationNotFound,
    RepositoryError,
    UnknownOperation,
)
from orm_repositories.models.base import Base, ModelMixin, PersistableRecord, TimestampMixin
from orm_repositories.pagination import LengthAwarePaginator
from orm_repositories.query.builder import QueryBuilder
from orm_repositories.repositories.base import Repository

__all__ = [
    "Base",
    "Container",
    "InvalidRepositoryModel",
    "LengthAwarePaginator",
    "ModelMixin",
    "PersistableRecord",
    "QueryBuilder",
    "RelationNotFound",
    "Repository",
    "RepositoryError",
    "TimestampMixin",
    "UnknownOperation",
    "get_container",
    "set_container",
]
