"""
Declarative base and the persistable record contract.
"""

from orm_repositories.models.base import (
    Base,
    ModelMixin,
    PersistableRecord,
    TimestampMixin,
    is_persistable,
)

__all__ = [
    "Base",
    "ModelMixin",
    "PersistableRecord",
    "TimestampMixin",
    "is_persistable",
]
