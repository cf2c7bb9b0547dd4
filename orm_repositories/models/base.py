"""
Base models and mixins for SQLAlchemy ORM.

Provides the declarative base, the persistable record contract that
repositories check their model against, and ModelMixin, the default
implementation of that contract.
"""

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from sqlalchemy import Column, DateTime, func, inspect
from sqlalchemy.orm import Session, declarative_base

from orm_repositories.core.logging_config import get_logger
from orm_repositories.exceptions import MassAssignmentError
from orm_repositories.query.builder import QueryBuilder

logger = get_logger(__name__)


# SQLAlchemy declarative base for all ORM models
Base = declarative_base()


@runtime_checkable
class PersistableRecord(Protocol):
    """
    What a repository needs from its model.

    Checked structurally with isinstance(); any mapped class providing
    these methods qualifies, whether or not it uses ModelMixin.
    """

    def get_key(self) -> Any: ...

    def fill(self, attributes: Mapping[str, Any]) -> "PersistableRecord": ...

    def to_dict(self) -> dict[str, Any]: ...

    def get_table(self) -> str: ...

    def new_query(self, session: Session, default_per_page: Optional[int] = None) -> QueryBuilder: ...


def is_persistable(instance: Any) -> bool:
    """True when instance is a mapped SQLAlchemy object with the record contract."""
    if not isinstance(instance, PersistableRecord):
        return False
    return inspect(instance, raiseerr=False) is not None


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamp columns.

    Attributes:
        created_at: Timestamp when record was created (immutable)
        updated_at: Timestamp when record was last updated (auto-updated)
    """

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        doc="Timestamp when record was created"
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        doc="Timestamp when record was last updated"
    )


class ModelMixin:
    """
    Mixin implementing the persistable record contract.

    Class attributes:
        __fillable__: Column names accepted by fill(). Empty means every
            column except the primary key.
        __guarded_strict__: Raise MassAssignmentError on non-fillable keys
            instead of dropping them.
        __per_page__: Default page size for paginate().
    """

    __fillable__: tuple[str, ...] = ()
    __guarded_strict__: bool = False
    __per_page__: Optional[int] = None

    @classmethod
    def fillable_attributes(cls) -> set[str]:
        """Column attribute keys that fill() may assign."""
        mapper = inspect(cls)
        if cls.__fillable__:
            return set(cls.__fillable__)
        primary_keys = {column.key for column in mapper.primary_key}
        return {
            attr.key for attr in mapper.column_attrs
            if attr.key not in primary_keys
        }

    def fill(self, attributes: Mapping[str, Any]) -> "ModelMixin":
        """
        Mass-assign attributes, honouring __fillable__.

        Args:
            attributes: Mapping of attribute name to value

        Returns:
            self, for chaining

        Raises:
            MassAssignmentError: On non-fillable keys when __guarded_strict__ is set
        """
        fillable = self.fillable_attributes()
        rejected = [key for key in attributes if key not in fillable]

        if rejected:
            if self.__guarded_strict__:
                raise MassAssignmentError(type(self).__name__, rejected)
            logger.debug(
                "Dropped non-fillable attributes",
                extra={"model": type(self).__name__, "rejected": rejected},
            )

        for key, value in attributes.items():
            if key in fillable:
                setattr(self, key, value)
        return self

    def get_key_name(self) -> str:
        """Name of the (first) primary key attribute."""
        mapper = inspect(type(self))
        return mapper.get_property_by_column(mapper.primary_key[0]).key

    def get_key(self) -> Any:
        """
        Primary key value.

        A scalar for single-column keys, a tuple for composite keys,
        None for records that were never flushed.
        """
        identity = inspect(self).identity
        if identity is None:
            return None
        return identity[0] if len(identity) == 1 else identity

    def get_table(self) -> str:
        """Name of the table backing this model."""
        return self.__table__.name

    @property
    def exists(self) -> bool:
        """Whether the record is persisted (flushed and not deleted)."""
        return inspect(self).persistent

    def new_query(self, session: Session, default_per_page: Optional[int] = None) -> QueryBuilder:
        """
        Fresh query builder for this model bound to a session.

        The model's __per_page__ takes precedence over default_per_page.
        """
        return QueryBuilder(
            type(self),
            session,
            default_per_page=self.__per_page__ or default_per_page,
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Returns:
            Dictionary with all loaded column values

        Note:
            Only includes columns, not relationships. Columns that are
            not loaded (deferred by a column subset) are skipped rather
            than lazily fetched.
        """
        unloaded = inspect(self).unloaded
        return {
            attr.key: getattr(self, attr.key)
            for attr in inspect(type(self)).column_attrs
            if attr.key not in unloaded
        }

    def __repr__(self) -> str:
        """
        String representation of model instance.

        Returns:
            String like "ModelName(id=1, email='a@example.com')"
        """
        attrs = ", ".join(
            f"{key}={repr(value)}"
            for key, value in self.to_dict().items()
            if key in ["id", "name", "title", "email", "username"]
        )
        return f"{self.__class__.__name__}({attrs})"
