"""
Base repository.

A concrete repository names its model in take_model() and gets CRUD,
lookups, filtering, pagination and eager loading for free. Any other
query builder method is reachable directly on the repository:

    class UserRepository(Repository):
        def take_model(self):
            return User

    repo = UserRepository(container)
    repo.with_("token").find(1)
    repo.get_table()  # forwarded to the query builder
    repo.where_in("id", [1, 2]).get()  # builder reset afterwards
"""

import functools
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError

from orm_repositories.core.container import Container, get_container
from orm_repositories.core.logging_config import get_logger, log_with_context
from orm_repositories.exceptions import (
    BindingResolutionError,
    InvalidRepositoryModel,
    UnknownOperation,
)
from orm_repositories.models.base import is_persistable
from orm_repositories.pagination import LengthAwarePaginator
from orm_repositories.query.builder import QueryBuilder

logger = get_logger(__name__)


class Repository(ABC):
    """
    Abstract repository bound to one persistable model.

    Attributes:
        container: Container the repository was built with
        model: Instance of the model returned by take_model()
        query: Builder the next operation runs against; replaced after
            every terminal operation
        relations: Relations the next query eager loads
        sticky_relations: Keep relations across queries instead of
            clearing them once a query has used them
    """

    sticky_relations: bool = False

    def __init__(self, container: Container):
        self.container = container
        self.relations: list[str] = []
        self.model = self._make_model()
        self.query = self._new_query()
        log_with_context(
            logger,
            "debug",
            "Repository constructed",
            repository=type(self).__name__,
            model=type(self.model).__name__,
        )

    @abstractmethod
    def take_model(self) -> Union[str, type]:
        """Model class, or dotted import path of it, this repository works on."""

    @classmethod
    def instance(cls, container: Optional[Container] = None) -> "Repository":
        """
        Shared instance of this repository class.

        Built on first access with the given (or global) container and
        kept as a singleton of that container.
        """
        container = container or get_container()
        return container.singleton(cls, lambda: cls(container))

    def _make_model(self) -> Any:
        identifier = self.take_model()
        name = identifier.__name__ if isinstance(identifier, type) else str(identifier)

        try:
            model = self.container.make(identifier)
        except BindingResolutionError as exc:
            logger.warning(
                "Repository model could not be resolved",
                extra={"repository": type(self).__name__, "model": name},
            )
            raise InvalidRepositoryModel(name, str(exc)) from exc

        if not is_persistable(model):
            logger.warning(
                "Repository model is not a persistable record",
                extra={"repository": type(self).__name__, "model": name},
            )
            raise InvalidRepositoryModel(type(model).__name__)
        return model

    def _new_query(self) -> QueryBuilder:
        return self.model.new_query(
            self.container.session,
            default_per_page=self.container.settings.default_per_page,
        )

    def __getattr__(self, name: str) -> Any:
        # Only reached for names the repository does not define itself
        if name.startswith("_") or name in ("container", "model", "query", "relations"):
            raise AttributeError(name)
        if name in QueryBuilder.forwardable:
            return self._forward(name)
        raise UnknownOperation(type(self).__name__, name)

    def _forward(self, name: str) -> Callable[..., Any]:
        """
        Builder method callable on the repository.

        Terminal methods run like the repository's own operations and
        reset the builder afterwards. Clause methods return the repository
        instead of the builder so a chained terminal call resets it too.
        """
        method = getattr(self.query, name)

        if name in QueryBuilder.terminal:
            @functools.wraps(method)
            def terminal(*args: Any, **kwargs: Any) -> Any:
                eager = name in QueryBuilder.loads_records
                with self._terminal(name, eager=eager) as query:
                    return getattr(query, name)(*args, **kwargs)
            return terminal

        @functools.wraps(method)
        def clause(*args: Any, **kwargs: Any) -> Any:
            query = self.query
            result = getattr(query, name)(*args, **kwargs)
            return self if result is query else result
        return clause

    @contextmanager
    def _terminal(self, operation: str, eager: bool = True) -> Iterator[QueryBuilder]:
        """
        Run one terminal operation against the current builder.

        Applies pending relations when eager is set, then always replaces
        the builder so no clause leaks into the next call.
        """
        query = self.query
        applied: list[str] = []
        started = time.perf_counter()
        try:
            if eager and self.relations:
                applied = list(self.relations)
                if not self.sticky_relations:
                    self.relations = []
                query.with_(applied)
            yield query
        except SQLAlchemyError:
            self.container.session.rollback()
            log_with_context(
                logger,
                "error",
                "Repository operation failed",
                repository=type(self).__name__,
                model=type(self.model).__name__,
                operation=operation,
                exc_info=True,
            )
            raise
        finally:
            self.query = self._new_query()

        log_with_context(
            logger,
            "debug",
            "Repository operation completed",
            repository=type(self).__name__,
            model=type(self.model).__name__,
            operation=operation,
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
            relations=applied,
        )

    def _persist(self, record: Any = None, delete: bool = False) -> None:
        """Flush a write and commit it when the container autocommits."""
        session = self.container.session
        try:
            if delete:
                session.delete(record)
            elif record is not None:
                session.add(record)
            if self.container.autocommit:
                session.commit()
            else:
                session.flush()
        except SQLAlchemyError:
            session.rollback()
            raise

    def with_(self, *relations: Union[str, Sequence[str]]) -> "Repository":
        """
        Eager load relations on the next query.

        Accepts names as separate arguments or one list of names.
        """
        if len(relations) == 1 and isinstance(relations[0], (list, tuple)):
            relations = tuple(relations[0])
        for relation in relations:
            if relation not in self.relations:
                self.relations.append(relation)
        return self

    def all(self, columns: Optional[Sequence[str]] = None) -> list:
        with self._terminal("all") as query:
            return query.get(columns)

    def paginate(
        self,
        per_page: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
        page: int = 1,
    ) -> LengthAwarePaginator:
        with self._terminal("paginate") as query:
            return query.paginate(per_page, columns, page)

    def find(self, id: Any, columns: Optional[Sequence[str]] = None) -> Any:
        with self._terminal("find") as query:
            return query.find(id, columns)

    def find_by(self, field: str, value: Any, columns: Optional[Sequence[str]] = None) -> Any:
        with self._terminal("find_by") as query:
            return query.where(field, value).first(columns)

    def find_where(self, criteria: Mapping[str, Any], columns: Optional[Sequence[str]] = None) -> Any:
        with self._terminal("find_where") as query:
            return query.where(criteria).first(columns)

    def where(self, *args: Any) -> list:
        """
        Records matching a constraint.

        where({"field": value}), where("field", value) and
        where("field", "operator", value) are all accepted.
        """
        with self._terminal("where") as query:
            return query.where(*args).get()

    def create(self, attributes: Mapping[str, Any]) -> Any:
        """Fill a new record with the fillable attributes and persist it."""
        with self._terminal("create", eager=False):
            record = type(self.model)().fill(attributes)
            self._persist(record)
            return record

    def update(self, id: Any, attributes: Mapping[str, Any]) -> bool:
        """
        Mass-assign attributes on the record with the given key.

        Returns True whether or not the record exists.
        """
        with self._terminal("update", eager=False) as query:
            record = query.find(id)
            if record is not None:
                record.fill(attributes)
                self._persist(record)
            return True

    def delete(self, id: Any) -> bool:
        """Delete the record with the given key. False when there is none."""
        with self._terminal("delete", eager=False) as query:
            record = query.find(id)
            if record is None:
                return False
            self._persist(record, delete=True)
            return True

    def count(self) -> int:
        with self._terminal("count", eager=False) as query:
            return query.count()
