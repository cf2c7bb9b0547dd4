"""
Fluent query builder over SQLAlchemy select().

A QueryBuilder is bound to one mapped model and one Session. Clause
methods (where, order_by, with_, ...) mutate the builder and return it;
terminal methods (get, first, find, count, paginate, ...) execute the
accumulated statement.
"""

import operator
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from sqlalchemy import Select, and_, func, inspect, or_, select
from sqlalchemy.orm import Session, load_only, selectinload
from sqlalchemy.sql.elements import ColumnElement

from orm_repositories.exceptions import InvalidField, InvalidOperator, RelationNotFound
from orm_repositories.pagination import LengthAwarePaginator

DEFAULT_PER_PAGE = 15

_OPERATORS: dict[str, Callable[[Any, Any], ColumnElement]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "like": lambda column, value: column.like(value),
    "not like": lambda column, value: column.not_like(value),
    "ilike": lambda column, value: column.ilike(value),
    "in": lambda column, value: column.in_(value),
    "not in": lambda column, value: column.not_in(value),
}


class QueryBuilder:
    """
    In-progress query for a single model.

    Attributes:
        forwardable: Public builder methods a Repository forwards to when
            it does not define the method itself.
        terminal: Forwardable methods that execute the query
        loads_records: Terminal methods whose results eager load relations
    """

    forwardable = frozenset({
        "where", "or_where", "where_in", "where_not_in", "where_null", "where_not_null",
        "order_by", "latest", "oldest", "limit", "take", "offset", "skip",
        "with_", "select_columns",
        "get", "all", "first", "find", "count", "exists", "pluck", "paginate",
        "get_table", "get_model", "get_key_name", "to_statement",
    })

    terminal = frozenset({"get", "all", "first", "find", "count", "exists", "pluck", "paginate"})

    loads_records = frozenset({"get", "all", "first", "find", "paginate"})

    def __init__(self, model: type, session: Session, default_per_page: Optional[int] = None):
        self._model = model
        self._session = session
        self._mapper = inspect(model)
        self._default_per_page = default_per_page or DEFAULT_PER_PAGE
        self._where: Optional[ColumnElement] = None
        self._order_by: list[ColumnElement] = []
        self._eager: dict[str, Any] = {}
        self._columns: Optional[list[str]] = None
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    def __repr__(self) -> str:
        return f"QueryBuilder({self._model.__name__})"

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def _column(self, field: str) -> Any:
        if field not in self._mapper.column_attrs:
            raise InvalidField(self._model.__name__, field)
        return getattr(self._model, field)

    def _comparison(self, field: str, op: str, value: Any) -> ColumnElement:
        key = op.lower() if isinstance(op, str) else op
        if key not in _OPERATORS:
            raise InvalidOperator(op)
        return _OPERATORS[key](self._column(field), value)

    def _clause(self, args: tuple) -> ColumnElement:
        """Turn any supported where() call shape into one SQL expression."""
        if len(args) == 1:
            criteria = args[0]
            if isinstance(criteria, Mapping):
                if not criteria:
                    raise ValueError("where() criteria mapping must not be empty")
                return and_(*(
                    self._comparison(field, "=", value)
                    for field, value in criteria.items()
                ))
            if isinstance(criteria, ColumnElement):
                return criteria
            raise TypeError(
                f"where() expects a mapping or SQL expression, got {type(criteria).__name__}"
            )
        if len(args) == 2:
            field, value = args
            return self._comparison(field, "=", value)
        if len(args) == 3:
            field, op, value = args
            return self._comparison(field, op, value)
        raise TypeError(f"where() takes 1 to 3 arguments ({len(args)} given)")

    def _add_clause(self, clause: ColumnElement, boolean: str = "and") -> "QueryBuilder":
        if self._where is None:
            self._where = clause
        elif boolean == "or":
            self._where = or_(self._where, clause)
        else:
            self._where = and_(self._where, clause)
        return self

    def _relation_loader(self, name: str) -> Any:
        """selectinload option for a relation, following dotted paths."""
        loader = None
        mapper = self._mapper
        for part in name.split("."):
            relationship = mapper.relationships.get(part)
            if relationship is None:
                raise RelationNotFound(mapper.class_.__name__, part)
            attribute = getattr(mapper.class_, part)
            loader = selectinload(attribute) if loader is None else loader.selectinload(attribute)
            mapper = relationship.mapper
        return loader

    def _base_statement(self) -> Select:
        statement = select(self._model)
        if self._where is not None:
            statement = statement.where(self._where)
        return statement

    def _primary_key_order(self) -> list:
        return list(self._mapper.primary_key)

    # ------------------------------------------------------------------
    # Clauses
    # ------------------------------------------------------------------

    def where(self, *args: Any) -> "QueryBuilder":
        """
        Add a constraint joined with AND.

        Accepts where({"field": value, ...}), where("field", value),
        where("field", "operator", value) or a SQLAlchemy expression.
        """
        return self._add_clause(self._clause(args))

    def or_where(self, *args: Any) -> "QueryBuilder":
        """Same shapes as where(), joined with OR to everything before it."""
        return self._add_clause(self._clause(args), boolean="or")

    def where_in(self, field: str, values: Iterable[Any]) -> "QueryBuilder":
        return self._add_clause(self._column(field).in_(list(values)))

    def where_not_in(self, field: str, values: Iterable[Any]) -> "QueryBuilder":
        return self._add_clause(self._column(field).not_in(list(values)))

    def where_null(self, field: str) -> "QueryBuilder":
        return self._add_clause(self._column(field).is_(None))

    def where_not_null(self, field: str) -> "QueryBuilder":
        return self._add_clause(self._column(field).is_not(None))

    def order_by(self, field: str, direction: str = "asc") -> "QueryBuilder":
        direction = direction.lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Order direction must be 'asc' or 'desc', got: {direction}")
        column = self._column(field)
        self._order_by.append(column.desc() if direction == "desc" else column.asc())
        return self

    def latest(self, field: str = "created_at") -> "QueryBuilder":
        return self.order_by(field, "desc")

    def oldest(self, field: str = "created_at") -> "QueryBuilder":
        return self.order_by(field, "asc")

    def limit(self, value: int) -> "QueryBuilder":
        if value < 0:
            raise ValueError("limit must not be negative")
        self._limit = value
        return self

    take = limit

    def offset(self, value: int) -> "QueryBuilder":
        if value < 0:
            raise ValueError("offset must not be negative")
        self._offset = value
        return self

    skip = offset

    def with_(self, *relations: Any) -> "QueryBuilder":
        """
        Eager load relations with the query results.

        Takes names as separate arguments or as one list. Dotted names
        ("token.user") load nested relations.
        """
        if len(relations) == 1 and isinstance(relations[0], (list, tuple)):
            relations = tuple(relations[0])
        for name in relations:
            if name not in self._eager:
                self._eager[name] = self._relation_loader(name)
        return self

    def select_columns(self, columns: Optional[Sequence[str]]) -> "QueryBuilder":
        """
        Restrict loaded columns. None or ["*"] loads every column.

        The primary key is always loaded.
        """
        if columns is None or list(columns) == ["*"]:
            self._columns = None
            return self
        for field in columns:
            self._column(field)
        self._columns = list(columns)
        return self

    # ------------------------------------------------------------------
    # Statement
    # ------------------------------------------------------------------

    def to_statement(self) -> Select:
        """The SELECT this builder would execute."""
        statement = self._base_statement()

        options = list(self._eager.values())
        if self._columns is not None:
            options.append(load_only(*(getattr(self._model, field) for field in self._columns)))
        if options:
            statement = statement.options(*options)

        if self._order_by:
            statement = statement.order_by(*self._order_by)
        if self._limit is not None:
            statement = statement.limit(self._limit)
        if self._offset is not None:
            statement = statement.offset(self._offset)
        return statement

    # ------------------------------------------------------------------
    # Terminal operations
    # ------------------------------------------------------------------

    def get(self, columns: Optional[Sequence[str]] = None) -> list:
        """Execute the query and return every matching record."""
        if columns is not None:
            self.select_columns(columns)
        return list(self._session.scalars(self.to_statement()).all())

    def all(self, columns: Optional[Sequence[str]] = None) -> list:
        return self.get(columns)

    def first(self, columns: Optional[Sequence[str]] = None) -> Optional[Any]:
        """First matching record or None."""
        if columns is not None:
            self.select_columns(columns)
        return self._session.scalars(self.to_statement().limit(1)).first()

    def find(self, id: Any, columns: Optional[Sequence[str]] = None) -> Any:
        """
        Find by primary key.

        A list (or set) of ids returns a list of records. Composite keys
        are given as a tuple in primary key column order.
        """
        primary_key = self._mapper.primary_key

        if isinstance(id, (list, set, frozenset)):
            if len(primary_key) != 1:
                raise ValueError("find() with many ids requires a single-column primary key")
            self._add_clause(primary_key[0].in_(list(id)))
            return self.get(columns)

        values = tuple(id) if len(primary_key) > 1 else (id,)
        if len(values) != len(primary_key):
            raise ValueError(
                f"{self._model.__name__} has a {len(primary_key)}-column primary key, "
                f"got {len(values)} value(s)"
            )
        for column, value in zip(primary_key, values):
            self._add_clause(column == value)
        return self.first(columns)

    def count(self) -> int:
        """Number of records matching the constraints (ordering and limits ignored)."""
        statement = select(func.count()).select_from(self._base_statement().subquery())
        return self._session.scalar(statement)

    def exists(self) -> bool:
        return bool(self._session.scalar(select(self._base_statement().exists())))

    def pluck(self, field: str) -> list:
        """Values of a single column for every matching record."""
        statement = select(self._column(field)).select_from(self._model)
        if self._where is not None:
            statement = statement.where(self._where)
        if self._order_by:
            statement = statement.order_by(*self._order_by)
        if self._limit is not None:
            statement = statement.limit(self._limit)
        if self._offset is not None:
            statement = statement.offset(self._offset)
        return list(self._session.scalars(statement).all())

    def paginate(
        self,
        per_page: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
        page: int = 1,
    ) -> LengthAwarePaginator:
        """
        Fetch one page of results together with the total count.

        Without an explicit order_by() pages are ordered by primary key
        so consecutive pages never overlap.
        """
        if per_page is None:
            per_page = self._default_per_page
        if per_page < 1:
            raise ValueError("per_page must be greater than zero")
        if page < 1:
            raise ValueError("page must be 1 or greater")

        total = self.count()

        if columns is not None:
            self.select_columns(columns)
        statement = self.to_statement()
        if not self._order_by:
            statement = statement.order_by(*self._primary_key_order())
        statement = statement.limit(per_page).offset((page - 1) * per_page)
        items = list(self._session.scalars(statement).all())

        return LengthAwarePaginator(items, total=total, per_page=per_page, current_page=page)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_model(self) -> type:
        return self._model

    def get_table(self) -> str:
        return self._model.__table__.name

    def get_key_name(self) -> str:
        return self._mapper.get_property_by_column(self._mapper.primary_key[0]).key
