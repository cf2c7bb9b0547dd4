"""
Service container.

The container is what repositories are constructed with. It resolves
model identifiers (classes or dotted import paths) to instances, hands
out the thread-local SQLAlchemy session and keeps singletons, including
the per-class repository instances returned by Repository.instance().
"""

import threading
from collections.abc import Hashable
from typing import Any, Callable, Optional, TypeVar, Union

from pydantic import ImportString, TypeAdapter, ValidationError
from sqlalchemy import Engine
from sqlalchemy.orm import Session, scoped_session

from orm_repositories.core.config import Settings, get_settings
from orm_repositories.core.database import create_db_engine, create_scoped_session
from orm_repositories.core.logging_config import get_logger
from orm_repositories.exceptions import BindingResolutionError

logger = get_logger(__name__)

# Global container instance
_container: Optional["Container"] = None
_container_lock = threading.Lock()

T = TypeVar("T")

_import_string = TypeAdapter(ImportString)


class Container:
    """
    Application container for the repository layer.

    Attributes:
        settings: Settings the container was built from
        engine: SQLAlchemy engine
        autocommit: Whether repositories commit after writes
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        engine: Optional[Engine] = None,
        session: Optional[scoped_session[Session]] = None,
    ):
        """
        Initialize the container.

        Args:
            settings: Settings to use (defaults to get_settings())
            engine: Engine to use (defaults to one built from settings.database_url)
            session: Session registry (defaults to a scoped_session on the engine)
        """
        self.settings = settings or get_settings()
        self.engine = engine or create_db_engine(
            self.settings.database_url,
            echo=self.settings.database_echo,
        )
        self._session = session or create_scoped_session(self.engine)
        self._bindings: dict[Any, Callable[[], Any]] = {}
        self._singletons: dict[Any, Any] = {}
        logger.debug(
            "Container initialized",
            extra={"dialect": self.engine.dialect.name, "autocommit": self.autocommit},
        )

    @property
    def autocommit(self) -> bool:
        return self.settings.autocommit

    @property
    def session(self) -> Session:
        """The current thread's session."""
        return self._session()

    def remove_session(self) -> None:
        """Close and discard the current thread's session (end of request)."""
        self._session.remove()

    def bind(self, abstract: Any, factory: Callable[[], Any]) -> None:
        """
        Register a factory for an identifier.

        make(abstract) will call factory() instead of instantiating
        abstract directly.
        """
        self._bindings[abstract] = factory

    def resolve(self, abstract: Union[str, type]) -> type:
        """
        Resolve an identifier to a class.

        Args:
            abstract: A class, or a dotted path ("pkg.module.Class" or
                "pkg.module:Class")

        Raises:
            BindingResolutionError: If a string does not name an importable class
        """
        if isinstance(abstract, type):
            return abstract
        if not isinstance(abstract, str):
            raise BindingResolutionError(
                f"Cannot resolve {abstract!r}: expected a class or a dotted import path"
            )
        try:
            resolved = _import_string.validate_python(abstract)
        except ValidationError as exc:
            raise BindingResolutionError(f"Target class [{abstract}] does not exist") from exc
        if not isinstance(resolved, type):
            raise BindingResolutionError(f"Target [{abstract}] is not a class")
        return resolved

    def make(self, abstract: Union[str, type], *args: Any, **kwargs: Any) -> Any:
        """
        Build an instance of an identifier.

        Bindings win over direct instantiation; singletons are returned
        as-is.

        Raises:
            BindingResolutionError: If abstract cannot identify a class
        """
        if not isinstance(abstract, Hashable):
            raise BindingResolutionError(
                f"Cannot resolve {abstract!r}: expected a class or a dotted import path"
            )
        if abstract in self._singletons:
            return self._singletons[abstract]
        if abstract in self._bindings:
            return self._bindings[abstract]()
        return self.resolve(abstract)(*args, **kwargs)

    def singleton(self, abstract: Any, factory: Callable[[], T]) -> T:
        """
        Return the shared instance for an identifier, building it on first use.
        """
        if abstract not in self._singletons:
            self._singletons[abstract] = factory()
            logger.debug("Singleton registered", extra={"abstract": getattr(abstract, "__name__", abstract)})
        return self._singletons[abstract]

    def forget_singletons(self) -> None:
        self._singletons.clear()


def get_container() -> Container:
    """
    Get the global container instance, creating it from settings on first use.
    """
    global _container
    with _container_lock:
        if _container is None:
            _container = Container()
        return _container


def set_container(container: Optional[Container]) -> None:
    """
    Replace the global container.

    Repository singletons live on the container, so this also replaces
    every Repository.instance(). Pass None to reset.
    """
    global _container
    with _container_lock:
        _container = container
