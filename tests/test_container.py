"""
Tests for the service container and the global container accessors.
"""

import pytest

from orm_repositories.core import container as container_module
from orm_repositories.core.config import Settings, get_settings
from orm_repositories.core.container import Container, get_container, set_container
from orm_repositories.exceptions import BindingResolutionError

from stubs import PasswordReset, User, UserRepository


@pytest.fixture
def bare_container():
    container = Container(settings=Settings(database_url="sqlite:///:memory:"))
    yield container
    container.remove_session()
    container.engine.dispose()


class TestResolve:

    def test_class_resolves_to_itself(self, bare_container):
        assert bare_container.resolve(User) is User

    @pytest.mark.parametrize("path", ["stubs.User", "stubs:User"])
    def test_dotted_paths(self, bare_container, path):
        assert bare_container.resolve(path) is User

    def test_missing_class(self, bare_container):
        with pytest.raises(BindingResolutionError):
            bare_container.resolve("stubs.Missing")

    def test_non_class_target(self, bare_container):
        with pytest.raises(BindingResolutionError):
            bare_container.resolve("os.path.join")

    def test_non_string_identifier(self, bare_container):
        with pytest.raises(BindingResolutionError):
            bare_container.resolve(42)


class TestMake:

    def test_make_instantiates(self, bare_container):
        assert isinstance(bare_container.make("stubs.PasswordReset"), PasswordReset)

    @pytest.mark.parametrize("abstract", [["stubs.User"], {"model": "stubs.User"}])
    def test_make_rejects_unhashable_identifier(self, bare_container, abstract):
        with pytest.raises(BindingResolutionError):
            bare_container.make(abstract)

    def test_make_passes_arguments(self, bare_container):
        user = bare_container.make(User, email="a@example.com")

        assert user.email == "a@example.com"

    def test_binding_wins(self, bare_container):
        bare_container.bind(User, lambda: User(email="bound@example.com"))

        assert bare_container.make(User).email == "bound@example.com"

    def test_singleton_built_once(self, bare_container):
        calls = []

        def factory():
            calls.append(1)
            return object()

        first = bare_container.singleton("thing", factory)
        second = bare_container.singleton("thing", factory)

        assert first is second
        assert len(calls) == 1
        assert bare_container.make("thing") is first

    def test_forget_singletons(self, bare_container):
        first = bare_container.singleton("thing", object)
        bare_container.forget_singletons()

        assert bare_container.singleton("thing", object) is not first


class TestSession:

    def test_session_is_thread_local_and_stable(self, bare_container):
        assert bare_container.session is bare_container.session

    def test_remove_session_gives_new_one(self, bare_container):
        first = bare_container.session
        bare_container.remove_session()

        assert bare_container.session is not first

    def test_autocommit_follows_settings(self):
        container = Container(settings=Settings(database_url="sqlite:///:memory:", autocommit=False))

        assert container.autocommit is False
        container.engine.dispose()


class TestGlobalContainer:

    def test_get_container_builds_from_settings(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
        monkeypatch.setattr(container_module, "_container", None)
        get_settings.cache_clear()

        try:
            container = get_container()

            assert container is get_container()
            assert container.engine.dialect.name == "sqlite"
        finally:
            set_container(None)
            get_settings.cache_clear()

    def test_set_container_replaces_repository_singletons(self, container):
        first = UserRepository.instance()

        other = Container(settings=Settings(database_url="sqlite:///:memory:"))
        set_container(other)
        second = UserRepository.instance()

        assert second is not first
        assert second.container is other
        other.engine.dispose()
