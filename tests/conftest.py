"""Pytest configuration and shared fixtures."""
import pytest
from typing import Callable, Dict, Any

from limit_modified import db, repo
from limit_modified import content as content_module
from limit_modified import main
from limit_modified.content import Host, build_host
from limit_modified.models import User
from limit_modified.schema import create_schema


class FakeClock:
    """Site-local "now" handed to the save pipeline."""

    def __init__(self, value: str) -> None:
        self.value = value

    def set(self, value: str) -> None:
        self.value = value

    def __call__(self) -> str:
        return self.value


@pytest.fixture
def env(tmp_path, monkeypatch):
    """Isolated SQLite database and deterministic settings."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("SITE_TIMEZONE", "UTC")
    monkeypatch.setenv("CSRF_SECRET", "test-secret")
    monkeypatch.delenv("LIMIT_MODIFIED_DATE_TYPES", raising=False)
    db.reset_engine()
    main.reset_host()
    yield
    main.reset_host()
    db.reset_engine()


@pytest.fixture
def engine(env):
    eng = db.get_engine()
    create_schema(eng)
    repo.create_user(eng, "u-admin", "admin")
    repo.create_user(eng, "u-editor", "editor")
    repo.create_user(eng, "u-author", "author")
    repo.create_user(eng, "u-other", "author")
    repo.create_user(eng, "u-subscriber", "subscriber")
    return eng


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    fake = FakeClock("2024-01-01 09:00:00")
    monkeypatch.setattr(content_module, "now_local", fake)
    return fake


@pytest.fixture
def host(engine, clock) -> Host:
    return build_host(engine)


@pytest.fixture
def editor() -> User:
    return User(id="u-editor", role="editor")


@pytest.fixture
def make_post(host: Host, clock: FakeClock) -> Callable[..., Dict[str, Any]]:
    """Create an item at a given site-local time."""
    def _make(created_at: str = "2024-01-01 09:00:00", type: str = "post", author_id: str = "u-author", **kwargs):
        clock.set(created_at)
        return content_module.create_item(
            host,
            type=type,
            title=kwargs.pop("title", "Hello"),
            body=kwargs.pop("body", "First draft"),
            author_id=author_id,
            **kwargs,
        )
    return _make
