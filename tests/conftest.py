"""
tests/conftest.py
"""
from __future__ import annotations

import datetime as _dt
import itertools
import os
import uuid
from pathlib import Path
from typing import Generator

import pytest
from flask.testing import FlaskClient
from pytest import MonkeyPatch

os.environ.setdefault("SWEARJAR_SECRET_KEY", "test-secret")

# The single-file app lives here:
from swearjar.jar import app, init_db  # noqa: E402

BASE_NOW = _dt.datetime(2099, 1, 1, 12, 0, tzinfo=_dt.timezone.utc)


@pytest.fixture(scope="session")
def _tmp_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """One temp file for the whole test session (faster than per-test)."""
    return tmp_path_factory.mktemp("data") / "test.sqlite3"


@pytest.fixture(scope="session", autouse=True)
def _configure_app(_tmp_db_path: Path) -> None:
    """
    Configure the Flask app *once* before the first test is collected.
    """
    app.config.update(
        TESTING=True,
        DATABASE=str(_tmp_db_path),
        STORE="sqlite",
        TIMEZONE="UTC",
        COOKIE_SECURE=False,
    )
    with app.app_context():
        init_db()


@pytest.fixture
def client() -> Generator[FlaskClient, None, None]:
    """
    Gives each test an isolated application context *and* test client.
    """
    with app.test_client() as client:
        with app.app_context():
            yield client


@pytest.fixture
def username() -> str:
    """A name nobody else in the session uses, so logs never collide."""
    return f"tester-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def logged_in(client: FlaskClient, username: str) -> FlaskClient:
    rv = client.post("/login", json={"username": username})
    assert rv.status_code == 200
    return client


@pytest.fixture(autouse=True, scope="session")
def _fast_clock():
    """
    Patch swearjar.jar.utc_now for the whole session so every call returns
    an ever-increasing timestamp on the same day.
    """
    from swearjar import jar  # import here to avoid early import

    counter = itertools.count()  # 0, 1, 2, …

    def _fake_now():
        return BASE_NOW + _dt.timedelta(seconds=next(counter))

    mp = MonkeyPatch()
    mp.setattr(jar, "utc_now", _fake_now)

    yield  # tests run here

    mp.undo()
