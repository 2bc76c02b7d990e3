"""
Pytest configuration and fixtures for the test suite.
"""
import pytest
from sqlalchemy import func, select

from chatstore import create_app, store
from chatstore.models import db


@pytest.fixture(scope="function")
def app():
    """App bound to a fresh in-memory SQLite database."""
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def bob(app):
    """Create a test user."""
    return store.create_user("Bob", "hashed-bob")


@pytest.fixture
def alice(app):
    """Create another test user."""
    return store.create_user("Alice", "hashed-alice", avatar_hash="avatar-sha256")


@pytest.fixture
def general(bob):
    """Create a room owned by bob."""
    return store.create_room("general", bob)


def count_rows(model, *criteria):
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return db.session.scalar(stmt)
