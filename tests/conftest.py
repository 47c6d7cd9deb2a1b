import os

# Keep the app from touching a real database or messaging provider
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CHAT_TRANSPORT"] = "log"
os.environ["MERCHANT_ID"] = ""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orderbot.db import Base
from orderbot.ordering.conversation import ConversationContext
from orderbot.store import OrderingStore
from orderbot.transport import LogTransport

CATALOGUE = "flying-rasta"


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across connections via StaticPool."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return OrderingStore(db, CATALOGUE)


@pytest.fixture
def user(store):
    u, _existed = store.get_or_create_user("27825550101")
    return u


@pytest.fixture
def transport():
    return LogTransport()


@pytest.fixture
def make_convo(store):
    def _make(body, cell_number="27825550101"):
        u, existed = store.get_or_create_user(cell_number)
        return ConversationContext(
            message_body=body,
            user=u,
            current_order=store.current_order(u),
            user_existed=existed,
        )

    return _make
