import pytest

from database.db import build_engine, build_session_factory, init_db
from services.persistence_service import ThematicRepository


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def repository(session_factory):
    return ThematicRepository(session_factory)
