import os
import random
import tempfile

import pytest
from httpx import ASGITransport, AsyncClient

from app.database import build_engine, build_session_factory, init_db
from app.dependencies import get_store
from app.main import app
from app.services.persistence_service import InMemorySlotAdapter, SqlSlotAdapter
from app.services.technology_store import TechnologyStore


@pytest.fixture
def adapter() -> InMemorySlotAdapter:
    return InMemorySlotAdapter("technologies")


@pytest.fixture
def store(adapter: InMemorySlotAdapter) -> TechnologyStore:
    """Store over the seed collection with a deterministic random source."""
    return TechnologyStore(adapter, rng=random.Random(1234))


@pytest.fixture
def db_engine():
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(db_fd)
    engine = build_engine(f"sqlite:///{db_path}")
    init_db(engine)
    yield engine
    engine.dispose()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def sql_adapter(db_engine) -> SqlSlotAdapter:
    return SqlSlotAdapter("technologies", build_session_factory(db_engine))


@pytest.fixture
async def client(store: TechnologyStore) -> AsyncClient:
    """HTTP client whose store is the in-memory test store."""
    app.dependency_overrides[get_store] = lambda: store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
