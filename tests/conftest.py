from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker

import app.persistence.pg as pg
from app.core.config import get_settings
from app.domain.inventory.store import InMemoryProductStore
from app.domain.ordering import OrderingService
from app.domain.orders.repository import InMemoryOrderRepository
from app.persistence.models import Base


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    settings = get_settings()
    settings.bootstrap_demo_on_startup = False
    settings.seed_enabled = True
    settings.estimated_delivery_days = 5

    engine = create_engine(
        f"sqlite+pysqlite:///{test_db_path}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    pg.engine = engine
    pg.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables(configure_test_engine):
    yield
    with pg.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(delete(table))


@pytest.fixture()
def client(configure_test_engine):
    from app.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def session(configure_test_engine):
    with pg.session_scope() as s:
        yield s


@pytest.fixture()
def sql_service(session) -> OrderingService:
    return OrderingService.for_session(session)


@pytest.fixture()
def memory_products() -> InMemoryProductStore:
    return InMemoryProductStore()


@pytest.fixture()
def memory_orders() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture()
def memory_service(memory_products, memory_orders) -> OrderingService:
    return OrderingService(memory_products, memory_orders, estimated_delivery_days=5)
