from __future__ import annotations

from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from comanda.infrastructure.db.models import order as order_models  # noqa: F401
from comanda.infrastructure.db.models import table as table_models  # noqa: F401
from comanda.infrastructure.db.models.base import Base
from comanda.infrastructure.db.repositories.order_repo import SqlAlchemyDeliveryOrderRepository
from comanda.infrastructure.db.repositories.table_repo import SqlAlchemyTableSessionRepository


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_session_repository(engine: Engine) -> SqlAlchemyTableSessionRepository:
    return SqlAlchemyTableSessionRepository(engine=engine)


@pytest.fixture
def sql_order_repository(engine: Engine) -> SqlAlchemyDeliveryOrderRepository:
    return SqlAlchemyDeliveryOrderRepository(engine=engine)
