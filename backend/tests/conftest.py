from __future__ import annotations

from typing import Iterable, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from masterysim.api.main import app
from masterysim.config import AppConfig, reset_config
from masterysim.db.base import Base
import masterysim.db.session as db_session
import masterysim.db.init_db as db_init
from masterysim.db.deps import get_db


class ScriptedRng:
    """randint отдаёт заранее заданные грани по очереди."""

    def __init__(self, faces: Iterable[int]) -> None:
        self.faces: List[int] = list(faces)
        self.calls = 0

    def randint(self, a: int, b: int) -> int:
        self.calls += 1
        return self.faces.pop(0)


@pytest.fixture()
def scripted_rng():
    return ScriptedRng


@pytest.fixture(autouse=True)
def _default_config():
    # правила из дефолтов, без YAML/env окружения
    reset_config(AppConfig())
    yield
    reset_config(None)


@pytest.fixture(scope="session")
def engine():
    # SQLite in-memory (один коннект на всю сессию тестов)
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    return eng


@pytest.fixture(scope="session")
def TestingSessionLocal(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture(scope="session", autouse=True)
def _patch_db(engine, TestingSessionLocal):
    # подменяем рабочие engine/SessionLocal на тестовые
    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    db_init.engine = engine

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(engine, TestingSessionLocal):
    # каждый тест API начинает с пустой базы
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
