from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from masterysim.config import get_config

_db = get_config().database
DATABASE_URL = _db.url

engine = create_engine(
    DATABASE_URL,
    echo=_db.echo,
    future=True,
    # репозиторий работает через asyncio.to_thread
    connect_args=(
        {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
    ),
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
