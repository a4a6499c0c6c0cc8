"""
Хранилище боевого состояния актёров.

Источник истины: репозиторий: сервис загружает состояние, движок считает
следующее, сервис сохраняет его одним вызовом save на логическую операцию.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Dict, Optional, Protocol

from sqlalchemy.orm import Session, sessionmaker

from masterysim.core.engine.state import CombatantState
from masterysim.core.persistence.state_codec import (
    combatant_from_dict,
    combatant_to_dict,
)
from masterysim.db.models import ActorCombatStateRow

logger = logging.getLogger(__name__)


class CombatStateRepository(Protocol):
    async def load(self, actor_id: str) -> Optional[CombatantState]: ...

    async def save(self, actor_id: str, state: CombatantState) -> None: ...


class InMemoryCombatStateRepository:
    """Хранит сериализованные копии, как настоящая БД, без общих ссылок."""

    def __init__(self) -> None:
        self._rows: Dict[str, dict] = {}
        self.save_count = 0

    async def load(self, actor_id: str) -> Optional[CombatantState]:
        row = self._rows.get(actor_id)
        if row is None:
            return None
        return combatant_from_dict(copy.deepcopy(row))

    async def save(self, actor_id: str, state: CombatantState) -> None:
        self._rows[actor_id] = combatant_to_dict(state)
        self.save_count += 1


class SqlAlchemyCombatStateRepository:
    """
    Синхронная сессия SQLAlchemy в отдельном потоке, чтобы не блокировать loop.
    Одна сессия на вызов.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def _load_sync(self, actor_id: str) -> Optional[CombatantState]:
        with self._session_factory() as db:
            row = db.get(ActorCombatStateRow, actor_id)
            if row is None:
                return None
            return combatant_from_dict(row.state_json)

    def _save_sync(self, actor_id: str, state: CombatantState) -> None:
        payload = combatant_to_dict(state)
        with self._session_factory() as db:
            row = db.get(ActorCombatStateRow, actor_id)
            if row is None:
                row = ActorCombatStateRow(actor_id=actor_id, state_json=payload)
                db.add(row)
            else:
                row.state_json = payload
            db.commit()
        logger.debug("saved combat state for %s", actor_id)

    async def load(self, actor_id: str) -> Optional[CombatantState]:
        return await asyncio.to_thread(self._load_sync, actor_id)

    async def save(self, actor_id: str, state: CombatantState) -> None:
        await asyncio.to_thread(self._save_sync, actor_id, state)
