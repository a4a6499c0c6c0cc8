from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

from masterysim.core.engine.events import (
    EventEnvelope,
    ev_combat_log_entry,
    ev_notification,
)
from masterysim.core.engine.rules.results import OpResult
from masterysim.core.engine.state import EncounterState


def bump(state: EncounterState) -> Tuple[int, int]:
    state.seq += 1
    state.t += 1
    return state.seq, state.t


def emit(
    state: EncounterState, builder: Callable[..., EventEnvelope], **kwargs: Any
) -> dict:
    """Собрать событие с очередным seq/t и текущим раундом."""
    seq, t = bump(state)
    kwargs.setdefault("turn_owner_id", state.turn_owner_id)
    ev = builder(seq=seq, t=t, round_=state.round, **kwargs)
    return ev.model_dump(mode="json")


def emit_side_outputs(
    state: EncounterState, actor_id: Optional[str], res: OpResult
) -> List[dict]:
    """Уведомления и строки журнала боя из результата операции."""
    evs: List[dict] = []
    for n in res.notifications:
        evs.append(
            emit(state, ev_notification, actor_id=actor_id, kind=n.kind, text=n.text)
        )
    if actor_id is not None:
        for line in res.log:
            evs.append(
                emit(state, ev_combat_log_entry, actor_id=actor_id, summary=line)
            )
    return evs
