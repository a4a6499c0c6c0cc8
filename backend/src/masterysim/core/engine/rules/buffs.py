"""
Баффы с длительностью.

- держатся 2-6 раундов;
- не больше одного активного баффа одного типа;
- длительность уменьшается один раз в начале каждого раунда.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from masterysim.core.engine.state import Buff, BuffEffect, CombatState
from masterysim.core.engine.rules.results import (
    INVARIANT_VIOLATION,
    OpResult,
    fail,
    noop_not_found,
    ok,
)

logger = logging.getLogger(__name__)


def get_active_buffs(state: CombatState) -> List[Buff]:
    return state.active_buffs


def has_buff_type(state: CombatState, buff_type: str) -> bool:
    return any(b.type == buff_type for b in state.active_buffs)


def get_buff_by_type(state: CombatState, buff_type: str) -> Optional[Buff]:
    for b in state.active_buffs:
        if b.type == buff_type:
            return b
    return None


def apply_buff(
    state: CombatState,
    data: Mapping[str, Any],
    *,
    buff_id: str,
    current_round: int,
) -> OpResult:
    buff_type = data.get("type")
    existing = get_buff_by_type(state, str(buff_type))
    if existing is not None:
        return fail(
            INVARIANT_VIOLATION,
            f"Cannot apply {data.get('name')}: {existing.name} is already active!",
            kind="error",
            buff_type=buff_type,
            existing_id=existing.id,
        )

    payload = dict(data)
    payload.pop("duration", None)
    payload.pop("id", None)
    payload.pop("applied_round", None)
    buff = Buff(
        id=buff_id,
        duration=int(payload["max_duration"]),
        applied_round=current_round,
        **payload,
    )
    state.active_buffs.append(buff)

    logger.info(
        "applied buff %s (%s) for %s rounds", buff.name, buff.type, buff.max_duration
    )
    return ok(
        buff=buff.model_dump(),
        info=f"{buff.name} applied for {buff.max_duration} rounds!",
        log=f"gains {buff.name} ({buff.type}, {buff.max_duration} rounds)",
    )


def remove_buff(state: CombatState, buff_id: str) -> OpResult:
    buff = next((b for b in state.active_buffs if b.id == buff_id), None)
    if buff is None:
        return noop_not_found(f"Buff {buff_id} not found", buff_id=buff_id)

    state.active_buffs = [b for b in state.active_buffs if b.id != buff_id]
    logger.info("removed buff %s", buff.name)
    return ok(
        buff_id=buff_id,
        name=buff.name,
        info=f"{buff.name} expired!",
        log=f"{buff.name} expired",
    )


def update_buff_durations(state: CombatState) -> OpResult:
    """Тик начала раунда. Повторный вызов снова уменьшит длительность."""
    kept: List[Buff] = []
    expired: List[Buff] = []

    for buff in state.active_buffs:
        new_duration = buff.duration - 1
        if new_duration <= 0:
            expired.append(buff)
        else:
            kept.append(buff.model_copy(update={"duration": new_duration}))

    state.active_buffs = kept

    res = ok(
        expired=[b.model_dump() for b in expired],
        remaining=[b.id for b in kept],
    )
    for buff in expired:
        res.notify("info", f"{buff.name} expired!")
        res.log.append(f"{buff.name} expired")
    if expired:
        logger.info("%s buff(s) expired", len(expired))
    return res


def clear_all_buffs(state: CombatState) -> OpResult:
    count = len(state.active_buffs)
    state.active_buffs = []
    logger.info("cleared %s buff(s)", count)
    return ok(cleared=count, log="all buffs cleared" if count else None)


# --- read-side хелперы ---


def get_active_buff_effects(state: CombatState) -> List[BuffEffect]:
    effects: List[BuffEffect] = []
    for buff in state.active_buffs:
        effects.extend(buff.effects)
    return effects


def apply_buff_effects(state: CombatState, target: str, base_value: int) -> int:
    value = base_value
    for eff in get_active_buff_effects(state):
        if eff.target == target and eff.type == "flat":
            value += int(eff.value)
    return value


def get_buff_dice_bonus(state: CombatState, roll_type: str) -> int:
    bonus = 0
    for eff in get_active_buff_effects(state):
        if eff.target == roll_type and eff.type == "dice":
            bonus += int(eff.value)
    return bonus


def has_buff_flag(state: CombatState, flag_name: str) -> bool:
    return any(
        eff.type == "flag" and eff.target == flag_name and bool(eff.value)
        for eff in get_active_buff_effects(state)
    )
