"""
Планировщик раунда/хода: сбрасывает экономику, регенерирует камни,
тикает баффы и внешние эффекты для каждого комбатанта.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from masterysim.core.engine.events import (
    ev_combatant_round_reset,
    ev_death_save_required,
    ev_initiative_rolled,
    ev_reactions_expired,
    ev_round_started,
    ev_turn_started,
    ev_buff_ended,
)
from masterysim.core.engine.rules import buffs, charges, economy, initiative, resources
from masterysim.core.engine.rules.emit import emit, emit_side_outputs
from masterysim.core.engine.rules.hooks import (
    DEFAULT_ROUND_HOOKS,
    RoundHooks,
    TickContext,
)
from masterysim.core.engine.rules.results import OpResult, noop_not_found, ok
from masterysim.core.engine.state import CombatantState, EncounterState, ShopFlags

logger = logging.getLogger(__name__)


def reroll_initiative(
    state: EncounterState, combatant: CombatantState, bonus_dice: int = 0
) -> List[dict]:
    """Бросок инициативы одного комбатанта; PC уходит в ожидание магазина."""
    res = initiative.resolve_initiative(
        state.rng, combatant, state.round, bonus_dice=bonus_dice
    )
    if not res.ok:
        return emit_side_outputs(state, combatant.id, res)

    if res.data["pending_shop"]:
        state.pending_shops[combatant.id] = int(res.data["raw"])
    else:
        state.pending_shops.pop(combatant.id, None)

    evs = [
        emit(
            state,
            ev_initiative_rolled,
            combatant_id=combatant.id,
            base=int(res.data["base"]),
            dice=list(res.data["dice"]),
            raw=int(res.data["raw"]),
            final=int(res.data["final"]),
            pending_shop=bool(res.data["pending_shop"]),
        )
    ]
    evs.extend(emit_side_outputs(state, combatant.id, res))
    return evs


def reset_combat_state_for_round(
    combatant: CombatantState,
    tick_conditions: Optional[Callable[[], None]] = None,
    tick_utilities: Optional[Callable[[], None]] = None,
) -> OpResult:
    """
    Сброс одного актёра в начале раунда, без событий.
    Внешние тики вызываются между шагами в фиксированном порядке.
    """
    actor = combatant.actor
    if actor is None:
        return noop_not_found(f"Combatant {combatant.id} has no actor")

    cs = combatant.combat
    economy.reset_for_round(cs.actions, actor.mastery_rank)
    regen = resources.regenerate_stones(cs.stones, cs.stones.regeneration_per_round)

    if tick_conditions is not None:
        tick_conditions()

    tick = buffs.update_buff_durations(cs)

    if tick_utilities is not None:
        tick_utilities()

    charges.reset_charged_power_flag(cs)
    cs.shop_flags = ShopFlags()
    cs.power_usage.clear()

    res = ok(
        stones=cs.stones.current,
        regenerated=int(regen.data["regenerated"]),
        expired=tick.data["expired"],
        remaining=tick.data["remaining"],
    )
    return res.merge(regen).merge(tick)


def reset_combatant_for_round(
    state: EncounterState,
    combatant: CombatantState,
    hooks: List[RoundHooks],
) -> List[dict]:
    actor = combatant.actor
    if actor is None:
        return []

    ctx = TickContext(round=state.round, combatant_id=combatant.id)
    evs: List[dict] = []

    def _conditions() -> None:
        for h in hooks:
            evs.extend(h.tick_conditions(state, combatant, ctx))

    def _utilities() -> None:
        for h in hooks:
            evs.extend(h.tick_utilities(state, combatant, ctx))

    res = reset_combat_state_for_round(combatant, _conditions, _utilities)
    cs = combatant.combat

    expired = res.data["expired"]
    evs.append(
        emit(
            state,
            ev_combatant_round_reset,
            combatant_id=combatant.id,
            actions=economy.get_action_status(cs.actions, actor.mastery_rank),
            stones=cs.stones.current,
            stones_regenerated=int(res.data["regenerated"]),
            expired_buffs=[b["id"] for b in expired],
        )
    )
    for b in expired:
        evs.append(
            emit(
                state,
                ev_buff_ended,
                combatant_id=combatant.id,
                buff_id=b["id"],
                name=b["name"],
                reason="expired",
            )
        )
    evs.extend(emit_side_outputs(state, combatant.id, res))
    return evs


def on_round_start(
    state: EncounterState, hooks: Optional[List[RoundHooks]] = None
) -> List[dict]:
    hooks = DEFAULT_ROUND_HOOKS if hooks is None else hooks
    evs: List[dict] = [
        emit(state, ev_round_started, turn_owner_id=state.turn_owner_id)
    ]

    # со 2-го раунда инициатива перебрасывается до сброса ресурсов
    if state.round > 1:
        for cid in sorted(state.combatants):
            c = state.combatants[cid]
            if c.actor is None:
                continue
            evs.extend(reroll_initiative(state, c))

    # порядок между комбатантами не важен
    for cid in sorted(state.combatants):
        evs.extend(reset_combatant_for_round(state, state.combatants[cid], hooks))

    logger.debug(
        "round %s started for %s combatant(s)", state.round, len(state.combatants)
    )
    return evs


def is_incapacitated(
    state: EncounterState, combatant: CombatantState, hooks: List[RoundHooks]
) -> bool:
    for h in hooks:
        verdict = h.is_incapacitated(state, combatant)
        if verdict:
            return True
    return False


def on_turn_start(
    state: EncounterState,
    combatant: CombatantState,
    hooks: Optional[List[RoundHooks]] = None,
) -> List[dict]:
    hooks = DEFAULT_ROUND_HOOKS if hooks is None else hooks
    ctx = TickContext(round=state.round, combatant_id=combatant.id)

    state.turn_owner_id = combatant.id
    evs: List[dict] = [emit(state, ev_turn_started, turn_owner_id=combatant.id)]

    if is_incapacitated(state, combatant, hooks):
        evs.append(emit(state, ev_death_save_required, combatant_id=combatant.id))
        for h in hooks:
            evs.extend(h.trigger_death_save(state, combatant, ctx))

    res = economy.reset_for_turn(combatant.combat.actions)
    expired = int(res.data.get("expired", 0))
    if expired > 0:
        evs.append(
            emit(
                state,
                ev_reactions_expired,
                combatant_id=combatant.id,
                expired=expired,
                reaction_max=combatant.combat.actions.reaction.max,
            )
        )
        evs.extend(emit_side_outputs(state, combatant.id, res))
    return evs
