from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from masterysim.core.engine.commands import (
    ActivateChargedPower,
    AddStress,
    ApplyBuff,
    ApplyVitalityDamage,
    BeginTurn,
    BurnStoneForCharges,
    CancelInitiativeShop,
    ClearBuffs,
    Command,
    ConfirmInitiativeShop,
    ConvertAttackAction,
    Dawn,
    EndCombat,
    FinalizeInitiative,
    HealVitality,
    MasteryRoll,
    ReduceStress,
    RemoveBuff,
    Rest,
    RestoreCharges,
    RestoreStones,
    RollInitiative,
    SpendCharge,
    SpendPowerStones,
    SpendStones,
    StartCombat,
    StartRound,
    UndoConversion,
    UnuseAction,
    UseAction,
)
from masterysim.core.engine.dice import mastery_roll
from masterysim.core.engine.events import (
    ev_actions_changed,
    ev_buff_applied,
    ev_buff_ended,
    ev_combat_ended,
    ev_combat_started,
    ev_command_rejected,
    ev_initiative_order_finalized,
    ev_initiative_shop_resolved,
    ev_mastery_rolled,
    ev_mind_save_required,
    ev_resource_changed,
)
from masterysim.core.engine.rules import (
    buffs,
    charges,
    economy,
    initiative,
    resources,
    scheduler,
)
from masterysim.core.engine.rules.emit import emit, emit_side_outputs
from masterysim.core.engine.rules.hooks import RoundHooks
from masterysim.core.engine.rules.results import OpResult
from masterysim.core.engine.rules.validator import validate_command
from masterysim.core.engine.state import (
    CombatantState,
    EncounterState,
    ShopPurchases,
)

logger = logging.getLogger(__name__)


def _actor_id(cmd: Command) -> Optional[str]:
    return getattr(cmd, "combatant_id", None)


def _reject(
    state: EncounterState,
    cmd: Command,
    code: str,
    message: str,
    meta: Dict[str, Any],
) -> dict:
    logger.warning("command %s rejected: %s (%s)", cmd.type, code, message)
    return emit(
        state,
        ev_command_rejected,
        actor_id=_actor_id(cmd),
        command=cmd.model_dump(mode="json"),
        code=code,
        message=message,
        meta=meta,
    )


def _rejected_result(
    state: EncounterState, cmd: Command, res: OpResult
) -> List[dict]:
    """Отказ правила -> CommandRejected + предупреждение для UI."""
    evs = [
        _reject(
            state,
            cmd,
            res.code or "Rejected",
            res.message or "",
            dict(res.data),
        )
    ]
    evs.extend(emit_side_outputs(state, _actor_id(cmd), res))
    return evs


def _order_payload(state: EncounterState) -> List[dict]:
    out: List[dict] = []
    for cid in state.initiative_order:
        rec = state.combatants[cid].combat.initiative
        out.append(
            {"combatant_id": cid, "initiative": rec.final if rec is not None else 0}
        )
    return out


def _recompute_order(state: EncounterState) -> None:
    live = {cid: c for cid, c in state.combatants.items() if c.actor is not None}
    state.initiative_order = initiative.initiative_order(live)


def _actions_changed(
    state: EncounterState, c: CombatantState, change: str, res: OpResult
) -> List[dict]:
    evs = [
        emit(
            state,
            ev_actions_changed,
            combatant_id=c.id,
            change=change,
            details=dict(res.data),
            actions=economy.get_action_status(c.combat.actions, c.mastery_rank),
        )
    ]
    evs.extend(emit_side_outputs(state, c.id, res))
    return evs


def _resource_changed(
    state: EncounterState,
    c: CombatantState,
    resource: str,
    change: str,
    res: OpResult,
) -> List[dict]:
    evs = [
        emit(
            state,
            ev_resource_changed,
            combatant_id=c.id,
            resource=resource,
            change=change,
            details=dict(res.data),
        )
    ]
    evs.extend(emit_side_outputs(state, c.id, res))
    return evs


# ---------- бой / инициатива ----------


def _start_combat(
    state: EncounterState, hooks: Optional[List[RoundHooks]]
) -> List[dict]:
    state.combat_started = True
    state.initiative_finalized = False
    state.initiative_order.clear()
    state.pending_shops.clear()
    state.turn_owner_id = None
    state.round = 1
    state.phase = "setup_initiative"
    for c in state.combatants.values():
        c.combat.initiative = None

    events = [emit(state, ev_combat_started)]
    # сброс первого раунда идёт до покупок в магазине, иначе он их сотрёт
    events.extend(scheduler.on_round_start(state, hooks))
    return events


def _confirm_or_cancel_shop(
    state: EncounterState, cmd: Command, c: CombatantState
) -> List[dict]:
    if isinstance(cmd, ConfirmInitiativeShop):
        purchases = ShopPurchases(**cmd.purchases.model_dump())
        res = initiative.confirm_shop(c, purchases)
        cancelled = False
    else:
        purchases = ShopPurchases()
        res = initiative.cancel_shop(c)
        cancelled = True

    if not res.ok:
        return _rejected_result(state, cmd, res)

    state.pending_shops.pop(c.id, None)
    events = [
        emit(
            state,
            ev_initiative_shop_resolved,
            combatant_id=c.id,
            raw=int(res.data["raw"]),
            spent=int(res.data["spent"]),
            final=int(res.data["final"]),
            purchases={
                "extra_movement_m": purchases.extra_movement_m,
                "initiative_swap": purchases.initiative_swap,
                "extra_attack": purchases.extra_attack,
            },
            cancelled=cancelled,
        )
    ]
    events.extend(emit_side_outputs(state, c.id, res))

    if purchases.extra_movement_m > 0 or purchases.extra_attack:
        events.append(
            emit(
                state,
                ev_actions_changed,
                combatant_id=c.id,
                change="shop_purchase",
                details={
                    "extra_movement_m": purchases.extra_movement_m,
                    "extra_attack": purchases.extra_attack,
                },
                actions=economy.get_action_status(c.combat.actions, c.mastery_rank),
            )
        )

    # после финализации порядок пересобирается с учётом трат
    if state.initiative_finalized:
        _recompute_order(state)
        events.append(
            emit(state, ev_initiative_order_finalized, order=_order_payload(state))
        )
    return events


def _finalize_initiative(state: EncounterState) -> List[dict]:
    _recompute_order(state)
    state.turn_owner_id = state.initiative_order[0] if state.initiative_order else None
    state.initiative_finalized = True
    state.phase = "in_round"
    return [emit(state, ev_initiative_order_finalized, order=_order_payload(state))]


def _start_round(
    state: EncounterState, hooks: Optional[List[RoundHooks]]
) -> List[dict]:
    state.round += 1
    state.turn_owner_id = None
    state.phase = "in_round"

    events = scheduler.on_round_start(state, hooks)
    _recompute_order(state)
    state.turn_owner_id = state.initiative_order[0] if state.initiative_order else None
    events.append(
        emit(state, ev_initiative_order_finalized, order=_order_payload(state))
    )
    return events


def _end_combat(state: EncounterState) -> List[dict]:
    events: List[dict] = []
    for cid in sorted(state.combatants):
        c = state.combatants[cid]
        snapshot = list(c.combat.active_buffs)
        buffs.clear_all_buffs(c.combat)
        for b in snapshot:
            events.append(
                emit(
                    state,
                    ev_buff_ended,
                    combatant_id=c.id,
                    buff_id=b.id,
                    name=b.name,
                    reason="cleared",
                )
            )
        restored = resources.restore_all_stones(c.combat.stones)
        events.extend(_resource_changed(state, c, "stones", "restored", restored))

    state.combat_started = False
    state.initiative_finalized = False
    state.pending_shops.clear()
    state.phase = "finished"
    events.append(emit(state, ev_combat_ended))
    state.turn_owner_id = None
    return events


# ---------- баффы ----------


def _apply_buff(
    state: EncounterState, cmd: ApplyBuff, c: CombatantState
) -> List[dict]:
    data = {
        "name": cmd.name,
        "type": cmd.buff_type,
        "max_duration": cmd.max_duration,
        "effect": cmd.effect,
        "effects": [e.model_dump() for e in cmd.effects],
        "source_item": cmd.source_item,
    }
    # id берём только если бафф реально ляжет
    existing = buffs.get_buff_by_type(c.combat, cmd.buff_type)
    buff_id = existing.id if existing is not None else state.new_buff_id(c.id)

    res = buffs.apply_buff(
        c.combat, data, buff_id=buff_id, current_round=state.round
    )
    if not res.ok:
        return _rejected_result(state, cmd, res)

    events = [emit(state, ev_buff_applied, combatant_id=c.id, buff=res.data["buff"])]
    events.extend(emit_side_outputs(state, c.id, res))
    return events


def _clear_buffs(state: EncounterState, c: CombatantState) -> List[dict]:
    snapshot = list(c.combat.active_buffs)
    res = buffs.clear_all_buffs(c.combat)
    events = [
        emit(
            state,
            ev_buff_ended,
            combatant_id=c.id,
            buff_id=b.id,
            name=b.name,
            reason="cleared",
        )
        for b in snapshot
    ]
    events.extend(emit_side_outputs(state, c.id, res))
    return events


# ---------- броски ----------


def _mastery_roll(
    state: EncounterState, cmd: MasteryRoll, c: CombatantState
) -> List[dict]:
    keep = cmd.keep_dice if cmd.keep_dice is not None else c.mastery_rank
    roll = mastery_roll(
        state.rng, num_dice=cmd.num_dice, keep_dice=keep, skill=cmd.skill, tn=cmd.tn
    )

    summary = f"rolls {cmd.label}: {roll.formula} = {roll.total}"
    if roll.tn > 0:
        outcome = "success" if roll.success else "failure"
        summary += f" vs TN {roll.tn} ({outcome}, {roll.raises} raise(s))"

    return [
        emit(
            state,
            ev_mastery_rolled,
            combatant_id=c.id,
            label=cmd.label,
            roll=roll.model_dump(),
        ),
        *emit_side_outputs(state, c.id, OpResult(ok=True, log=[summary])),
    ]


def apply_command(
    state: EncounterState,
    cmd: Command,
    hooks: Optional[List[RoundHooks]] = None,
) -> Tuple[EncounterState, List[dict]]:
    """
    Возвращаем (state, events_as_dicts).
    При отказе (валидация или правило) возвращаем CommandRejected и НЕ меняем state.
    """
    vr = validate_command(state, cmd)
    if not vr.ok:
        e = vr.errors[0]
        return state, [_reject(state, cmd, e.code, e.message, e.meta)]

    cid = _actor_id(cmd)
    c = state.combatants[cid] if cid is not None else None

    if isinstance(cmd, StartCombat):
        return state, _start_combat(state, hooks)

    if isinstance(cmd, EndCombat):
        return state, _end_combat(state)

    if isinstance(cmd, FinalizeInitiative):
        return state, _finalize_initiative(state)

    if isinstance(cmd, StartRound):
        return state, _start_round(state, hooks)

    # дальше все команды адресованы конкретному комбатанту
    assert c is not None

    if isinstance(cmd, RollInitiative):
        return state, scheduler.reroll_initiative(state, c, cmd.bonus_dice)

    if isinstance(cmd, (ConfirmInitiativeShop, CancelInitiativeShop)):
        return state, _confirm_or_cancel_shop(state, cmd, c)

    if isinstance(cmd, BeginTurn):
        return state, scheduler.on_turn_start(state, c, hooks)

    cs = c.combat
    rank = c.mastery_rank

    # --- экономика действий ---
    if isinstance(cmd, UseAction):
        res = economy.use_action(cs.actions, cmd.action_type, cmd.amount)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _actions_changed(state, c, "used", res)

    if isinstance(cmd, UnuseAction):
        res = economy.unuse_action(cs.actions, cmd.action_type, cmd.amount)
        return state, _actions_changed(state, c, "unused", res)

    if isinstance(cmd, ConvertAttackAction):
        res = economy.convert_attack_action(cs.actions, cmd.target, rank)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _actions_changed(state, c, "converted", res)

    if isinstance(cmd, UndoConversion):
        res = economy.undo_conversion(cs.actions, cmd.target)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _actions_changed(state, c, "conversion_undone", res)

    # --- камни ---
    if isinstance(cmd, SpendStones):
        res = resources.spend_stones(cs.stones, cmd.amount, cmd.reason)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _resource_changed(state, c, "stones", "spent", res)

    if isinstance(cmd, SpendPowerStones):
        res = resources.spend_power_stones(cs, cmd.power_key)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _resource_changed(state, c, "stones", "spent", res)

    if isinstance(cmd, RestoreStones):
        res = resources.restore_all_stones(cs.stones)
        return state, _resource_changed(state, c, "stones", "restored", res)

    # --- vitality / stress ---
    if isinstance(cmd, ApplyVitalityDamage):
        res = resources.apply_vitality_damage(cs.vitality, cmd.amount)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _resource_changed(state, c, "vitality", "damaged", res)

    if isinstance(cmd, HealVitality):
        res = resources.heal_vitality(cs.vitality, cmd.amount)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _resource_changed(state, c, "vitality", "healed", res)

    if isinstance(cmd, AddStress):
        res = resources.add_stress(cs.stress, cmd.amount, cmd.reason)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        if res.code is not None:
            return state, []
        events = _resource_changed(state, c, "stress", "added", res)
        if res.data.get("mind_save_required"):
            events.append(emit(state, ev_mind_save_required, combatant_id=c.id))
        return state, events

    if isinstance(cmd, ReduceStress):
        res = resources.reduce_stress(cs.stress, cmd.amount, cmd.reason)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        if res.code is not None:
            return state, []
        return state, _resource_changed(state, c, "stress", "reduced", res)

    # --- заряды ---
    if isinstance(cmd, SpendCharge):
        res = charges.spend_charge(cs, rank, cmd.power_name)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _resource_changed(state, c, "charges", "spent", res)

    if isinstance(cmd, ActivateChargedPower):
        res = charges.activate_charged_power(cs, rank, cmd.power_name)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _resource_changed(state, c, "charges", "spent", res)

    if isinstance(cmd, RestoreCharges):
        res = charges.restore_charges(cs, rank)
        return state, _resource_changed(state, c, "charges", "restored", res)

    if isinstance(cmd, BurnStoneForCharges):
        res = charges.burn_stone_for_charges(cs, rank)
        if not res.ok:
            return state, _rejected_result(state, cmd, res)
        return state, _resource_changed(state, c, "charges", "stone_burned", res)

    # --- баффы ---
    if isinstance(cmd, ApplyBuff):
        return state, _apply_buff(state, cmd, c)

    if isinstance(cmd, RemoveBuff):
        res = buffs.remove_buff(cs, cmd.buff_id)
        if res.code is not None:
            return state, []
        events = [
            emit(
                state,
                ev_buff_ended,
                combatant_id=c.id,
                buff_id=cmd.buff_id,
                name=str(res.data["name"]),
                reason="removed",
            )
        ]
        events.extend(emit_side_outputs(state, c.id, res))
        return state, events

    if isinstance(cmd, ClearBuffs):
        return state, _clear_buffs(state, c)

    # --- броски ---
    if isinstance(cmd, MasteryRoll):
        return state, _mastery_roll(state, cmd, c)

    # --- отдых ---
    if isinstance(cmd, Rest):
        stones_res = resources.restore_all_stones(cs.stones)
        charges_res = charges.restore_charges(cs, rank)
        events = _resource_changed(state, c, "stones", "restored", stones_res)
        events.extend(_resource_changed(state, c, "charges", "restored", charges_res))
        return state, events

    if isinstance(cmd, Dawn):
        res = charges.restore_charges(cs, rank)
        return state, _resource_changed(state, c, "charges", "restored", res)

    raise NotImplementedError(f"Unsupported command: {type(cmd).__name__}")
