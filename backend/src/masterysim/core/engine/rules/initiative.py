"""
Инициатива перебрасывается каждый раунд:

    Base = Agility + Wits + Combat Reflexes
    Dice = [Mastery Rank]d8, все кости суммируются, 8-ки взрываются
    Final = Base + Dice - траты в Initiative Shop (только PC)
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from masterysim.config import rules
from masterysim.core.engine.dice import DiceRng, roll_dice
from masterysim.core.engine.state import (
    ActorProfile,
    CombatantState,
    CombatState,
    InitiativeRecord,
    ShopPurchases,
)
from masterysim.core.engine.rules.economy import add_action
from masterysim.core.engine.rules.results import (
    INSUFFICIENT_RESOURCE,
    INVALID_AMOUNT,
    NOT_FOUND,
    OpResult,
    fail,
    ok,
)

logger = logging.getLogger(__name__)


def calculate_base_initiative(actor: ActorProfile) -> int:
    return actor.agility + actor.wits + actor.combat_reflexes


def roll_initiative_dice(
    rng: DiceRng,
    actor: ActorProfile,
    with_bonus: bool = False,
    bonus_count: int = 0,
) -> tuple[int, List[int], str]:
    """-> (сумма, кости, формула). Без keep-highest: суммируем всё."""
    num_dice = actor.mastery_rank
    if with_bonus and bonus_count > 0:
        num_dice += bonus_count

    dice, _exploded = roll_dice(rng, num_dice)
    total = sum(dice)

    formula = f"{actor.mastery_rank}d8"
    if with_bonus and bonus_count > 0:
        formula += f" + {bonus_count}d8 (Wits Stones)"
    return total, dice, formula


# ---------- Initiative Shop ----------


def calculate_shop_cost(purchases: ShopPurchases) -> int:
    shop = rules().shop
    cost = (purchases.extra_movement_m // shop.movement_step_m) * shop.movement_per_step
    if purchases.initiative_swap:
        cost += shop.swap
    if purchases.extra_attack:
        cost += shop.extra_attack
    return cost


def validate_shop_purchases(raw_initiative: int, purchases: ShopPurchases) -> OpResult:
    step = rules().shop.movement_step_m
    if purchases.extra_movement_m < 0 or purchases.extra_movement_m % step != 0:
        return fail(
            INVALID_AMOUNT,
            f"Extra movement must be a non-negative multiple of {step}m",
            extra_movement_m=purchases.extra_movement_m,
        )

    cost = calculate_shop_cost(purchases)
    if cost > raw_initiative:
        return fail(
            INSUFFICIENT_RESOURCE,
            f"Not enough initiative points. Cost: {cost}, Available: {raw_initiative}",
            cost=cost,
            available=raw_initiative,
        )
    if raw_initiative - cost < 0:
        return fail(INSUFFICIENT_RESOURCE, "Initiative cannot drop below 0", cost=cost)
    return ok(cost=cost)


def apply_shop_purchases(state: CombatState, purchases: ShopPurchases) -> None:
    if purchases.extra_movement_m > 0:
        add_action(state.actions, "movement", 1)
        state.shop_flags.extra_movement_m = purchases.extra_movement_m
    if purchases.extra_attack:
        add_action(state.actions, "attack", 1)
    if purchases.initiative_swap:
        state.shop_flags.swap_unlocked = True


def _roll_record(
    rng: DiceRng, combatant: CombatantState, current_round: int, bonus_dice: int
) -> Optional[InitiativeRecord]:
    actor = combatant.actor
    if actor is None:
        return None
    base = calculate_base_initiative(actor)
    total, dice, formula = roll_initiative_dice(
        rng, actor, with_bonus=bonus_dice > 0, bonus_count=bonus_dice
    )
    raw = base + total
    logger.debug(
        "initiative %s: base=%s %s=%s raw=%s", combatant.id, base, formula, dice, raw
    )
    return InitiativeRecord(
        round=current_round, base=base, dice=dice, dice_total=total, raw=raw
    )


def resolve_initiative(
    rng: DiceRng,
    combatant: CombatantState,
    current_round: int,
    *,
    bonus_dice: int = 0,
) -> OpResult:
    """
    NPC: сразу final = max(0, base + dice).
    PC: фиксируем raw, дальше ждём решения по магазину (confirm/cancel).
    """
    record = _roll_record(rng, combatant, current_round, bonus_dice)
    if record is None:
        return fail(NOT_FOUND, f"Combatant {combatant.id} has no actor", kind="error")

    actor = combatant.actor
    assert actor is not None

    if not actor.is_player_character:
        record.final = max(0, record.raw)
        record.confirmed = True
        combatant.combat.initiative = record
        return ok(
            pending_shop=False,
            base=record.base,
            dice=record.dice,
            raw=record.raw,
            final=record.final,
            log=f"Initiative: base {record.base} + roll {record.dice_total} "
            f"= {record.final}",
        )

    record.final = record.raw
    combatant.combat.initiative = record
    return ok(
        pending_shop=True,
        base=record.base,
        dice=record.dice,
        raw=record.raw,
        final=record.final,
        log=f"Initiative: base {record.base} + roll {record.dice_total} "
        f"= {record.raw} (raw)",
    )


def confirm_shop(combatant: CombatantState, purchases: ShopPurchases) -> OpResult:
    record = combatant.combat.initiative
    if record is None:
        return fail(NOT_FOUND, "No initiative rolled for this combatant")

    check = validate_shop_purchases(record.raw, purchases)
    if not check.ok:
        return check

    cost = int(check.data["cost"])
    record.spent = cost
    record.final = record.raw - cost
    record.purchases = purchases
    record.confirmed = True
    apply_shop_purchases(combatant.combat, purchases)

    parts: List[str] = []
    if purchases.extra_movement_m > 0:
        parts.append(f"+{purchases.extra_movement_m}m Movement")
    if purchases.initiative_swap:
        parts.append("Initiative Swap")
    if purchases.extra_attack:
        parts.append("+1 Extra Attack")

    summary = (
        f"spent {cost} initiative on: {', '.join(parts)}. "
        f"Remaining Initiative: {record.final}"
        if parts
        else f"Final Initiative: {record.final}"
    )
    return ok(
        raw=record.raw,
        spent=cost,
        final=record.final,
        info=summary,
        log=summary,
    )


def cancel_shop(combatant: CombatantState) -> OpResult:
    """Отмена/пропуск магазина: откат к raw без трат."""
    record = combatant.combat.initiative
    if record is None:
        return fail(NOT_FOUND, "No initiative rolled for this combatant")

    record.spent = 0
    record.final = record.raw
    record.purchases = ShopPurchases()
    record.confirmed = True
    return ok(raw=record.raw, spent=0, final=record.final)


def initiative_order(combatants: Dict[str, CombatantState]) -> List[str]:
    """По убыванию final; при равенстве по id."""
    scored = [
        (c.combat.initiative.final if c.combat.initiative is not None else 0, cid)
        for cid, c in combatants.items()
    ]
    scored.sort(key=lambda p: (-p[0], p[1]))
    return [cid for _, cid in scored]
