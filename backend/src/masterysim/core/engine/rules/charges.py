"""
Mastery Charges: дневной бюджет Charged-сил.

- зарядов = Mastery Rank в день, восстанавливаются на рассвете / после отдыха;
- Charged-сила тратит 1 заряд, не больше одной такой силы за раунд;
- вне боя можно сжечь 1 Stone -> +2 временных заряда (до рассвета).
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from masterysim.config import rules
from masterysim.core.engine.state import ChargeState, CombatState
from masterysim.core.engine.rules.results import (
    INSUFFICIENT_RESOURCE,
    INVARIANT_VIOLATION,
    OpResult,
    fail,
    ok,
)

logger = logging.getLogger(__name__)


def get_charges(state: CombatState, mastery_rank: int) -> ChargeState:
    charges = state.mastery_charges
    if charges.max <= 0:
        # не инициализировано, стартуем с полного бюджета
        charges.current = mastery_rank
        charges.max = mastery_rank
        charges.temporary = 0
    return charges


def get_total_charges(state: CombatState, mastery_rank: int) -> int:
    return get_charges(state, mastery_rank).total


def spend_charge(
    state: CombatState, mastery_rank: int, power_name: str = "a Charged Power"
) -> OpResult:
    charges = get_charges(state, mastery_rank)
    total = charges.total
    if total <= 0:
        return fail(
            INSUFFICIENT_RESOURCE,
            "No Mastery Charges remaining!",
            kind="error",
            current=charges.current,
            temporary=charges.temporary,
        )

    # сначала тратятся временные
    if charges.temporary > 0:
        charges.temporary -= 1
    else:
        charges.current -= 1

    logger.info("spent charge for %s (%s left)", power_name, total - 1)
    return ok(
        remaining=total - 1,
        temporary=charges.temporary,
        info=f"Charge spent: {total - 1} / {charges.max} remaining",
        log=f"activates {power_name}! Mastery Charge spent: "
        f"{total - 1} / {charges.max} remaining",
    )


def restore_charges(state: CombatState, mastery_rank: int) -> OpResult:
    charges = state.mastery_charges
    charges.current = mastery_rank
    charges.max = mastery_rank
    charges.temporary = 0  # временные сгорают

    logger.info("charges restored to %s", mastery_rank)
    return ok(
        current=mastery_rank,
        info=f"Mastery Charges restored to {mastery_rank}",
        log=f"Mastery Charges restored to {mastery_rank}",
    )


def burn_stone_for_charges(state: CombatState, mastery_rank: int) -> OpResult:
    """Только вне боя, это проверяет вызывающий код."""
    stones = state.stones
    if stones.current <= 0:
        return fail(
            INSUFFICIENT_RESOURCE,
            "No Stones available to burn!",
            kind="error",
            stones=stones.current,
        )

    charges = get_charges(state, mastery_rank)
    gain = rules().burn_stone_charges

    stones.current -= 1
    charges.temporary += gain

    logger.info("burned stone for +%s temporary charges", gain)
    return ok(
        stones=stones.current,
        temporary=charges.temporary,
        total=charges.total,
        info=f"Stone burned: +{gain} temporary charges!",
        log=f"burns a Stone for power: +{gain} temporary Mastery Charges "
        f"(Stones: {stones.current} / {stones.max}, Charges: {charges.total})",
    )


def can_use_charged_power_this_round(state: CombatState) -> bool:
    return not state.charged_power_used_this_round


def mark_charged_power_used(state: CombatState) -> None:
    state.charged_power_used_this_round = True


def reset_charged_power_flag(state: CombatState) -> None:
    state.charged_power_used_this_round = False


def activate_charged_power(
    state: CombatState, mastery_rank: int, power_name: str
) -> OpResult:
    if not can_use_charged_power_this_round(state):
        return fail(
            INVARIANT_VIOLATION,
            "You can only activate 1 Charged Power per round!",
            kind="error",
        )

    res = spend_charge(state, mastery_rank, power_name)
    if res.ok:
        mark_charged_power_used(state)
    return res


def is_charged_power(power: Mapping[str, Any]) -> bool:
    if power.get("charged") is True:
        return True
    tags = power.get("tags") or []
    return "charged" in tags
