"""
Экономика действий: attack / movement / reaction.

- база 1 действие каждого типа;
- лишние Attack Action можно конвертировать в Movement/Reaction;
- минимум 1 Attack Action должен остаться;
- конвертаций за раунд не больше Mastery Rank;
- конвертированные реакции сгорают в начале хода владельца.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from masterysim.core.engine.state import (
    ACTION_TYPES,
    ActionPools,
    ActionType,
    ConversionTarget,
)
from masterysim.core.engine.rules.results import (
    INSUFFICIENT_RESOURCE,
    INVARIANT_VIOLATION,
    OpResult,
    fail,
    ok,
)

logger = logging.getLogger(__name__)


def _conversion_field(target: ConversionTarget) -> str:
    return "attack_to_movement" if target == "movement" else "attack_to_reaction"


def reset_for_round(pools: ActionPools, mastery_rank: int) -> OpResult:
    for action_type in ACTION_TYPES:
        p = pools.pool(action_type)
        p.used = 0
        p.bonus = 0
        p.max = p.base
    pools.conversions.attack_to_movement = 0
    pools.conversions.attack_to_reaction = 0
    pools.reaction.converted_this_round = 0

    logger.debug("actions reset for round (rank=%s)", mastery_rank)
    return ok()


def reset_for_turn(pools: ActionPools) -> OpResult:
    converted = pools.reaction.converted_this_round
    if converted <= 0:
        return ok(expired=0)

    pools.reaction.max = max(pools.reaction.base, pools.reaction.max - converted)
    pools.reaction.converted_this_round = 0

    logger.debug("expired %s converted reaction(s)", converted)
    return ok(
        expired=converted,
        log=f"{converted} converted Reaction(s) expired",
    )


def use_action(
    pools: ActionPools, action_type: ActionType, amount: int = 1
) -> OpResult:
    p = pools.pool(action_type)
    new_used = p.used + amount
    if new_used > p.max:
        return fail(
            INSUFFICIENT_RESOURCE,
            f"Not enough {action_type} actions remaining!",
            action_type=action_type,
            used=p.used,
            max=p.max,
            amount=amount,
        )

    p.used = new_used
    return ok(
        action_type=action_type,
        used=p.used,
        max=p.max,
        log=f"used {amount} {action_type} action(s) ({p.used}/{p.max})",
    )


def unuse_action(
    pools: ActionPools, action_type: ActionType, amount: int = 1
) -> OpResult:
    p = pools.pool(action_type)
    p.used = max(0, p.used - amount)
    return ok(
        action_type=action_type,
        used=p.used,
        max=p.max,
        log=f"unmarked {amount} {action_type} action(s) ({p.used}/{p.max})",
    )


def add_action(
    pools: ActionPools, action_type: ActionType, amount: int = 1
) -> OpResult:
    """Бонусные действия (Initiative Shop, Stone Powers), до конца раунда."""
    p = pools.pool(action_type)
    p.bonus += amount
    p.max += amount
    return ok(action_type=action_type, max=p.max, bonus=p.bonus)


def convert_attack_action(
    pools: ActionPools, target: ConversionTarget, mastery_rank: int
) -> OpResult:
    total = pools.conversions.total
    if total >= mastery_rank:
        return fail(
            INVARIANT_VIOLATION,
            f"Can only convert {mastery_rank} Attack Action(s) per round "
            "(Mastery Rank limit)!",
            conversions=total,
            mastery_rank=mastery_rank,
        )

    available = pools.attack.max - pools.attack.used
    if available - 1 < 1:
        return fail(
            INVARIANT_VIOLATION,
            "Must keep at least 1 Attack Action! Cannot convert your last Attack.",
            available_attacks=available,
        )

    fname = _conversion_field(target)
    setattr(pools.conversions, fname, getattr(pools.conversions, fname) + 1)
    pools.pool(target).max += 1
    pools.attack.used += 1
    if target == "reaction":
        pools.reaction.converted_this_round += 1

    return ok(
        target=target,
        conversions=pools.conversions.total,
        info=f"Converted 1 Attack Action to {target}!",
        log=f"converted Attack to {target}",
    )


def undo_conversion(pools: ActionPools, target: ConversionTarget) -> OpResult:
    fname = _conversion_field(target)
    current = getattr(pools.conversions, fname)
    if current <= 0:
        return fail(
            INVARIANT_VIOLATION,
            f"No {target} conversions to undo!",
            target=target,
        )

    setattr(pools.conversions, fname, current - 1)
    pools.pool(target).max -= 1
    pools.attack.used = max(0, pools.attack.used - 1)
    if target == "reaction":
        pools.reaction.converted_this_round = max(
            0, pools.reaction.converted_this_round - 1
        )

    return ok(
        target=target,
        conversions=pools.conversions.total,
        info=f"Undid conversion to {target}!",
        log=f"undid conversion to {target}",
    )


def get_action_status(pools: ActionPools, mastery_rank: int) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for action_type in ACTION_TYPES:
        p = pools.pool(action_type)
        out[action_type] = {"used": p.used, "max": p.max, "remaining": p.remaining}
    total = pools.conversions.total
    out["conversions"] = {
        "total": total,
        "max": mastery_rank,
        "remaining": mastery_rank - total,
    }
    return out
