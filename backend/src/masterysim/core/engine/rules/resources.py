"""
Ресурсы: Stones, Vitality, Stress.

Stones тратятся на силы (1, 2, 4, 8 ... за повторное применение в раунде),
восстанавливаются на regeneration_per_round в начале раунда и полностью на отдыхе.
Vitality/Stress: полоски; движок трогает только текущую.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from masterysim.core.engine.state import BarTrack, CombatState, StonePool
from masterysim.core.engine.rules.results import (
    INSUFFICIENT_RESOURCE,
    INVALID_AMOUNT,
    NOT_FOUND,
    OpResult,
    fail,
    noop_not_found,
    ok,
)

logger = logging.getLogger(__name__)


def calculate_stone_cost(usage_count: int) -> int:
    """usage_count: номер применения в раунде (1-е, 2-е, ...)."""
    return 2 ** (usage_count - 1)


# ---------- Stones ----------


def spend_stones(
    stones: StonePool, amount: int, reason: str = "power activation"
) -> OpResult:
    if amount < 0:
        return fail(INVALID_AMOUNT, f"Invalid stone amount: {amount}", amount=amount)

    if stones.current < amount:
        return fail(
            INSUFFICIENT_RESOURCE,
            f"Not enough Stones! Have {stones.current}, need {amount}.",
            have=stones.current,
            need=amount,
        )

    stones.current -= amount
    stones.spent_this_round += amount

    logger.info("spent %s stone(s) for %s", amount, reason)
    return ok(
        spent=amount,
        current=stones.current,
        info=f"Spent {amount} Stones. ({stones.current} remaining)",
        log=f"spends {amount} Stones for {reason} "
        f"({stones.current} / {stones.max} remaining)",
    )


def spend_power_stones(state: CombatState, power_key: str) -> OpResult:
    """Потратить камни на силу с экспоненциальной ценой за повтор в раунде."""
    uses = state.power_usage.get(power_key, 0)
    cost = calculate_stone_cost(uses + 1)

    res = spend_stones(state.stones, cost, reason=power_key)
    if not res.ok:
        res.data.update(power_key=power_key, cost=cost)
        return res

    state.power_usage[power_key] = uses + 1
    res.data.update(power_key=power_key, cost=cost, uses=uses + 1)
    return res


def regenerate_stones(stones: StonePool, regen: int) -> OpResult:
    before = stones.current
    stones.current = min(stones.max, stones.current + regen)
    stones.spent_this_round = 0

    regenerated = stones.current - before
    if regenerated > 0:
        logger.info(
            "regenerated %s stone(s) (%s/%s)", regenerated, stones.current, stones.max
        )
        return ok(
            current=stones.current,
            regenerated=regenerated,
            log=f"regenerated {regenerated} Stone(s) ({stones.current}/{stones.max})",
        )
    return ok(current=stones.current, regenerated=0)


def restore_all_stones(stones: StonePool) -> OpResult:
    stones.current = stones.max
    stones.spent_this_round = 0
    logger.info("restored all stones to %s", stones.max)
    return ok(
        current=stones.current,
        log=f"restored all Stones to {stones.max}",
    )


# ---------- Vitality ----------


def apply_vitality_damage(vitality: BarTrack, amount: int) -> OpResult:
    if amount <= 0:
        return fail(INVALID_AMOUNT, f"Invalid damage amount: {amount}", amount=amount)

    bar = vitality.current_bar()
    if bar is None:
        return fail(
            NOT_FOUND,
            "Actor has no active health bar to damage",
            current_bar_index=vitality.current_bar_index,
        )

    absorbed = min(bar.current, amount)
    bar.current -= absorbed
    overflow = amount - absorbed

    logger.info("took %s vitality damage (overflow %s)", amount, overflow)
    return ok(
        damage=amount,
        bar_index=vitality.current_bar_index,
        bar_current=bar.current,
        overflow=overflow,
        log=f"takes {amount} damage (bar {vitality.current_bar_index + 1}: "
        f"{bar.current}/{bar.max})",
    )


def heal_vitality(vitality: BarTrack, amount: int) -> OpResult:
    if amount <= 0:
        return fail(INVALID_AMOUNT, f"Invalid healing amount: {amount}", amount=amount)

    bar = vitality.current_bar()
    if bar is None:
        return fail(
            NOT_FOUND,
            "Actor has no active health bar to heal",
            current_bar_index=vitality.current_bar_index,
        )

    bar.current = min(bar.max, bar.current + amount)
    logger.info("healed %s vitality", amount)
    return ok(
        healing=amount,
        bar_index=vitality.current_bar_index,
        bar_current=bar.current,
        log=f"heals +{amount} (bar {vitality.current_bar_index + 1}: "
        f"{bar.current}/{bar.max})",
    )


# ---------- Stress ----------


def add_stress(
    stress: BarTrack, amount: int, reason: str = "stressful event"
) -> OpResult:
    if amount <= 0:
        return fail(INVALID_AMOUNT, f"Invalid stress amount: {amount}", amount=amount)

    bar = stress.current_bar()
    if bar is None:
        return noop_not_found("Actor has no stress track", amount=amount)

    bar.current = min(bar.max, bar.current + amount)
    is_last_bar = stress.current_bar_index >= len(stress.bars) - 1
    mind_save_required = bar.current >= bar.max

    res = ok(
        current=bar.current,
        max=bar.max,
        mind_save_required=mind_save_required,
        final_bar=is_last_bar,
        log=f"gains {amount} Stress: {reason} ({bar.current} / {bar.max})",
    )
    if mind_save_required:
        res.notify("warn", "Mind Save required! Stress at maximum.")
    logger.info("gained %s stress: %s", amount, reason)
    return res


def reduce_stress(
    stress: BarTrack, amount: int, reason: str = "stress relief"
) -> OpResult:
    if amount <= 0:
        return fail(INVALID_AMOUNT, f"Invalid stress amount: {amount}", amount=amount)

    bar = stress.current_bar()
    if bar is None:
        return noop_not_found("Actor has no stress track", amount=amount)

    bar.current = max(0, bar.current - amount)
    logger.info("reduced %s stress: %s", amount, reason)
    return ok(
        current=bar.current,
        max=bar.max,
        log=f"reduces {amount} Stress: {reason} ({bar.current} / {bar.max})",
    )


def get_resource_status(state: CombatState) -> Dict[str, Any]:
    stones = state.stones
    stress_cur = state.stress.total_current
    stress_max = state.stress.total_max
    return {
        "stones": {
            "current": stones.current,
            "max": stones.max,
            "regeneration": stones.regeneration_per_round,
            "spent_this_round": stones.spent_this_round,
        },
        "vitality": {
            "current": state.vitality.total_current,
            "max": state.vitality.total_max,
            "current_bar": state.vitality.current_bar_index,
            "temp_hp": state.vitality.temp_hp,
        },
        "stress": {
            "current": stress_cur,
            "max": stress_max,
            "percentage": round(stress_cur / stress_max * 100) if stress_max > 0 else 0,
        },
    }
