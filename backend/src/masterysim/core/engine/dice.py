"""
Roll & Keep на d8.

Бросаем N костей, оставляем K лучших, прибавляем навык. Кость "взрывается":
пока значение делится на 8, докидываем ещё d8 и прибавляем.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field

from masterysim.config import ExplosionRule, rules

logger = logging.getLogger(__name__)


class DiceRng(Protocol):
    def randint(self, a: int, b: int) -> int: ...


class DieResult(BaseModel):
    value: int
    exploded: bool = False
    faces: List[int] = Field(default_factory=list)


class MasteryRollResult(BaseModel):
    formula: str
    dice: List[int]
    exploded: List[int] = Field(default_factory=list)  # индексы взорвавшихся костей
    kept_indices: List[int] = Field(default_factory=list)
    kept: List[int] = Field(default_factory=list)
    skill: int = 0
    dice_total: int = 0
    total: int = 0
    tn: int = 0
    success: bool = True
    raises: int = 0


def roll_exploding_die(
    rng: DiceRng, *, explosion_rule: Optional[ExplosionRule] = None
) -> DieResult:
    cfg = rules()
    rule = explosion_rule or cfg.explosion_rule
    faces = cfg.die_faces
    explode_on = cfg.explode_value

    face = rng.randint(1, faces)
    value = face
    rolled = [face]
    exploded = False

    while True:
        # running_total: проверяем накопленную сумму (8 -> 16 -> 24 ...),
        # last_face: только последнюю грань
        probe = value if rule == "running_total" else face
        if probe % explode_on != 0:
            break
        exploded = True
        face = rng.randint(1, faces)
        rolled.append(face)
        value += face

    return DieResult(value=value, exploded=exploded, faces=rolled)


def roll_dice(
    rng: DiceRng, num_dice: int, *, explosion_rule: Optional[ExplosionRule] = None
) -> Tuple[List[int], List[int]]:
    """-> (значения костей, индексы взорвавшихся)"""
    dice: List[int] = []
    exploded: List[int] = []
    for i in range(max(0, num_dice)):
        res = roll_exploding_die(rng, explosion_rule=explosion_rule)
        dice.append(res.value)
        if res.exploded:
            exploded.append(i)
    return dice, exploded


def select_highest_dice(dice: List[int], keep_dice: int) -> List[int]:
    """Индексы K наибольших костей, отсортированные по позиции (не по значению)."""
    indexed = sorted(enumerate(dice), key=lambda p: p[1], reverse=True)
    kept = indexed[: max(0, keep_dice)]
    return sorted(i for i, _ in kept)


def calculate_total(dice: List[int], kept_indices: List[int]) -> int:
    return sum(dice[i] for i in kept_indices)


def calculate_raises(total: int, tn: int) -> int:
    if total < tn:
        return 0
    return (total - tn) // rules().raise_increment


def mastery_roll(
    rng: DiceRng,
    *,
    num_dice: int,
    keep_dice: int,
    skill: int = 0,
    tn: int = 0,
    explosion_rule: Optional[ExplosionRule] = None,
) -> MasteryRollResult:
    dice, exploded = roll_dice(rng, num_dice, explosion_rule=explosion_rule)
    kept_indices = select_highest_dice(dice, keep_dice)
    dice_total = calculate_total(dice, kept_indices)
    total = dice_total + skill

    success = total >= tn if tn > 0 else True
    raises = calculate_raises(total, tn) if tn > 0 else 0

    formula = f"{num_dice}k{keep_dice}"
    if skill:
        formula += f" + {skill}"

    logger.debug(
        "mastery roll %s: dice=%s kept=%s total=%s tn=%s raises=%s",
        formula,
        dice,
        kept_indices,
        total,
        tn,
        raises,
    )

    return MasteryRollResult(
        formula=formula,
        dice=dice,
        exploded=exploded,
        kept_indices=kept_indices,
        kept=[dice[i] for i in kept_indices],
        skill=skill,
        dice_total=dice_total,
        total=total,
        tn=tn,
        success=success,
        raises=raises,
    )
