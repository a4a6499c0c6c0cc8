from __future__ import annotations

from collections.abc import Mapping as ABCMapping
from dataclasses import dataclass
from typing import Any, Optional, cast

from masterysim.api.schemas import BarSpec, CharacterData
from masterysim.config import rules
from masterysim.core.engine.state import (
    ActorProfile,
    Bar,
    BarTrack,
    CombatantState,
    default_combat_state,
)


@dataclass(frozen=True)
class CombatantOverrides:
    mastery_rank: Optional[int] = None
    is_player_character: Optional[bool] = None
    stones_current: Optional[int] = None
    incapacitated: Optional[bool] = None


def _as_dict(obj: Any) -> dict[str, Any]:
    """pydantic model / dict -> dict[str, Any]."""
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return cast(dict[str, Any], obj)
    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        res = dump()
        if isinstance(res, ABCMapping):
            return dict(cast(ABCMapping[str, Any], res))
    raise TypeError(f"Cannot read character data from {type(obj).__name__}")


def _bars(specs: list[BarSpec]) -> BarTrack:
    return BarTrack(
        bars=[
            Bar(
                max=s.max,
                current=s.max if s.current is None else min(s.current, s.max),
                penalty=s.penalty,
            )
            for s in specs
        ],
        current_bar_index=0,
    )


def combatant_from_character(
    character: CharacterData | ABCMapping[str, Any],
    *,
    combatant_id: str,
    name: str,
    overrides: CombatantOverrides | None = None,
) -> CombatantState:
    """
    Собрать комбатанта из данных персонажа. Все дефолты боевого состояния
    применяются здесь один раз, дальше движок их не угадывает.
    """
    data = (
        character
        if isinstance(character, CharacterData)
        else CharacterData.model_validate(_as_dict(character))
    )
    ov = overrides or CombatantOverrides()

    rank = data.mastery_rank if ov.mastery_rank is None else int(ov.mastery_rank)
    actor = ActorProfile(
        mastery_rank=rank,
        agility=data.agility,
        wits=data.wits,
        combat_reflexes=data.combat_reflexes,
        is_player_character=(
            data.is_player_character
            if ov.is_player_character is None
            else bool(ov.is_player_character)
        ),
        incapacitated=bool(ov.incapacitated) if ov.incapacitated is not None else False,
    )

    combat = default_combat_state(
        rank, stones_max=data.stones_max, base_actions=rules().base_actions
    )
    if data.stones_regeneration is not None:
        combat.stones.regeneration_per_round = data.stones_regeneration
    if ov.stones_current is not None:
        combat.stones.current = max(0, min(int(ov.stones_current), combat.stones.max))

    combat.vitality = _bars(data.vitality_bars)
    combat.vitality.temp_hp = data.temp_hp
    combat.stress = _bars(data.stress_bars)
    # стресс копится с нуля, если явно не задан
    for spec, bar in zip(data.stress_bars, combat.stress.bars):
        if spec.current is None:
            bar.current = 0

    return CombatantState(id=combatant_id, name=name, actor=actor, combat=combat)


def character_data_from_combatant(combatant: CombatantState) -> dict[str, Any]:
    """Обратное преобразование, чтобы сохранить изменённого персонажа."""
    actor = combatant.actor or ActorProfile()
    cs = combatant.combat
    return {
        "mastery_rank": actor.mastery_rank,
        "agility": actor.agility,
        "wits": actor.wits,
        "combat_reflexes": actor.combat_reflexes,
        "is_player_character": actor.is_player_character,
        "stones_max": cs.stones.max,
        "stones_regeneration": cs.stones.regeneration_per_round,
        "vitality_bars": [
            {"max": b.max, "current": b.current, "penalty": b.penalty}
            for b in cs.vitality.bars
        ],
        "stress_bars": [
            {"max": b.max, "current": b.current, "penalty": b.penalty}
            for b in cs.stress.bars
        ],
        "temp_hp": cs.vitality.temp_hp,
    }
