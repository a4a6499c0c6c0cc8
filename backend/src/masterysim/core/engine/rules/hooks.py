from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol

from masterysim.core.engine.state import CombatantState, EncounterState


# --- контекст (минимум полей; можно расширять) ---


@dataclass(frozen=True)
class TickContext:
    round: int
    combatant_id: str


# --- протокол внешних участников раунда ---
# Состояния (conditions), utility-эффекты и спасброски от смерти живут
# вне движка; планировщик только дёргает их в нужный момент.


class RoundHooks(Protocol):
    def tick_conditions(
        self, state: EncounterState, combatant: CombatantState, ctx: TickContext
    ) -> List[dict]: ...

    def tick_utilities(
        self, state: EncounterState, combatant: CombatantState, ctx: TickContext
    ) -> List[dict]: ...

    def is_incapacitated(
        self, state: EncounterState, combatant: CombatantState
    ) -> Optional[bool]: ...

    def trigger_death_save(
        self, state: EncounterState, combatant: CombatantState, ctx: TickContext
    ) -> List[dict]: ...


# --- дефолт: недееспособность берём из профиля актёра ---
class ProfileIncapacitationHook:
    def tick_conditions(
        self, state: EncounterState, combatant: CombatantState, ctx: TickContext
    ) -> List[dict]:
        return []

    def tick_utilities(
        self, state: EncounterState, combatant: CombatantState, ctx: TickContext
    ) -> List[dict]:
        return []

    def is_incapacitated(
        self, state: EncounterState, combatant: CombatantState
    ) -> Optional[bool]:
        if combatant.actor is None:
            return None
        return combatant.actor.incapacitated

    def trigger_death_save(
        self, state: EncounterState, combatant: CombatantState, ctx: TickContext
    ) -> List[dict]:
        return []


DEFAULT_ROUND_HOOKS: List[RoundHooks] = [
    ProfileIncapacitationHook(),
]
