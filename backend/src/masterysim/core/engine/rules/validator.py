from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from masterysim.core.engine.commands import (
    BeginTurn,
    BurnStoneForCharges,
    CancelInitiativeShop,
    Command,
    ConfirmInitiativeShop,
    EndCombat,
    FinalizeInitiative,
    MasteryRoll,
    RollInitiative,
    StartCombat,
    StartRound,
)
from masterysim.core.engine.state import EncounterState


@dataclass
class ValidationError:
    code: str
    message: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationResult:
    ok: bool
    errors: List[ValidationError] = field(default_factory=list)


def _err(code: str, message: str, **meta: Any) -> ValidationResult:
    return ValidationResult(
        ok=False, errors=[ValidationError(code=code, message=message, meta=meta)]
    )


def _in_combat(state: EncounterState) -> bool:
    return state.combat_started and state.phase in ("setup_initiative", "in_round")


def validate_command(state: EncounterState, cmd: Command) -> ValidationResult:
    # --- общая проверка: комбатант существует ---
    cid = getattr(cmd, "combatant_id", None)
    if cid is not None and cid not in state.combatants:
        return _err("UNKNOWN_COMBATANT", "Unknown combatant_id", combatant_id=cid)

    if isinstance(cmd, StartCombat):
        if state.combat_started:
            return _err("COMBAT_ALREADY_STARTED", "Combat already started")
        if len(state.combatants) == 0:
            return _err("NO_COMBATANTS", "Cannot start combat with zero combatants")
        if state.phase not in ("idle", "finished"):
            return _err(
                "BAD_PHASE", "StartCombat requires idle phase", phase=state.phase
            )
        return ValidationResult(ok=True)

    if isinstance(cmd, EndCombat):
        if not state.combat_started:
            return _err("COMBAT_NOT_STARTED", "Call StartCombat first")
        return ValidationResult(ok=True)

    if isinstance(cmd, RollInitiative):
        if not state.combat_started:
            return _err("COMBAT_NOT_STARTED", "Call StartCombat first")
        if state.initiative_finalized:
            return _err("INITIATIVE_FINALIZED", "Initiative already finalized")
        if state.combatants[cmd.combatant_id].actor is None:
            return _err(
                "NO_ACTOR",
                "Combatant has no actor to roll initiative for",
                combatant_id=cmd.combatant_id,
            )
        return ValidationResult(ok=True)

    if isinstance(cmd, (ConfirmInitiativeShop, CancelInitiativeShop)):
        if not state.combat_started:
            return _err("COMBAT_NOT_STARTED", "Call StartCombat first")
        if cmd.combatant_id not in state.pending_shops:
            return _err(
                "NO_PENDING_SHOP",
                "No pending Initiative Shop for this combatant",
                combatant_id=cmd.combatant_id,
            )
        return ValidationResult(ok=True)

    if isinstance(cmd, FinalizeInitiative):
        if not state.combat_started:
            return _err("COMBAT_NOT_STARTED", "Call StartCombat first")
        if state.initiative_finalized:
            return _err("INITIATIVE_FINALIZED", "Initiative already finalized")
        missing = []
        for cid, c in state.combatants.items():
            if c.actor is None:
                continue
            rec = c.combat.initiative
            if rec is None or rec.round != state.round:
                missing.append(cid)
        if missing:
            return _err(
                "MISSING_INITIATIVE",
                "Not all combatants have initiative rolled",
                missing=missing,
            )
        if state.pending_shops:
            return _err(
                "PENDING_SHOP",
                "Initiative Shop decisions are still pending",
                pending=sorted(state.pending_shops),
            )
        return ValidationResult(ok=True)

    if isinstance(cmd, StartRound):
        if not state.combat_started:
            return _err("COMBAT_NOT_STARTED", "Call StartCombat first")
        if not state.initiative_finalized:
            return _err("INITIATIVE_NOT_FINALIZED", "Call FinalizeInitiative first")
        return ValidationResult(ok=True)

    if isinstance(cmd, BeginTurn):
        if not state.initiative_finalized:
            return _err("INITIATIVE_NOT_FINALIZED", "Call FinalizeInitiative first")
        if cmd.combatant_id not in state.initiative_order:
            return _err(
                "NOT_IN_ORDER",
                "Combatant is not in the initiative order",
                combatant_id=cmd.combatant_id,
            )
        if cmd.combatant_id in state.pending_shops:
            return _err(
                "PENDING_SHOP",
                "Resolve the Initiative Shop before starting the turn",
                combatant_id=cmd.combatant_id,
            )
        return ValidationResult(ok=True)

    if isinstance(cmd, BurnStoneForCharges):
        if _in_combat(state):
            return _err(
                "IN_COMBAT",
                "Stones can only be burned for charges outside of combat",
                combatant_id=cmd.combatant_id,
            )
        return ValidationResult(ok=True)

    if isinstance(cmd, MasteryRoll):
        if cmd.keep_dice is not None and cmd.keep_dice < 0:
            return _err("BAD_KEEP", "keep_dice must be >= 0", keep_dice=cmd.keep_dice)
        return ValidationResult(ok=True)

    return ValidationResult(ok=True)
