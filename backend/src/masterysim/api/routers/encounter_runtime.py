from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from masterysim.api.schemas import (
    AddCombatantRequest,
    ApplyCommandRequest,
    CharacterData,
    EncounterInitRequest,
    EncounterRuntimeResponse,
    GetEncounterStateResponse,
)
from masterysim.core.adapters.mapper import CombatantOverrides, combatant_from_character
from masterysim.core.engine.commands import Command
from masterysim.core.engine.rules.apply import apply_command as engine_apply
from masterysim.core.engine.state import EncounterState
from masterysim.core.persistence.runtime_store import (
    load_latest_snapshot,
    save_snapshot,
)
from masterysim.core.persistence.state_codec import encounter_state_to_dict
from masterysim.db.deps import get_db
from masterysim.db.models import Character, Encounter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/encounters", tags=["encounter-runtime"])

_command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


def _get_encounter(db: Session, encounter_id: str) -> Encounter:
    enc = db.get(Encounter, encounter_id)
    if not enc:
        raise HTTPException(status_code=404, detail="Encounter not found")
    return enc


@router.post("/{encounter_id}/state:init", response_model=EncounterRuntimeResponse)
def init_state(
    encounter_id: str, req: EncounterInitRequest, db: Session = Depends(get_db)
):
    _get_encounter(db, encounter_id)

    latest_id, latest_state, _latest_events = load_latest_snapshot(db, encounter_id)
    if latest_id is not None and latest_state is not None and not req.reset_existing:
        return EncounterRuntimeResponse(
            encounter_id=encounter_id,
            save_id=latest_id,
            state=encounter_state_to_dict(latest_state),
            events_delta=[],
        )

    state = EncounterState()
    if req.seed is not None:
        state.with_seed(req.seed)

    row = save_snapshot(
        db,
        encounter_id=encounter_id,
        label=req.label,
        state=state,
        events_delta=[],
    )
    return EncounterRuntimeResponse(
        encounter_id=encounter_id,
        save_id=row.id,
        state=encounter_state_to_dict(state),
        events_delta=[],
    )


@router.post("/{encounter_id}/combatants:add", response_model=EncounterRuntimeResponse)
def add_combatant(
    encounter_id: str, req: AddCombatantRequest, db: Session = Depends(get_db)
):
    _get_encounter(db, encounter_id)

    save_id, state, _events = load_latest_snapshot(db, encounter_id)
    if save_id is None or state is None:
        raise HTTPException(
            status_code=409,
            detail="Encounter is not initialized. Call state:init first.",
        )

    character = db.get(Character, req.character_id)
    if not character:
        raise HTTPException(status_code=404, detail="Character not found")

    combatant_id = req.combatant_id or f"{req.character_id[:8]}-{uuid.uuid4().hex[:8]}"
    if combatant_id in state.combatants:
        raise HTTPException(
            status_code=409, detail="combatant_id already exists in encounter"
        )

    try:
        overrides = CombatantOverrides(**(req.overrides or {}))
    except TypeError as e:
        raise HTTPException(status_code=422, detail=f"Bad overrides: {e}")

    combatant = combatant_from_character(
        CharacterData.model_validate(character.data_json),
        combatant_id=combatant_id,
        name=character.name,
        overrides=overrides,
    )
    state.combatants[combatant_id] = combatant

    events_delta: List[Dict[str, Any]] = [
        {
            "type": "CombatantAdded",
            "combatant_id": combatant_id,
            "character_id": req.character_id,
        }
    ]
    row = save_snapshot(
        db,
        encounter_id=encounter_id,
        label=req.label,
        state=state,
        events_delta=events_delta,
    )
    return EncounterRuntimeResponse(
        encounter_id=encounter_id,
        save_id=row.id,
        state=encounter_state_to_dict(state),
        events_delta=events_delta,
    )


@router.post("/{encounter_id}/commands:apply", response_model=EncounterRuntimeResponse)
def apply_command(
    encounter_id: str, req: ApplyCommandRequest, db: Session = Depends(get_db)
):
    _get_encounter(db, encounter_id)

    save_id, state, _events = load_latest_snapshot(db, encounter_id)
    if save_id is None or state is None:
        raise HTTPException(
            status_code=409,
            detail="Encounter is not initialized. Call state:init first.",
        )

    try:
        cmd = _command_adapter.validate_python(req.command)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False),
        )

    new_state, events_delta = engine_apply(state, cmd)
    logger.debug(
        "encounter %s: %s -> %s event(s)", encounter_id, cmd.type, len(events_delta)
    )

    row = save_snapshot(
        db,
        encounter_id=encounter_id,
        label=req.label,
        state=new_state,
        events_delta=events_delta,
    )
    return EncounterRuntimeResponse(
        encounter_id=encounter_id,
        save_id=row.id,
        state=encounter_state_to_dict(new_state),
        events_delta=events_delta,
    )


@router.get("/{encounter_id}/state", response_model=GetEncounterStateResponse)
def get_state(encounter_id: str, db: Session = Depends(get_db)):
    _get_encounter(db, encounter_id)

    save_id, state, _events = load_latest_snapshot(db, encounter_id)
    if save_id is None or state is None:
        raise HTTPException(status_code=404, detail="No saved state for encounter")

    return GetEncounterStateResponse(
        encounter_id=encounter_id,
        save_id=save_id,
        state=encounter_state_to_dict(state),
    )
