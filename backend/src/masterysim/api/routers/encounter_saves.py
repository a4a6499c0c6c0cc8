"""Просмотр снапшотов боя: каждый commands:apply пишет новый."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from masterysim.db.deps import get_db
from masterysim.db.models import Encounter, EncounterSave
from masterysim.api.schemas import EncounterSaveOut, EncounterSaveWithStateOut

router = APIRouter(prefix="/encounters", tags=["encounter_saves"])


def _summary(row: EncounterSave) -> EncounterSaveOut:
    return EncounterSaveOut(
        id=row.id,
        encounter_id=row.encounter_id,
        label=row.label,
        events_count=len(json.loads(row.events_json)),
        created_at=row.created_at,
    )


@router.get("/{encounter_id}/saves", response_model=list[EncounterSaveOut])
def list_saves(
    encounter_id: str,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Новые снапшоты первыми."""
    if db.get(Encounter, encounter_id) is None:
        raise HTTPException(status_code=404, detail="Encounter not found")

    rows = db.scalars(
        select(EncounterSave)
        .where(EncounterSave.encounter_id == encounter_id)
        .order_by(EncounterSave.id.desc())
        .limit(limit)
    ).all()
    return [_summary(r) for r in rows]


@router.get(
    "/{encounter_id}/saves/{save_id}", response_model=EncounterSaveWithStateOut
)
def load_save(encounter_id: str, save_id: int, db: Session = Depends(get_db)):
    row = db.get(EncounterSave, save_id)
    if row is None or row.encounter_id != encounter_id:
        raise HTTPException(status_code=404, detail="Save not found")

    events = json.loads(row.events_json)
    return EncounterSaveWithStateOut(
        id=row.id,
        encounter_id=row.encounter_id,
        label=row.label,
        events_count=len(events),
        created_at=row.created_at,
        state=json.loads(row.state_json),
        events=events,
    )
