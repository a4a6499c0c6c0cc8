from __future__ import annotations

from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from masterysim.db.deps import get_db
from masterysim.db.models import Encounter, EncounterSave
from masterysim.api.schemas import EncounterCreate, EncounterOut

router = APIRouter(prefix="/encounters", tags=["encounters"])


def _save_stats(db: Session, encounter_id: str) -> Tuple[int, Optional[int]]:
    """-> (число снапшотов, id последнего)"""
    count, latest = db.execute(
        select(func.count(EncounterSave.id), func.max(EncounterSave.id)).where(
            EncounterSave.encounter_id == encounter_id
        )
    ).one()
    return int(count or 0), latest


def _out(db: Session, e: Encounter) -> EncounterOut:
    count, latest = _save_stats(db, e.id)
    return EncounterOut(
        id=e.id,
        name=e.name,
        saves_count=count,
        latest_save_id=latest,
        created_at=e.created_at,
        updated_at=e.updated_at,
    )


@router.get("", response_model=list[EncounterOut])
def list_encounters(db: Session = Depends(get_db)):
    items = db.scalars(select(Encounter).order_by(Encounter.created_at.desc())).all()
    return [_out(db, e) for e in items]


@router.get("/{encounter_id}", response_model=EncounterOut)
def get_encounter(encounter_id: str, db: Session = Depends(get_db)):
    enc = db.get(Encounter, encounter_id)
    if not enc:
        raise HTTPException(status_code=404, detail="Encounter not found")
    return _out(db, enc)


@router.post("", response_model=EncounterOut)
def create_encounter(payload: EncounterCreate, db: Session = Depends(get_db)):
    enc = Encounter(name=payload.name)
    db.add(enc)
    db.commit()
    db.refresh(enc)
    return _out(db, enc)


@router.delete("/{encounter_id}", status_code=204)
def delete_encounter(encounter_id: str, db: Session = Depends(get_db)):
    """Удаляет бой вместе со всеми снапшотами."""
    enc = db.get(Encounter, encounter_id)
    if not enc:
        raise HTTPException(status_code=404, detail="Encounter not found")
    db.delete(enc)
    db.commit()
