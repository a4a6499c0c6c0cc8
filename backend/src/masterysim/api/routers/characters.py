from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from masterysim.db.deps import get_db
from masterysim.db.models import Character
from masterysim.api.schemas import (
    CharacterCreate,
    CharacterData,
    CharacterOut,
    CharacterUpdate,
)

router = APIRouter(prefix="/characters", tags=["characters"])


def _out(obj: Character) -> CharacterOut:
    return CharacterOut(
        id=obj.id,
        name=obj.name,
        data=CharacterData.model_validate(obj.data_json),
        created_at=obj.created_at,
        updated_at=obj.updated_at,
    )


@router.get("", response_model=list[CharacterOut])
def list_characters(db: Session = Depends(get_db)):
    items = db.query(Character).order_by(Character.created_at.desc()).all()
    return [_out(c) for c in items]


@router.post("", response_model=CharacterOut)
def create_character(payload: CharacterCreate, db: Session = Depends(get_db)):
    obj = Character(name=payload.name, data_json=payload.data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return _out(obj)


@router.get("/{character_id}", response_model=CharacterOut)
def get_character(character_id: str, db: Session = Depends(get_db)):
    obj = db.get(Character, character_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Character not found")
    return _out(obj)


@router.patch("/{character_id}", response_model=CharacterOut)
def patch_character(
    character_id: str, payload: CharacterUpdate, db: Session = Depends(get_db)
):
    obj = db.get(Character, character_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Character not found")

    if payload.name is not None:
        obj.name = payload.name
    if payload.data is not None:
        obj.data_json = payload.data.model_dump()

    db.add(obj)
    db.commit()
    db.refresh(obj)
    return _out(obj)


@router.delete("/{character_id}", status_code=204)
def delete_character(character_id: str, db: Session = Depends(get_db)):
    obj = db.get(Character, character_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Character not found")
    db.delete(obj)
    db.commit()
