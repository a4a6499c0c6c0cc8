from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EncounterInitRequest(BaseModel):
    label: str = "init"
    reset_existing: bool = False
    seed: Optional[int] = None


class EncounterRuntimeResponse(BaseModel):
    encounter_id: str
    save_id: int
    state: Dict[str, Any]
    events_delta: List[Dict[str, Any]] = Field(default_factory=list)


class AddCombatantRequest(BaseModel):
    character_id: str
    combatant_id: Optional[str] = None
    # overrides передаём как dict, чтобы не зависеть от конкретного класса overrides
    overrides: Optional[Dict[str, Any]] = None
    label: str = "add"


class ApplyCommandRequest(BaseModel):
    command: Dict[str, Any]
    label: str = "cmd"


class GetEncounterStateResponse(BaseModel):
    encounter_id: str
    save_id: int
    state: Dict[str, Any]


# ---- Character payload (то, что хранится в data_json) ----


class BarSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max: int = Field(ge=0)
    current: Optional[int] = Field(default=None, ge=0)  # None -> полная
    penalty: int = 0


class CharacterData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: int = Field(default=1, ge=1)

    mastery_rank: int = Field(default=2, ge=1, le=10)
    agility: int = Field(default=0, ge=0)
    wits: int = Field(default=0, ge=0)
    combat_reflexes: int = Field(default=0, ge=0)

    is_player_character: bool = False

    stones_max: int = Field(default=0, ge=0)
    # None -> регенерация = Mastery Rank
    stones_regeneration: Optional[int] = Field(default=None, ge=0)

    # полоски уже нормализованы внешним кодом подготовки актёра
    vitality_bars: List[BarSpec] = Field(default_factory=list)
    stress_bars: List[BarSpec] = Field(default_factory=list)
    temp_hp: int = Field(default=0, ge=0)


# ---- API DTOs ----


class CharacterCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    data: CharacterData


class CharacterUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    data: Optional[CharacterData] = None


class CharacterOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    data: CharacterData
    created_at: datetime
    updated_at: datetime


class EncounterCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str


class EncounterOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    saves_count: int = 0
    latest_save_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class EncounterSaveOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    encounter_id: str
    label: Optional[str] = None
    events_count: int = 0
    created_at: datetime


class EncounterSaveWithStateOut(EncounterSaveOut):
    state: Dict[str, Any]
    events: List[Dict[str, Any]] = Field(default_factory=list)
