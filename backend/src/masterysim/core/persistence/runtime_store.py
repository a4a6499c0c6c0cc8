from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from masterysim.core.engine.state import EncounterState
from masterysim.core.persistence.state_codec import (
    encounter_state_from_dict,
    encounter_state_to_dict,
)
from masterysim.db.models import EncounterSave


def save_snapshot(
    db: Session,
    *,
    encounter_id: str,
    label: Optional[str],
    state: EncounterState,
    events_delta: List[Dict[str, Any]],
) -> EncounterSave:
    row = EncounterSave(
        encounter_id=encounter_id,
        label=label,
        state_json=json.dumps(encounter_state_to_dict(state), ensure_ascii=False),
        events_json=json.dumps(events_delta, ensure_ascii=False, default=str),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def load_latest_snapshot(
    db: Session, encounter_id: str
) -> Tuple[Optional[int], Optional[EncounterState], List[Dict[str, Any]]]:
    """-> (save_id, state, events) последнего снапшота или (None, None, [])."""
    row = db.scalars(
        select(EncounterSave)
        .where(EncounterSave.encounter_id == encounter_id)
        .order_by(EncounterSave.id.desc())
        .limit(1)
    ).first()
    if row is None:
        return None, None, []

    state = encounter_state_from_dict(json.loads(row.state_json))
    events = json.loads(row.events_json)
    return row.id, state, events
