from __future__ import annotations

from typing import Any, Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ConfigDict


class EventEnvelope(BaseModel):
    model_config = ConfigDict(extra="forbid")

    event_id: UUID = Field(default_factory=uuid4)
    seq: int
    t: int
    type: str

    round: int
    turn_owner_id: Optional[str] = None
    actor_id: Optional[str] = None

    payload: dict[str, Any] = Field(default_factory=dict)


def ev_command_rejected(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    actor_id: Optional[str],
    command: dict,
    code: str,
    message: str,
    meta: dict,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="CommandRejected",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=actor_id,
        payload={
            "command": command,
            "code": code,
            "message": message,
            "meta": meta,
        },
    )


def ev_combat_started(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[str] = None
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="CombatStarted",
        round=round_,
        turn_owner_id=None,
        actor_id=None,
        payload={},
    )


def ev_combat_ended(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[str] = None
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="CombatEnded",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=None,
        payload={},
    )


def ev_initiative_rolled(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str] = None,
    combatant_id: str,
    base: int,
    dice: list[int],
    raw: int,
    final: int,
    pending_shop: bool,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="InitiativeRolled",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "base": base,
            "dice": dice,
            "dice_total": sum(dice),
            "raw": raw,
            "initiative": final,
            "pending_shop": pending_shop,
        },
    )


def ev_initiative_shop_resolved(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str] = None,
    combatant_id: str,
    raw: int,
    spent: int,
    final: int,
    purchases: dict,
    cancelled: bool,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="InitiativeShopResolved",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "raw": raw,
            "spent": spent,
            "initiative": final,
            "purchases": purchases,
            "cancelled": cancelled,
        },
    )


def ev_initiative_order_finalized(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str] = None,
    order: list[dict],
) -> EventEnvelope:
    # order: [{"combatant_id": "...", "initiative": 12}, ...]
    return EventEnvelope(
        seq=seq,
        t=t,
        type="InitiativeOrderFinalized",
        round=round_,
        turn_owner_id=None,
        actor_id=None,
        payload={"order": order},
    )


def ev_round_started(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[str]
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="RoundStarted",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=None,
        payload={"round": round_},
    )


def ev_combatant_round_reset(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    combatant_id: str,
    actions: dict,
    stones: int,
    stones_regenerated: int,
    expired_buffs: list[str],
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="CombatantRoundReset",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "actions": actions,
            "stones": stones,
            "stones_regenerated": stones_regenerated,
            "expired_buffs": expired_buffs,
        },
    )


def ev_turn_started(
    *, seq: int, t: int, round_: int, turn_owner_id: str
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="TurnStarted",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=turn_owner_id,
        payload={"combatant_id": turn_owner_id},
    )


def ev_reactions_expired(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    combatant_id: str,
    expired: int,
    reaction_max: int,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="ConvertedReactionsExpired",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "expired": expired,
            "reaction_max": reaction_max,
        },
    )


def ev_death_save_required(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[str], combatant_id: str
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="DeathSaveRequired",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={"combatant_id": combatant_id},
    )


def ev_mind_save_required(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[str], combatant_id: str
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="MindSaveRequired",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={"combatant_id": combatant_id},
    )


def ev_actions_changed(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    combatant_id: str,
    change: str,  # "used" | "unused" | "converted" | "conversion_undone"
    details: dict,
    actions: dict,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="ActionsChanged",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "change": change,
            "details": details,
            "actions": actions,
        },
    )


def ev_resource_changed(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    combatant_id: str,
    resource: Literal["stones", "vitality", "stress", "charges"],
    change: str,
    details: dict,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="ResourceChanged",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "resource": resource,
            "change": change,
            "details": details,
        },
    )


def ev_buff_applied(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    combatant_id: str,
    buff: dict,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="BuffApplied",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={"combatant_id": combatant_id, "buff": buff},
    )


def ev_buff_ended(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    combatant_id: str,
    buff_id: str,
    name: str,
    reason: str,  # "expired" | "removed" | "cleared"
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="BuffEnded",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "buff_id": buff_id,
            "name": name,
            "reason": reason,
        },
    )


def ev_mastery_rolled(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    combatant_id: str,
    label: str,
    roll: dict,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="MasteryRolled",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={"combatant_id": combatant_id, "label": label, "roll": roll},
    )


def ev_notification(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    actor_id: Optional[str],
    kind: str,
    text: str,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="Notification",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=actor_id,
        payload={"kind": kind, "text": text},
    )


def ev_combat_log_entry(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[str],
    actor_id: str,
    summary: str,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="CombatLogEntry",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=actor_id,
        payload={"actor_id": actor_id, "summary": summary},
    )
