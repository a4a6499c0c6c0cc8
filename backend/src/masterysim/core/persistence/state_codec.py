from __future__ import annotations

from dataclasses import asdict, is_dataclass
from random import Random
from typing import Any, Dict, List, Mapping, Optional, cast

from masterysim.config import rules
from masterysim.core.engine.state import (
    ActionPool,
    ActionPools,
    ActorProfile,
    Bar,
    BarTrack,
    Buff,
    ChargeState,
    CombatantState,
    CombatState,
    Conversions,
    EncounterState,
    InitiativeRecord,
    ShopFlags,
    ShopPurchases,
    StonePool,
    default_combat_state,
)


# ---------- универсальные helpers ----------


def _jsonable(v: Any) -> Any:
    """Привести значение к JSON-виду (tuple->list, dataclass/pydantic->dict)."""
    if v is None:
        return None
    if isinstance(v, (str, int, float, bool)):
        return v
    if isinstance(v, (list, tuple, set)):
        return [_jsonable(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _jsonable(val) for k, val in v.items()}

    md = getattr(v, "model_dump", None)
    if callable(md):
        return _jsonable(md(mode="json"))

    if is_dataclass(v) and not isinstance(v, type):
        return _jsonable(asdict(cast(Any, v)))

    raise TypeError(f"Cannot serialize {type(v).__name__}")


def _pick(data: Mapping[str, Any], cls: type) -> Dict[str, Any]:
    """Оставить только поля dataclass'а (лишние ключи старых снапшотов игнорируются)."""
    names = getattr(cls, "__dataclass_fields__", {})
    return {k: v for k, v in data.items() if k in names}


def _as_dict(v: Any) -> Dict[str, Any]:
    return dict(v) if isinstance(v, Mapping) else {}


# ---------- CombatState ----------


def _pool_from_dict(d: Any, default: ActionPool) -> ActionPool:
    raw = _as_dict(d)
    if not raw:
        return default
    return ActionPool(**{**asdict(default), **_pick(raw, ActionPool)})


def _pools_from_dict(d: Any, default: ActionPools) -> ActionPools:
    raw = _as_dict(d)
    return ActionPools(
        attack=_pool_from_dict(raw.get("attack"), default.attack),
        movement=_pool_from_dict(raw.get("movement"), default.movement),
        reaction=_pool_from_dict(raw.get("reaction"), default.reaction),
        conversions=Conversions(**_pick(_as_dict(raw.get("conversions")), Conversions)),
    )


def _bars_from_dict(d: Any) -> BarTrack:
    raw = _as_dict(d)
    bars = [
        Bar(**_pick(b, Bar))
        for b in raw.get("bars") or []
        if isinstance(b, Mapping) and "max" in b and "current" in b
    ]
    return BarTrack(
        bars=bars,
        current_bar_index=int(raw.get("current_bar_index", 0)),
        temp_hp=int(raw.get("temp_hp", 0)),
    )


def _initiative_from_dict(d: Any) -> Optional[InitiativeRecord]:
    raw = _as_dict(d)
    if not raw:
        return None
    fields = _pick(raw, InitiativeRecord)
    fields["purchases"] = ShopPurchases(
        **_pick(_as_dict(raw.get("purchases")), ShopPurchases)
    )
    fields.setdefault("round", 0)
    fields.setdefault("base", 0)
    return InitiativeRecord(**fields)


def combat_state_to_dict(cs: CombatState) -> dict[str, Any]:
    return cast(dict[str, Any], _jsonable(cs))


def combat_state_from_dict(
    d: Optional[Mapping[str, Any]], mastery_rank: int
) -> CombatState:
    """
    Дефолты для отсутствующих подструктур применяются здесь, один раз.
    Дальше движок работает с полностью заполненным CombatState.
    """
    raw = _as_dict(d)
    cfg = rules()
    default = default_combat_state(mastery_rank, base_actions=cfg.base_actions)

    stones = default.stones
    if isinstance(raw.get("stones"), Mapping):
        stones = StonePool(**{**asdict(stones), **_pick(raw["stones"], StonePool)})

    charges = default.mastery_charges
    if isinstance(raw.get("mastery_charges"), Mapping):
        charges = ChargeState(
            **{**asdict(charges), **_pick(raw["mastery_charges"], ChargeState)}
        )

    buffs: List[Buff] = [
        Buff.model_validate(b)
        for b in raw.get("active_buffs") or []
        if isinstance(b, Mapping)
    ]

    return CombatState(
        actions=_pools_from_dict(raw.get("actions"), default.actions),
        stones=stones,
        power_usage={
            str(k): int(v) for k, v in _as_dict(raw.get("power_usage")).items()
        },
        vitality=_bars_from_dict(raw.get("vitality")),
        stress=_bars_from_dict(raw.get("stress")),
        mastery_charges=charges,
        active_buffs=buffs,
        charged_power_used_this_round=bool(
            raw.get("charged_power_used_this_round", False)
        ),
        initiative=_initiative_from_dict(raw.get("initiative")),
        shop_flags=ShopFlags(**_pick(_as_dict(raw.get("shop_flags")), ShopFlags)),
    )


# ---------- Combatant codec ----------


def combatant_to_dict(c: CombatantState) -> dict[str, Any]:
    return {
        "id": c.id,
        "name": c.name,
        "actor": _jsonable(c.actor),
        "combat": combat_state_to_dict(c.combat),
    }


def combatant_from_dict(d: Mapping[str, Any]) -> CombatantState:
    actor_raw = d.get("actor")
    actor = (
        ActorProfile(**_pick(actor_raw, ActorProfile))
        if isinstance(actor_raw, Mapping)
        else None
    )
    rank = actor.mastery_rank if actor is not None else 1
    return CombatantState(
        id=str(d["id"]),
        name=str(d.get("name", d["id"])),
        actor=actor,
        combat=combat_state_from_dict(d.get("combat"), rank),
    )


# ---------- EncounterState codec ----------


def encounter_state_to_dict(state: EncounterState) -> dict[str, Any]:
    """
    Сериализуем EncounterState так, чтобы можно было продолжить бой.
    Важно: сохраняем rng_state.
    """
    version, internal, gauss = state.rng.getstate()
    return {
        "round": state.round,
        "turn_owner_id": state.turn_owner_id,
        "initiative_order": list(state.initiative_order),
        "phase": state.phase,
        "seq": state.seq,
        "t": state.t,
        "combatants": {
            cid: combatant_to_dict(c) for cid, c in state.combatants.items()
        },
        "rng_seed": state.rng_seed,
        "rng_state": [version, list(internal), gauss],
        "combat_started": state.combat_started,
        "initiative_finalized": state.initiative_finalized,
        "pending_shops": dict(state.pending_shops),
        "buff_seq": state._buff_seq,
    }


def encounter_state_from_dict(d: Mapping[str, Any]) -> EncounterState:
    combatants_raw = _as_dict(d.get("combatants"))
    combatants = {
        str(cid): combatant_from_dict(cd)
        for cid, cd in combatants_raw.items()
        if isinstance(cd, Mapping)
    }

    st = EncounterState(
        round=int(d.get("round", 0)),
        turn_owner_id=d.get("turn_owner_id"),
        initiative_order=[str(x) for x in d.get("initiative_order") or []],
        phase=str(d.get("phase", "idle")),
        seq=int(d.get("seq", 0)),
        t=int(d.get("t", 0)),
        combatants=combatants,
        rng_seed=int(d.get("rng_seed", 0)),
        combat_started=bool(d.get("combat_started", False)),
        initiative_finalized=bool(d.get("initiative_finalized", False)),
        pending_shops={
            str(k): int(v) for k, v in _as_dict(d.get("pending_shops")).items()
        },
        _buff_seq=int(d.get("buff_seq", 1)),
    )

    # restore rng state (чтобы броски продолжались корректно)
    rng_state = d.get("rng_state")
    if isinstance(rng_state, (list, tuple)) and len(rng_state) == 3:
        version, internal, gauss = rng_state
        st.rng = Random()
        st.rng.setstate((version, tuple(internal), gauss))
    else:
        st.rng = Random(st.rng_seed)

    return st
