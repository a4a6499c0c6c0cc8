import json

from masterysim.core.engine.commands import (
    ApplyBuff,
    CancelInitiativeShop,
    FinalizeInitiative,
    RollInitiative,
    StartCombat,
)
from masterysim.core.engine.rules.apply import apply_command
from masterysim.core.engine.state import ActorProfile, CombatantState, EncounterState
from masterysim.core.persistence.state_codec import (
    combat_state_from_dict,
    combatant_from_dict,
    combatant_to_dict,
    encounter_state_from_dict,
    encounter_state_to_dict,
)


def _encounter():
    state = EncounterState().with_seed(11)
    state.combatants["A"] = CombatantState(id="A", name="Arn")
    state.combatants["B"] = CombatantState(
        id="B", name="Bea", actor=ActorProfile(is_player_character=True)
    )
    for cmd in (
        StartCombat(),
        RollInitiative(combatant_id="A"),
        RollInitiative(combatant_id="B"),
        CancelInitiativeShop(combatant_id="B"),
        FinalizeInitiative(),
        ApplyBuff(combatant_id="A", name="Bless", buff_type="attack", max_duration=3),
    ):
        state, _ = apply_command(state, cmd)
    return state


def test_encounter_snapshot_survives_json_and_keeps_dice_sequence():
    state = _encounter()
    raw = json.loads(json.dumps(encounter_state_to_dict(state)))

    restored = encounter_state_from_dict(raw)

    assert restored.round == 1
    assert restored.phase == "in_round"
    assert restored.initiative_order == state.initiative_order
    assert restored.initiative_finalized is True
    assert restored.seq == state.seq

    buff = restored.combatants["A"].combat.active_buffs[0]
    assert buff.name == "Bless"
    assert buff.duration == 3
    rec = restored.combatants["B"].combat.initiative
    assert rec.final == state.combatants["B"].combat.initiative.final
    assert rec.confirmed is True

    # новые id баффов и броски продолжаются с того же места
    assert restored.new_buff_id("A") == state.new_buff_id("A")
    expected = [state.rng.randint(1, 8) for _ in range(10)]
    assert [restored.rng.randint(1, 8) for _ in range(10)] == expected


def test_missing_rng_state_falls_back_to_seed():
    restored = encounter_state_from_dict({"rng_seed": 5})
    again = encounter_state_from_dict({"rng_seed": 5})
    assert restored.rng.randint(1, 8) == again.rng.randint(1, 8)
    assert restored.phase == "idle"
    assert restored.combatants == {}


def test_defaults_applied_once_on_load():
    cs = combat_state_from_dict({}, 3)

    assert cs.actions.attack.max == 1
    assert cs.actions.reaction.base == 1
    assert cs.mastery_charges.current == 3
    assert cs.mastery_charges.max == 3
    assert cs.stones.regeneration_per_round == 3
    assert cs.initiative is None
    assert cs.active_buffs == []


def test_old_snapshot_keys_are_ignored():
    cs = combat_state_from_dict(
        {"stones": {"current": 2, "max": 4, "legacy_field": 1}, "unknown": True}, 2
    )
    assert cs.stones.current == 2
    assert cs.stones.max == 4
    assert cs.stones.regeneration_per_round == 2


def test_combatant_without_actor():
    d = combatant_to_dict(CombatantState(id="X", name="Barrel", actor=None))
    assert d["actor"] is None

    restored = combatant_from_dict(d)
    assert restored.actor is None
    assert restored.mastery_rank == 1
