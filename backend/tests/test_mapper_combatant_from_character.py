import pytest
from pydantic import ValidationError

from masterysim.api.schemas import CharacterData
from masterysim.core.adapters import (
    CombatantOverrides,
    character_data_from_combatant,
    combatant_from_character,
)


def _data(**kw):
    base = {
        "mastery_rank": 3,
        "agility": 2,
        "wits": 1,
        "combat_reflexes": 1,
        "stones_max": 4,
        "vitality_bars": [{"max": 10}, {"max": 10, "penalty": -1}],
        "stress_bars": [{"max": 5}],
    }
    base.update(kw)
    return base


def test_combatant_from_character_defaults():
    c = combatant_from_character(_data(), combatant_id="K1", name="Kira")

    assert c.id == "K1"
    assert c.actor.mastery_rank == 3
    assert c.actor.is_player_character is False
    cs = c.combat
    assert [b.current for b in cs.vitality.bars] == [10, 10]
    assert cs.vitality.bars[1].penalty == -1
    # стресс копится с нуля
    assert cs.stress.bars[0].current == 0
    assert cs.stones.current == 4
    assert cs.stones.regeneration_per_round == 3
    assert cs.mastery_charges.current == 3
    assert cs.actions.attack.max == 1


def test_explicit_regeneration_and_bar_values():
    c = combatant_from_character(
        _data(
            stones_regeneration=1,
            vitality_bars=[{"max": 10, "current": 4}],
            stress_bars=[{"max": 5, "current": 2}],
        ),
        combatant_id="K1",
        name="Kira",
    )
    assert c.combat.stones.regeneration_per_round == 1
    assert c.combat.vitality.bars[0].current == 4
    assert c.combat.stress.bars[0].current == 2


def test_overrides():
    c = combatant_from_character(
        CharacterData.model_validate(_data()),
        combatant_id="K1",
        name="Kira",
        overrides=CombatantOverrides(
            mastery_rank=1,
            is_player_character=True,
            stones_current=99,
            incapacitated=True,
        ),
    )
    assert c.actor.mastery_rank == 1
    assert c.actor.is_player_character is True
    assert c.actor.incapacitated is True
    assert c.combat.stones.current == 4
    assert c.combat.mastery_charges.max == 1


def test_unknown_character_fields_are_rejected():
    with pytest.raises(ValidationError):
        combatant_from_character(
            _data(dexterity=14), combatant_id="K1", name="Kira"
        )


def test_character_data_from_combatant_is_valid_payload():
    c = combatant_from_character(_data(), combatant_id="K1", name="Kira")
    c.combat.vitality.bars[0].current = 6

    data = CharacterData.model_validate(character_data_from_combatant(c))
    assert data.mastery_rank == 3
    assert data.vitality_bars[0].current == 6
    assert data.stones_regeneration == 3
