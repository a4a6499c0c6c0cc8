from masterysim.core.engine.rules import charges
from masterysim.core.engine.state import ChargeState, CombatState, StonePool


def test_burn_stone_for_temporary_charges():
    cs = CombatState(
        stones=StonePool(current=1, max=3),
        mastery_charges=ChargeState(current=1, max=2, temporary=0),
    )
    res = charges.burn_stone_for_charges(cs, 2)

    assert res.ok
    assert cs.stones.current == 0
    assert cs.mastery_charges.temporary == 2
    assert charges.get_total_charges(cs, 2) == 3
    assert res.data["total"] == 3


def test_burn_without_stones_fails():
    cs = CombatState(mastery_charges=ChargeState(current=2, max=2))
    res = charges.burn_stone_for_charges(cs, 2)

    assert res.ok is False
    assert res.code == "InsufficientResource"
    assert res.notifications[0].kind == "error"
    assert cs.mastery_charges.temporary == 0


def test_uninitialized_charges_start_full():
    cs = CombatState()
    got = charges.get_charges(cs, 3)
    assert (got.current, got.max, got.temporary) == (3, 3, 0)


def test_temporary_charges_spent_first():
    cs = CombatState(mastery_charges=ChargeState(current=2, max=2, temporary=1))

    charges.spend_charge(cs, 2)
    assert cs.mastery_charges.temporary == 0
    assert cs.mastery_charges.current == 2

    charges.spend_charge(cs, 2)
    assert cs.mastery_charges.current == 1


def test_spend_with_no_charges_fails():
    cs = CombatState(mastery_charges=ChargeState(current=0, max=2))
    res = charges.spend_charge(cs, 2)
    assert res.ok is False
    assert res.code == "InsufficientResource"


def test_restore_drops_temporary():
    cs = CombatState(mastery_charges=ChargeState(current=0, max=2, temporary=2))
    charges.restore_charges(cs, 3)
    assert cs.mastery_charges == ChargeState(current=3, max=3, temporary=0)


def test_one_charged_power_per_round():
    cs = CombatState(mastery_charges=ChargeState(current=2, max=2))

    first = charges.activate_charged_power(cs, 2, "Thunder Step")
    assert first.ok
    assert "Thunder Step" in first.log[0]

    second = charges.activate_charged_power(cs, 2, "Thunder Step")
    assert second.ok is False
    assert second.code == "InvariantViolation"
    assert cs.mastery_charges.current == 1

    # со следующего раунда снова можно
    charges.reset_charged_power_flag(cs)
    assert charges.can_use_charged_power_this_round(cs)
    assert charges.activate_charged_power(cs, 2, "Thunder Step").ok
    assert cs.mastery_charges.current == 0


def test_failed_activation_does_not_mark_round():
    cs = CombatState(mastery_charges=ChargeState(current=0, max=2))
    assert charges.activate_charged_power(cs, 2, "Blink").ok is False
    assert cs.charged_power_used_this_round is False


def test_is_charged_power():
    assert charges.is_charged_power({"charged": True})
    assert charges.is_charged_power({"tags": ["movement", "charged"]})
    assert not charges.is_charged_power({"tags": ["movement"]})
    assert not charges.is_charged_power({})
