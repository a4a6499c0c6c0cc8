from masterysim.core.engine.rules import economy
from masterysim.core.engine.state import default_action_pools


def _pools_with_attacks(n: int):
    pools = default_action_pools()
    economy.add_action(pools, "attack", n - 1)
    return pools


def test_reset_for_round_is_idempotent():
    pools = _pools_with_attacks(3)
    economy.convert_attack_action(pools, "reaction", 2)
    economy.use_action(pools, "movement")

    economy.reset_for_round(pools, 2)
    first = economy.get_action_status(pools, 2)
    economy.reset_for_round(pools, 2)

    assert economy.get_action_status(pools, 2) == first
    assert pools.attack.max == 1
    assert pools.attack.used == 0
    assert pools.reaction.max == 1
    assert pools.reaction.converted_this_round == 0
    assert pools.conversions.total == 0


def test_use_action_beyond_max_is_rejected_without_mutation():
    pools = default_action_pools()
    assert economy.use_action(pools, "attack").ok

    res = economy.use_action(pools, "attack")
    assert res.ok is False
    assert res.code == "InsufficientResource"
    assert res.notifications[0].kind == "warn"
    assert pools.attack.used == 1


def test_unuse_action_floors_at_zero():
    pools = default_action_pools()
    res = economy.unuse_action(pools, "movement", 3)
    assert res.ok
    assert pools.movement.used == 0


def test_cannot_convert_last_attack():
    pools = default_action_pools()
    res = economy.convert_attack_action(pools, "movement", 3)

    assert res.ok is False
    assert res.code == "InvariantViolation"
    assert "last Attack" in res.message
    assert pools.movement.max == 1
    assert pools.attack.used == 0


def test_conversions_capped_by_mastery_rank():
    pools = _pools_with_attacks(4)

    assert economy.convert_attack_action(pools, "movement", 2).ok
    assert economy.convert_attack_action(pools, "reaction", 2).ok
    res = economy.convert_attack_action(pools, "movement", 2)

    assert res.ok is False
    assert res.code == "InvariantViolation"
    assert pools.conversions.total == 2
    assert pools.movement.max == 2
    assert pools.reaction.max == 2
    assert pools.reaction.converted_this_round == 1
    assert pools.attack.used == 2


def test_converted_reactions_expire_at_turn_start():
    pools = _pools_with_attacks(3)
    economy.convert_attack_action(pools, "reaction", 2)
    economy.convert_attack_action(pools, "reaction", 2)
    assert pools.reaction.max == 3

    res = economy.reset_for_turn(pools)
    assert res.data["expired"] == 2
    assert pools.reaction.max == 1
    assert pools.reaction.converted_this_round == 0

    # повторный старт хода ничего не меняет
    assert economy.reset_for_turn(pools).data["expired"] == 0
    assert pools.reaction.max == 1


def test_undo_conversion_restores_attack():
    pools = _pools_with_attacks(2)
    economy.convert_attack_action(pools, "reaction", 2)

    res = economy.undo_conversion(pools, "reaction")
    assert res.ok
    assert pools.conversions.total == 0
    assert pools.reaction.max == 1
    assert pools.reaction.converted_this_round == 0
    assert pools.attack.used == 0

    again = economy.undo_conversion(pools, "reaction")
    assert again.ok is False
    assert again.code == "InvariantViolation"


def test_action_status_reports_remaining_conversions():
    pools = _pools_with_attacks(2)
    economy.convert_attack_action(pools, "movement", 3)

    status = economy.get_action_status(pools, 3)
    assert status["attack"] == {"used": 1, "max": 2, "remaining": 1}
    assert status["movement"] == {"used": 0, "max": 2, "remaining": 2}
    assert status["conversions"] == {"total": 1, "max": 3, "remaining": 2}
