from masterysim.core.engine.rules import initiative
from masterysim.core.engine.state import (
    ActorProfile,
    CombatantState,
    InitiativeRecord,
    ShopPurchases,
)


def _combatant(cid="A", *, pc=False, rank=2, agility=2, wits=1, reflexes=1):
    return CombatantState(
        id=cid,
        name=cid,
        actor=ActorProfile(
            mastery_rank=rank,
            agility=agility,
            wits=wits,
            combat_reflexes=reflexes,
            is_player_character=pc,
        ),
    )


def test_base_initiative():
    assert initiative.calculate_base_initiative(_combatant().actor) == 4


def test_initiative_dice_sum_all_dice(scripted_rng):
    total, dice, formula = initiative.roll_initiative_dice(
        scripted_rng([3, 8, 2]), _combatant().actor
    )
    assert (total, dice, formula) == (13, [3, 10], "2d8")


def test_initiative_bonus_dice(scripted_rng):
    total, dice, formula = initiative.roll_initiative_dice(
        scripted_rng([1, 2, 3]), _combatant().actor, with_bonus=True, bonus_count=1
    )
    assert total == 6
    assert dice == [1, 2, 3]
    assert formula == "2d8 + 1d8 (Wits Stones)"


def test_npc_initiative_is_final_immediately(scripted_rng):
    c = _combatant()
    res = initiative.resolve_initiative(scripted_rng([4, 5]), c, 1)

    assert res.ok
    assert res.data["pending_shop"] is False
    rec = c.combat.initiative
    assert rec.raw == 13
    assert rec.final == 13
    assert rec.confirmed is True
    assert rec.round == 1


def test_pc_initiative_waits_for_shop(scripted_rng):
    c = _combatant(pc=True)
    res = initiative.resolve_initiative(scripted_rng([4, 5]), c, 1)

    assert res.data["pending_shop"] is True
    assert c.combat.initiative.raw == 13
    assert c.combat.initiative.confirmed is False


def test_shop_costs():
    assert initiative.calculate_shop_cost(ShopPurchases(extra_movement_m=4)) == 2
    assert initiative.calculate_shop_cost(ShopPurchases(initiative_swap=True)) == 3
    assert initiative.calculate_shop_cost(
        ShopPurchases(extra_movement_m=4, extra_attack=True)
    ) == 7


def test_shop_rejects_overspend():
    res = initiative.validate_shop_purchases(
        5, ShopPurchases(extra_attack=True, initiative_swap=True)
    )
    assert res.ok is False
    assert res.code == "InsufficientResource"
    assert res.message == "Not enough initiative points. Cost: 8, Available: 5"


def test_shop_movement_must_be_step_multiple():
    res = initiative.validate_shop_purchases(20, ShopPurchases(extra_movement_m=3))
    assert res.ok is False
    assert res.code == "InvalidAmount"


def test_confirm_shop_spends_initiative_and_grants_actions(scripted_rng):
    c = _combatant(pc=True)
    initiative.resolve_initiative(scripted_rng([4, 5]), c, 1)

    res = initiative.confirm_shop(
        c, ShopPurchases(extra_movement_m=2, extra_attack=True)
    )
    assert res.ok
    rec = c.combat.initiative
    assert rec.spent == 6
    assert rec.final == 7
    assert rec.confirmed is True
    assert c.combat.actions.movement.max == 2
    assert c.combat.actions.attack.max == 2
    assert c.combat.shop_flags.extra_movement_m == 2
    assert c.combat.shop_flags.swap_unlocked is False
    assert "Remaining Initiative: 7" in res.log[0]


def test_invalid_confirm_leaves_record_untouched(scripted_rng):
    c = _combatant(pc=True)
    initiative.resolve_initiative(scripted_rng([1, 1]), c, 1)  # raw 6

    res = initiative.confirm_shop(
        c, ShopPurchases(extra_attack=True, initiative_swap=True)
    )
    assert res.ok is False
    rec = c.combat.initiative
    assert rec.final == rec.raw == 6
    assert rec.confirmed is False
    assert c.combat.actions.attack.max == 1


def test_cancel_shop_falls_back_to_raw(scripted_rng):
    c = _combatant(pc=True)
    initiative.resolve_initiative(scripted_rng([4, 5]), c, 1)

    res = initiative.cancel_shop(c)
    assert res.data == {"raw": 13, "spent": 0, "final": 13}
    assert c.combat.initiative.confirmed is True


def test_shop_without_roll_fails():
    res = initiative.cancel_shop(_combatant())
    assert res.ok is False
    assert res.code == "NotFound"


def test_order_descending_ties_by_id():
    combatants = {}
    for cid, final in [("C", 15), ("A", 10), ("B", 15)]:
        c = _combatant(cid)
        c.combat.initiative = InitiativeRecord(round=1, base=0, raw=final, final=final)
        combatants[cid] = c

    assert initiative.initiative_order(combatants) == ["B", "C", "A"]
