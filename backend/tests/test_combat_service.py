import asyncio
from random import Random

from masterysim.core.engine.state import (
    ActorProfile,
    CombatantState,
    InitiativeRecord,
    ShopPurchases,
    default_combat_state,
)
from masterysim.core.persistence.repository import (
    InMemoryCombatStateRepository,
    SqlAlchemyCombatStateRepository,
)
from masterysim.core.service import CombatService


def _combatant(cid, *, pc=False, rank=2, agility=10, stones=4):
    return CombatantState(
        id=cid,
        name=cid,
        actor=ActorProfile(mastery_rank=rank, agility=agility, is_player_character=pc),
        combat=default_combat_state(rank, stones_max=stones),
    )


async def _service(*combatants):
    repo = InMemoryCombatStateRepository()
    for c in combatants:
        await repo.save(c.id, c)
    return repo, CombatService(repo, rng=Random(5))


def test_concurrent_conversions_respect_rank_cap():
    async def scenario():
        c = _combatant("A", rank=1)
        c.combat.actions.attack.max = 3
        repo, service = await _service(c)
        results = await asyncio.gather(
            service.convert_attack_action("A", "movement"),
            service.convert_attack_action("A", "reaction"),
        )
        return results, await repo.load("A"), repo.save_count

    results, stored, saves = asyncio.run(scenario())

    assert sorted(r.ok for r in results) == [False, True]
    assert stored.combat.actions.conversions.total == 1
    # начальная запись + одна успешная операция
    assert saves == 2


def test_rejected_operation_is_not_saved():
    async def scenario():
        repo, service = await _service(_combatant("A", stones=2))
        res = await service.spend_stones("A", 3)
        return res, await repo.load("A"), repo.save_count

    res, stored, saves = asyncio.run(scenario())
    assert res.ok is False
    assert "Have 2, need 3" in res.message
    assert stored.combat.stones.current == 2
    assert saves == 1


def test_invalid_amounts_are_not_saved():
    async def scenario():
        repo, service = await _service(_combatant("A", stones=4))
        stones = await service.spend_stones("A", -5)
        stress = await service.add_stress("A", -3, "x")
        return stones, stress, await repo.load("A"), repo.save_count

    stones, stress, stored, saves = asyncio.run(scenario())

    assert stones.code == "InvalidAmount"
    assert stress.code == "InvalidAmount"
    assert stored.combat.stones.current == 4
    assert saves == 1


def test_unknown_actor():
    async def scenario():
        _repo, service = await _service()
        return await service.use_action("ghost", "attack")

    res = asyncio.run(scenario())
    assert res.ok is False
    assert res.code == "NotFound"


def test_start_round_resets_all_actors():
    async def scenario():
        repo, service = await _service(_combatant("A"), _combatant("B"))
        await service.use_action("A", "attack")
        await service.spend_power_stones("B", "wits:reroll")
        await service.activate_charged_power("B", "Blink")

        results = await service.start_round(["A", "B"])
        return results, await repo.load("A"), await repo.load("B")

    results, a, b = asyncio.run(scenario())

    assert set(results) == {"A", "B"}
    assert all(r.ok for r in results.values())
    assert a.combat.actions.attack.used == 0
    assert b.combat.stones.current == 4
    assert b.combat.power_usage == {}
    assert b.combat.charged_power_used_this_round is False


def test_second_round_rerolls_initiative_before_reset():
    async def scenario():
        pc = _combatant("P", pc=True)
        npc = _combatant("N")
        for c in (pc, npc):
            c.combat.initiative = InitiativeRecord(
                round=1, base=10, raw=15, final=15, confirmed=True
            )
        repo, service = await _service(pc, npc)
        await service.use_action("N", "attack")

        results = await service.start_round(["P", "N"], current_round=2)
        return results, await repo.load("P"), await repo.load("N")

    results, p, n = asyncio.run(scenario())

    assert n.combat.initiative.round == 2
    assert n.combat.initiative.confirmed is True
    assert results["N"].data["initiative"]["pending_shop"] is False
    assert n.combat.actions.attack.used == 0

    # PC снова ждёт магазина
    assert p.combat.initiative.round == 2
    assert p.combat.initiative.confirmed is False
    assert results["P"].data["initiative"]["pending_shop"] is True


def test_first_round_keeps_initiative():
    async def scenario():
        c = _combatant("A")
        c.combat.initiative = InitiativeRecord(round=1, base=10, raw=15, final=15)
        repo, service = await _service(c)
        results = await service.start_round(["A"])
        return results, await repo.load("A")

    results, stored = asyncio.run(scenario())
    assert "initiative" not in results["A"].data
    assert stored.combat.initiative.final == 15


def test_start_turn_expires_converted_reactions():
    async def scenario():
        c = _combatant("A")
        c.combat.actions.attack.max = 2
        repo, service = await _service(c)
        await service.convert_attack_action("A", "reaction")
        res = await service.start_turn("A")
        return res, await repo.load("A")

    res, stored = asyncio.run(scenario())
    assert res.data["expired"] == 1
    assert stored.combat.actions.reaction.max == 1


def test_buff_and_rest_through_service():
    async def scenario():
        repo, service = await _service(_combatant("A"))
        applied = await service.apply_buff(
            "A",
            {"name": "Bless", "type": "attack", "max_duration": 2},
            buff_id="b1",
            current_round=1,
        )
        await service.spend_stones("A", 3)
        await service.burn_stone_for_charges("A")
        await service.rest("A")
        return applied, await repo.load("A")

    applied, stored = asyncio.run(scenario())
    assert applied.ok
    assert stored.combat.active_buffs[0].id == "b1"
    assert stored.combat.stones.current == 4
    assert stored.combat.mastery_charges.temporary == 0
    assert stored.combat.mastery_charges.current == 2


def test_shop_waits_for_player_without_blocking_others():
    async def scenario():
        repo, service = await _service(_combatant("P", pc=True), _combatant("N"))
        rolled = await service.roll_initiative("P", 1)

        session = await service.open_shop("P")
        waiter = asyncio.create_task(session.resolve())
        other = await service.use_action("N", "attack")
        waiting = not waiter.done()

        service.confirm_shop("P", ShopPurchases(extra_attack=True))
        res = await waiter
        return rolled, other, waiting, res, await repo.load("P")

    rolled, other, waiting, res, stored = asyncio.run(scenario())

    assert rolled.data["pending_shop"] is True
    assert other.ok
    assert waiting
    assert res.ok
    assert res.data["final"] == rolled.data["raw"] - 5
    assert stored.combat.initiative.confirmed is True
    assert stored.combat.actions.attack.max == 2


def test_invalid_shop_purchase_falls_back_to_raw():
    async def scenario():
        repo, service = await _service(_combatant("P", pc=True))
        rolled = await service.roll_initiative("P", 1)
        session = await service.open_shop("P")
        service.confirm_shop("P", ShopPurchases(extra_movement_m=3))
        res = await session.resolve()
        return rolled, res, await repo.load("P")

    rolled, res, stored = asyncio.run(scenario())

    assert res.ok
    assert res.data["fallback"] is True
    assert res.data["rejected"] == "InvalidAmount"
    assert res.data["final"] == rolled.data["raw"]
    assert stored.combat.initiative.spent == 0
    assert stored.combat.actions.movement.max == 1


def test_cancelled_shop_keeps_raw():
    async def scenario():
        repo, service = await _service(_combatant("P", pc=True))
        rolled = await service.roll_initiative("P", 1)
        session = await service.open_shop("P")
        service.cancel_shop("P")
        assert session.decided
        res = await session.resolve()
        return rolled, res

    rolled, res = asyncio.run(scenario())
    assert res.data["final"] == rolled.data["raw"]
    assert res.data["spent"] == 0


def test_reopened_shop_closes_previous_session():
    async def scenario():
        repo, service = await _service(_combatant("P", pc=True))
        rolled = await service.roll_initiative("P", 1)
        first = await service.open_shop("P")
        second = await service.open_shop("P")

        service.confirm_shop("P", ShopPurchases(extra_attack=True))
        second_res = await second.resolve()
        first_res = await first.resolve()
        return rolled, first, first_res, second_res, await repo.load("P")

    rolled, first, first_res, second_res, stored = asyncio.run(scenario())

    assert first.decided
    assert first_res.data == {"superseded": True}
    assert second_res.data["final"] == rolled.data["raw"] - 5
    # покупка второй сессии не откатана первой
    assert stored.combat.initiative.spent == 5
    assert stored.combat.actions.attack.max == 2


def test_sqlalchemy_repository_roundtrip(TestingSessionLocal):
    repo = SqlAlchemyCombatStateRepository(TestingSessionLocal)

    async def scenario():
        c = _combatant("sql-A")
        await repo.save("sql-A", c)
        service = CombatService(repo)
        await service.spend_stones("sql-A", 3)
        return await repo.load("sql-A"), await repo.load("sql-missing")

    stored, missing = asyncio.run(scenario())
    assert stored.combat.stones.current == 1
    assert stored.actor.agility == 10
    assert missing is None
