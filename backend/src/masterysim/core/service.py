"""
Асинхронная оркестрация поверх чистого движка.

- мутации одного актёра сериализуются через его asyncio.Lock;
- на каждую логическую операцию ровно один save (и только при успехе);
- начало раунда обрабатывает актёров параллельно;
- Initiative Shop ждёт решения игрока, не блокируя остальных.
"""

from __future__ import annotations

import asyncio
import logging
from random import Random
from typing import Callable, Dict, Iterable, List, Optional

from masterysim.core.engine.dice import DiceRng
from masterysim.core.engine.rules import (
    buffs,
    charges,
    economy,
    initiative,
    resources,
    scheduler,
)
from masterysim.core.engine.rules.results import NOT_FOUND, OpResult, fail, ok
from masterysim.core.engine.state import (
    ActionType,
    CombatantState,
    ConversionTarget,
    ShopPurchases,
)
from masterysim.core.persistence.repository import CombatStateRepository

logger = logging.getLogger(__name__)

ActorOp = Callable[[CombatantState], OpResult]


class CombatService:
    def __init__(
        self, repository: CombatStateRepository, rng: Optional[DiceRng] = None
    ) -> None:
        self._repo = repository
        self._rng: DiceRng = rng or Random()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._shops: Dict[str, InitiativeShopSession] = {}

    def _lock(self, actor_id: str) -> asyncio.Lock:
        lock = self._locks.get(actor_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[actor_id] = lock
        return lock

    async def run_for_actor(self, actor_id: str, op: ActorOp) -> OpResult:
        """load -> op -> save под замком актёра. Отказ ничего не сохраняет."""
        async with self._lock(actor_id):
            combatant = await self._repo.load(actor_id)
            if combatant is None:
                return fail(NOT_FOUND, f"Actor {actor_id} not found", actor_id=actor_id)

            res = op(combatant)
            if res.ok and res.code is None:
                await self._repo.save(actor_id, combatant)
            return res

    # ---------- раунд / ход ----------

    def _round_start_op(self, current_round: int) -> ActorOp:
        def _op(c: CombatantState) -> OpResult:
            rolled: Optional[OpResult] = None
            # со 2-го раунда инициатива перебрасывается до сброса ресурсов
            if current_round > 1 and c.actor is not None:
                rolled = initiative.resolve_initiative(self._rng, c, current_round)
                if not rolled.ok:
                    return rolled

            res = scheduler.reset_combat_state_for_round(c)
            if rolled is not None:
                res.data["initiative"] = dict(rolled.data)
                res.merge(rolled)
            return res

        return _op

    async def start_round(
        self, actor_ids: Iterable[str], current_round: int = 1
    ) -> Dict[str, OpResult]:
        """
        Начало раунда; между актёрами зависимостей нет.
        PC после переброса ждут магазина: data["initiative"]["pending_shop"].
        """
        ids: List[str] = list(actor_ids)
        op = self._round_start_op(current_round)
        results = await asyncio.gather(*(self.run_for_actor(aid, op) for aid in ids))
        return dict(zip(ids, results))

    async def start_turn(self, actor_id: str) -> OpResult:
        return await self.run_for_actor(
            actor_id, lambda c: economy.reset_for_turn(c.combat.actions)
        )

    # ---------- экономика действий ----------

    async def use_action(
        self, actor_id: str, action_type: ActionType, amount: int = 1
    ) -> OpResult:
        return await self.run_for_actor(
            actor_id,
            lambda c: economy.use_action(c.combat.actions, action_type, amount),
        )

    async def convert_attack_action(
        self, actor_id: str, target: ConversionTarget
    ) -> OpResult:
        return await self.run_for_actor(
            actor_id,
            lambda c: economy.convert_attack_action(
                c.combat.actions, target, c.mastery_rank
            ),
        )

    async def undo_conversion(
        self, actor_id: str, target: ConversionTarget
    ) -> OpResult:
        return await self.run_for_actor(
            actor_id, lambda c: economy.undo_conversion(c.combat.actions, target)
        )

    # ---------- ресурсы ----------

    async def spend_stones(
        self, actor_id: str, amount: int, reason: str = "power activation"
    ) -> OpResult:
        return await self.run_for_actor(
            actor_id, lambda c: resources.spend_stones(c.combat.stones, amount, reason)
        )

    async def spend_power_stones(self, actor_id: str, power_key: str) -> OpResult:
        return await self.run_for_actor(
            actor_id, lambda c: resources.spend_power_stones(c.combat, power_key)
        )

    async def apply_vitality_damage(self, actor_id: str, amount: int) -> OpResult:
        return await self.run_for_actor(
            actor_id,
            lambda c: resources.apply_vitality_damage(c.combat.vitality, amount),
        )

    async def add_stress(self, actor_id: str, amount: int, reason: str) -> OpResult:
        return await self.run_for_actor(
            actor_id, lambda c: resources.add_stress(c.combat.stress, amount, reason)
        )

    async def rest(self, actor_id: str) -> OpResult:
        def _rest(c: CombatantState) -> OpResult:
            res = resources.restore_all_stones(c.combat.stones)
            return res.merge(charges.restore_charges(c.combat, c.mastery_rank))

        return await self.run_for_actor(actor_id, _rest)

    async def dawn(self, actor_id: str) -> OpResult:
        return await self.run_for_actor(
            actor_id, lambda c: charges.restore_charges(c.combat, c.mastery_rank)
        )

    # ---------- заряды / баффы ----------

    async def activate_charged_power(self, actor_id: str, power_name: str) -> OpResult:
        return await self.run_for_actor(
            actor_id,
            lambda c: charges.activate_charged_power(
                c.combat, c.mastery_rank, power_name
            ),
        )

    async def burn_stone_for_charges(self, actor_id: str) -> OpResult:
        return await self.run_for_actor(
            actor_id,
            lambda c: charges.burn_stone_for_charges(c.combat, c.mastery_rank),
        )

    async def apply_buff(
        self, actor_id: str, data: dict, *, buff_id: str, current_round: int
    ) -> OpResult:
        return await self.run_for_actor(
            actor_id,
            lambda c: buffs.apply_buff(
                c.combat, data, buff_id=buff_id, current_round=current_round
            ),
        )

    # ---------- инициатива ----------

    async def roll_initiative(
        self, actor_id: str, current_round: int, bonus_dice: int = 0
    ) -> OpResult:
        return await self.run_for_actor(
            actor_id,
            lambda c: initiative.resolve_initiative(
                self._rng, c, current_round, bonus_dice=bonus_dice
            ),
        )

    async def open_shop(self, actor_id: str) -> "InitiativeShopSession":
        """Повторное открытие закрывает прежнюю сессию без изменений состояния."""
        previous = self._shops.get(actor_id)
        if previous is not None:
            previous.supersede()
        session = InitiativeShopSession(self, actor_id)
        self._shops[actor_id] = session
        return session

    def confirm_shop(self, actor_id: str, purchases: ShopPurchases) -> None:
        self._shops[actor_id].confirm(purchases)

    def cancel_shop(self, actor_id: str) -> None:
        self._shops[actor_id].cancel()

    def _close_shop(self, session: "InitiativeShopSession") -> None:
        if self._shops.get(session.actor_id) is session:
            del self._shops[session.actor_id]


class InitiativeShopSession:
    """
    Ожидание выбора игрока в Initiative Shop.
    Отмена или невалидная покупка -> откат к raw без трат.
    """

    def __init__(self, service: CombatService, actor_id: str) -> None:
        self.actor_id = actor_id
        self._service = service
        self._decision: asyncio.Future[Optional[ShopPurchases]] = (
            asyncio.get_running_loop().create_future()
        )
        self._superseded = False

    @property
    def decided(self) -> bool:
        return self._decision.done()

    def confirm(self, purchases: ShopPurchases) -> None:
        if not self._decision.done():
            self._decision.set_result(purchases)

    def cancel(self) -> None:
        if not self._decision.done():
            self._decision.set_result(None)

    def supersede(self) -> None:
        """Сессию заменила новая: решение этой уже ничего не меняет."""
        self._superseded = True
        self.cancel()

    async def resolve(self) -> OpResult:
        purchases = await self._decision
        try:
            if self._superseded:
                return ok(superseded=True)

            if purchases is None:
                return await self._service.run_for_actor(
                    self.actor_id, initiative.cancel_shop
                )

            res = await self._service.run_for_actor(
                self.actor_id, lambda c: initiative.confirm_shop(c, purchases)
            )
            if res.ok:
                return res

            logger.info("shop for %s rejected, falling back to raw", self.actor_id)
            fallback = await self._service.run_for_actor(
                self.actor_id, initiative.cancel_shop
            )
            if not fallback.ok:
                return fallback
            out = ok(fallback=True, rejected=res.code, **fallback.data)
            return out.merge(res).merge(fallback)
        finally:
            self._service._close_shop(self)
