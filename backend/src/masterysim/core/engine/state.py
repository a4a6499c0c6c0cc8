from __future__ import annotations

from dataclasses import dataclass, field
from random import Random
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

ActionType = Literal["attack", "movement", "reaction"]
ConversionTarget = Literal["movement", "reaction"]

ACTION_TYPES: tuple[ActionType, ...] = ("attack", "movement", "reaction")

# категории баффов: не больше одного активного баффа каждой категории
BuffType = Literal[
    "attack",
    "defense",
    "damage",
    "movement",
    "attribute",
    "resistance",
    "regeneration",
    "custom",
]

BUFF_TYPES: tuple[str, ...] = (
    "attack",
    "defense",
    "damage",
    "movement",
    "attribute",
    "resistance",
    "regeneration",
    "custom",
)


class BuffEffect(BaseModel):
    type: Literal["flat", "dice", "flag"]
    target: str  # "attack" | "evade" | "damage" | имя флага
    value: Union[int, str, bool] = 0
    condition: Optional[str] = None


class Buff(BaseModel):
    id: str
    name: str
    type: BuffType
    duration: int  # осталось раундов
    max_duration: int
    effect: str = ""  # описание для игроков
    effects: List[BuffEffect] = Field(default_factory=list)
    applied_round: int = 0
    source_item: Optional[str] = None


@dataclass
class ActionPool:
    base: int = 1
    bonus: int = 0
    max: int = 1
    used: int = 0
    # только для reaction: сколько реакций получено конвертацией в этом раунде
    converted_this_round: int = 0

    @property
    def remaining(self) -> int:
        return self.max - self.used


@dataclass
class Conversions:
    attack_to_movement: int = 0
    attack_to_reaction: int = 0

    @property
    def total(self) -> int:
        return self.attack_to_movement + self.attack_to_reaction


@dataclass
class ActionPools:
    attack: ActionPool = field(default_factory=ActionPool)
    movement: ActionPool = field(default_factory=ActionPool)
    reaction: ActionPool = field(default_factory=ActionPool)
    conversions: Conversions = field(default_factory=Conversions)

    def pool(self, action_type: ActionType) -> ActionPool:
        return getattr(self, action_type)


@dataclass
class StonePool:
    current: int = 0
    max: int = 0
    regeneration_per_round: int = 0
    spent_this_round: int = 0


@dataclass
class Bar:
    max: int
    current: int
    penalty: int = 0


@dataclass
class BarTrack:
    """
    Полоски здоровья/стресса. Переход между полосками делает внешний код,
    движок меняет только полоску current_bar_index.
    """

    bars: List[Bar] = field(default_factory=list)
    current_bar_index: int = 0
    temp_hp: int = 0  # используется только для vitality

    def current_bar(self) -> Optional[Bar]:
        if 0 <= self.current_bar_index < len(self.bars):
            return self.bars[self.current_bar_index]
        return None

    @property
    def total_current(self) -> int:
        return sum(b.current for b in self.bars)

    @property
    def total_max(self) -> int:
        return sum(b.max for b in self.bars)


@dataclass
class ChargeState:
    current: int = 0
    max: int = 0
    temporary: int = 0

    @property
    def total(self) -> int:
        return self.current + self.temporary


@dataclass
class ShopPurchases:
    extra_movement_m: int = 0  # кратно 2м
    initiative_swap: bool = False
    extra_attack: bool = False


@dataclass
class InitiativeRecord:
    round: int
    base: int
    dice: List[int] = field(default_factory=list)
    dice_total: int = 0
    raw: int = 0
    final: int = 0
    spent: int = 0
    purchases: ShopPurchases = field(default_factory=ShopPurchases)
    confirmed: bool = False


@dataclass
class ShopFlags:
    """Временные флаги от покупок в Initiative Shop, живут один раунд."""

    swap_unlocked: bool = False
    extra_movement_m: int = 0


@dataclass
class CombatState:
    actions: ActionPools = field(default_factory=ActionPools)
    stones: StonePool = field(default_factory=StonePool)
    # power_key -> сколько раз использована в текущем раунде
    power_usage: Dict[str, int] = field(default_factory=dict)
    vitality: BarTrack = field(default_factory=BarTrack)
    stress: BarTrack = field(default_factory=BarTrack)
    mastery_charges: ChargeState = field(default_factory=ChargeState)
    active_buffs: List[Buff] = field(default_factory=list)
    charged_power_used_this_round: bool = False
    initiative: Optional[InitiativeRecord] = None
    shop_flags: ShopFlags = field(default_factory=ShopFlags)


@dataclass
class ActorProfile:
    """Данные персонажа только для чтения (владелец: внешняя подсистема)."""

    mastery_rank: int = 2
    agility: int = 0
    wits: int = 0
    combat_reflexes: int = 0
    is_player_character: bool = False
    incapacitated: bool = False


@dataclass
class CombatantState:
    id: str
    name: str
    # None -> у комбатанта нет "живого" актёра, планировщик раундов его пропускает
    actor: Optional[ActorProfile] = field(default_factory=ActorProfile)
    combat: CombatState = field(default_factory=CombatState)

    @property
    def mastery_rank(self) -> int:
        return self.actor.mastery_rank if self.actor is not None else 1


@dataclass
class EncounterState:
    round: int = 0
    turn_owner_id: Optional[str] = None
    initiative_order: List[str] = field(default_factory=list)

    phase: str = "idle"  # idle | setup_initiative | in_round | finished

    seq: int = 0
    t: int = 0

    combatants: Dict[str, CombatantState] = field(default_factory=dict)

    rng_seed: int = 0
    rng: Random = field(default_factory=Random)

    combat_started: bool = False
    initiative_finalized: bool = False

    # combatant_id -> raw initiative, ожидающий решения по Initiative Shop
    pending_shops: Dict[str, int] = field(default_factory=dict)

    _buff_seq: int = 1

    def with_seed(self, seed: int) -> "EncounterState":
        self.rng_seed = seed
        self.rng = Random(seed)
        return self

    def new_buff_id(self, combatant_id: str) -> str:
        bid = f"buff-{combatant_id}-{self._buff_seq}"
        self._buff_seq += 1
        return bid


def default_action_pools(base: int = 1) -> ActionPools:
    return ActionPools(
        attack=ActionPool(base=base, max=base),
        movement=ActionPool(base=base, max=base),
        reaction=ActionPool(base=base, max=base),
    )


def default_combat_state(
    mastery_rank: int, *, stones_max: int = 0, base_actions: int = 1
) -> CombatState:
    """Дефолты для отсутствующих подструктур, применяются один раз при загрузке."""
    return CombatState(
        actions=default_action_pools(base_actions),
        stones=StonePool(
            current=stones_max,
            max=stones_max,
            regeneration_per_round=mastery_rank,
        ),
        mastery_charges=ChargeState(
            current=mastery_rank, max=mastery_rank, temporary=0
        ),
    )
