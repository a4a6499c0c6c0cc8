# backend/src/masterysim/core/engine/commands.py

from typing import Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from masterysim.core.engine.state import BuffEffect, BuffType


class CommandBase(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: str


# --- бой / раунды ---


class StartCombat(CommandBase):
    type: Literal["StartCombat"] = "StartCombat"


class EndCombat(CommandBase):
    type: Literal["EndCombat"] = "EndCombat"


class RollInitiative(CommandBase):
    type: Literal["RollInitiative"] = "RollInitiative"
    combatant_id: str
    bonus_dice: int = Field(default=0, ge=0)  # +d8 от Wits Stone Powers


class ShopPurchasesIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    extra_movement_m: int = Field(default=0, ge=0)
    initiative_swap: bool = False
    extra_attack: bool = False


class ConfirmInitiativeShop(CommandBase):
    type: Literal["ConfirmInitiativeShop"] = "ConfirmInitiativeShop"
    combatant_id: str
    purchases: ShopPurchasesIn = Field(default_factory=ShopPurchasesIn)


class CancelInitiativeShop(CommandBase):
    type: Literal["CancelInitiativeShop"] = "CancelInitiativeShop"
    combatant_id: str


class FinalizeInitiative(CommandBase):
    type: Literal["FinalizeInitiative"] = "FinalizeInitiative"


class StartRound(CommandBase):
    type: Literal["StartRound"] = "StartRound"


class BeginTurn(CommandBase):
    type: Literal["BeginTurn"] = "BeginTurn"
    combatant_id: str


# --- экономика действий ---


class UseAction(CommandBase):
    type: Literal["UseAction"] = "UseAction"
    combatant_id: str
    action_type: Literal["attack", "movement", "reaction"]
    amount: int = Field(default=1, ge=1)


class UnuseAction(CommandBase):
    type: Literal["UnuseAction"] = "UnuseAction"
    combatant_id: str
    action_type: Literal["attack", "movement", "reaction"]
    amount: int = Field(default=1, ge=1)


class ConvertAttackAction(CommandBase):
    type: Literal["ConvertAttackAction"] = "ConvertAttackAction"
    combatant_id: str
    target: Literal["movement", "reaction"]


class UndoConversion(CommandBase):
    type: Literal["UndoConversion"] = "UndoConversion"
    combatant_id: str
    target: Literal["movement", "reaction"]


# --- ресурсы ---


class SpendStones(CommandBase):
    type: Literal["SpendStones"] = "SpendStones"
    combatant_id: str
    amount: int = Field(ge=0)
    reason: str = "power activation"


class SpendPowerStones(CommandBase):
    type: Literal["SpendPowerStones"] = "SpendPowerStones"
    combatant_id: str
    power_key: str  # например "agility:extraMovement"


class RestoreStones(CommandBase):
    type: Literal["RestoreStones"] = "RestoreStones"
    combatant_id: str


class ApplyVitalityDamage(CommandBase):
    type: Literal["ApplyVitalityDamage"] = "ApplyVitalityDamage"
    combatant_id: str
    amount: int


class HealVitality(CommandBase):
    type: Literal["HealVitality"] = "HealVitality"
    combatant_id: str
    amount: int


class AddStress(CommandBase):
    type: Literal["AddStress"] = "AddStress"
    combatant_id: str
    amount: int = Field(ge=0)
    reason: str = "stressful event"


class ReduceStress(CommandBase):
    type: Literal["ReduceStress"] = "ReduceStress"
    combatant_id: str
    amount: int = Field(ge=0)
    reason: str = "stress relief"


# --- заряды ---


class SpendCharge(CommandBase):
    type: Literal["SpendCharge"] = "SpendCharge"
    combatant_id: str
    power_name: str = "a Charged Power"


class RestoreCharges(CommandBase):
    type: Literal["RestoreCharges"] = "RestoreCharges"
    combatant_id: str


class BurnStoneForCharges(CommandBase):
    type: Literal["BurnStoneForCharges"] = "BurnStoneForCharges"
    combatant_id: str


class ActivateChargedPower(CommandBase):
    type: Literal["ActivateChargedPower"] = "ActivateChargedPower"
    combatant_id: str
    power_name: str


# --- баффы ---


class ApplyBuff(CommandBase):
    type: Literal["ApplyBuff"] = "ApplyBuff"
    combatant_id: str
    name: str
    buff_type: BuffType
    max_duration: int = Field(ge=1)
    effect: str = ""
    effects: list[BuffEffect] = []
    source_item: Optional[str] = None


class RemoveBuff(CommandBase):
    type: Literal["RemoveBuff"] = "RemoveBuff"
    combatant_id: str
    buff_id: str


class ClearBuffs(CommandBase):
    type: Literal["ClearBuffs"] = "ClearBuffs"
    combatant_id: str


# --- броски ---


class MasteryRoll(CommandBase):
    type: Literal["MasteryRoll"] = "MasteryRoll"
    combatant_id: str
    num_dice: int = Field(ge=0)
    keep_dice: Optional[int] = None  # None -> Mastery Rank
    skill: int = 0
    tn: int = 0
    label: str = "Roll"


# --- отдых ---


class Rest(CommandBase):
    type: Literal["Rest"] = "Rest"
    combatant_id: str


class Dawn(CommandBase):
    type: Literal["Dawn"] = "Dawn"
    combatant_id: str


Command = Union[
    StartCombat,
    EndCombat,
    RollInitiative,
    ConfirmInitiativeShop,
    CancelInitiativeShop,
    FinalizeInitiative,
    StartRound,
    BeginTurn,
    UseAction,
    UnuseAction,
    ConvertAttackAction,
    UndoConversion,
    SpendStones,
    SpendPowerStones,
    RestoreStones,
    ApplyVitalityDamage,
    HealVitality,
    AddStress,
    ReduceStress,
    SpendCharge,
    RestoreCharges,
    BurnStoneForCharges,
    ActivateChargedPower,
    ApplyBuff,
    RemoveBuff,
    ClearBuffs,
    MasteryRoll,
    Rest,
    Dawn,
]
