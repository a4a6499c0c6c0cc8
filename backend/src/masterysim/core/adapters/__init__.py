from .mapper import (
    CombatantOverrides,
    character_data_from_combatant,
    combatant_from_character,
)

__all__ = [
    "CombatantOverrides",
    "character_data_from_combatant",
    "combatant_from_character",
]
