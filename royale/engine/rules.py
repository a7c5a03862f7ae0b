# royale/engine/rules.py
import math
from typing import Any, Dict

from ..content.balance import COMBAT


def falloff_damage(attack: Dict[str, Any], distance: int) -> float:
    # linear drop with distance, floored
    falloff = attack.get("falloff")
    if not falloff:
        return float(attack["damage"])
    return float(max(falloff["start"] - falloff["per_tile"] * distance, falloff["floor"]))


def amplify(damage: float, damage_bonus: float) -> float:
    return damage * (1 + damage_bonus)


def defended(damage: float) -> float:
    return damage * COMBAT["defend_multiplier"]


def lifesteal_heal(dealt: int, fraction: float) -> int:
    if dealt <= 0 or fraction <= 0:
        return 0
    return round_half_up(dealt * fraction)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
