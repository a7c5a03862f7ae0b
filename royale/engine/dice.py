# royale/engine/dice.py
import random
from typing import Any, Dict, List, Sequence


def rng_for(seed: int, turn: int, salt: str = "") -> random.Random:
    # deterministic per match seed + turn
    return random.Random(f"{seed}:{turn}:{salt}")


def weighted_choice(entries: Sequence[Dict[str, Any]], r: random.Random) -> Dict[str, Any]:
    """Pick one entry by its relative "weight"."""
    total = sum(entry["weight"] for entry in entries)
    ticket = r.random() * total
    for entry in entries:
        ticket -= entry["weight"]
        if ticket <= 0:
            return entry
    return entries[-1]


def shuffled(values: Sequence[Any], r: random.Random) -> List[Any]:
    out = list(values)
    r.shuffle(out)
    return out
