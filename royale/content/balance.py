# royale/content/balance.py
from typing import Any, Dict, Mapping, Optional

DEFAULTS: Dict[str, Any] = {
    "grid_size": 32,
    "max_turns": 50,
    "zone_center": (16, 16),
    "zone_radius": 16,
    "zone_min_radius": 4,
    "zone_shrink_interval": 8,
    "zone_shrink_amount": 2,
    "zone_damage": 10,
    "spawn_interval": 3,
    "decision_timeout": 10.0,
    "turn_delay": 2.0,
    "action_delay": 0.3,
    "draft_delay": 0.5,
    "max_obstacles": 20,
    "empty_tile_attempts": 100,
}

COMBAT = {
    "defend_multiplier": 0.3,
    "defend_cooldown": 3,
    "teleport_range": 8,
}


def settings(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """DEFAULTS with any known keys from `overrides` layered on top."""
    merged = dict(DEFAULTS)
    for key, value in (overrides or {}).items():
        if key in merged and value is not None:
            merged[key] = value
    return merged
