# royale/content/items.py
DROP_TYPES = [
    {"type": "health_pack", "effect": "+30 HP", "weight": 30, "value": 30},
    {"type": "damage_amp", "effect": "+30% attack 3 turns", "weight": 25, "modifier": 0.3, "duration": 3},
    {"type": "speed_boost", "effect": "+2 speed 3 turns", "weight": 25, "modifier": 2, "duration": 3},
    {"type": "shield_token", "effect": "Immune to next attack", "weight": 20},
    {"type": "smoke_bomb", "effect": "Reset all cooldowns", "weight": 10},
    {
        "type": "vampire_fang",
        "effect": "+25% damage and 30% lifesteal 3 turns",
        "weight": 10,
        "modifier": 0.25,
        "lifesteal": 0.3,
        "duration": 3,
    },
    {
        "type": "adrenaline_shot",
        "effect": "+3 speed and zone immunity 4 turns",
        "weight": 10,
        "modifier": 3,
        "duration": 4,
    },
    {"type": "ghost_shard", "effect": "Teleport to a random safe tile", "weight": 10},
]

ITEMS = {drop["type"]: drop for drop in DROP_TYPES}
