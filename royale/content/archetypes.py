# royale/content/archetypes.py
ARCHETYPES = {
    "berserker": {
        "name": "Berserker",
        "health": 100,
        "stats": {"attack": 9, "defense": 3, "speed": 2},
        "attacks": {
            "melee": {"range": 1, "damage": 11, "cooldown": 0},
            "charge": {"range": 3, "damage": 15, "cooldown": 2, "self_damage": 10},
        },
        "description": "High burst damage, hurts self with charge, medium survivability",
    },
    "tank": {
        "name": "Tank",
        "health": 150,
        "stats": {"attack": 5, "defense": 8, "speed": 1},
        "attacks": {
            "melee": {"range": 1, "damage": 7, "cooldown": 0},
            "slam": {"range": 1, "damage": 10, "cooldown": 3, "hits_all_adjacent": True},
        },
        "description": "Survives longest, lowest DPS, slow but tanky",
    },
    "scout": {
        "name": "Scout",
        "health": 90,
        "stats": {"attack": 6, "defense": 4, "speed": 4},
        "attacks": {
            "melee": {"range": 1, "damage": 8, "cooldown": 0},
            "quick_strike": {"range": 2, "damage": 9, "cooldown": 1},
        },
        "description": "Mobile harasser, fast but fragile in sustained fights",
    },
    "mage": {
        "name": "Mage",
        "health": 80,
        "stats": {"attack": 8, "defense": 2, "speed": 2},
        "attacks": {
            "melee": {"range": 1, "damage": 5, "cooldown": 0},
            # damage = max(start - per_tile * distance, floor)
            "ranged": {
                "range": 6,
                "damage": 12,
                "cooldown": 0,
                "falloff": {"start": 10, "per_tile": 1, "floor": 4},
            },
        },
        "description": "Range control, dies if caught, ranged damage scales with distance",
    },
}

ROSTER = [
    {"id": "gpt", "name": "GPT-4", "color": "#10a37f"},
    {"id": "claude", "name": "Claude", "color": "#d4886f"},
    {"id": "gemini", "name": "Gemini", "color": "#4285f4"},
    {"id": "mini", "name": "GPT-Mini", "color": "#9333ea"},
]
