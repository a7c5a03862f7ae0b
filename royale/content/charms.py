# royale/content/charms.py
CHARMS = {
    "rage": {
        "name": "Rage",
        "effect": "+50% attack damage for 3 turns",
        "modifier": 0.5,
        "duration": 3,
        "uses": 1,
        "cost": "full_turn",
        "description": "Activate to boost all attack damage by 50% for 3 turns. Costs your entire turn.",
    },
    "teleport": {
        "name": "Teleport",
        "effect": "Jump to any tile within 8 tiles",
        "uses": 1,
        "cost": "replaces_move",
        "description": "Teleport up to 8 tiles in any direction. Replaces your move action.",
    },
    "heal": {
        "name": "Heal",
        "effect": "Restore 40% of max health",
        "modifier": 0.4,
        "uses": 1,
        "cost": "free_action",
        "description": "Heal 40% of your max HP. Free action - can be used alongside another action.",
    },
    "reversal": {
        "name": "Reversal",
        "effect": "Next attack against you hits the attacker instead",
        "duration": -1,  # until triggered
        "uses": 1,
        "cost": "full_turn",
        "description": "The next attack against you is reflected back to the attacker. Costs your entire turn.",
    },
    "cloak": {
        "name": "Cloak",
        "effect": "Untargetable for 2 turns",
        "duration": 2,
        "uses": 1,
        "cost": "full_turn",
        "description": "Vanish from enemy sight for 2 turns. You can still move but cannot attack while cloaked.",
    },
    "berserk": {
        "name": "Berserk",
        "effect": "No cooldowns but zero defense for 3 turns",
        "duration": 3,
        "uses": 1,
        "cost": "full_turn",
        "description": "All attack cooldowns are ignored for 3 turns, but your defense drops to zero.",
    },
    "vampirism": {
        "name": "Vampirism",
        "effect": "Heal for 50% of damage dealt for 3 turns",
        "modifier": 0.5,
        "duration": 3,
        "uses": 1,
        "cost": "full_turn",
        "description": "Your attacks heal you for half the damage they deal for 3 turns.",
    },
}
