# royale/engine/bot.py
import json
import math
from typing import Any, Dict, List, Optional, Tuple

from .decisions import DecisionService
from .geometry import manhattan

# who likes what during the draft; anything else takes the first free archetype
PREFERENCES = {
    "gpt": ["berserker", "mage", "scout", "tank"],
    "claude": ["tank", "mage", "scout", "berserker"],
    "gemini": ["mage", "scout", "berserker", "tank"],
    "mini": ["scout", "berserker", "mage", "tank"],
}

OFFENSIVE_CHARMS = {"rage", "berserk", "vampirism"}
LOW_HEALTH = 0.3


class HeuristicDecisionService(DecisionService):
    """
    Local stand-in for a model-backed decision maker. Answers with JSON text
    so its replies go through the same parsing path as real model output.
    """

    def choose_archetype(self, agent_id: str, view: Dict[str, Any]) -> str:
        options = list(view.get("archetypes") or {})
        ranked = PREFERENCES.get(agent_id, options)
        pick = next((name for name in ranked if name in options), options[0] if options else "")
        return json.dumps({
            "archetype": pick,
            "reasoning": f"{view.get('name', agent_id)} plays {pick} best.",
        })

    def choose_action(self, agent_id: str, view: Dict[str, Any]) -> str:
        return json.dumps(decide(agent_id, view))


def _direction_toward(src: List[int], dst: List[int]) -> Optional[str]:
    dx = dst[0] - src[0]
    dy = dst[1] - src[1]
    if dx == 0 and dy == 0:
        return None
    if abs(dx) >= abs(dy):
        return "east" if dx > 0 else "west"
    return "south" if dy > 0 else "north"


def _nearest_enemy(me: Dict[str, Any], agents: Dict[str, Dict[str, Any]]) -> Optional[Tuple[Dict[str, Any], int]]:
    best = None
    for other in agents.values():
        if other["id"] == me["id"] or not other.get("is_alive"):
            continue
        if other.get("untargetable") or other.get("position") is None:
            continue
        distance = manhattan(me["position"], other["position"])
        if best is None or distance < best[1]:
            best = (other, distance)
    return best


def _ready_attack(me: Dict[str, Any], distance: int) -> Optional[str]:
    ready = [
        (spec.get("damage", 0), name)
        for name, spec in (me.get("attacks") or {}).items()
        if distance <= spec.get("range", 0) and (me.get("cooldowns") or {}).get(name, 0) <= 0
    ]
    if not ready:
        return None
    return max(ready)[1]


def _charm(me: Dict[str, Any]) -> Optional[str]:
    charm = me.get("charm") or {}
    if charm.get("uses_left", 0) <= 0:
        return None
    return charm.get("type")


def decide(agent_id: str, view: Dict[str, Any]) -> Dict[str, Any]:
    agents = view["agents"]
    me = agents[agent_id]
    zone = view["zone"]
    budget = int(me["stats"].get("speed", 1)) + int(me.get("speed_bonus", 0))
    charm = _charm(me)
    hurt = me["health"] <= me["max_health"] * LOW_HEALTH

    action: Dict[str, Any]
    center = zone["center"]
    outside = math.dist(me["position"], center) > zone["radius"]
    target = _nearest_enemy(me, agents)

    if outside:
        action = {
            "action": "move",
            "params": {"direction": _direction_toward(me["position"], center), "tiles": budget},
            "reasoning": "Outside the zone, heading back to safety.",
        }
    elif hurt and charm == "reversal":
        action = {"action": "use_charm", "reasoning": "Low health, setting up a reversal."}
    elif hurt and me["cooldowns"].get("defend", 0) <= 0:
        action = {"action": "defend", "reasoning": "Low health, bracing for the next hit."}
    elif target is None:
        action = {"action": "defend", "reasoning": "Nobody in sight, holding position."}
    else:
        enemy, distance = target
        attack = None if me.get("is_cloaked") else _ready_attack(me, distance)
        if attack and charm in OFFENSIVE_CHARMS:
            action = {"action": "use_charm", "reasoning": f"Powering up before hitting {enemy['id']}."}
        elif attack:
            action = {
                "action": "attack",
                "params": {"target_id": enemy["id"], "attack_type": attack},
                "reasoning": f"{enemy['id']} is in {attack} range.",
                "trash_talk": f"Nothing personal, {enemy['id']}.",
            }
        else:
            action = {
                "action": "move",
                "params": {
                    "direction": _direction_toward(me["position"], enemy["position"]),
                    "tiles": max(1, min(budget, distance - 1)),
                },
                "reasoning": f"Closing in on {enemy['id']}.",
            }

    if hurt and charm == "heal":
        action["free_action"] = "use_charm"
    return action
