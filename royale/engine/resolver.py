# royale/engine/resolver.py
from typing import Any, Callable, Dict, List

from .charms import activate_charm, has_usable_charm
from .dice import rng_for
from .effects import heal, hurt
from .geometry import adjacent_positions, in_bounds, is_obstacle, is_occupied, manhattan, move
from .models import Action, ActionKind, Agent, Attack, CharmType, Defend, MatchState, Move, UseCharm
from .rules import amplify, defended, falloff_damage, lifesteal_heal, round_half_up
from .spawns import pickup_at_feet
from ..content.balance import COMBAT

Events = List[Dict[str, Any]]


def apply_action(agent_id: str, action: Action, match: MatchState) -> Events:
    """
    Apply one agent's chosen action to the live match.

    Invalid intent (bad tile, out of range, on cooldown, unknown attack...) is
    a logged no-op. Returns the structured events the action produced.
    """
    agent = match.agents.get(agent_id)
    if not agent or not agent.is_alive:
        return []

    events: Events = []

    # an unused defend lapses once its owner acts again
    agent.is_defending = False

    ACTION_HANDLERS[action.kind](agent, action, match, events)

    if action.free_action and has_usable_charm(agent, CharmType.HEAL):
        activate_charm(agent, match)
        events.append({"type": "charm", "agentId": agent.id, "charm": CharmType.HEAL.value, "free": True})

    agent.last_action = action.describe()
    return events


def can_step_to(match: MatchState, pos) -> bool:
    return (
        pos is not None
        and in_bounds(pos)
        and not is_occupied(pos, match.agents.values())
        and not is_obstacle(pos, match.obstacles)
    )


# ---------------------------------------------------------------------------
# move
# ---------------------------------------------------------------------------

def _apply_move(agent: Agent, action: Move, match: MatchState, events: Events) -> None:
    if action.teleport_to is not None:
        moved = _teleport(agent, action, match, events)
    else:
        tiles = min(max(1, int(action.tiles or 1)), agent.move_budget)
        target = move(agent.position, action.direction, tiles)
        moved = can_step_to(match, target)
        if moved:
            old = agent.position
            agent.position = target
            events.append({"type": "move", "agentId": agent.id, "from": list(old), "to": list(target)})
            match.record(
                f"{agent.id} moved {action.direction} {tiles} tiles to [{target[0]}, {target[1]}]",
                "move",
            )
        else:
            match.record(f"{agent.id} tried to move but position invalid/occupied", "move")

    if moved:
        r = rng_for(match.seed, match.turn, f"pickup:{agent.id}")
        item = pickup_at_feet(agent, match, r)
        if item:
            events.append({"type": "pickup", "agentId": agent.id, "item": item.type})


def _teleport(agent: Agent, action: Move, match: MatchState, events: Events) -> bool:
    dest = action.teleport_to
    if not has_usable_charm(agent, CharmType.TELEPORT):
        match.record(f"{agent.id} tried to teleport without a teleport charm", "move")
        return False
    if manhattan(agent.position, dest) > COMBAT["teleport_range"] or not can_step_to(match, dest):
        match.record(f"{agent.id} tried to teleport to [{dest[0]}, {dest[1]}] but it is out of reach", "move")
        return False
    old = agent.position
    agent.position = dest
    agent.charm.uses_left -= 1
    events.append({"type": "teleport", "agentId": agent.id, "from": list(old), "to": list(dest)})
    match.record(f"{agent.id} TELEPORTED to [{dest[0]}, {dest[1]}]!", "move")
    return True


# ---------------------------------------------------------------------------
# attack
# ---------------------------------------------------------------------------

def _apply_attack(agent: Agent, action: Attack, match: MatchState, events: Events) -> None:
    attack_type = action.attack_type
    target = match.agents.get(action.target_id)

    if agent.is_cloaked:
        match.record(f"{agent.id} cannot attack while cloaked", "combat")
        return
    if not target or not target.is_alive or target.id == agent.id:
        match.record(f"{agent.id} tried to attack {action.target_id} but target is invalid/dead", "combat")
        return

    attack = agent.attacks.get(attack_type)
    if not attack:
        match.record(f"{agent.id} tried unknown attack type: {attack_type}", "combat")
        return

    if agent.cooldowns.get(attack_type, 0) > 0:
        match.record(
            f"{agent.id} {attack_type} on cooldown ({agent.cooldowns[attack_type]} turns)",
            "combat",
        )
        return

    distance = manhattan(agent.position, target.position)
    if distance > attack["range"]:
        match.record(
            f"{agent.id} {attack_type} out of range (distance: {distance}, range: {attack['range']})",
            "combat",
        )
        return

    area = bool(attack.get("hits_all_adjacent"))
    if not area and target.is_cloaked:
        match.record(f"{agent.id} cannot find {target.id} - target is cloaked", "combat")
        return

    agent.cooldowns[attack_type] = 0 if agent.has_berserk_active else int(attack.get("cooldown", 0))

    if area:
        adjacent = {tuple(pos) for pos in adjacent_positions(agent.position)}
        victims = [
            other for other in match.agents.values()
            if other.is_alive and other.id != agent.id and not other.is_cloaked
            and tuple(other.position) in adjacent
        ]
        if not victims:
            match.record(f"{agent.id} {attack_type} missed - no adjacent enemies", "combat")
            return
        damage = amplify(attack["damage"], agent.damage_bonus)
        for victim in victims:
            resolve_damage(agent, victim, damage, match, events)
        return

    damage = amplify(falloff_damage(attack, distance), agent.damage_bonus)
    resolve_damage(agent, target, damage, match, events)

    self_damage = int(attack.get("self_damage", 0) or 0)
    if self_damage:
        hurt(agent, self_damage)
        match.record(f"{agent.id} took {self_damage} recoil damage ({agent.health} HP)", "self_damage")
        events.append({"type": "self_damage", "agentId": agent.id, "damage": self_damage})


def resolve_damage(attacker: Agent, target: Agent, damage: float, match: MatchState, events: Events) -> int:
    """
    Land `damage` on `target`. First matching rule wins after the defend check:
    reversal reflects it, a shield eats it, otherwise health drops.
    Returns the damage the target actually took.
    """
    if target.is_defending:
        damage = defended(damage)
        target.is_defending = False
        match.record(f"{target.id} defended! Damage reduced to {round_half_up(damage)}", "defend_trigger")

    if target.has_reversal_active:
        reflected = round_half_up(damage)
        target.has_reversal_active = False
        hurt(attacker, reflected)
        match.credit(target.id, damage=reflected)
        match.record(
            f"{target.id} REVERSED attack! {attacker.id} took {reflected} damage",
            "reversal",
        )
        events.append({
            "type": "reversal",
            "targetId": target.id,
            "attackerId": attacker.id,
            "damage": reflected,
        })
        return 0

    if target.has_shield:
        target.has_shield = False
        match.record(f"{target.id}'s shield absorbed the attack!", "shield")
        events.append({"type": "shield_break", "targetId": target.id})
        return 0

    dealt = round_half_up(damage)
    hurt(target, dealt)
    match.credit(attacker.id, damage=dealt)
    match.record(
        f"{attacker.id} hit {target.id} for {dealt} damage ({target.health} HP remaining)",
        "damage",
    )
    events.append({
        "type": "attack",
        "attackerId": attacker.id,
        "targetId": target.id,
        "damage": dealt,
        "targetHealth": target.health,
    })

    healed = heal(attacker, lifesteal_heal(dealt, attacker.lifesteal))
    if healed:
        match.credit(attacker.id, healing=healed)
        match.record(f"{attacker.id} drained {healed} HP ({attacker.health}/{attacker.max_health})", "lifesteal")
        events.append({"type": "lifesteal", "agentId": attacker.id, "healing": healed})
    return dealt


# ---------------------------------------------------------------------------
# defend / charm
# ---------------------------------------------------------------------------

def _apply_defend(agent: Agent, action: Defend, match: MatchState, events: Events) -> None:
    if agent.cooldowns.get("defend", 0) > 0:
        match.record(
            f"{agent.id} tried to defend but on cooldown ({agent.cooldowns['defend']} turns)",
            "combat",
        )
        return
    agent.is_defending = True
    agent.cooldowns["defend"] = COMBAT["defend_cooldown"]
    events.append({"type": "defend", "agentId": agent.id})
    match.record(f"{agent.id} is defending! (70% damage reduction)", "defend")


def _apply_use_charm(agent: Agent, action: UseCharm, match: MatchState, events: Events) -> None:
    if activate_charm(agent, match):
        events.append({"type": "charm", "agentId": agent.id, "charm": agent.charm.type})


ACTION_HANDLERS: Dict[ActionKind, Callable[..., None]] = {
    ActionKind.MOVE: _apply_move,
    ActionKind.ATTACK: _apply_attack,
    ActionKind.DEFEND: _apply_defend,
    ActionKind.USE_CHARM: _apply_use_charm,
}

assert set(ACTION_HANDLERS) == set(ActionKind), "every action kind needs a handler"
