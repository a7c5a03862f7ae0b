# royale/engine/loop.py
import logging
from typing import Any, Callable, Dict, List, Optional

from . import events
from .decisions import Decision, DecisionService, gather_actions, order_by_latency
from .dice import rng_for
from .effects import has_effect, hurt, tick_cooldowns, tick_effects
from .geometry import in_zone
from .models import EffectType, Item, MatchState
from .resolver import apply_action
from .spawns import spawn_drop
from .views import agent_view

logger = logging.getLogger(__name__)


def _no_sleep(seconds: float) -> None:
    return None


def check_win_condition(match: MatchState, max_turns: int) -> Optional[str]:
    alive = match.living()
    if len(alive) == 1:
        return alive[0].id
    if not alive:
        # everyone died in the same sweep
        return max(match.agents.values(), key=lambda agent: agent.max_health).id if match.agents else None
    if match.turn > max_turns:
        # sudden death: highest health wins
        return max(alive, key=lambda agent: agent.health).id
    return None


def run_turn(
    match: MatchState,
    service: DecisionService,
    bus: events.EventBus,
    config: Dict[str, Any],
    sleep: Callable[[float], Any] = _no_sleep,
) -> Optional[str]:
    """Play one full turn. Returns the winner's id, or None while the match goes on."""
    turn = match.turn
    logger.info("=== TURN %s ===", turn)
    snapshot = match.to_dict()
    bus.publish(events.TURN_START, {"turn": turn, "zone": snapshot["zone"], "agents": snapshot["agents"]})

    alive = match.living()
    if len(alive) <= 1:
        return check_win_condition(match, config["max_turns"])

    views = {agent.id: agent_view(match, agent.id) for agent in alive}
    decisions = gather_actions(service, views, config["decision_timeout"])
    return resolve_turn(match, decisions, bus, config, sleep)


def resolve_turn(
    match: MatchState,
    decisions: List[Decision],
    bus: events.EventBus,
    config: Dict[str, Any],
    sleep: Callable[[float], Any] = _no_sleep,
) -> Optional[str]:
    """
    Everything after the decisions are in: apply actions fastest-first, tick
    effects, zone damage, eliminations, spawns, shrink, then advance the turn.
    """
    turn = match.turn

    for decision in order_by_latency(decisions):
        agent = match.agents.get(decision.agent_id)
        if not agent or not agent.is_alive:
            continue
        action = decision.parsed
        agent.reasoning = action.reasoning
        agent.trash_talk = action.trash_talk
        logger.info(
            "  %s (%.3fs): %s - %r", agent.id, decision.response_time, action.kind.value, action.reasoning
        )
        produced = apply_action(agent.id, action, match)
        bus.publish(events.ACTION_EXECUTED, {
            "agentId": agent.id,
            "action": action.to_dict(),
            "reasoning": action.reasoning,
            "trashTalk": action.trash_talk,
            "responseTime": decision.response_time,
            "events": produced,
            "timedOut": decision.timed_out,
            "error": decision.error,
        })
        sleep(config["action_delay"])

    for agent in match.living():
        tick_cooldowns(agent)
        tick_effects(agent)

    apply_zone_damage(match, bus, config["zone_damage"])
    sweep_eliminations(match, bus)

    if turn > 0 and turn % config["spawn_interval"] == 0:
        item = spawn_drop(match, rng_for(match.seed, turn, "spawn"))
        bus.publish(events.ITEM_SPAWNED, {"item": match_item(item)})

    if turn > 0 and turn % config["zone_shrink_interval"] == 0:
        shrink_zone(match, bus, config)

    match.turn += 1
    snapshot = match.to_dict()
    bus.publish(events.TURN_END, {
        "turn": turn,
        "agents": snapshot["agents"],
        "items": snapshot["items"],
        "zone": snapshot["zone"],
    })
    return check_win_condition(match, config["max_turns"])


def apply_zone_damage(match: MatchState, bus: events.EventBus, damage: int) -> None:
    for agent in match.living():
        if in_zone(agent.position, match.zone):
            continue
        if has_effect(agent, EffectType.ZONE_IMMUNITY):
            continue
        hurt(agent, damage)
        match.record(
            f"{agent.id} is outside the zone! -{damage} HP ({agent.health} remaining)",
            "zone_damage",
        )
        bus.publish(events.ZONE_DAMAGE, {"agentId": agent.id, "damage": damage, "health": agent.health})


def sweep_eliminations(match: MatchState, bus: events.EventBus) -> List[str]:
    eliminated = []
    for agent in match.agents.values():
        if agent.is_alive and agent.health <= 0:
            agent.is_alive = False
            agent.health = 0
            eliminated.append(agent.id)
            match.record(f"{agent.id} has been ELIMINATED!", "elimination")
            logger.info("  *** %s ELIMINATED ***", agent.id)
            bus.publish(events.AGENT_ELIMINATED, {"agentId": agent.id, "turn": match.turn})
    return eliminated


def shrink_zone(match: MatchState, bus: events.EventBus, config: Dict[str, Any]) -> None:
    zone = match.zone
    zone.radius = max(config["zone_min_radius"], zone.radius - config["zone_shrink_amount"])
    zone.next_shrink_turn = match.turn + config["zone_shrink_interval"]
    match.record(f"Zone shrinks! New radius: {zone.radius}", "zone_shrink")
    logger.info("  Zone shrinks to radius %s", zone.radius)
    bus.publish(events.ZONE_SHRINK, {"radius": zone.radius, "next_shrink": zone.next_shrink_turn})


def finish_match(match: MatchState, winner: str, bus: events.EventBus) -> None:
    match.phase = "finished"
    match.winner = winner
    winner_agent = match.agents[winner]
    logger.info("=== GAME OVER === Winner: %s (%s) with %s HP", winner, winner_agent.archetype, winner_agent.health)
    match.record(f"{winner} wins the Battle Royale!", "victory")
    snapshot = match.to_dict()
    bus.publish(events.MATCH_OVER, {
        "winner": winner,
        "winnerAgent": snapshot["agents"][winner],
        "turn": match.turn,
        "agents": snapshot["agents"],
        "totals": snapshot["combat_totals"],
    })


def match_item(item: Item) -> Dict[str, Any]:
    return {"type": item.type, "position": list(item.position), "effect": item.effect}
