# royale/engine/prep.py
import copy
import logging
import random
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import events
from .decisions import Decision, DecisionService, gather_archetypes
from .dice import rng_for, shuffled
from .geometry import in_zone, is_obstacle, random_empty_tile_in_zone
from .models import Agent, Charm, MatchState, Position, Zone
from .views import draft_view
from ..content.archetypes import ARCHETYPES, ROSTER
from ..content.charms import CHARMS

logger = logging.getLogger(__name__)


def new_match(seed: int, obstacles: Sequence[Position], config: Dict[str, Any]) -> MatchState:
    zone = Zone(
        center=tuple(config["zone_center"]),
        radius=int(config["zone_radius"]),
        next_shrink_turn=int(config["zone_shrink_interval"]),
    )
    return MatchState(seed=seed, zone=zone, obstacles=[tuple(obs) for obs in obstacles])


def create_agent(entry: Dict[str, str], archetype: str, charm_type: str, position: Position) -> Agent:
    """Stamp a fresh agent from the catalog; nothing is shared with the catalog afterwards."""
    arch = ARCHETYPES[archetype]
    attacks = copy.deepcopy(arch["attacks"])
    cooldowns = {"defend": 0}
    cooldowns.update({name: 0 for name in attacks})
    return Agent(
        id=entry["id"],
        name=entry["name"],
        color=entry["color"],
        archetype=archetype,
        position=tuple(position),
        health=arch["health"],
        max_health=arch["health"],
        stats=dict(arch["stats"]),
        attacks=attacks,
        cooldowns=cooldowns,
        charm=Charm(type=charm_type, uses_left=CHARMS[charm_type]["uses"]),
    )


def assign_archetypes(
    decisions: List[Decision],
    agent_ids: Sequence[str],
    r: random.Random,
) -> Dict[str, str]:
    """
    Fastest responder picks first. Invalid, duplicate or missing choices get a
    random archetype from what is still unclaimed.
    """
    available = list(ARCHETYPES)
    assigned: Dict[str, str] = {}
    ordered = [d for d in decisions if d.agent_id in agent_ids]
    answered = {d.agent_id for d in ordered}
    ordered += [Decision(agent_id, None, float("inf")) for agent_id in agent_ids if agent_id not in answered]

    for decision in ordered:
        if not available:
            break
        choice = (decision.parsed or {}).get("archetype")
        if choice not in available:
            choice = r.choice(available)
        assigned[decision.agent_id] = choice
        available.remove(choice)
    return assigned


def deal_charms(count: int, r: random.Random) -> List[str]:
    return shuffled(list(CHARMS), r)[:count]


def starting_positions(match: MatchState, count: int, r: random.Random) -> List[Position]:
    taken: List[Position] = []
    for _ in range(count):
        pos = random_empty_tile_in_zone(match.zone, [], [], list(match.obstacles) + taken, r)
        if pos in taken or is_obstacle(pos, match.obstacles):
            pos = _first_free_tile(match, taken)
        taken.append(pos)
    return taken


def _first_free_tile(match: MatchState, taken: List[Position]) -> Position:
    cx, cy = match.zone.center
    radius = int(match.zone.radius)
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            pos = (cx + dx, cy + dy)
            if pos in taken or is_obstacle(pos, match.obstacles) or not in_zone(pos, match.zone):
                continue
            return pos
    return match.zone.center


def run_prep(
    match: MatchState,
    service: DecisionService,
    bus: events.EventBus,
    config: Dict[str, Any],
    sleep: Callable[[float], Any],
    roster: Optional[Sequence[Dict[str, str]]] = None,
) -> MatchState:
    """Draft archetypes, deal charms, place agents, then flip the match to running."""
    roster = list(roster or ROSTER[:len(ARCHETYPES)])
    r = rng_for(match.seed, 0, "prep")
    bus.publish(events.MATCH_INIT, {"phase": "archetype_selection"})

    logger.info("=== ARCHETYPE SELECTION ===")
    views = {entry["id"]: draft_view(entry["id"], entry["name"]) for entry in roster}
    decisions = gather_archetypes(service, views, list(ARCHETYPES), config["decision_timeout"])
    agent_ids = [entry["id"] for entry in roster]
    assigned = assign_archetypes(decisions, agent_ids, r)

    by_id = {d.agent_id: d for d in decisions}
    for agent_id in sorted(assigned, key=lambda a: by_id[a].response_time if a in by_id else float("inf")):
        decision = by_id.get(agent_id)
        reasoning = ((decision.parsed if decision else None) or {}).get("reasoning") or "No reasoning provided"
        response_time = decision.response_time if decision else None
        logger.info("  %s chose %s (%s s): %s", agent_id, assigned[agent_id], response_time, reasoning)
        bus.publish(events.ARCHETYPE_CHOSEN, {
            "agentId": agent_id,
            "archetype": assigned[agent_id],
            "reasoning": reasoning,
            "responseTime": response_time,
        })
        sleep(config["draft_delay"])

    charms = deal_charms(len(roster), r)
    positions = starting_positions(match, len(roster), r)
    for entry, charm_type, position in zip(roster, charms, positions):
        agent = create_agent(entry, assigned[entry["id"]], charm_type, position)
        match.agents[agent.id] = agent
        match.credit(agent.id)
        logger.info("  %s: %s with %s charm at %s", agent.id, agent.archetype, charm_type, list(position))

    match.phase = "running"
    match.record(f"Battle Royale begins! {len(roster)} agents enter, 1 survives.", "system", turn=0)
    snapshot = match.to_dict()
    bus.publish(events.MATCH_START, {"agents": snapshot["agents"], "zone": snapshot["zone"]})
    return match
