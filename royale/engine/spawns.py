# royale/engine/spawns.py
import random
from typing import Callable, Dict, Optional

from .dice import weighted_choice
from .effects import add_effect, heal, reset_cooldowns
from .geometry import random_empty_tile_in_zone
from .models import Agent, EffectType, Item, ItemType, MatchState, Position
from ..content.items import DROP_TYPES, ITEMS


def spawn_drop(match: MatchState, r: random.Random) -> Item:
    drop = weighted_choice(DROP_TYPES, r)
    pos = random_empty_tile_in_zone(match.zone, match.agents.values(), match.items, match.obstacles, r)
    item = Item(type=drop["type"], position=pos, effect=drop["effect"])
    match.items.append(item)
    match.record(f"{drop['type'].replace('_', ' ')} spawned at [{pos[0]}, {pos[1]}]", "spawn")
    return item


def item_at(match: MatchState, pos: Position) -> Optional[Item]:
    for item in match.items:
        if tuple(item.position) == tuple(pos):
            return item
    return None


def remove_item_at(match: MatchState, pos: Position) -> None:
    match.items = [item for item in match.items if tuple(item.position) != tuple(pos)]


def _health_pack(agent: Agent, match: MatchState, r: random.Random) -> str:
    healed = heal(agent, ITEMS[ItemType.HEALTH_PACK.value]["value"])
    match.credit(agent.id, healing=healed)
    return f"{agent.id} picked up health pack! +{healed} HP ({agent.health}/{agent.max_health})"


def _damage_amp(agent: Agent, match: MatchState, r: random.Random) -> str:
    drop = ITEMS[ItemType.DAMAGE_AMP.value]
    add_effect(agent, EffectType.DAMAGE_AMP, drop["duration"], drop["modifier"])
    return f"{agent.id} picked up damage amp! +30% damage for {drop['duration']} turns"


def _speed_boost(agent: Agent, match: MatchState, r: random.Random) -> str:
    drop = ITEMS[ItemType.SPEED_BOOST.value]
    add_effect(agent, EffectType.SPEED_BOOST, drop["duration"], drop["modifier"])
    return f"{agent.id} picked up speed boost! +{drop['modifier']} speed for {drop['duration']} turns"


def _shield_token(agent: Agent, match: MatchState, r: random.Random) -> str:
    agent.has_shield = True
    return f"{agent.id} picked up shield token! Immune to next attack"


def _smoke_bomb(agent: Agent, match: MatchState, r: random.Random) -> str:
    reset_cooldowns(agent)
    return f"{agent.id} picked up smoke bomb! All cooldowns reset"


def _vampire_fang(agent: Agent, match: MatchState, r: random.Random) -> str:
    drop = ITEMS[ItemType.VAMPIRE_FANG.value]
    add_effect(agent, EffectType.DAMAGE_AMP, drop["duration"], drop["modifier"])
    add_effect(agent, EffectType.LIFESTEAL, drop["duration"], drop["lifesteal"])
    return f"{agent.id} picked up vampire fang! +25% damage and 30% lifesteal for {drop['duration']} turns"


def _adrenaline_shot(agent: Agent, match: MatchState, r: random.Random) -> str:
    drop = ITEMS[ItemType.ADRENALINE_SHOT.value]
    add_effect(agent, EffectType.SPEED_BOOST, drop["duration"], drop["modifier"])
    add_effect(agent, EffectType.ZONE_IMMUNITY, drop["duration"])
    return f"{agent.id} picked up adrenaline shot! +{drop['modifier']} speed and zone immunity for {drop['duration']} turns"


def _ghost_shard(agent: Agent, match: MatchState, r: random.Random) -> str:
    pos = random_empty_tile_in_zone(match.zone, match.agents.values(), match.items, match.obstacles, r)
    agent.position = pos
    return f"{agent.id} picked up ghost shard! Blinked to [{pos[0]}, {pos[1]}]"


ITEM_HANDLERS: Dict[ItemType, Callable[[Agent, MatchState, random.Random], str]] = {
    ItemType.HEALTH_PACK: _health_pack,
    ItemType.DAMAGE_AMP: _damage_amp,
    ItemType.SPEED_BOOST: _speed_boost,
    ItemType.SHIELD_TOKEN: _shield_token,
    ItemType.SMOKE_BOMB: _smoke_bomb,
    ItemType.VAMPIRE_FANG: _vampire_fang,
    ItemType.ADRENALINE_SHOT: _adrenaline_shot,
    ItemType.GHOST_SHARD: _ghost_shard,
}

assert set(ITEM_HANDLERS) == set(ItemType), "every item type needs a handler"
assert {drop["type"] for drop in DROP_TYPES} == {t.value for t in ItemType}


def apply_item(agent: Agent, item: Item, match: MatchState, r: random.Random) -> None:
    message = ITEM_HANDLERS[ItemType(item.type)](agent, match, r)
    match.record(message, "pickup")


def pickup_at_feet(agent: Agent, match: MatchState, r: random.Random) -> Optional[Item]:
    """Consume whatever lies under the agent. The item leaves the ground before its effect runs."""
    item = item_at(match, agent.position)
    if not item:
        return None
    remove_item_at(match, agent.position)
    apply_item(agent, item, match, r)
    return item
