# royale/engine/geometry.py
import math
import random
from typing import Dict, Iterable, List, Optional, Sequence

from .models import Agent, Item, Position, Zone
from ..content.balance import DEFAULTS

DIRECTIONS: Dict[str, Position] = {
    "north": (0, -1),
    "south": (0, 1),
    "east": (1, 0),
    "west": (-1, 0),
}


def move(position: Position, direction: Optional[str], tiles: int) -> Optional[Position]:
    delta = DIRECTIONS.get(direction or "")
    if delta is None:
        return None
    return (position[0] + delta[0] * tiles, position[1] + delta[1] * tiles)


def in_bounds(position: Position, grid_size: int = DEFAULTS["grid_size"]) -> bool:
    return 0 <= position[0] < grid_size and 0 <= position[1] < grid_size


def is_occupied(position: Position, agents: Iterable[Agent]) -> bool:
    """Only living agents block a tile."""
    return any(agent.is_alive and tuple(agent.position) == tuple(position) for agent in agents)


def is_obstacle(position: Position, obstacles: Optional[Sequence[Position]]) -> bool:
    if not obstacles:
        return False
    return any(tuple(obs) == tuple(position) for obs in obstacles)


def has_item(position: Position, items: Iterable[Item]) -> bool:
    return any(tuple(item.position) == tuple(position) for item in items)


def manhattan(a: Position, b: Position) -> int:
    # movement + attack range
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def euclidean(a: Position, b: Position) -> float:
    # zone containment only
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2)


def in_zone(position: Position, zone: Zone) -> bool:
    return euclidean(position, zone.center) <= zone.radius


def adjacent_positions(position: Position, grid_size: int = DEFAULTS["grid_size"]) -> List[Position]:
    adjacent = []
    for dx, dy in DIRECTIONS.values():
        candidate = (position[0] + dx, position[1] + dy)
        if in_bounds(candidate, grid_size):
            adjacent.append(candidate)
    return adjacent


def random_empty_tile_in_zone(
    zone: Zone,
    agents: Iterable[Agent],
    items: Iterable[Item],
    obstacles: Optional[Sequence[Position]],
    r: random.Random,
    attempts: int = DEFAULTS["empty_tile_attempts"],
    grid_size: int = DEFAULTS["grid_size"],
) -> Position:
    """
    Rejection-sample a free tile inside the zone.

    Best effort: once `attempts` are spent the result is a tile next to the zone
    center, which may collide with something.
    """
    agents = list(agents)
    items = list(items)
    for _ in range(attempts):
        pos = (r.randrange(grid_size), r.randrange(grid_size))
        if not in_zone(pos, zone):
            continue
        if is_occupied(pos, agents):
            continue
        if has_item(pos, items):
            continue
        if is_obstacle(pos, obstacles):
            continue
        return pos
    return (zone.center[0] + r.randint(-1, 1), zone.center[1] + r.randint(-1, 1))
