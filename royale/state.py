# royale/state.py
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from .content.balance import DEFAULTS
from .engine.bot import HeuristicDecisionService
from .engine.decisions import DecisionService
from .engine.events import EventBus
from .engine.models import Position
from .engine.session import MatchSession

logger = logging.getLogger(__name__)

# one match per process; observers subscribe to the bus once at startup
current: Optional[MatchSession] = None
bus = EventBus()

WAITING = {"meta": {"phase": "waiting"}}


class ControlError(ValueError):
    """A start/reset request that cannot be honored. Nothing was changed."""


def _run_in_thread(target: Callable[[], Any]) -> None:
    threading.Thread(target=target, name="royale-match", daemon=True).start()


def is_running() -> bool:
    return current is not None and current.running


def validate_obstacles(obstacles: Any, grid_size: int = DEFAULTS["grid_size"]) -> List[Position]:
    obstacles = obstacles or []
    if not isinstance(obstacles, list):
        raise ControlError("Invalid obstacle coordinates")
    if len(obstacles) > DEFAULTS["max_obstacles"]:
        raise ControlError(f"Maximum {DEFAULTS['max_obstacles']} obstacles allowed")
    cleaned: List[Position] = []
    for obs in obstacles:
        if (
            not isinstance(obs, (list, tuple))
            or len(obs) != 2
            or not all(isinstance(v, int) and not isinstance(v, bool) for v in obs)
            or not all(0 <= v < grid_size for v in obs)
        ):
            raise ControlError("Invalid obstacle coordinates")
        cleaned.append((obs[0], obs[1]))
    return cleaned


def start_match(
    obstacles: Any = None,
    service: Optional[DecisionService] = None,
    config: Optional[Mapping[str, Any]] = None,
    launch: Callable[[Callable[[], Any]], Any] = _run_in_thread,
    sleep: Callable[[float], Any] = time.sleep,
    seed: Optional[int] = None,
) -> MatchSession:
    """
    Draft and place the agents, then hand the turn loop to `launch`.
    Raises ControlError if a match is already running or the obstacles are bad.
    """
    global current
    if is_running():
        raise ControlError("Game already running")
    cleaned = validate_obstacles(obstacles)

    session = MatchSession(service or HeuristicDecisionService(), bus, config, cleaned, seed)
    current = session
    try:
        session.prepare(sleep)
    except Exception:
        current = None
        raise
    logger.info("match %s started with %d obstacles", session.match.seed, len(cleaned))
    launch(lambda: session.run(sleep))
    return session


def get_state() -> Dict[str, Any]:
    if current is None:
        return {"meta": dict(WAITING["meta"])}
    return current.snapshot()


def reset() -> None:
    global current
    if current is not None:
        current.stop()
        logger.info("match %s reset", current.match.seed)
    current = None
