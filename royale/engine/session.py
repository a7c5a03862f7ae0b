# royale/engine/session.py
import logging
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from . import events
from .decisions import DecisionService
from .loop import finish_match, run_turn
from .models import MatchState, Position
from .prep import new_match, run_prep
from .views import match_view
from ..content.balance import settings

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Any]


def fresh_seed() -> int:
    return int(time.time() * 1000) & 0xFFFFFFFF


class MatchSession:
    """
    Owns one match from draft to winner: its state, its config and the
    stop flag the control surface flips. Only one turn runs at a time.
    """

    def __init__(
        self,
        service: DecisionService,
        bus: events.EventBus,
        config: Optional[Mapping[str, Any]] = None,
        obstacles: Sequence[Position] = (),
        seed: Optional[int] = None,
        match: Optional[MatchState] = None,
    ):
        self.service = service
        self.bus = bus
        self.config: Dict[str, Any] = settings(config)
        if match is None:
            match = new_match(fresh_seed() if seed is None else seed, obstacles, self.config)
        self.match = match
        self._stop = threading.Event()

    @classmethod
    def resume(
        cls,
        snapshot: Dict[str, Any],
        service: DecisionService,
        bus: events.EventBus,
        config: Optional[Mapping[str, Any]] = None,
    ) -> "MatchSession":
        """Rebuild a session from `snapshot()` output; `run` picks up at the stored turn."""
        return cls(service, bus, config, match=MatchState.from_dict(snapshot))

    @property
    def running(self) -> bool:
        return not self._stop.is_set() and self.match.phase != "finished"

    def stop(self) -> None:
        # observed at the next turn boundary
        self._stop.set()

    def snapshot(self) -> Dict[str, Any]:
        return match_view(self.match)

    def prepare(self, sleep: Sleep = time.sleep) -> MatchState:
        if self.match.phase != "initializing":
            return self.match
        return run_prep(self.match, self.service, self.bus, self.config, sleep)

    def run(self, sleep: Sleep = time.sleep) -> Optional[str]:
        """Play turns back to back until someone wins or `stop()` is called."""
        try:
            self.prepare(sleep)
            while not self._stop.is_set():
                winner = run_turn(self.match, self.service, self.bus, self.config, sleep)
                if winner:
                    finish_match(self.match, winner, self.bus)
                    return winner
                if self._stop.is_set():
                    break
                sleep(self.config["turn_delay"])
        except Exception:
            logger.exception("match loop failed on turn %s; stopping", self.match.turn)
            self.stop()
        if self._stop.is_set():
            logger.info("match stopped at turn %s", self.match.turn)
        return None
