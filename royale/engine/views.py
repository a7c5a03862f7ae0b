# royale/engine/views.py
import copy
from typing import Any, Dict, List, Set

from .models import MatchState
from ..content.archetypes import ARCHETYPES
from ..content.charms import CHARMS

# log kinds whose text carries the acting agent's coordinates
_LOCATING_KINDS = {"move", "pickup"}


def match_view(match: MatchState) -> Dict[str, Any]:
    """Full JSON-ready snapshot, as sent to observers."""
    return match.to_dict()


def _redact_log(log: List[Dict[str, Any]], hidden: Set[str]) -> List[Dict[str, Any]]:
    if not hidden:
        return log
    return [
        entry for entry in log
        if not (
            entry.get("type") in _LOCATING_KINDS
            and any(entry.get("event", "").startswith(f"{agent_id} ") for agent_id in hidden)
        )
    ]


def agent_view(match: MatchState, viewer_id: str) -> Dict[str, Any]:
    """
    What one agent is allowed to know when choosing its move.
    Cloaked opponents keep their identity and health but lose their position,
    their last action and their movement log lines, and are flagged untargetable.
    """
    snapshot = match.to_dict()
    cloaked: Set[str] = set()
    for agent_id, agent in snapshot["agents"].items():
        if agent_id == viewer_id:
            continue
        if agent.get("is_cloaked"):
            cloaked.add(agent_id)
            agent["position"] = None
            agent["last_action"] = None
            agent["untargetable"] = True
        # opponents never see each other's private reasoning
        agent.pop("reasoning", None)
    snapshot["you"] = viewer_id
    snapshot["log"] = _redact_log(snapshot["log"], cloaked)[-30:]
    snapshot["charm_catalog"] = copy.deepcopy(CHARMS)
    return snapshot


def draft_view(agent_id: str, name: str) -> Dict[str, Any]:
    return {"you": agent_id, "name": name, "archetypes": copy.deepcopy(ARCHETYPES)}
