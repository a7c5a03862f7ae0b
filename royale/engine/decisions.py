# royale/engine/decisions.py
from __future__ import annotations

import json
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .geometry import DIRECTIONS
from .models import Action, ActionKind, Defend, action_from_dict

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```[\w-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")

# how far to dig into {"response": {...}} style wrappers
MAX_WRAPPER_DEPTH = 4


class DecisionService:
    """
    External decision maker. Implementations may answer with a dict or with
    raw model text; either way the engine parses and validates the reply.
    """

    def choose_archetype(self, agent_id: str, view: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def choose_action(self, agent_id: str, view: Dict[str, Any]) -> Any:
        raise NotImplementedError


@dataclass
class Decision:
    agent_id: str
    parsed: Any                      # Action for turns, {"archetype", "reasoning"} for the draft
    response_time: float
    timed_out: bool = False
    error: Optional[str] = None
    raw: Any = None


# ---------------------------------------------------------------------------
# structured-output recovery
# ---------------------------------------------------------------------------

def strip_wrapping(raw: str) -> str:
    text = raw.strip()
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def balanced_objects(text: str) -> List[str]:
    """Top-level {...} spans in order of appearance; braces inside JSON strings are ignored."""
    spans: List[str] = []
    depth = 0
    start = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                spans.append(text[start:i + 1])
    return spans


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def _candidates(text: str, depth: int = 0) -> Iterator[Dict[str, Any]]:
    whole = _loads(text)
    if isinstance(whole, dict):
        yield whole
    if depth >= MAX_WRAPPER_DEPTH:
        return
    for span in balanced_objects(text):
        parsed = _loads(span)
        if isinstance(parsed, dict):
            yield parsed
        # a wrapper object may hold the real payload one level down
        yield from _candidates(span[1:-1], depth + 1)


def is_valid_action(parsed: Any) -> bool:
    if not isinstance(parsed, dict):
        return False
    kind = parsed.get("action")
    if not isinstance(kind, str) or kind not in {k.value for k in ActionKind}:
        return False
    params = parsed.get("params")
    if kind == ActionKind.MOVE.value:
        if not isinstance(params, dict):
            return False
        teleport_to = params.get("teleport_to")
        if teleport_to is not None:
            return (
                isinstance(teleport_to, (list, tuple))
                and len(teleport_to) == 2
                and all(isinstance(v, int) and not isinstance(v, bool) for v in teleport_to)
            )
        direction = params.get("direction")
        if not isinstance(direction, str) or direction not in DIRECTIONS:
            return False
        tiles = params.get("tiles", 1)
        try:
            int(tiles or 1)
        except (TypeError, ValueError, OverflowError):
            return False
    if kind == ActionKind.ATTACK.value:
        if not isinstance(params, dict):
            return False
        target_id = params.get("target_id")
        if not isinstance(target_id, str) or not target_id:
            return False
        if not isinstance(params.get("attack_type", "melee"), (str, type(None))):
            return False
    return True


def parse_action(raw: Any) -> Optional[Action]:
    if isinstance(raw, dict):
        return action_from_dict(raw) if is_valid_action(raw) else None
    if not isinstance(raw, str):
        return None
    for candidate in _candidates(strip_wrapping(raw)):
        if is_valid_action(candidate):
            return action_from_dict(candidate)
    return None


def parse_archetype_choice(raw: Any, options: Sequence[str]) -> Optional[Dict[str, str]]:
    if isinstance(raw, dict):
        candidates = [raw]
        text = ""
    elif isinstance(raw, str):
        text = strip_wrapping(raw)
        candidates = list(_candidates(text))
    else:
        return None

    for candidate in candidates:
        archetype = candidate.get("archetype")
        if isinstance(archetype, str) and archetype.strip():
            return {
                "archetype": archetype.strip().lower(),
                "reasoning": str(candidate.get("reasoning") or "No reasoning provided"),
            }

    lower = text.lower()
    for option in options:
        if option in lower:
            return {"archetype": option, "reasoning": "Extracted from text"}
    return None


# ---------------------------------------------------------------------------
# fan-out / fan-in
# ---------------------------------------------------------------------------

def _timed(fn: Callable[[], Any]) -> Tuple[Any, float, Optional[str]]:
    start = time.monotonic()
    try:
        raw = fn()
    except Exception as exc:
        return None, time.monotonic() - start, f"{type(exc).__name__}: {exc}"
    return raw, time.monotonic() - start, None


def fan_out(calls: Dict[str, Callable[[], Any]], timeout: float) -> Dict[str, Tuple[Any, float, Optional[str], bool]]:
    """
    Run every call concurrently and wait for all of them, each bounded by
    `timeout` seconds from the start. A call that misses the deadline is
    reported with `timeout` as its response time.
    """
    results: Dict[str, Tuple[Any, float, Optional[str], bool]] = {}
    if not calls:
        return results
    executor = ThreadPoolExecutor(max_workers=len(calls), thread_name_prefix="royale-decide")
    try:
        started = time.monotonic()
        futures = {agent_id: executor.submit(_timed, fn) for agent_id, fn in calls.items()}
        deadline = started + timeout
        for agent_id, future in futures.items():
            try:
                raw, elapsed, error = future.result(timeout=max(0.0, deadline - time.monotonic()))
            except FuturesTimeout:
                future.cancel()
                results[agent_id] = (None, float(timeout), "decision timeout", True)
                continue
            results[agent_id] = (raw, elapsed, error, False)
    finally:
        # stragglers keep running in the background; nobody waits for them
        executor.shutdown(wait=False, cancel_futures=True)
    return results


def gather_actions(
    service: DecisionService,
    views: Dict[str, Dict[str, Any]],
    timeout: float,
) -> List[Decision]:
    """Ask every agent in `views` for an action; fastest responder first."""
    calls = {
        agent_id: (lambda agent_id=agent_id, view=view: service.choose_action(agent_id, view))
        for agent_id, view in views.items()
    }
    decisions: List[Decision] = []
    for agent_id, (raw, elapsed, error, timed_out) in fan_out(calls, timeout).items():
        if error:
            logger.warning("[%s] decision error: %s", agent_id, error)
            action = Defend(reasoning=f"Error: {error}")
            decisions.append(Decision(agent_id, action, elapsed, timed_out=timed_out, error=error))
            continue
        try:
            action = parse_action(raw)
        except Exception:
            logger.warning("[%s] response parsing raised", agent_id, exc_info=True)
            action = None
        if action is None:
            logger.warning("[%s] could not parse response: %.200s", agent_id, str(raw))
            decisions.append(Decision(
                agent_id, Defend(reasoning="Failed to parse response"), elapsed,
                error="unparseable response", raw=raw,
            ))
            continue
        decisions.append(Decision(agent_id, action, elapsed, raw=raw))
    return order_by_latency(decisions)


def gather_archetypes(
    service: DecisionService,
    views: Dict[str, Dict[str, Any]],
    options: Sequence[str],
    timeout: float,
) -> List[Decision]:
    calls = {
        agent_id: (lambda agent_id=agent_id, view=view: service.choose_archetype(agent_id, view))
        for agent_id, view in views.items()
    }
    decisions: List[Decision] = []
    for agent_id, (raw, elapsed, error, timed_out) in fan_out(calls, timeout).items():
        if error:
            logger.warning("[%s] archetype selection error: %s", agent_id, error)
            decisions.append(Decision(agent_id, None, elapsed, timed_out=timed_out, error=error))
            continue
        try:
            choice = parse_archetype_choice(raw, options)
        except Exception:
            logger.warning("[%s] archetype response parsing raised", agent_id, exc_info=True)
            choice = None
        decisions.append(Decision(
            agent_id, choice, elapsed,
            error=None if choice else "unparseable response", raw=raw,
        ))
    return order_by_latency(decisions)


def order_by_latency(decisions: List[Decision]) -> List[Decision]:
    # stable: equal response times keep registration order
    return sorted(decisions, key=lambda decision: decision.response_time)
