"""Automated regression suite for the battle royale engine.

Exercises MatchState + resolver + resolve_turn directly with scripted decisions,
so every scenario is deterministic apart from the fan-out timing checks.
"""

from __future__ import annotations

import json
import random
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Tuple

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from royale.content.archetypes import ARCHETYPES, ROSTER  # noqa: E402
from royale.content.balance import settings  # noqa: E402
from royale.content.charms import CHARMS  # noqa: E402
from royale.engine import events  # noqa: E402
from royale.engine.bot import HeuristicDecisionService  # noqa: E402
from royale.engine.decisions import (  # noqa: E402
    Decision,
    DecisionService,
    gather_actions,
    parse_action,
    parse_archetype_choice,
)
from royale.engine.effects import tick_effects  # noqa: E402
from royale.engine.loop import check_win_condition, resolve_turn, run_turn  # noqa: E402
from royale.engine.models import (  # noqa: E402
    Attack,
    Defend,
    Item,
    MatchState,
    Move,
    UseCharm,
    Zone,
)
from royale.engine.prep import assign_archetypes, create_agent, new_match, run_prep  # noqa: E402
from royale.engine.resolver import apply_action  # noqa: E402
from royale.engine.rules import falloff_damage  # noqa: E402
from royale.engine.session import MatchSession  # noqa: E402
from royale.engine.views import agent_view  # noqa: E402


QUIET = settings({
    "turn_delay": 0,
    "action_delay": 0,
    "draft_delay": 0,
    "decision_timeout": 2.0,
})


def _no_sleep(seconds: float) -> None:
    return None


class Recorder:
    """Bus subscriber that keeps every (event, payload) pair."""

    def __init__(self) -> None:
        self.seen: List[Tuple[str, Dict[str, Any]]] = []

    def __call__(self, event: str, payload: Dict[str, Any]) -> None:
        self.seen.append((event, payload))

    def named(self, event: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.seen if name == event]

    def names(self) -> List[str]:
        return [name for name, _ in self.seen]


def recording_bus() -> Tuple[events.EventBus, Recorder]:
    bus = events.EventBus()
    recorder = Recorder()
    bus.subscribe(recorder)
    return bus, recorder


class ScriptedService(DecisionService):
    def __init__(self, actions: Dict[str, Any], delays: Dict[str, float] = None):
        self.actions = actions
        self.delays = delays or {}
        self.calls: List[str] = []

    def choose_archetype(self, agent_id, view):
        return self.actions.get(agent_id)

    def choose_action(self, agent_id, view):
        self.calls.append(agent_id)
        time.sleep(self.delays.get(agent_id, 0))
        return self.actions[agent_id]


def make_agent(agent_id: str, archetype: str, position, charm: str = "rage", **overrides):
    entry = {"id": agent_id, "name": agent_id.title(), "color": "#000000"}
    agent = create_agent(entry, archetype, charm, position)
    for key, value in overrides.items():
        setattr(agent, key, value)
    return agent


def make_match(*agents, seed: int = 123, radius: int = 16, turn: int = 1, obstacles=None) -> MatchState:
    return MatchState(
        seed=seed,
        turn=turn,
        phase="running",
        zone=Zone(center=(16, 16), radius=radius, next_shrink_turn=8),
        agents={agent.id: agent for agent in agents},
        obstacles=list(obstacles or []),
    )


def _log_text(match: MatchState) -> str:
    return "\n".join(entry["event"] for entry in match.log)


def _assert_health_bounds(match: MatchState) -> None:
    for agent in match.agents.values():
        assert 0 <= agent.health <= agent.max_health, f"health out of range for {agent.id}: {agent.health}"
        if not agent.is_alive:
            assert agent.health == 0, f"dead agent {agent.id} should sit at 0 health"


# ---------------------------------------------------------------------------
# combat resolution
# ---------------------------------------------------------------------------

def scenario_adjacent_melee_hit() -> bool:
    a = make_agent("gpt", "berserker", (10, 10))
    a.attacks["melee"]["damage"] = 10
    b = make_agent("claude", "scout", (11, 10), health=20)
    match = make_match(a, b)

    produced = apply_action("gpt", Attack(target_id="claude"), match)

    assert b.health == 10, f"expected 10 health left, got {b.health}"
    hits = [e for e in produced if e["type"] == "attack"]
    assert hits and hits[0]["damage"] == 10, f"expected one attack event for 10 damage, got {produced}"
    assert a.last_action == "melee_claude"
    assert match.combat_totals["gpt"]["damage"] == 10
    # catalog entries are never shared with agents
    assert ARCHETYPES["berserker"]["attacks"]["melee"]["damage"] == 11
    return True


def scenario_defend_consumed_by_first_hit() -> bool:
    defender = make_agent("claude", "scout", (11, 10), health=50)
    first = make_agent("gpt", "berserker", (10, 10))
    second = make_agent("gemini", "berserker", (12, 10))
    first.attacks["melee"]["damage"] = 10
    second.attacks["melee"]["damage"] = 10
    match = make_match(defender, first, second)

    apply_action("claude", Defend(), match)
    assert defender.is_defending and defender.cooldowns["defend"] == 3

    apply_action("gpt", Attack(target_id="claude"), match)
    assert defender.health == 47, f"defended hit should deal 3, health is {defender.health}"
    assert not defender.is_defending, "defend should be consumed by the hit"

    apply_action("gemini", Attack(target_id="claude"), match)
    assert defender.health == 37, f"second hit should land in full, health is {defender.health}"
    return True


def scenario_unused_defend_lapses_on_next_action() -> bool:
    agent = make_agent("gpt", "scout", (10, 10))
    enemy = make_agent("claude", "berserker", (12, 10))
    enemy.attacks["melee"]["damage"] = 10
    match = make_match(agent, enemy)

    apply_action("gpt", Defend(), match)
    assert agent.is_defending
    apply_action("gpt", Move(direction="east", tiles=1), match)
    assert not agent.is_defending, "defend should lapse once its owner acts again"

    apply_action("claude", Attack(target_id="gpt"), match)
    assert agent.health == 80, f"undefended hit expected, health is {agent.health}"
    return True


def scenario_reversal_and_shield_are_single_use() -> bool:
    target = make_agent("claude", "tank", (11, 10), has_reversal_active=True)
    first = make_agent("gpt", "berserker", (10, 10))
    second = make_agent("gemini", "berserker", (12, 10))
    match = make_match(target, first, second)

    produced = apply_action("gpt", Attack(target_id="claude"), match)
    assert first.health == 89, f"reversal should reflect 11 onto the attacker, got {first.health}"
    assert target.health == 150 and not target.has_reversal_active
    assert produced[0]["type"] == "reversal"
    assert match.combat_totals["claude"]["damage"] == 11

    apply_action("gemini", Attack(target_id="claude"), match)
    assert target.health == 139, "second hit should land once reversal is spent"

    shielded = make_agent("mini", "scout", (10, 11), has_shield=True)
    match.agents["mini"] = shielded
    produced = apply_action("gpt", Attack(target_id="mini"), match)
    assert shielded.health == 90 and not shielded.has_shield
    assert produced[0]["type"] == "shield_break"
    apply_action("gpt", Attack(target_id="mini"), match)
    assert shielded.health == 79, "shield should only eat one hit"
    return True


def scenario_mage_ranged_falloff() -> bool:
    ranged = ARCHETYPES["mage"]["attacks"]["ranged"]
    assert falloff_damage(ranged, 1) == 9
    assert falloff_damage(ranged, 6) == 4
    assert falloff_damage(ARCHETYPES["mage"]["attacks"]["melee"], 1) == 5

    mage = make_agent("gemini", "mage", (10, 10))
    far = make_agent("claude", "tank", (16, 10))
    near = make_agent("gpt", "tank", (10, 12))
    match = make_match(mage, far, near)

    apply_action("gemini", Attack(target_id="claude", attack_type="ranged"), match)
    assert far.health == 146, f"distance 6 should deal 4, health {far.health}"

    mage.damage_bonus = 0.5
    apply_action("gemini", Attack(target_id="gpt", attack_type="ranged"), match)
    assert near.health == 138, f"distance 2 under +50% should deal 12, health {near.health}"

    apply_action("gemini", Attack(target_id="claude", attack_type="ranged"), match)
    mage.position = (0, 0)
    apply_action("gemini", Attack(target_id="claude", attack_type="ranged"), match)
    assert "out of range" in _log_text(match)
    return True


def scenario_charge_recoil() -> bool:
    berserker = make_agent("gpt", "berserker", (10, 10))
    target = make_agent("claude", "scout", (13, 10))
    match = make_match(berserker, target)

    produced = apply_action("gpt", Attack(target_id="claude", attack_type="charge"), match)

    assert target.health == 75
    assert berserker.health == 90, f"charge should cost 10 health, got {berserker.health}"
    assert berserker.cooldowns["charge"] == 2
    assert [e["type"] for e in produced] == ["attack", "self_damage"]

    apply_action("gpt", Attack(target_id="claude", attack_type="charge"), match)
    assert target.health == 75, "charge on cooldown must not land"
    return True


def scenario_slam_hits_adjacent_and_skips_cloaked() -> bool:
    tank = make_agent("claude", "tank", (16, 16))
    east = make_agent("gpt", "berserker", (17, 16))
    west = make_agent("gemini", "mage", (15, 16))
    south = make_agent("mini", "scout", (16, 17), is_cloaked=True, cloak_turns_left=2)
    match = make_match(tank, east, west, south)

    produced = apply_action("claude", Attack(target_id="gpt", attack_type="slam"), match)

    assert east.health == 90 and west.health == 70
    assert south.health == 90, "cloaked agents are skipped by area attacks"
    assert len([e for e in produced if e["type"] == "attack"]) == 2
    assert tank.cooldowns["slam"] == 3
    return True


def scenario_cloak_hides_and_blocks_targeting() -> bool:
    cloaked = make_agent("claude", "scout", (11, 10), charm="cloak")
    hunter = make_agent("gpt", "scout", (10, 10))
    match = make_match(cloaked, hunter)

    apply_action("claude", UseCharm(), match)
    assert cloaked.is_cloaked and cloaked.cloak_turns_left == 2

    view = agent_view(match, "gpt")
    assert view["agents"]["claude"]["position"] is None
    assert view["agents"]["claude"]["untargetable"] is True
    assert view["agents"]["gpt"]["position"] == [10, 10]
    own = agent_view(match, "claude")
    assert own["agents"]["claude"]["position"] == [11, 10], "agents always see themselves"

    apply_action("gpt", Attack(target_id="claude", attack_type="quick_strike"), match)
    assert cloaked.health == 90
    assert hunter.cooldowns["quick_strike"] == 0, "rejected attacks spend no cooldown"

    apply_action("claude", Attack(target_id="gpt"), match)
    assert hunter.health == 90, "cloaked agents cannot attack"

    tick_effects(cloaked)
    assert cloaked.is_cloaked and cloaked.cloak_turns_left == 1
    tick_effects(cloaked)
    assert not cloaked.is_cloaked and cloaked.cloak_turns_left == 0

    apply_action("gpt", Attack(target_id="claude"), match)
    assert cloaked.health == 82
    return True


def scenario_cloaked_movement_stays_hidden() -> bool:
    cloaked = make_agent("claude", "scout", (11, 10), charm="cloak")
    hunter = make_agent("gpt", "scout", (10, 10))
    match = make_match(cloaked, hunter)

    apply_action("claude", UseCharm(), match)
    apply_action("claude", Move(direction="north", tiles=3), match)
    assert cloaked.position == (11, 7)
    assert cloaked.last_action == "move_north_3"

    view = agent_view(match, "gpt")
    claude = view["agents"]["claude"]
    assert claude["position"] is None and claude["last_action"] is None
    seen = "\n".join(entry["event"] for entry in view["log"])
    assert "claude moved" not in seen and "[11, 7]" not in seen
    assert "claude activated CLOAK!" in seen, "the cloak itself is public"

    own = agent_view(match, "claude")
    assert own["agents"]["claude"]["last_action"] == "move_north_3"
    assert "claude moved north 3 tiles to [11, 7]" in "\n".join(entry["event"] for entry in own["log"])

    view["charm_catalog"]["rage"]["modifier"] = 99
    assert CHARMS["rage"]["modifier"] == 0.5, "views hand out copies of the catalog"
    assert agent_view(match, "gpt")["charm_catalog"]["rage"]["modifier"] == 0.5
    return True


def scenario_berserk_trades_defense_for_tempo() -> bool:
    berserker = make_agent("gpt", "berserker", (10, 10), charm="berserk")
    target = make_agent("claude", "tank", (11, 10))
    match = make_match(berserker, target)

    apply_action("gpt", UseCharm(), match)
    assert berserker.has_berserk_active and berserker.stats["defense"] == 0
    assert berserker.charm.uses_left == 0

    apply_action("gpt", Attack(target_id="claude", attack_type="charge"), match)
    assert berserker.cooldowns["charge"] == 0, "berserk attacks go on no cooldown"

    for _ in range(3):
        tick_effects(berserker)
    assert not berserker.has_berserk_active
    assert berserker.stats["defense"] == 3, "defense comes back when berserk ends"
    assert berserker.saved_defense is None
    return True


def scenario_vampirism_drains_on_landed_hits() -> bool:
    vampire = make_agent("gpt", "berserker", (10, 10), charm="vampirism", health=50)
    target = make_agent("claude", "scout", (11, 10))
    match = make_match(vampire, target)

    apply_action("gpt", UseCharm(), match)
    assert vampire.lifesteal == 0.5

    produced = apply_action("gpt", Attack(target_id="claude"), match)
    assert target.health == 79
    assert vampire.health == 56, f"11 damage at 50% lifesteal should heal 6, got {vampire.health}"
    assert produced[-1] == {"type": "lifesteal", "agentId": "gpt", "healing": 6}
    assert match.combat_totals["gpt"] == {"damage": 11, "healing": 6}

    for _ in range(3):
        tick_effects(vampire)
    assert vampire.lifesteal == 0
    return True


def scenario_free_heal_rides_along() -> bool:
    agent = make_agent("gpt", "berserker", (10, 10), charm="heal", health=50)
    match = make_match(agent, make_agent("claude", "scout", (20, 20)))

    produced = apply_action("gpt", Move(direction="north", tiles=1, free_action=True), match)

    assert agent.position == (10, 9), "the main action still resolves"
    assert agent.health == 90, f"heal should restore 40, got {agent.health}"
    assert agent.charm.uses_left == 0
    assert produced[-1]["free"] is True

    apply_action("gpt", Defend(free_action=True), match)
    assert agent.health == 90, "a spent charm does not heal twice"
    return True


def scenario_teleport_move() -> bool:
    agent = make_agent("gpt", "scout", (10, 10), charm="teleport")
    match = make_match(agent, make_agent("claude", "tank", (20, 20)))

    apply_action("gpt", Move(teleport_to=(10, 19)), match)
    assert agent.position == (10, 10), "9 tiles is beyond teleport reach"
    assert agent.charm.uses_left == 1

    produced = apply_action("gpt", Move(teleport_to=(14, 14)), match)
    assert agent.position == (14, 14)
    assert agent.charm.uses_left == 0
    assert produced[0]["type"] == "teleport"

    apply_action("gpt", Move(teleport_to=(15, 15)), match)
    assert agent.position == (14, 14), "teleport needs a charm use left"
    return True


def scenario_invalid_intent_is_a_noop() -> bool:
    agent = make_agent("gpt", "scout", (0, 0))
    other = make_agent("claude", "tank", (1, 1))
    match = make_match(agent, other, obstacles=[(0, 1)])

    assert apply_action("gpt", Move(direction="west", tiles=1), match) == []
    assert apply_action("gpt", Move(direction="south", tiles=1), match) == []
    assert agent.position == (0, 0)
    apply_action("gpt", Attack(target_id="claude", attack_type="fireball"), match)
    apply_action("gpt", Attack(target_id="nobody"), match)
    apply_action("gpt", Attack(target_id="gpt"), match)
    assert other.health == 150 and agent.health == 90

    text = _log_text(match)
    assert "position invalid/occupied" in text
    assert "unknown attack type" in text
    assert "invalid/dead" in text

    # move distance is capped by speed
    apply_action("gpt", Move(direction="east", tiles=9), match)
    assert agent.position == (4, 0), f"scout speed 4 caps the move, got {agent.position}"

    assert apply_action("ghost", Defend(), match) == []
    return True


def scenario_item_pickups() -> bool:
    agent = make_agent("gpt", "berserker", (10, 10), health=90)
    match = make_match(agent, make_agent("claude", "tank", (20, 20)))
    match.items.append(Item(type="health_pack", position=(11, 10), effect="+30 HP"))

    produced = apply_action("gpt", Move(direction="east", tiles=1), match)
    assert agent.health == 100, "health pack heals up to max"
    assert match.items == []
    assert produced[-1] == {"type": "pickup", "agentId": "gpt", "item": "health_pack"}
    assert match.combat_totals["gpt"]["healing"] == 10

    match.items.append(Item(type="ghost_shard", position=(12, 10)))
    apply_action("gpt", Move(direction="east", tiles=1), match)
    assert match.items == [], "the shard leaves the ground before it fires"
    assert agent.position != (12, 10)
    agent.position = (10, 10)

    agent.cooldowns["charge"] = 2
    agent.cooldowns["defend"] = 3
    match.items.append(Item(type="smoke_bomb", position=(agent.position[0], agent.position[1] - 1)))
    apply_action("gpt", Move(direction="north", tiles=1), match)
    assert set(agent.cooldowns.values()) == {0}

    match.items.append(Item(type="adrenaline_shot", position=(agent.position[0], agent.position[1] - 1)))
    apply_action("gpt", Move(direction="north", tiles=1), match)
    assert agent.speed_bonus == 3 and agent.move_budget == 5
    return True


# ---------------------------------------------------------------------------
# turn engine
# ---------------------------------------------------------------------------

def scenario_actions_apply_in_latency_order() -> bool:
    a = make_agent("gpt", "berserker", (10, 10))
    b = make_agent("claude", "scout", (12, 10))
    c = make_agent("gemini", "mage", (20, 20))
    match = make_match(a, b, c)
    bus, recorder = recording_bus()

    decisions = [
        Decision("gpt", Move(direction="east", tiles=1), 0.5),
        Decision("claude", Move(direction="west", tiles=1), 0.1),
        Decision("gemini", Defend(), 0.3),
    ]
    resolve_turn(match, decisions, bus, QUIET)

    order = [payload["agentId"] for payload in recorder.named(events.ACTION_EXECUTED)]
    assert order == ["claude", "gemini", "gpt"], f"fastest responder acts first, got {order}"
    latencies = [payload["responseTime"] for payload in recorder.named(events.ACTION_EXECUTED)]
    assert latencies == sorted(latencies)
    assert b.position == (11, 10), "the faster agent claims the contested tile"
    assert a.position == (10, 10)
    assert match.turn == 2
    assert recorder.names()[-1] == events.TURN_END
    return True


def scenario_zone_damage_eliminates_same_turn() -> bool:
    outside = make_agent("gpt", "scout", (0, 0), health=8)
    inside = make_agent("claude", "tank", (16, 16))
    match = make_match(outside, inside, radius=5)
    bus, recorder = recording_bus()

    winner = resolve_turn(
        match,
        [Decision("gpt", Defend(), 0.1), Decision("claude", Defend(), 0.2)],
        bus,
        QUIET,
    )

    assert outside.health == 0 and not outside.is_alive
    assert inside.health == 150, "agents inside the zone take no zone damage"
    names = recorder.names()
    assert names.index(events.ZONE_DAMAGE) < names.index(events.AGENT_ELIMINATED)
    assert recorder.named(events.AGENT_ELIMINATED)[0]["turn"] == 1
    assert winner == "claude"
    return True


def scenario_zone_immunity_bypasses_damage() -> bool:
    runner = make_agent("gpt", "scout", (0, 0))
    match = make_match(runner, make_agent("claude", "tank", (16, 16)), radius=5)
    match.items.append(Item(type="adrenaline_shot", position=(1, 0)))
    bus, _ = recording_bus()

    resolve_turn(
        match,
        [Decision("gpt", Move(direction="east", tiles=1), 0.1), Decision("claude", Defend(), 0.2)],
        bus,
        QUIET,
    )
    assert runner.health == 90, "zone immunity skips the zone tick"
    return True


def scenario_timeout_falls_back_to_defend() -> bool:
    fast = make_agent("gpt", "berserker", (10, 10))
    slow = make_agent("claude", "tank", (20, 20))
    match = make_match(fast, slow)
    bus, recorder = recording_bus()
    service = ScriptedService(
        {"gpt": {"action": "move", "params": {"direction": "north", "tiles": 1}}, "claude": '{"action": "attack"}'},
        delays={"claude": 0.5},
    )
    config = dict(QUIET, decision_timeout=0.1)

    decisions = gather_actions(service, {"gpt": {}, "claude": {}}, config["decision_timeout"])
    late = [d for d in decisions if d.agent_id == "claude"][0]
    assert late.timed_out and isinstance(late.parsed, Defend)
    assert late.response_time == 0.1
    assert decisions[-1].agent_id == "claude", "a timed out agent acts last"

    run_turn(match, service, bus, config)
    executed = recorder.named(events.ACTION_EXECUTED)
    assert [p["agentId"] for p in executed] == ["gpt", "claude"]
    assert executed[1]["timedOut"] is True and executed[1]["action"]["action"] == "defend"
    assert slow.is_defending
    assert fast.position == (10, 9)
    assert match.turn == 2
    return True


def scenario_bad_output_falls_back_to_defend() -> bool:
    class Exploding(ScriptedService):
        def choose_action(self, agent_id, view):
            if agent_id == "claude":
                raise RuntimeError("upstream 503")
            return super().choose_action(agent_id, view)

    service = Exploding({"gpt": "I refuse to answer in JSON"})
    decisions = gather_actions(service, {"gpt": {}, "claude": {}}, 1.0)
    by_id = {d.agent_id: d for d in decisions}
    assert isinstance(by_id["gpt"].parsed, Defend) and by_id["gpt"].error == "unparseable response"
    assert isinstance(by_id["claude"].parsed, Defend)
    assert "upstream 503" in by_id["claude"].error and not by_id["claude"].timed_out
    return True


def scenario_last_agent_standing_short_circuits() -> bool:
    survivor = make_agent("gpt", "scout", (0, 0))
    fallen = make_agent("claude", "tank", (16, 16), health=0, is_alive=False)
    match = make_match(survivor, fallen, radius=5, turn=24)
    bus, recorder = recording_bus()
    service = ScriptedService({"gpt": {"action": "defend"}})

    winner = run_turn(match, service, bus, QUIET)

    assert winner == "gpt"
    assert service.calls == [], "no decisions are requested once a winner exists"
    assert match.turn == 24 and match.zone.radius == 5 and match.items == []
    assert survivor.health == 90, "zone damage is skipped"
    assert recorder.names() == [events.TURN_START]
    return True


def scenario_win_condition_rules() -> bool:
    a = make_agent("gpt", "scout", (1, 1), health=40)
    b = make_agent("claude", "tank", (2, 2), health=30)
    match = make_match(a, b, turn=10)
    assert check_win_condition(match, 50) is None

    match.turn = 51
    assert check_win_condition(match, 50) == "gpt", "sudden death goes to the healthiest"

    a.is_alive = b.is_alive = False
    assert check_win_condition(match, 50) == "claude", "a wipe goes to the highest max health"
    return True


def scenario_zone_shrinks_on_schedule() -> bool:
    a = make_agent("gpt", "scout", (16, 16))
    b = make_agent("claude", "tank", (17, 16))
    match = make_match(a, b)
    bus, _ = recording_bus()
    config = dict(QUIET, max_turns=200)

    radii = {0: match.zone.radius}
    for _ in range(80):
        turn = match.turn
        winner = resolve_turn(match, [Decision("gpt", Defend(), 0.1), Decision("claude", Defend(), 0.2)], bus, config)
        assert winner is None
        radii[turn] = match.zone.radius
        if turn % 8 == 0:
            assert match.zone.next_shrink_turn == turn + 8

    previous = radii[0]
    for turn in range(1, 81):
        assert radii[turn] <= previous, "zone never grows"
        if radii[turn] != previous:
            assert turn % 8 == 0, f"zone changed off schedule on turn {turn}"
        assert radii[turn] >= 4, "zone never drops below the floor"
        previous = radii[turn]
    assert radii[8] == 14 and radii[48] == 4 and radii[80] == 4
    assert len(match.items) == 80 // 3, "one drop every third turn"
    return True


def scenario_snapshot_round_trip_replays() -> bool:
    a = make_agent("gpt", "berserker", (10, 10), charm="vampirism")
    b = make_agent("claude", "scout", (13, 10), charm="heal")
    match = make_match(a, b, seed=99)
    bus, _ = recording_bus()
    script = [
        (Move(direction="east", tiles=1), Attack(target_id="gpt", attack_type="quick_strike")),
        (UseCharm(), Defend()),
        (Attack(target_id="claude", attack_type="charge"), Move(direction="south", tiles=3)),
        (Move(direction="south", tiles=2), Attack(target_id="gpt", attack_type="melee")),
        (Attack(target_id="claude"), Defend(free_action=True)),
        (Move(direction="north", tiles=1), Move(direction="east", tiles=4)),
        (Defend(), Move(direction="west", tiles=2)),
    ]

    def play(state: MatchState, rounds) -> None:
        for gpt_action, claude_action in rounds:
            resolve_turn(
                state,
                [Decision("gpt", gpt_action, 0.2), Decision("claude", claude_action, 0.1)],
                bus,
                QUIET,
            )

    play(match, script[:2])
    frozen = json.loads(json.dumps(match.to_dict()))
    play(match, script[2:])

    restored = MatchState.from_dict(frozen)
    assert restored.turn == 3
    play(restored, script[2:])

    left = json.dumps(match.to_dict(), sort_keys=True)
    right = json.dumps(restored.to_dict(), sort_keys=True)
    assert left == right, "restored match diverged from the live one"
    return True


def scenario_event_bus_survives_bad_subscribers() -> bool:
    bus, recorder = recording_bus()

    def broken(event, payload):
        raise ConnectionError("client went away")

    bus.subscribers.insert(0, broken)
    bus.publish(events.TURN_START, {"turn": 1})
    assert recorder.names() == [events.TURN_START]

    bus.unsubscribe(broken)
    bus.unsubscribe(broken)
    assert bus.subscribers == [recorder]
    return True


# ---------------------------------------------------------------------------
# decision parsing + draft
# ---------------------------------------------------------------------------

def scenario_structured_output_recovery() -> bool:
    fenced = '```json\n{"action": "move", "params": {"direction": "north", "tiles": 2}, "reasoning": "go"}\n```'
    move = parse_action(fenced)
    assert isinstance(move, Move) and move.direction == "north" and move.tiles == 2

    chatty = 'I think {"action": "attack", "params": {"target_id": "claude"}} is best. {"note": "}"}'
    attack = parse_action(chatty)
    assert isinstance(attack, Attack) and attack.target_id == "claude" and attack.attack_type == "melee"

    wrapped = parse_action('{"response": {"action": "defend", "trash_talk": "try me"}}')
    assert isinstance(wrapped, Defend) and wrapped.trash_talk == "try me"

    healed = parse_action({"action": "defend", "free_action": "use_charm"})
    assert isinstance(healed, Defend) and healed.free_action

    assert parse_action('{"action": "move", "params": {"direction": "up"}}') is None
    assert parse_action('{"action": "attack", "params": {}}') is None
    assert parse_action('{"action": "dance"}') is None
    assert parse_action("no json here") is None
    assert parse_action(None) is None

    options = list(ARCHETYPES)
    choice = parse_archetype_choice('{"archetype": "Tank", "reasoning": "sturdy"}', options)
    assert choice == {"archetype": "tank", "reasoning": "sturdy"}
    loose = parse_archetype_choice("I'll go with the Mage, obviously", options)
    assert loose["archetype"] == "mage"
    assert parse_archetype_choice("pass", options) is None
    return True


def scenario_malformed_reply_keeps_match_alive() -> bool:
    shaped_wrong = [
        '{"action": ["move"]}',
        '{"action": "move", "params": {"direction": ["north"]}}',
        '{"action": "move", "params": {"direction": "north", "tiles": Infinity}}',
        '{"action": "move", "params": {"direction": "north", "tiles": NaN}}',
        '{"action": "attack", "params": {"target_id": {"id": "gpt"}}}',
        "{" * 5000 + "}" * 5000,
        '{"response": ' * 50 + '{"action": "defend"}' + "}" * 50,
    ]
    for text in shaped_wrong:
        assert parse_action(text) is None, f"accepted {text[:60]!r}"
    assert parse_archetype_choice("[" * 5000 + "]" * 5000, list(ARCHETYPES)) is None

    a = make_agent("gpt", "scout", (10, 10))
    b = make_agent("claude", "tank", (14, 14))
    match = make_match(a, b)
    bus, recorder = recording_bus()
    service = ScriptedService({
        "gpt": '{"action": ["move"]}',
        "claude": {"action": "move", "params": {"direction": "north", "tiles": float("inf")}},
    })

    winner = run_turn(match, service, bus, QUIET)

    assert winner is None and match.turn == 2
    assert a.is_defending and b.is_defending
    executed = {payload["agentId"]: payload for payload in recorder.named(events.ACTION_EXECUTED)}
    assert executed["gpt"]["error"] == "unparseable response"
    assert executed["claude"]["error"] == "unparseable response"
    assert recorder.names()[-1] == events.TURN_END
    return True


def scenario_draft_fastest_first() -> bool:
    decisions = [
        Decision("claude", {"archetype": "tank", "reasoning": "sturdy"}, 0.1),
        Decision("gpt", {"archetype": "tank", "reasoning": "me too"}, 0.2),
        Decision("gemini", {"archetype": "wizard", "reasoning": "?"}, 0.3),
    ]
    assigned = assign_archetypes(decisions, ["gpt", "claude", "gemini", "mini"], random.Random(1))

    assert assigned["claude"] == "tank"
    assert sorted(assigned) == ["claude", "gemini", "gpt", "mini"]
    assert sorted(assigned.values()) == sorted(ARCHETYPES), "every archetype is used exactly once"
    return True


def scenario_prep_sets_the_board() -> bool:
    bus, recorder = recording_bus()
    match = new_match(5, [(16, 16), (17, 17)], QUIET)
    run_prep(match, HeuristicDecisionService(), bus, QUIET, _no_sleep)

    assert match.phase == "running"
    assert [agent.id for agent in match.agents.values()] == [entry["id"] for entry in ROSTER]
    assert {agent.id: agent.archetype for agent in match.agents.values()} == {
        "gpt": "berserker", "claude": "tank", "gemini": "mage", "mini": "scout",
    }
    charms = [agent.charm.type for agent in match.agents.values()]
    assert len(set(charms)) == 4
    positions = [agent.position for agent in match.agents.values()]
    assert len(set(positions)) == 4
    assert not set(positions) & {(16, 16), (17, 17)}, "agents never start on obstacles"
    assert match.zone.next_shrink_turn == 8

    names = recorder.names()
    assert names[0] == events.MATCH_INIT and names[-1] == events.MATCH_START
    assert names.count(events.ARCHETYPE_CHOSEN) == 4
    return True


def scenario_full_match_resumes_and_finishes() -> bool:
    bus, recorder = recording_bus()
    service = HeuristicDecisionService()
    session = MatchSession(service, bus, QUIET, seed=7)
    session.prepare(_no_sleep)
    for _ in range(3):
        run_turn(session.match, service, bus, session.config)

    resumed = MatchSession.resume(json.loads(json.dumps(session.snapshot())), service, bus, QUIET)
    assert resumed.match.turn == 4 and resumed.running
    winner = resumed.run(_no_sleep)

    assert winner is not None and resumed.match.winner == winner
    assert resumed.match.phase == "finished" and not resumed.running
    over = recorder.named(events.MATCH_OVER)
    assert len(over) == 1 and over[0]["winner"] == winner
    assert set(over[0]["totals"]) == set(resumed.match.agents)
    eliminated = [p["agentId"] for p in recorder.named(events.AGENT_ELIMINATED)]
    assert len(eliminated) == len(set(eliminated)), "an agent is eliminated exactly once"
    _assert_health_bounds(resumed.match)
    return True


def scenario_stop_halts_at_turn_boundary() -> bool:
    bus, recorder = recording_bus()
    session = MatchSession(HeuristicDecisionService(), bus, QUIET, seed=11)

    def stop_after_first_turn(event, payload):
        if event == events.TURN_END:
            session.stop()

    bus.subscribe(stop_after_first_turn)
    assert session.run(_no_sleep) is None
    assert recorder.names().count(events.TURN_END) == 1
    assert not session.running
    assert session.match.turn == 2
    return True


SCENARIOS = [
    scenario_adjacent_melee_hit,
    scenario_defend_consumed_by_first_hit,
    scenario_unused_defend_lapses_on_next_action,
    scenario_reversal_and_shield_are_single_use,
    scenario_mage_ranged_falloff,
    scenario_charge_recoil,
    scenario_slam_hits_adjacent_and_skips_cloaked,
    scenario_cloak_hides_and_blocks_targeting,
    scenario_cloaked_movement_stays_hidden,
    scenario_berserk_trades_defense_for_tempo,
    scenario_vampirism_drains_on_landed_hits,
    scenario_free_heal_rides_along,
    scenario_teleport_move,
    scenario_invalid_intent_is_a_noop,
    scenario_item_pickups,
    scenario_actions_apply_in_latency_order,
    scenario_zone_damage_eliminates_same_turn,
    scenario_zone_immunity_bypasses_damage,
    scenario_timeout_falls_back_to_defend,
    scenario_bad_output_falls_back_to_defend,
    scenario_last_agent_standing_short_circuits,
    scenario_win_condition_rules,
    scenario_zone_shrinks_on_schedule,
    scenario_snapshot_round_trip_replays,
    scenario_event_bus_survives_bad_subscribers,
    scenario_structured_output_recovery,
    scenario_malformed_reply_keeps_match_alive,
    scenario_draft_fastest_first,
    scenario_prep_sets_the_board,
    scenario_full_match_resumes_and_finishes,
    scenario_stop_halts_at_turn_boundary,
]


def run_all() -> List[Tuple[str, bool, str]]:
    results: List[Tuple[str, bool, str]] = []
    for scenario in SCENARIOS:
        try:
            scenario()
            results.append((scenario.__name__, True, ""))
        except AssertionError as exc:
            results.append((scenario.__name__, False, str(exc)))
    return results
