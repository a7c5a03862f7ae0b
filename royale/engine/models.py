# royale/engine/models.py
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

Position = Tuple[int, int]


class ActionKind(str, Enum):
    MOVE = "move"
    ATTACK = "attack"
    DEFEND = "defend"
    USE_CHARM = "use_charm"


class CharmType(str, Enum):
    RAGE = "rage"
    TELEPORT = "teleport"
    HEAL = "heal"
    REVERSAL = "reversal"
    CLOAK = "cloak"
    BERSERK = "berserk"
    VAMPIRISM = "vampirism"


class ItemType(str, Enum):
    HEALTH_PACK = "health_pack"
    DAMAGE_AMP = "damage_amp"
    SPEED_BOOST = "speed_boost"
    SHIELD_TOKEN = "shield_token"
    SMOKE_BOMB = "smoke_bomb"
    VAMPIRE_FANG = "vampire_fang"
    ADRENALINE_SHOT = "adrenaline_shot"
    GHOST_SHARD = "ghost_shard"


class EffectType(str, Enum):
    RAGE = "rage"
    DAMAGE_AMP = "damage_amp"
    SPEED_BOOST = "speed_boost"
    LIFESTEAL = "lifesteal"
    ZONE_IMMUNITY = "zone_immunity"
    CLOAK = "cloak"
    BERSERK = "berserk"


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass
class Action:
    reasoning: str = ""
    trash_talk: str = ""
    free_action: bool = False   # ride a free heal along with this action

    kind: ClassVar[ActionKind]

    def params(self) -> Dict[str, Any]:
        return {}

    def describe(self) -> str:
        return self.kind.value

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"action": self.kind.value, "reasoning": self.reasoning}
        params = self.params()
        if params:
            payload["params"] = params
        if self.free_action:
            payload["free_action"] = "use_charm"
        if self.trash_talk:
            payload["trash_talk"] = self.trash_talk
        return payload


@dataclass
class Move(Action):
    kind: ClassVar[ActionKind] = ActionKind.MOVE
    direction: Optional[str] = None
    tiles: int = 1
    teleport_to: Optional[Position] = None

    def params(self) -> Dict[str, Any]:
        if self.teleport_to is not None:
            return {"teleport_to": list(self.teleport_to)}
        return {"direction": self.direction, "tiles": self.tiles}

    def describe(self) -> str:
        if self.teleport_to is not None:
            return f"teleport_{self.teleport_to[0]}_{self.teleport_to[1]}"
        if self.direction:
            return f"move_{self.direction}_{self.tiles}"
        return "move"


@dataclass
class Attack(Action):
    kind: ClassVar[ActionKind] = ActionKind.ATTACK
    target_id: str = ""
    attack_type: str = "melee"

    def params(self) -> Dict[str, Any]:
        return {"target_id": self.target_id, "attack_type": self.attack_type}

    def describe(self) -> str:
        return f"{self.attack_type}_{self.target_id}"


@dataclass
class Defend(Action):
    kind: ClassVar[ActionKind] = ActionKind.DEFEND


@dataclass
class UseCharm(Action):
    kind: ClassVar[ActionKind] = ActionKind.USE_CHARM


def action_from_dict(payload: Dict[str, Any]) -> Action:
    """Build an Action variant from an already-validated payload."""
    kind = ActionKind(payload["action"])
    params = payload.get("params") or {}
    common = {
        "reasoning": str(payload.get("reasoning") or ""),
        "trash_talk": str(payload.get("trash_talk") or ""),
        "free_action": payload.get("free_action") == "use_charm",
    }
    if kind is ActionKind.MOVE:
        teleport_to = params.get("teleport_to")
        return Move(
            direction=params.get("direction"),
            tiles=int(params.get("tiles") or 1),
            teleport_to=(int(teleport_to[0]), int(teleport_to[1])) if teleport_to else None,
            **common,
        )
    if kind is ActionKind.ATTACK:
        return Attack(
            target_id=str(params.get("target_id") or ""),
            attack_type=str(params.get("attack_type") or "melee"),
            **common,
        )
    if kind is ActionKind.DEFEND:
        return Defend(**common)
    return UseCharm(**common)


# ---------------------------------------------------------------------------
# Match state
# ---------------------------------------------------------------------------

@dataclass
class Zone:
    center: Position
    radius: int
    next_shrink_turn: int


@dataclass
class Charm:
    type: str
    uses_left: int = 1


@dataclass
class Item:
    type: str
    position: Position
    effect: str = ""


@dataclass
class Agent:
    id: str
    name: str
    color: str
    archetype: str
    position: Position
    health: int
    max_health: int
    stats: Dict[str, int] = field(default_factory=dict)             # attack/defense/speed
    attacks: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    cooldowns: Dict[str, int] = field(default_factory=dict)          # attack names + "defend"
    charm: Optional[Charm] = None
    active_effects: List[Dict[str, Any]] = field(default_factory=list)
    damage_bonus: float = 0.0
    speed_bonus: int = 0
    lifesteal: float = 0.0
    has_shield: bool = False
    is_defending: bool = False
    has_reversal_active: bool = False
    is_cloaked: bool = False
    cloak_turns_left: int = 0
    has_berserk_active: bool = False
    berserk_turns_left: int = 0
    saved_defense: Optional[int] = None
    is_alive: bool = True
    last_action: Optional[str] = None
    reasoning: str = ""
    trash_talk: str = ""

    @property
    def move_budget(self) -> int:
        return int(self.stats.get("speed", 0)) + int(self.speed_bonus)


@dataclass
class MatchState:
    seed: int = 0                          # for deterministic spawns
    turn: int = 1
    phase: str = "initializing"            # "initializing" | "running" | "finished"
    zone: Optional[Zone] = None
    agents: Dict[str, Agent] = field(default_factory=dict)
    items: List[Item] = field(default_factory=list)
    obstacles: List[Position] = field(default_factory=list)
    log: List[Dict[str, Any]] = field(default_factory=list)
    winner: Optional[str] = None
    combat_totals: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def living(self) -> List[Agent]:
        return [agent for agent in self.agents.values() if agent.is_alive]

    def record(self, event: str, kind: str, turn: Optional[int] = None) -> None:
        self.log.append({"turn": self.turn if turn is None else turn, "event": event, "type": kind})

    def credit(self, agent_id: str, damage: int = 0, healing: int = 0) -> None:
        totals = self.combat_totals.setdefault(agent_id, {"damage": 0, "healing": 0})
        totals["damage"] += int(damage)
        totals["healing"] += int(healing)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchState":
        zone_data = data.get("zone")
        zone = None
        if zone_data:
            zone = Zone(
                center=_pos(zone_data["center"]),
                radius=int(zone_data["radius"]),
                next_shrink_turn=int(zone_data["next_shrink_turn"]),
            )
        agents = {}
        for agent_id, raw in (data.get("agents") or {}).items():
            fields = dict(raw)
            fields["position"] = _pos(fields["position"])
            charm = fields.get("charm")
            fields["charm"] = Charm(**charm) if charm else None
            fields["stats"] = dict(fields.get("stats") or {})
            fields["attacks"] = {name: dict(spec) for name, spec in (fields.get("attacks") or {}).items()}
            fields["cooldowns"] = dict(fields.get("cooldowns") or {})
            fields["active_effects"] = [dict(fx) for fx in fields.get("active_effects") or []]
            agents[agent_id] = Agent(**fields)
        return cls(
            seed=int(data.get("seed", 0)),
            turn=int(data.get("turn", 1)),
            phase=data.get("phase", "initializing"),
            zone=zone,
            agents=agents,
            items=[
                Item(type=item["type"], position=_pos(item["position"]), effect=item.get("effect", ""))
                for item in data.get("items") or []
            ],
            obstacles=[_pos(obs) for obs in data.get("obstacles") or []],
            log=[dict(entry) for entry in data.get("log") or []],
            winner=data.get("winner"),
            combat_totals={k: dict(v) for k, v in (data.get("combat_totals") or {}).items()},
        )


def _pos(value) -> Position:
    return (int(value[0]), int(value[1]))


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(_jsonable(k)): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value
