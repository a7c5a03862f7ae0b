# royale/engine/charms.py
from typing import Callable, Dict, Optional

from .effects import add_effect, heal
from .models import Agent, CharmType, EffectType, MatchState
from ..content.charms import CHARMS


def _rage(agent: Agent, match: MatchState) -> None:
    charm = CHARMS[CharmType.RAGE.value]
    add_effect(agent, EffectType.RAGE, charm["duration"], charm["modifier"])
    match.record(f"{agent.id} activated RAGE! +50% damage for {charm['duration']} turns", "charm")


def _teleport(agent: Agent, match: MatchState) -> None:
    # repositioning needs a destination, which only a move carries
    match.record(f"{agent.id} activated TELEPORT!", "charm")


def _heal(agent: Agent, match: MatchState) -> None:
    amount = int(agent.max_health * CHARMS[CharmType.HEAL.value]["modifier"])
    healed = heal(agent, amount)
    match.credit(agent.id, healing=healed)
    match.record(
        f"{agent.id} used HEAL! Restored {healed} HP ({agent.health}/{agent.max_health})",
        "heal",
    )


def _reversal(agent: Agent, match: MatchState) -> None:
    agent.has_reversal_active = True
    match.record(f"{agent.id} activated REVERSAL! Next attack will be reflected", "charm")


def _cloak(agent: Agent, match: MatchState) -> None:
    turns = CHARMS[CharmType.CLOAK.value]["duration"]
    add_effect(agent, EffectType.CLOAK, turns)
    match.record(f"{agent.id} activated CLOAK! Untargetable for {turns} turns", "charm")


def _berserk(agent: Agent, match: MatchState) -> None:
    turns = CHARMS[CharmType.BERSERK.value]["duration"]
    add_effect(agent, EffectType.BERSERK, turns)
    match.record(f"{agent.id} went BERSERK! No cooldowns, zero defense for {turns} turns", "charm")


def _vampirism(agent: Agent, match: MatchState) -> None:
    charm = CHARMS[CharmType.VAMPIRISM.value]
    add_effect(agent, EffectType.LIFESTEAL, charm["duration"], charm["modifier"])
    match.record(
        f"{agent.id} activated VAMPIRISM! {int(charm['modifier'] * 100)}% lifesteal "
        f"for {charm['duration']} turns",
        "charm",
    )


CHARM_HANDLERS: Dict[CharmType, Callable[[Agent, MatchState], None]] = {
    CharmType.RAGE: _rage,
    CharmType.TELEPORT: _teleport,
    CharmType.HEAL: _heal,
    CharmType.REVERSAL: _reversal,
    CharmType.CLOAK: _cloak,
    CharmType.BERSERK: _berserk,
    CharmType.VAMPIRISM: _vampirism,
}

assert set(CHARM_HANDLERS) == set(CharmType), "every charm type needs a handler"


def has_usable_charm(agent: Agent, charm_type: Optional[CharmType] = None) -> bool:
    if not agent.charm or agent.charm.uses_left <= 0:
        return False
    return charm_type is None or agent.charm.type == charm_type.value


def activate_charm(agent: Agent, match: MatchState) -> bool:
    """Fire the agent's charm, spending one use. False (and a log line) if none is left."""
    if not has_usable_charm(agent):
        match.record(f"{agent.id} tried to use charm but has none left", "charm")
        return False
    CHARM_HANDLERS[CharmType(agent.charm.type)](agent, match)
    agent.charm.uses_left -= 1
    return True
