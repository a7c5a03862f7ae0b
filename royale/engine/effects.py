# royale/engine/effects.py
from __future__ import annotations

from typing import Any, Dict, List

from .models import Agent, EffectType

# "stat": numeric agent field the modifier is added to while active.
# "flag"/"counter": boolean + remaining-turns fields mirrored from the record.
EFFECT_TEMPLATES: Dict[EffectType, Dict[str, Any]] = {
    EffectType.RAGE: {"name": "Rage", "stat": "damage_bonus"},
    EffectType.DAMAGE_AMP: {"name": "Damage Amp", "stat": "damage_bonus"},
    EffectType.SPEED_BOOST: {"name": "Speed Boost", "stat": "speed_bonus"},
    EffectType.LIFESTEAL: {"name": "Lifesteal", "stat": "lifesteal"},
    EffectType.ZONE_IMMUNITY: {"name": "Zone Immunity"},
    EffectType.CLOAK: {"name": "Cloak", "flag": "is_cloaked", "counter": "cloak_turns_left"},
    EffectType.BERSERK: {"name": "Berserk", "flag": "has_berserk_active", "counter": "berserk_turns_left"},
}

assert set(EFFECT_TEMPLATES) == set(EffectType), "every effect type needs a template"


def _shift_stat(agent: Agent, stat: str, delta: float) -> None:
    value = getattr(agent, stat) + delta
    value = max(0, value)
    if stat == "speed_bonus":
        setattr(agent, stat, int(value))
    else:
        setattr(agent, stat, round(float(value), 4))


def add_effect(agent: Agent, effect_type: EffectType, turns: int, modifier: float = 0) -> Dict[str, Any]:
    """Attach a timed effect and apply its contribution immediately."""
    template = EFFECT_TEMPLATES[effect_type]
    effect = {"type": effect_type.value, "modifier": modifier, "turns_left": int(turns)}
    agent.active_effects.append(effect)

    if template.get("stat"):
        _shift_stat(agent, template["stat"], modifier)
    if template.get("flag"):
        setattr(agent, template["flag"], True)
        setattr(agent, template["counter"], int(turns))
    if effect_type is EffectType.BERSERK:
        if agent.saved_defense is None:
            agent.saved_defense = int(agent.stats.get("defense", 0))
        agent.stats["defense"] = 0
        for name in agent.attacks:
            agent.cooldowns[name] = 0
    return effect


def _expire(agent: Agent, effect: Dict[str, Any]) -> None:
    effect_type = EffectType(effect["type"])
    template = EFFECT_TEMPLATES[effect_type]
    if template.get("stat"):
        _shift_stat(agent, template["stat"], -effect.get("modifier", 0))
    if template.get("flag"):
        setattr(agent, template["flag"], False)
        setattr(agent, template["counter"], 0)
    if effect_type is EffectType.BERSERK and agent.saved_defense is not None:
        agent.stats["defense"] = agent.saved_defense
        agent.saved_defense = None


def tick_effects(agent: Agent) -> List[Dict[str, Any]]:
    """Decrement every timed effect; reverse and drop the expired ones."""
    kept: List[Dict[str, Any]] = []
    expired: List[Dict[str, Any]] = []
    for effect in agent.active_effects:
        effect["turns_left"] = int(effect.get("turns_left", 0)) - 1
        if effect["turns_left"] <= 0:
            expired.append(effect)
            continue
        kept.append(effect)
        counter = EFFECT_TEMPLATES[EffectType(effect["type"])].get("counter")
        if counter:
            setattr(agent, counter, effect["turns_left"])
    agent.active_effects = kept
    for effect in expired:
        _expire(agent, effect)
    return expired


def tick_cooldowns(agent: Agent) -> None:
    for key, remaining in agent.cooldowns.items():
        if remaining > 0:
            agent.cooldowns[key] = remaining - 1


def reset_cooldowns(agent: Agent) -> None:
    for key in agent.cooldowns:
        agent.cooldowns[key] = 0


def has_effect(agent: Agent, effect_type: EffectType) -> bool:
    return any(effect.get("type") == effect_type.value for effect in agent.active_effects)


def heal(agent: Agent, amount: int) -> int:
    """Clamp-at-max heal; returns what was actually restored."""
    before = agent.health
    agent.health = min(agent.health + max(0, int(amount)), agent.max_health)
    return agent.health - before


def hurt(agent: Agent, amount: int) -> int:
    """Flat damage, floored at zero health; returns the amount applied."""
    before = agent.health
    agent.health = max(0, agent.health - max(0, int(amount)))
    return before - agent.health
