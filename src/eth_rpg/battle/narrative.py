"""Battle log narration.

Variant selection is a pure function of the actor name and damage, so a
replayed battle always reads the same without consuming RNG draws.
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_rpg.models import CharacterClassId

C = CharacterClassId

_DODGE_VARIANTS: dict[CharacterClassId, tuple[str, ...]] = {
    C.WARRIOR: ("Warrior sidesteps with raw instinct", "Warrior braces and rolls aside"),
    C.ROGUE: ("Rogue vanishes into shadow", "Rogue slips away like smoke", "Rogue flickers out of reach"),
    C.HUNTER: ("Hunter leaps aside", "Hunter ducks beneath the strike", "Hunter rolls to safety"),
    C.MERCHANT: ("Merchant deftly sidesteps", "Merchant dodges with practiced ease"),
    C.PRIEST: ("Priest is shielded by divine grace", "Priest fades behind a holy ward"),
    C.ELDER_WIZARD: ("Elder Wizard blinks through space", "Elder Wizard phases out of existence"),
    C.GUARDIAN: ("Guardian deflects with a raised shield", "Guardian absorbs the blow harmlessly"),
    C.SUMMONER: ("Summoner warps behind a portal", "Summoner phases through the rift"),
}

_BASIC_ATTACK_VARIANTS: dict[CharacterClassId, tuple[str, ...]] = {
    C.WARRIOR: ("swings a heavy blade", "strikes with steel resolve", "delivers a crushing blow"),
    C.ROGUE: ("slashes from the shadows", "delivers a quick cut", "strikes with lethal precision"),
    C.HUNTER: ("releases a precise arrow", "fires a swift bolt", "lets fly a deadly shot"),
    C.MERCHANT: ("throws weighted coins", "hurls a bag of gold", "flings a gilded dagger"),
    C.PRIEST: ("channels divine light", "strikes with holy force", "unleashes sacred energy"),
    C.ELDER_WIZARD: ("casts a flickering spell", "weaves arcane energy", "hurls a crackling bolt"),
    C.GUARDIAN: ("bashes with a shield", "delivers a heavy shove", "slams with iron force"),
    C.SUMMONER: ("commands a spirit to attack", "sends a phantom strike", "directs a spectral assault"),
}

_SKILL_VARIANTS: dict[str, tuple[str, ...]] = {
    "Heavy Strike": (
        "brings down a devastating blow",
        "channels fury into a crushing strike",
        "slams the ground with earth-shaking force",
    ),
    "Arbitrage": (
        "exploits an opening with twin slashes",
        "strikes twice in rapid succession",
        "finds the gap and cuts deep, then deeper",
    ),
    "NFT Snipe": (
        "locks on and fires a lethal snipe",
        "takes aim at the rarest weak point",
        "releases a precision bolt infused with fortune",
    ),
    "Hostile Takeover": (
        "launches a ruthless corporate assault",
        "overwhelms the opponent with market force",
        "executes a leveraged strike on the enemy",
    ),
    "Divine Shield": (
        "calls upon holy light for protection",
        "invokes a radiant barrier of faith",
        "wraps in divine energy, mending wounds",
    ),
    "Ancient Spell": (
        "channels millennia of arcane knowledge",
        "unleashes a spell older than the blockchain",
        "weaves forbidden magic from the ancient ledger",
    ),
    "Counter Stance": (
        "braces behind an impenetrable wall",
        "raises a mirrored shield of retribution",
        "assumes an iron counter stance",
    ),
    "Portal Strike": (
        "tears open a rift and strikes through it",
        "summons a creature from beyond the veil",
        "channels spirit and steel through a portal",
    ),
}


@dataclass(frozen=True)
class NarrativeInput:
    action_type: str
    damage: int = 0
    skill_name: str | None = None
    is_crit: bool = False
    is_stun: bool = False
    is_dodge: bool = False
    reflected: int | None = None
    mp_drained: int | None = None
    healed: int | None = None


def _select_variant(variants: tuple[str, ...], actor_name: str, damage: int) -> str:
    return variants[(len(actor_name) + damage) % len(variants)]


def _build_suffix(event: NarrativeInput) -> str:
    parts = [f"CRIT! {event.damage} damage!" if event.is_crit else f"{event.damage} damage."]
    if event.is_stun:
        parts.append("Target stunned!")
    if event.reflected:
        parts.append(f"{event.reflected} damage reflected!")
    if event.mp_drained:
        parts.append(f"Drained {event.mp_drained} MP!")
    if event.healed:
        parts.append(f"Recovered {event.healed} HP!")
    return " ".join(parts)


def generate_narrative(
    event: NarrativeInput,
    actor_name: str,
    target_name: str,
    actor_class: CharacterClassId,
    target_class: CharacterClassId,
) -> str:
    """Describe one battle action in a single line."""
    if event.action_type == "stunned":
        return f"{actor_name} is stunned and cannot act!"

    if event.is_dodge:
        # Dodge lines are voiced by the defender.
        return f"{_select_variant(_DODGE_VARIANTS[target_class], target_name, 0)} -- DODGE!"

    class_name = actor_class.display_name
    if event.action_type == "skill" and event.skill_name in _SKILL_VARIANTS:
        text = _select_variant(_SKILL_VARIANTS[event.skill_name], actor_name, event.damage)
        return f"{class_name} {text}! {_build_suffix(event)}"

    text = _select_variant(_BASIC_ATTACK_VARIANTS[actor_class], actor_name, event.damage)
    return f"{class_name} {text}. {_build_suffix(event)}"
