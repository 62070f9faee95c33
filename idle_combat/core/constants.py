"""
Constants and enumerations for the combat engine.

Defines the damage types, elements, action tags, behavior profiles,
difficulty levels, combat phases and results shared by every other module,
together with the hit point thresholds used by the decision engine.
"""

from enum import Enum

# Hit point fractions below which a combatant counts as "low" or "critical".
LOW_HP_THRESHOLD = 0.3
CRITICAL_HP_THRESHOLD = 0.15

# Base critical hit values used when a combatant does not provide its own.
CRITICAL_HIT_CHANCE = 0.1
CRITICAL_HIT_MULTIPLIER = 2.0


class NiceEnum(Enum):
    """An enumeration that provides a nicer string representation."""

    def __str__(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.name.lower().replace("_", " ").capitalize()


class DamageType(NiceEnum):
    """Defines how an attack is mitigated by the defender."""

    PHYSICAL = "physical"
    MAGICAL = "magical"
    TRUE = "true"

    @property
    def color(self) -> str:
        """Returns the color string associated with this damage type."""
        return {
            DamageType.PHYSICAL: "bold white",
            DamageType.MAGICAL: "bold magenta",
            DamageType.TRUE: "bold red",
        }.get(self, "dim white")

    @property
    def colored_name(self) -> str:
        return self.colorize(self.display_name)

    def colorize(self, message: str) -> str:
        """Applies damage type color formatting to a message."""
        return f"[{self.color}]{message}[/]"


class Element(NiceEnum):
    """Defines the elemental affinity of attacks and combatants."""

    FIRE = "fire"
    ICE = "ice"
    LIGHTNING = "lightning"
    DARK = "dark"
    LIGHT = "light"
    PHYSICAL = "physical"

    @property
    def color(self) -> str:
        """Returns the color string associated with this element."""
        return {
            Element.FIRE: "#ff6b6b",
            Element.ICE: "#74c0fc",
            Element.LIGHTNING: "#ffd43b",
            Element.DARK: "#6c5ce7",
            Element.LIGHT: "#fdcb6e",
            Element.PHYSICAL: "#ffffff",
        }.get(self, "#ffffff")

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this element."""
        return {
            Element.FIRE: "🔥",
            Element.ICE: "❄️",
            Element.LIGHTNING: "⚡",
            Element.DARK: "🌑",
            Element.LIGHT: "✨",
            Element.PHYSICAL: "⚔️",
        }.get(self, "❔")

    @property
    def colored_name(self) -> str:
        return self.colorize(self.display_name)

    def colorize(self, message: str) -> str:
        """Applies element color formatting to a message."""
        return f"[{self.color}]{message}[/]"


class ActionType(NiceEnum):
    """The single behavior a combatant commits to for one turn."""

    ATTACK = "attack"
    DEFEND = "defend"
    SPECIAL = "special"
    HEAL = "heal"
    FLEE = "flee"


class AbilityType(NiceEnum):
    """Defines what an ability does when it is used."""

    ATTACK = "attack"
    HEAL = "heal"
    DEFEND = "defend"
    BUFF = "buff"


class AIType(NiceEnum):
    """The fixed behavior profiles driving non-player combatants."""

    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    BALANCED = "balanced"
    SMART = "smart"
    BERSERKER = "berserker"
    HEALER = "healer"


class Difficulty(NiceEnum):
    """Difficulty levels modulating the decision engine."""

    EASY = "EASY"
    NORMAL = "NORMAL"
    HARD = "HARD"
    NIGHTMARE = "NIGHTMARE"


class CombatantSlot(NiceEnum):
    """The two positions of the fixed turn order."""

    PLAYER = "player"
    OPPONENT = "opponent"

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this slot."""
        return {
            CombatantSlot.PLAYER: "🧙",
            CombatantSlot.OPPONENT: "👹",
        }.get(self, "❔")

    @property
    def color(self) -> str:
        """Returns the color string associated with this slot."""
        return {
            CombatantSlot.PLAYER: "bold blue",
            CombatantSlot.OPPONENT: "bold red",
        }.get(self, "dim white")

    def colorize(self, message: str) -> str:
        """Applies slot color formatting to a message."""
        return f"[{self.color}]{message}[/]"


class CombatPhase(NiceEnum):
    """The phase tag of a live combat session."""

    PREPARATION = "preparation"
    ACTION = "action"
    RESOLUTION = "resolution"


class CombatResult(NiceEnum):
    """How a combat session ended."""

    VICTORY = "victory"
    DEFEAT = "defeat"
    FLEE = "flee"

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this result."""
        return {
            CombatResult.VICTORY: "🏆",
            CombatResult.DEFEAT: "💀",
            CombatResult.FLEE: "🏃",
        }.get(self, "❔")


def opposite_slot(slot: CombatantSlot) -> CombatantSlot:
    """
    Returns the slot facing the given one.

    Args:
        slot (CombatantSlot):
            The slot whose opponent is requested.

    Returns:
        CombatantSlot:
            The other slot of the turn order.

    """
    if slot == CombatantSlot.PLAYER:
        return CombatantSlot.OPPONENT
    return CombatantSlot.PLAYER
