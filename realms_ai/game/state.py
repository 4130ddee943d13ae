"""
Game State Model
================

Plain dataclasses describing a two-sided card battle.

Perspective is always explicit: every consumer passes the Side it reasons
about and reads `state.own(side)` / `state.opponent(side)`. Nothing in the
state is "the AI" or "the player".
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Side(Enum):
    """One of the two seats at the table. FIRST acts on turn 1."""
    FIRST = 'first'
    SECOND = 'second'

    @property
    def other(self) -> 'Side':
        return Side.SECOND if self is Side.FIRST else Side.FIRST


class CardType(Enum):
    MINION = 'minion'
    SPELL = 'spell'


# Keywords
TAUNT = 'taunt'    # Must be attacked first
CHARGE = 'charge'  # Can attack the turn it is played


@dataclass(frozen=True)
class Ability:
    """
    A triggered card effect.

    Attributes:
        trigger: 'battlecry' (on play, also used by spells) or 'deathrattle'
        effect: 'damage', 'heal', 'draw', 'buff' or 'summon'
        value: Magnitude (damage, health, cards, attack bonus, token count)
        target: 'enemy_hero', 'own_hero', 'enemy_minions', 'all_minions',
                'random_enemy', 'random_friendly' or 'self'
    """
    trigger: str
    effect: str
    value: int
    target: str


@dataclass(frozen=True)
class Card:
    """A card definition (immutable)."""
    id: str
    name: str
    element: str
    type: CardType
    mana_cost: int
    attack: int = 0
    health: int = 0
    keywords: Tuple[str, ...] = ()
    abilities: Tuple[Ability, ...] = ()

    @property
    def is_minion(self) -> bool:
        return self.type is CardType.MINION


@dataclass
class Minion:
    """A minion on the board."""
    card: Card
    attack: int
    health: int
    current_health: int
    can_attack: bool
    instance_id: int

    @property
    def mana_cost(self) -> int:
        return self.card.mana_cost

    @property
    def keywords(self) -> Tuple[str, ...]:
        return self.card.keywords


@dataclass
class PlayerState:
    """Everything one side owns."""
    health: int
    mana: int
    max_mana: int
    hand: List[Card] = field(default_factory=list)
    board: List[Minion] = field(default_factory=list)
    deck: List[Card] = field(default_factory=list)
    fatigue: int = 0


@dataclass
class GameState:
    """Full two-sided game state."""
    first: PlayerState
    second: PlayerState
    current_side: Side = Side.FIRST
    turn_number: int = 1
    game_over: bool = False
    winner: Optional[Side] = None
    next_instance_id: int = 0

    def own(self, side: Side) -> PlayerState:
        """The PlayerState belonging to `side`."""
        return self.first if side is Side.FIRST else self.second

    def opponent(self, side: Side) -> PlayerState:
        """The PlayerState facing `side`."""
        return self.second if side is Side.FIRST else self.first

    def is_turn_of(self, side: Side) -> bool:
        return self.current_side is side


def can_attack(minion: Minion) -> bool:
    """Whether a minion may attack right now."""
    return minion.can_attack


def has_taunt(minion: Minion) -> bool:
    """Whether a minion forces attacks toward itself."""
    return TAUNT in minion.keywords
