"""
Game Actions
============

Structured moves a side can make on its turn. The AI layer maps these to
and from flat action indices (see realms_ai.ai.action_space).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ActionType(Enum):
    """The four kinds of move."""
    PLAY_CARD = 'play_card'
    ATTACK_MINION = 'attack_minion'
    ATTACK_FACE = 'attack_face'
    END_TURN = 'end_turn'


@dataclass(frozen=True)
class Action:
    """
    A single move.

    Attributes:
        type: Kind of move
        hand_index: Hand slot to play (PLAY_CARD)
        attacker_index: Own board slot that attacks (ATTACK_MINION, ATTACK_FACE)
        target_index: Enemy board slot attacked (ATTACK_MINION)
    """
    type: ActionType
    hand_index: Optional[int] = None
    attacker_index: Optional[int] = None
    target_index: Optional[int] = None

    @classmethod
    def play_card(cls, hand_index: int) -> 'Action':
        return cls(ActionType.PLAY_CARD, hand_index=hand_index)

    @classmethod
    def attack_minion(cls, attacker_index: int, target_index: int) -> 'Action':
        return cls(ActionType.ATTACK_MINION, attacker_index=attacker_index, target_index=target_index)

    @classmethod
    def attack_face(cls, attacker_index: int) -> 'Action':
        return cls(ActionType.ATTACK_FACE, attacker_index=attacker_index)

    @classmethod
    def end_turn(cls) -> 'Action':
        return cls(ActionType.END_TURN)
